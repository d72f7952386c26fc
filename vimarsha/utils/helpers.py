"""
Helper Functions
Utility functions for views and templates
"""
from datetime import datetime
from typing import Optional

from vimarsha.exceptions import ValidationError
from vimarsha.messages import ErrorMessages


def format_datetime(dt, format: str = '%Y-%m-%d %H:%M') -> str:
    """Format datetime (or ISO string from the store) to string"""
    if dt is None or dt == '':
        return ''
    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except ValueError:
            return dt
    if not hasattr(dt, 'strftime'):
        return str(dt)
    return dt.strftime(format)


def get_status_badge_class(status: Optional[str]) -> str:
    """Get Bootstrap badge class based on a material/request/fault status"""
    status_map = {
        'installed': 'success',
        'not installed': 'secondary',
        'pending': 'warning',
        'approved': 'success',
        'rejected': 'danger',
        'open': 'danger',
        'inprogress': 'info',
        'pending parts': 'warning',
        'repaired': 'primary',
        'closed': 'success',
    }
    return status_map.get((status or '').strip().lower(), 'secondary')


def allowed_file(filename: str, allowed_extensions: set) -> bool:
    """Check if file extension is allowed"""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in allowed_extensions


def uploaded_image(files, field: str, allowed_extensions: set):
    """
    Optional image upload from a form.

    Returns:
        The file stream, or None when nothing was uploaded

    Raises:
        ValidationError: a file was uploaded but is not an allowed image
    """
    upload = files.get(field)
    if upload is None or not upload.filename:
        return None
    if not allowed_file(upload.filename, allowed_extensions):
        raise ValidationError(ErrorMessages.INVALID_IMAGE)
    return upload.stream


def parse_error_message(error) -> str:
    """User-facing text for an exception or an error dict"""
    if hasattr(error, 'user_message'):
        return error.user_message
    if isinstance(error, dict):
        if 'error' in error:
            return str(error['error'])
        elif 'message' in error:
            return str(error['message'])
    return ErrorMessages.UNEXPECTED


def paginate(items: list, page: int, per_page: int):
    """Slice a list for one page; returns (items, page, page count)"""
    pages = max(1, (len(items) + per_page - 1) // per_page)
    page = min(max(page, 1), pages)
    return items[(page - 1) * per_page:page * per_page], page, pages
