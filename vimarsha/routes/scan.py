"""
Scan endpoint shared by the depot and track sections
"""
import logging

from flask import current_app, jsonify, request, url_for

from vimarsha.exceptions import ValidationError, VimarshaError
from vimarsha.messages import ErrorMessages
from vimarsha.services import get_services
from vimarsha.services.material_service import resolve, scan_photo
from vimarsha.utils.helpers import allowed_file
from vimarsha.utils.qr_codec import decode_payload

logger = logging.getLogger(__name__)


def _scanned_identifier(services) -> str:
    photo = request.files.get('photo')
    if photo is not None and photo.filename:
        if not allowed_file(photo.filename, current_app.config['ALLOWED_IMAGE_EXTENSIONS']):
            raise ValidationError(ErrorMessages.INVALID_IMAGE)
        return scan_photo(services.executor, photo.read(), current_app.config['SCAN_TIMEOUT'])

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    payload = body.get('payload', request.form.get('payload', ''))
    return decode_payload('' if payload is None else str(payload))


def scan_response(next_url):
    """
    Decode a scan and resolve it.

    Accepts ``{"payload": "..."}`` JSON (text read by the browser camera)
    or a ``photo`` upload decoded on the server. Answers with the canonical
    record location plus the section page to continue on.

    Args:
        next_url: Callable mapping a Material ID to the section's page
    """
    services = get_services()
    try:
        identifier = _scanned_identifier(services)
        material = resolve(services.store, identifier)
    except VimarshaError as e:
        logger.info(f"Scan on {request.path} failed: {type(e).__name__}")
        return jsonify({'error': e.user_message}), e.status_code

    return jsonify({
        'materialId': material.material_id,
        'location': url_for('main.material_detail', identifier=material.material_id),
        'next': next_url(material.material_id),
    })
