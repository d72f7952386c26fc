"""
Admin Routes
Read-only dashboards for manufacturer admins and officers
"""
from flask import Blueprint, current_app, flash, render_template, request

from vimarsha.exceptions import VimarshaError
from vimarsha.routes.auth import register_auth_routes
from vimarsha.routes.profile import register_profile_route
from vimarsha.services import get_services
from vimarsha.services.material_service import dashboard_stats, filter_materials, list_materials
from vimarsha.services.profile_service import list_profiles
from vimarsha.utils.auth_middleware import SECTIONS, role_required
from vimarsha.utils.helpers import paginate, parse_error_message

admin_bp = Blueprint('admin', __name__)

# No self-registration for admin accounts
register_auth_routes(admin_bp, 'admin', allow_register=False)
register_profile_route(admin_bp, 'admin')


@admin_bp.route('/')
@admin_bp.route('/dashboard')
@role_required('admin')
def dashboard():
    """System-wide statistics"""
    try:
        materials = list_materials(get_services().store)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        materials = []

    manufacturers = len({m.manufacturer_id for m in materials if m.manufacturer_id})
    return render_template(
        'admin/dashboard.html',
        stats=dashboard_stats(materials),
        recent=materials[:10],
        manufacturers=manufacturers,
    )


@admin_bp.route('/materials')
@role_required('admin')
def materials():
    term = request.args.get('q', '')
    status = request.args.get('status', '')
    try:
        records = list_materials(get_services().store)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        records = []

    filtered = filter_materials(records, term, status)
    items, page, pages = paginate(filtered, request.args.get('page', 1, type=int),
                                  current_app.config['ITEMS_PER_PAGE'])
    return render_template(
        'materials/list.html',
        materials=items,
        total=len(filtered),
        page=page,
        pages=pages,
        term=term,
        status=status,
        section='admin',
        live=True,
    )


@admin_bp.route('/employees')
@role_required('admin')
def employees():
    """Vendor accounts registered in the system"""
    try:
        staff = list_profiles(get_services().store, SECTIONS['vendor'].collection, role='manufacturer')
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        staff = []
    return render_template('admin/employees.html', employees=staff)
