"""
Vendor Routes
Manufacturer dashboard, material registration, edits and QR codes
"""
import logging

from flask import (
    Blueprint,
    Response,
    current_app,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from vimarsha.exceptions import PermissionDenied, VimarshaError
from vimarsha.messages import MaterialMessages
from vimarsha.routes.auth import register_auth_routes
from vimarsha.routes.profile import register_profile_route
from vimarsha.schemas.material import FITTING_TYPES
from vimarsha.services import get_services
from vimarsha.services.material_service import (
    create_material,
    dashboard_stats,
    export_workbook,
    filter_materials,
    list_materials,
    manufacturer_id7,
    resolve,
    update_material,
)
from vimarsha.utils.auth_middleware import role_required
from vimarsha.utils.helpers import paginate, parse_error_message

logger = logging.getLogger(__name__)

vendor_bp = Blueprint('vendor', __name__)

register_auth_routes(vendor_bp, 'vendor')
register_profile_route(vendor_bp, 'vendor')


def _my_id() -> str:
    return manufacturer_id7(g.identity.uid)


def _own_material(identifier: str):
    """Resolve a material and make sure the signed-in vendor made it"""
    material = resolve(get_services().store, identifier)
    if material.manufacturer_id != _my_id():
        raise PermissionDenied()
    return material


@vendor_bp.route('/')
@vendor_bp.route('/dashboard')
@role_required('vendor')
def dashboard():
    """Vendor dashboard: counts per fitting family and recent materials"""
    try:
        materials = list_materials(get_services().store, _my_id())
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        materials = []

    return render_template(
        'vendor/dashboard.html',
        stats=dashboard_stats(materials),
        recent=materials[:5],
        manufacturer_id=_my_id(),
    )


@vendor_bp.route('/materials/new', methods=['GET', 'POST'])
@role_required('vendor')
def add_material():
    """Register a material; the QR page follows on success"""
    if request.method == 'POST':
        form = request.form.to_dict()
        try:
            material = create_material(get_services().store, form, _my_id())
        except VimarshaError as e:
            flash(parse_error_message(e), 'danger')
            return render_template(
                'vendor/material_form.html', form=form, fitting_types=FITTING_TYPES, editing=False
            ), e.status_code

        flash(MaterialMessages.CREATED, 'success')
        return redirect(url_for('vendor.material_qr', identifier=material.material_id))

    return render_template('vendor/material_form.html', form={}, fitting_types=FITTING_TYPES, editing=False)


@vendor_bp.route('/materials')
@role_required('vendor')
def materials():
    """The vendor's materials with search, status filter and paging"""
    term = request.args.get('q', '')
    status = request.args.get('status', '')
    page = request.args.get('page', 1, type=int)

    try:
        records = list_materials(get_services().store, _my_id())
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        records = []

    filtered = filter_materials(records, term, status)
    items, page, pages = paginate(filtered, page, current_app.config['ITEMS_PER_PAGE'])
    return render_template(
        'materials/list.html',
        materials=items,
        total=len(filtered),
        page=page,
        pages=pages,
        term=term,
        status=status,
        section='vendor',
        live=True,
    )


@vendor_bp.route('/materials/<identifier>')
@role_required('vendor')
def view_material(identifier):
    material = _own_material(identifier)
    return render_template('vendor/material.html', material=material)


@vendor_bp.route('/materials/<identifier>/edit', methods=['GET', 'POST'])
@role_required('vendor')
def edit_material(identifier):
    """Edit manufacturing details; identifier and QR fields stay as minted"""
    material = _own_material(identifier)

    if request.method == 'POST':
        form = request.form.to_dict()
        try:
            update_material(get_services().store, identifier, form)
        except VimarshaError as e:
            flash(parse_error_message(e), 'danger')
            return render_template(
                'vendor/material_form.html', form=form, material=material,
                fitting_types=FITTING_TYPES, editing=True,
            ), e.status_code

        flash(MaterialMessages.UPDATED, 'success')
        return redirect(url_for('vendor.view_material', identifier=identifier))

    return render_template(
        'vendor/material_form.html',
        form=material.to_document(),
        material=material,
        fitting_types=FITTING_TYPES,
        editing=True,
    )


@vendor_bp.route('/materials/<identifier>/qr')
@role_required('vendor')
def material_qr(identifier):
    """QR page: the printable code plus the public deep link"""
    material = _own_material(identifier)
    base_url = current_app.config['PUBLIC_BASE_URL'].rstrip('/')
    public_link = base_url + url_for('main.material_detail', identifier=material.material_id)
    return render_template('vendor/qr.html', material=material, public_link=public_link)


@vendor_bp.route('/materials/export.xlsx')
@role_required('vendor')
def export_materials():
    """Download the vendor's (filtered) materials as a spreadsheet"""
    records = list_materials(get_services().store, _my_id())
    records = filter_materials(records, request.args.get('q', ''), request.args.get('status', ''))
    if not records:
        flash(MaterialMessages.NOTHING_TO_EXPORT, 'info')
        return redirect(url_for('vendor.materials'))

    logger.info(f"Exporting {len(records)} materials for {_my_id()}")
    return Response(
        export_workbook(records),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        headers={'Content-Disposition': 'attachment; filename=materials.xlsx'},
    )
