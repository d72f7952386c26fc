"""
Track Routes
Installation staff, maintenance staff and engineers in the field
"""
import logging

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from vimarsha.exceptions import EmptyPayload, VimarshaError
from vimarsha.messages import MaterialMessages
from vimarsha.routes.auth import register_auth_routes
from vimarsha.routes.profile import register_profile_route
from vimarsha.routes.scan import scan_response
from vimarsha.schemas.material import FAULT_STATUSES, INSTALLATION_STATUSES, VERIFICATION_STATUSES
from vimarsha.services import get_services
from vimarsha.services.material_service import (
    get_fault,
    list_faults,
    resolve,
    submit_verification,
    update_fault,
    update_installation,
)
from vimarsha.utils.auth_middleware import role_required
from vimarsha.utils.helpers import parse_error_message, uploaded_image
from vimarsha.utils.qr_codec import decode_payload

logger = logging.getLogger(__name__)

track_bp = Blueprint('track', __name__)

register_auth_routes(track_bp, 'track')
register_profile_route(track_bp, 'track')

# Where a scan continues for each role
SCAN_TARGETS = {
    'installation': 'track.installation_material',
    'engineer': 'track.engineer_material',
    'maintenance': 'track.material',
}


def _photo():
    return uploaded_image(request.files, 'photo', current_app.config['ALLOWED_IMAGE_EXTENSIONS'])


def _legacy_redirect(endpoint: str):
    """``...?id=XXXXXXX`` links from older printed codes"""
    try:
        identifier = decode_payload(request.args.get('id', ''))
    except EmptyPayload:
        abort(404)
    return redirect(url_for(endpoint, identifier=identifier), code=301)


@track_bp.route('/')
@track_bp.route('/home')
@role_required('track')
def home():
    return render_template('track/home.html', role=g.profile.role)


@track_bp.route('/scan', methods=['GET', 'POST'])
@role_required('track')
def scan():
    """Scanner page (GET) and scan resolution (POST)"""
    endpoint = SCAN_TARGETS.get(g.profile.role, 'track.material')
    if request.method == 'POST':
        return scan_response(lambda material_id: url_for(endpoint, identifier=material_id))
    return render_template('scan.html', scan_url=url_for('track.scan'), title='Scan Material QR')


@track_bp.route('/materials/<identifier>')
@role_required('track')
def material(identifier):
    """Read-only record for any track role"""
    try:
        record = resolve(get_services().store, identifier)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        return render_template('track/material.html', material=None, identifier=identifier), e.status_code
    return render_template('track/material.html', material=record, identifier=identifier)


# ============================================================================
# INSTALLATION
# ============================================================================

@track_bp.route('/installation')
@role_required('track', roles=['installation'])
def installation():
    return render_template('scan.html', scan_url=url_for('track.scan'), title='Installation')


@track_bp.route('/installation/material')
def installation_material_legacy():
    return _legacy_redirect('track.installation_material')


@track_bp.route('/installation/material/<identifier>', methods=['GET', 'POST'])
@role_required('track', roles=['installation'])
def installation_material(identifier):
    """Installation details for one material, with an optional site photo"""
    services = get_services()
    try:
        record = resolve(services.store, identifier)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        return redirect(url_for('track.installation'))

    if request.method == 'POST':
        try:
            update_installation(services.store, services.storage, identifier,
                                request.form.to_dict(), photo=_photo())
        except VimarshaError as e:
            flash(parse_error_message(e), 'danger')
            return render_template('track/installation_form.html', material=record,
                                   statuses=INSTALLATION_STATUSES), e.status_code

        flash(MaterialMessages.INSTALLATION_SAVED, 'success')
        return redirect(url_for('track.installation_material', identifier=identifier))

    return render_template('track/installation_form.html', material=record, statuses=INSTALLATION_STATUSES)


# ============================================================================
# ENGINEER
# ============================================================================

@track_bp.route('/engineer')
@role_required('track', roles=['engineer'])
def engineer():
    return render_template('scan.html', scan_url=url_for('track.scan'), title='Engineer Verification')


@track_bp.route('/engineer/material')
def engineer_material_legacy():
    return _legacy_redirect('track.engineer_material')


@track_bp.route('/engineer/material/<identifier>', methods=['GET', 'POST'])
@role_required('track', roles=['engineer'])
def engineer_material(identifier):
    """Engineer verification; submitting sends a request to the depot officer"""
    services = get_services()
    try:
        record = resolve(services.store, identifier)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        return redirect(url_for('track.engineer'))

    if request.method == 'POST':
        try:
            submit_verification(services.store, services.storage, identifier,
                                request.form.to_dict(), photo=_photo())
        except VimarshaError as e:
            flash(parse_error_message(e), 'danger')
            return render_template('track/verification_form.html', material=record,
                                   statuses=VERIFICATION_STATUSES), e.status_code

        flash(MaterialMessages.VERIFICATION_SUBMITTED, 'success')
        return redirect(url_for('track.engineer'))

    return render_template('track/verification_form.html', material=record, statuses=VERIFICATION_STATUSES)


@track_bp.route('/engineer/faults')
@role_required('track', roles=['engineer'])
def faults():
    status = request.args.get('status', '')
    try:
        reports = list_faults(get_services().store)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        reports = []
    if status in FAULT_STATUSES:
        reports = [f for f in reports if f.get('status') == status]
    return render_template('track/faults.html', faults=reports, status=status, statuses=FAULT_STATUSES)


@track_bp.route('/engineer/faults/<fault_id>', methods=['GET', 'POST'])
@role_required('track', roles=['engineer'])
def fault_details(fault_id):
    store = get_services().store
    try:
        fault = get_fault(store, fault_id)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        return redirect(url_for('track.faults'))

    if request.method == 'POST':
        try:
            update_fault(store, fault_id, request.form.to_dict())
        except VimarshaError as e:
            flash(parse_error_message(e), 'danger')
            return render_template('track/fault_detail.html', fault=fault,
                                   statuses=FAULT_STATUSES), e.status_code

        flash(MaterialMessages.FAULT_UPDATED, 'success')
        return redirect(url_for('track.faults'))

    return render_template('track/fault_detail.html', fault=fault, statuses=FAULT_STATUSES)
