"""
Depot Routes
Depot officer dashboard, scanning and engineer request decisions
"""
import logging

from flask import Blueprint, flash, redirect, render_template, request, url_for

from vimarsha.exceptions import VimarshaError
from vimarsha.messages import MaterialMessages
from vimarsha.routes.auth import register_auth_routes
from vimarsha.routes.profile import register_profile_route
from vimarsha.routes.scan import scan_response
from vimarsha.schemas.material import REQUEST_STATUSES
from vimarsha.services import get_services
from vimarsha.services.material_service import (
    dashboard_stats,
    decide_request,
    list_materials,
    list_requests,
    resolve,
)
from vimarsha.utils.auth_middleware import role_required
from vimarsha.utils.helpers import parse_error_message

logger = logging.getLogger(__name__)

depot_bp = Blueprint('depot', __name__)

register_auth_routes(depot_bp, 'depot')
register_profile_route(depot_bp, 'depot')


@depot_bp.route('/')
@depot_bp.route('/dashboard')
@role_required('depot')
def dashboard():
    try:
        materials = list_materials(get_services().store)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        materials = []
    return render_template('depot/dashboard.html', stats=dashboard_stats(materials), recent=materials[:10])


@depot_bp.route('/scan', methods=['GET', 'POST'])
@role_required('depot')
def scan():
    """Scanner page (GET) and scan resolution (POST)"""
    if request.method == 'POST':
        return scan_response(lambda material_id: url_for('depot.material', identifier=material_id))
    return render_template('scan.html', scan_url=url_for('depot.scan'), title='Depot Scanner')


@depot_bp.route('/material/<identifier>')
@role_required('depot')
def material(identifier):
    """Full record for the officer, with the pending request if any"""
    try:
        record = resolve(get_services().store, identifier)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        return render_template('depot/material.html', material=None, identifier=identifier), e.status_code
    return render_template('depot/material.html', material=record, identifier=identifier)


@depot_bp.route('/requests')
@role_required('depot')
def requests_list():
    """Engineer verification requests; ``?status=`` pending/approved/rejected/all"""
    status = request.args.get('status', 'pending')
    if status not in REQUEST_STATUSES:
        status = 'all'
    try:
        requests = list_requests(get_services().store, status)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
        requests = []
    return render_template('depot/requests.html', requests=requests, status=status)


def _decide(identifier: str, approved: bool):
    try:
        decide_request(get_services().store, identifier, approved)
    except VimarshaError as e:
        flash(parse_error_message(e), 'danger')
    else:
        flash(MaterialMessages.REQUEST_APPROVED if approved else MaterialMessages.REQUEST_REJECTED, 'success')
    return redirect(url_for('depot.requests_list', status=request.args.get('status', 'pending')))


@depot_bp.route('/requests/<identifier>/approve', methods=['POST'])
@role_required('depot')
def approve_request(identifier):
    return _decide(identifier, approved=True)


@depot_bp.route('/requests/<identifier>/reject', methods=['POST'])
@role_required('depot')
def reject_request(identifier):
    return _decide(identifier, approved=False)
