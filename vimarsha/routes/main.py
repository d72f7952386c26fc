"""
Main Routes
Landing page, public material page, QR images, health
"""
import logging

from flask import (
    Blueprint,
    Response,
    abort,
    current_app,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

from vimarsha.exceptions import EmptyPayload, VimarshaError
from vimarsha.services import get_services
from vimarsha.services.material_service import is_document_key, resolve
from vimarsha.services.report_service import material_report_pdf, qr_label_pdf
from vimarsha.utils.auth_middleware import current_home
from vimarsha.utils.qr_codec import decode_payload, render_png_label, render_svg

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    """Landing page with the section entry points"""
    return render_template('index.html', home=current_home())


@main_bp.route('/materials/<identifier>')
def material_detail(identifier):
    """
    Public, read-only record page; the target of every printed code.

    Not-found, damaged and unreachable records each render their own
    message with the matching status instead of an empty page.
    """
    try:
        material = resolve(get_services().store, identifier)
    except VimarshaError as e:
        logger.info(f"Public lookup of {identifier!r} failed: {type(e).__name__}")
        return render_template(
            'materials/detail.html',
            material=None,
            identifier=identifier,
            error=e.user_message,
            retry=e.status_code == 503,
        ), e.status_code

    return render_template('materials/detail.html', material=material, identifier=identifier)


@main_bp.route('/material')
def legacy_material_link():
    """Old deep links (``/material?id=...``) move to the canonical page"""
    try:
        identifier = decode_payload(request.args.get('id', ''))
    except EmptyPayload:
        abort(404)
    return redirect(url_for('main.material_detail', identifier=identifier), code=301)


def _qr_identifier(identifier: str) -> str:
    if not is_document_key(identifier):
        abort(404)
    return identifier


@main_bp.route('/materials/<identifier>/qr.svg')
def material_qr_svg(identifier):
    svg = render_svg(
        _qr_identifier(identifier),
        module_size=current_app.config['QR_MODULE_SIZE'],
        margin=current_app.config['QR_MARGIN'],
    )
    return Response(svg, mimetype='image/svg+xml')


@main_bp.route('/materials/<identifier>/qr.png')
def material_qr_png(identifier):
    """Printable PNG label; ``?download=1`` saves it as a file"""
    png = render_png_label(
        _qr_identifier(identifier),
        module_size=current_app.config['QR_MODULE_SIZE'],
        margin=current_app.config['QR_MARGIN'],
    )
    response = Response(png, mimetype='image/png')
    if request.args.get('download'):
        response.headers['Content-Disposition'] = f'attachment; filename=QR_{identifier}.png'
    return response


@main_bp.route('/materials/<identifier>/qr.pdf')
def material_qr_pdf(identifier):
    """The PNG label on an A4 page, always served as a download"""
    identifier = _qr_identifier(identifier)
    png = render_png_label(
        identifier,
        module_size=current_app.config['QR_MODULE_SIZE'],
        margin=current_app.config['QR_MARGIN'],
    )
    response = Response(qr_label_pdf(identifier, png), mimetype='application/pdf')
    response.headers['Content-Disposition'] = f'attachment; filename=QR_{identifier}.pdf'
    return response


@main_bp.route('/materials/<identifier>/report.pdf')
def material_report(identifier):
    """Lifecycle report of a material; lookup errors go to the error page"""
    material = resolve(get_services().store, identifier)
    response = Response(material_report_pdf(material), mimetype='application/pdf')
    response.headers['Content-Disposition'] = (
        f'attachment; filename={material.material_id}_Railway_Report.pdf'
    )
    return response


@main_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})
