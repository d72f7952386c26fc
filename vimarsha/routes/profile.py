"""
Profile page shared by every section
"""
from flask import current_app, flash, g, redirect, render_template, request, session, url_for

from vimarsha.exceptions import VimarshaError
from vimarsha.messages import MaterialMessages
from vimarsha.services import get_services
from vimarsha.services.profile_service import update_profile
from vimarsha.utils.auth_middleware import SECTIONS, role_required
from vimarsha.utils.helpers import parse_error_message, uploaded_image


def register_profile_route(bp, section_name: str) -> None:
    """Add the ``<section>.profile`` view (show + edit own profile)"""
    section = SECTIONS[section_name]

    @role_required(section_name)
    def profile():
        if request.method == 'POST':
            services = get_services()
            try:
                photo = uploaded_image(request.files, 'photo', current_app.config['ALLOWED_IMAGE_EXTENSIONS'])
                changes = update_profile(
                    services.store, services.storage, section.collection,
                    g.identity.uid, request.form.to_dict(), photo=photo,
                )
            except VimarshaError as e:
                flash(parse_error_message(e), 'danger')
                return render_template('profile.html', section=section, profile=g.profile), e.status_code

            if changes.get('name'):
                summary = dict(session.get('profile') or {})
                summary['name'] = changes['name']
                session['profile'] = summary
            flash(MaterialMessages.PROFILE_UPDATED, 'success')
            return redirect(url_for(f'{section_name}.profile'))

        return render_template('profile.html', section=section, profile=g.profile)

    bp.add_url_rule('/profile', 'profile', profile, methods=['GET', 'POST'])
