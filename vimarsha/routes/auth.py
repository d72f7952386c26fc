"""
Authentication Routes
Login, Register, Forgot password, Logout for every section
"""
from flask import flash, redirect, render_template, request, url_for

from vimarsha.exceptions import (
    InvalidCredentialsError,
    PermissionDenied,
    VimarshaError,
)
from vimarsha.logging_config import get_auth_logger
from vimarsha.messages import AuthMessages, RegistrationMessages
from vimarsha.services import get_services
from vimarsha.services.profile_service import authenticate, register_staff
from vimarsha.utils.auth_middleware import (
    SECTIONS,
    current_home,
    end_session,
    home_for_role,
    start_session,
)
from vimarsha.utils.helpers import parse_error_message


def register_auth_routes(bp, section_name: str, allow_register: bool = True) -> None:
    """
    Add login/register/forgot/logout views to a section blueprint.

    Endpoints are ``<section>.login``, ``<section>.register``,
    ``<section>.forgot`` and ``<section>.logout``.
    """
    section = SECTIONS[section_name]
    auth_logger = get_auth_logger()

    def login():
        """Login page"""
        # Redirect if already logged in (unless the gate could not verify it)
        home = current_home()
        if home and not request.args.get('retry'):
            return redirect(home)

        if request.method == 'POST':
            email = request.form.get('email', '').strip()
            password = request.form.get('password', '')
            emp_id = request.form.get('emp_id', '').strip()
            role = request.form.get('role', '').strip() or None

            # Validate input
            if not email or not password or (section.requires_emp_id and not emp_id):
                flash(RegistrationMessages.ALL_FIELDS_REQUIRED, 'danger')
                return render_template('auth/login.html', section=section), 400

            services = get_services()
            try:
                account, profile = authenticate(
                    services.identity, services.store, section,
                    email, password, emp_id=emp_id, role=role,
                )
            except PermissionDenied as e:
                auth_logger.warning(f"Login to {section.name} refused for {email}: {e.user_message}")
                flash(e.user_message, 'danger')
                return render_template('auth/login.html', section=section), 403
            except VimarshaError as e:
                auth_logger.warning(f"Login to {section.name} failed for {email}: {type(e).__name__}")
                flash(parse_error_message(e), 'danger')
                return render_template('auth/login.html', section=section), e.status_code

            response = redirect(home_for_role(profile.role) or url_for('main.index'))
            start_session(response, account, profile, section)
            auth_logger.info(f"Login to {section.name}: {account.uid} ({profile.role})")
            flash(AuthMessages.LOGIN_SUCCESS, 'success')
            return response

        return render_template('auth/login.html', section=section)

    def register():
        """Registration page"""
        home = current_home()
        if home:
            return redirect(home)

        if request.method == 'POST':
            services = get_services()
            form = request.form.to_dict()
            form.setdefault('empId', form.get('emp_id', ''))
            try:
                profile = register_staff(services.identity, services.store, section, form)
            except VimarshaError as e:
                flash(parse_error_message(e), 'danger')
                return render_template('auth/register.html', section=section, form=form), e.status_code

            auth_logger.info(f"Registered {profile.uid} in {section.name} as {profile.role}")
            flash(RegistrationMessages.REGISTRATION_SUCCESS, 'success')
            return redirect(url_for(section.login_endpoint))

        return render_template('auth/register.html', section=section, form={})

    def forgot():
        """Password reset request"""
        if request.method == 'POST':
            email = request.form.get('email', '').strip()
            if not email:
                flash(AuthMessages.ENTER_EMAIL, 'warning')
                return render_template('auth/forgot.html', section=section), 400

            try:
                get_services().identity.send_password_reset(email)
            except InvalidCredentialsError:
                # Same answer whether or not the email has an account
                pass
            except VimarshaError as e:
                flash(parse_error_message(e), 'danger')
                return render_template('auth/forgot.html', section=section), e.status_code

            auth_logger.info(f"Password reset requested in {section.name}")
            flash(AuthMessages.RESET_SENT, 'success')
            return redirect(url_for(section.login_endpoint))

        return render_template('auth/forgot.html', section=section)

    def logout():
        """Logout"""
        response = redirect(url_for(section.login_endpoint))
        end_session(response)
        auth_logger.info(f"Logout from {section.name}")
        flash(AuthMessages.LOGOUT_SUCCESS, 'info')
        return response

    bp.add_url_rule('/login', 'login', login, methods=['GET', 'POST'])
    if allow_register:
        bp.add_url_rule('/register', 'register', register, methods=['GET', 'POST'])
    bp.add_url_rule('/forgot', 'forgot', forgot, methods=['GET', 'POST'])
    bp.add_url_rule('/logout', 'logout', logout)
