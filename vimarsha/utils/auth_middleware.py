"""
Authentication Middleware
Session marker handling and the role gate protecting every section
"""
import logging
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Dict, Optional, Tuple

from flask import current_app, flash, g, redirect, request, session, url_for

from vimarsha.exceptions import AuthenticationError, TransientError
from vimarsha.logging_config import get_auth_logger
from vimarsha.messages import AuthMessages
from vimarsha.services import get_services
from vimarsha.services.identity import IdentitySession
from vimarsha.services.profile_service import get_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Section:
    """One role section of the site"""
    name: str
    collection: str
    roles: Tuple[str, ...]
    login_endpoint: str
    requires_emp_id: bool = False


SECTIONS: Dict[str, Section] = {
    'vendor': Section('vendor', 'users', ('manufacturer',), 'vendor.login'),
    'admin': Section('admin', 'users', ('manufacturerAdmin', 'admin'), 'admin.login'),
    'depot': Section('depot', 'trackStaff', ('depot',), 'depot.login', requires_emp_id=True),
    'track': Section('track', 'trackStaff', ('installation', 'maintenance', 'engineer'),
                     'track.login', requires_emp_id=True),
}

ROLE_HOME = {
    'manufacturer': 'vendor.dashboard',
    'manufacturerAdmin': 'admin.dashboard',
    'admin': 'admin.dashboard',
    'depot': 'depot.dashboard',
    'installation': 'track.installation',
    'maintenance': 'track.home',
    'engineer': 'track.engineer',
}


class GateState(Enum):
    CHECKING = 'checking'
    ALLOWED = 'allowed'
    REDIRECTING = 'redirecting'


@dataclass
class GateResult:
    """
    Outcome of one gate run.

    Starts in CHECKING and moves exactly once, to ALLOWED or REDIRECTING.
    Only an ALLOWED result lets protected content render.
    """
    state: GateState = GateState.CHECKING
    message: Optional[str] = None
    category: str = 'warning'
    signed_out: bool = False
    retry: bool = False
    profile: Optional[object] = None
    identity: Optional[IdentitySession] = None

    def _leave_checking(self, state: GateState):
        if self.state is not GateState.CHECKING:
            raise RuntimeError(f"Gate already settled as {self.state.value}")
        self.state = state

    def allow(self, profile, identity: IdentitySession) -> 'GateResult':
        self._leave_checking(GateState.ALLOWED)
        self.profile = profile
        self.identity = identity
        return self

    def redirect(self, message: str, category: str = 'warning',
                 signed_out: bool = False, retry: bool = False) -> 'GateResult':
        self._leave_checking(GateState.REDIRECTING)
        self.message = message
        self.category = category
        self.signed_out = signed_out
        self.retry = retry
        return self


# ============================================================================
# SESSION MARKER
# ============================================================================

def _marker_name() -> str:
    return current_app.config.get('SESSION_MARKER_COOKIE', '__session')


def has_marker() -> bool:
    return bool(request.cookies.get(_marker_name()))


def set_marker(response):
    """Write the short-lived marker cookie onto a response"""
    response.set_cookie(
        _marker_name(),
        '1',
        max_age=int(current_app.config.get('PERMANENT_SESSION_LIFETIME', 86400)),
        httponly=True,
        secure=current_app.config.get('SESSION_COOKIE_SECURE', False),
        samesite='Lax',
    )
    return response


def clear_marker(response):
    response.delete_cookie(_marker_name())
    return response


def start_session(response, identity: IdentitySession, profile, section: Section):
    """Store the signed-in identity and set the marker; call only after the role check"""
    session.clear()
    session.permanent = True
    session['identity'] = identity.to_dict()
    session['profile'] = {
        'uid': identity.uid,
        'name': profile.display_name,
        'role': profile.role,
        'section': section.name,
    }
    return set_marker(response)


def end_session(response=None):
    session.clear()
    if response is not None:
        clear_marker(response)
    return response


def get_current_identity() -> Optional[IdentitySession]:
    """Identity stored at login (None when signed out)"""
    return IdentitySession.from_dict(session.get('identity'))


def get_current_profile() -> Dict:
    """Name/role summary stored at login, for navigation and display only"""
    return session.get('profile') or {}


def home_for_role(role: str) -> Optional[str]:
    endpoint = ROLE_HOME.get(role)
    return url_for(endpoint) if endpoint else None


def current_home() -> Optional[str]:
    """Home page of the signed-in user, or None when there is no session"""
    if not has_marker() or get_current_identity() is None:
        return None
    return home_for_role(get_current_profile().get('role', ''))


# ============================================================================
# GATE
# ============================================================================

def _read_profile(store, sections: Tuple[Section, ...], uid: str, allowed_roles):
    """First profile of ``uid`` holding an allowed role, else the first one found"""
    found = None
    for collection in dict.fromkeys(section.collection for section in sections):
        profile = get_profile(store, collection, uid)
        if profile is not None and profile.role in allowed_roles:
            return profile
        found = found or profile
    return found


def check_sections(section_names, roles=None) -> GateResult:
    """
    Decide whether the current request may enter any of ``section_names``.

    A missing marker or identity is rejected without any remote call. A
    present session is re-verified with the identity provider and the
    profile's role is re-read from the store on every entry; the role
    stored in the session is never consulted.
    """
    sections = tuple(SECTIONS[name] for name in section_names)
    allowed_roles = tuple(roles) if roles else tuple(
        role for section in sections for role in section.roles
    )
    label = '+'.join(section.name for section in sections)
    auth_logger = get_auth_logger()
    result = GateResult()

    identity = get_current_identity()
    if not has_marker() or identity is None:
        auth_logger.info(f"Gate {label}: no session for {request.path}")
        return result.redirect(AuthMessages.LOGIN_REQUIRED)

    services = get_services()
    try:
        identity = services.identity.verify(identity)
    except AuthenticationError:
        auth_logger.warning(f"Gate {label}: session expired for {identity.uid}")
        return result.redirect(AuthMessages.SESSION_EXPIRED, signed_out=True)
    except TransientError:
        auth_logger.warning(f"Gate {label}: identity provider unreachable")
        return result.redirect(AuthMessages.VERIFY_FAILED, 'danger', retry=True)
    session['identity'] = identity.to_dict()

    try:
        profile = _read_profile(services.store, sections, identity.uid, allowed_roles)
    except TransientError:
        auth_logger.warning(f"Gate {label}: profile store unreachable for {identity.uid}")
        return result.redirect(AuthMessages.VERIFY_FAILED, 'danger', retry=True)

    if profile is None or profile.role not in allowed_roles:
        role = profile.role if profile else None
        auth_logger.warning(
            f"Gate {label}: denied {identity.uid} (role={role}) on {request.path}"
        )
        return result.redirect(AuthMessages.ACCESS_DENIED, 'danger', signed_out=True)

    return result.allow(profile, identity)


def check_gate(section_name: str, roles=None) -> GateResult:
    """Gate of a single section (see check_sections)"""
    return check_sections((section_name,), roles)


def role_required(section_name: str, roles=None):
    """
    Protect a view with the gate of ``section_name``.

    ``roles`` narrows the section's roles for a single view, e.g.
    ``@role_required('track', roles=['engineer'])``. Rejected requests are
    redirected to the section's login page; signed-out sessions also lose
    their marker cookie.
    """
    if section_name not in SECTIONS:
        raise KeyError(f"Unknown section: {section_name}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            result = check_gate(section_name, roles)
            if result.state is not GateState.ALLOWED:
                if result.signed_out:
                    session.clear()
                if result.message:
                    flash(result.message, result.category)
                # retry=1 keeps the login page from bouncing a kept session back here
                params = {'retry': 1} if result.retry else {}
                response = redirect(url_for(SECTIONS[section_name].login_endpoint, **params))
                if result.signed_out:
                    clear_marker(response)
                return response

            g.identity = result.identity
            g.profile = result.profile
            return f(*args, **kwargs)
        return decorated_function
    return decorator
