"""
Profile Service
Staff profiles: registration, sign-in checks and self-service updates
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from vimarsha.exceptions import PermissionDenied, ValidationError
from vimarsha.messages import AuthMessages, RegistrationMessages
from vimarsha.schemas.user import (
    MIN_PASSWORD_LENGTH,
    ProfileUpdate,
    StaffProfile,
    StaffRegistration,
)

logger = logging.getLogger(__name__)


def get_profile(store, collection: str, uid: str) -> Optional[StaffProfile]:
    """Profile document for ``uid``; ``None`` when the user has none"""
    data = store.get(collection, uid)
    if data is None:
        return None
    return StaffProfile.model_validate({'uid': uid, **data})


def list_profiles(store, collection: str, role: Optional[str] = None):
    filters = [('role', '==', role)] if role else []
    profiles = [
        StaffProfile.model_validate({'uid': doc.key, **doc.data})
        for doc in store.query(collection, filters=filters)
    ]
    profiles.sort(key=lambda p: p.name.lower())
    return profiles


def _registration_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    field = first.get('loc', ('',))[0]
    if first.get('type') == 'missing':
        return RegistrationMessages.ALL_FIELDS_REQUIRED
    if field == 'password':
        return RegistrationMessages.PASSWORD_TOO_SHORT.format(min_length=MIN_PASSWORD_LENGTH)
    if field == 'email':
        return RegistrationMessages.INVALID_EMAIL
    return RegistrationMessages.ALL_FIELDS_REQUIRED


def register_staff(identity, store, section, form: Dict[str, Any]) -> StaffProfile:
    """
    Create the account and the profile document for a new staff member.

    Sections with a single role assign it; sections offering several
    (track staff) take the role from the form and check it.

    Raises:
        ValidationError: the form is incomplete or invalid
        AccountExistsError / WeakPasswordError: rejected by the identity provider
    """
    try:
        data = StaffRegistration.model_validate(form)
    except PydanticValidationError as e:
        raise ValidationError(_registration_error(e)) from e

    if form.get('confirm_password') is not None and form.get('confirm_password') != data.password:
        raise ValidationError(RegistrationMessages.PASSWORDS_DO_NOT_MATCH)

    role = section.roles[0] if len(section.roles) == 1 else data.role
    if role not in section.roles:
        raise ValidationError(RegistrationMessages.INVALID_ROLE)

    account = identity.sign_up(data.email, data.password)
    document = {
        'uid': account.uid,
        'name': data.name,
        'email': data.email,
        'empId': data.emp_id,
        'role': role,
        'phone': data.phone,
        'depot': data.depot,
        'joinedOn': datetime.now(timezone.utc).isoformat(),
    }
    store.set(section.collection, account.uid, document)
    logger.info(f"Registered {role} {account.uid} in {section.collection}")
    return StaffProfile.model_validate(document)


def authenticate(identity, store, section, email: str, password: str,
                 emp_id: Optional[str] = None, role: Optional[str] = None) -> Tuple[Any, StaffProfile]:
    """
    Sign in and confirm the account belongs in ``section``.

    Vendors without a profile document get one with the manufacturer role
    (accounts created before profiles existed); every other section
    requires an existing profile.

    Returns:
        (identity session, profile)

    Raises:
        InvalidCredentialsError: bad email/password
        PermissionDenied: no profile, wrong role or wrong employee id
    """
    account = identity.sign_in(email, password)
    profile = get_profile(store, section.collection, account.uid)

    if profile is None and section.name == 'vendor':
        profile = ensure_vendor_profile(store, section, account, emp_id)
    if profile is None:
        raise PermissionDenied(AuthMessages.NOT_REGISTERED)

    if section.requires_emp_id and (profile.emp_id or '') != (emp_id or '').strip():
        raise PermissionDenied(AuthMessages.EMPLOYEE_ID_MISMATCH)
    if profile.role not in section.roles or (role and profile.role != role):
        raise PermissionDenied(AuthMessages.ROLE_MISMATCH.format(role=profile.role or 'none'))

    return account, profile


def ensure_vendor_profile(store, section, account, emp_id: Optional[str] = None) -> StaffProfile:
    document = {
        'uid': account.uid,
        'email': account.email,
        'name': account.email.split('@')[0] if account.email else '',
        'empId': (emp_id or '').strip(),
        'role': section.roles[0],
        'joinedOn': datetime.now(timezone.utc).isoformat(),
    }
    store.set(section.collection, account.uid, document, merge=True)
    logger.info(f"Created missing vendor profile for {account.uid}")
    return StaffProfile.model_validate(document)


def update_profile(store, storage, collection: str, uid: str, fields: Dict[str, Any],
                   photo=None) -> Dict[str, Any]:
    """Save the editable profile fields and an optional new photo"""
    changes = ProfileUpdate.model_validate(fields).model_dump(exclude_none=True)
    if photo is not None:
        changes['photoUrl'] = storage.upload_image(photo, 'profiles', public_id=uid)
    if changes:
        store.set(collection, uid, changes, merge=True)
    return changes
