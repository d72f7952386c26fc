"""
Identity Provider Client
Wrapper for the Firebase Auth REST endpoints (sign-in, sign-up, reset, lookup)
"""
import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

import requests

from vimarsha.exceptions import (
    AccountExistsError,
    AuthenticationError,
    InvalidCredentialsError,
    SessionExpiredError,
    TransientError,
    WeakPasswordError,
)
from vimarsha.messages import AuthMessages

logger = logging.getLogger(__name__)

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Provider error codes -> exception raised to the views
_ERROR_MAP = {
    'EMAIL_NOT_FOUND': InvalidCredentialsError,
    'INVALID_PASSWORD': InvalidCredentialsError,
    'INVALID_LOGIN_CREDENTIALS': InvalidCredentialsError,
    'INVALID_EMAIL': InvalidCredentialsError,
    'EMAIL_EXISTS': AccountExistsError,
    'WEAK_PASSWORD': WeakPasswordError,
    'INVALID_ID_TOKEN': SessionExpiredError,
    'TOKEN_EXPIRED': SessionExpiredError,
    'USER_NOT_FOUND': SessionExpiredError,
    'INVALID_REFRESH_TOKEN': SessionExpiredError,
}

_MESSAGE_MAP = {
    'USER_DISABLED': AuthMessages.ACCOUNT_DISABLED,
    'TOO_MANY_ATTEMPTS_TRY_LATER': AuthMessages.TOO_MANY_ATTEMPTS,
}


@dataclass
class IdentitySession:
    """Signed-in identity as kept in the Flask session"""
    uid: str
    email: str
    id_token: str
    refresh_token: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['IdentitySession']:
        if not data:
            return None
        try:
            return cls(
                uid=data['uid'],
                email=data.get('email', ''),
                id_token=data['id_token'],
                refresh_token=data.get('refresh_token', ''),
            )
        except KeyError:
            return None


class IdentityClient:
    """Identity provider API wrapper class"""

    def __init__(self, api_key: str, timeout: float = 10.0, http: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.http = http or requests.Session()

    def _post(self, url: str, json: Optional[Dict] = None, data: Optional[Dict] = None) -> Dict:
        """Make POST request, translating provider errors into exceptions"""
        try:
            response = self.http.post(
                url,
                params={'key': self.api_key},
                json=json,
                data=data,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            raise self._translate_error(e.response) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise TransientError() from e

    @staticmethod
    def _translate_error(response) -> Exception:
        try:
            error_data = response.json().get('error', {})
        except ValueError:
            error_data = {}

        # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
        raw = error_data.get('message', '') if isinstance(error_data, dict) else str(error_data)
        code = raw.split(' : ')[0].strip()

        status = getattr(response, 'status_code', 0)
        if code in _ERROR_MAP:
            return _ERROR_MAP[code]()
        if code in _MESSAGE_MAP:
            return AuthenticationError(_MESSAGE_MAP[code])
        if status >= 500:
            logger.error(f"Identity provider error {status}: {raw}")
            return TransientError()
        logger.warning(f"Unmapped identity error {status}: {raw}")
        return AuthenticationError()

    @staticmethod
    def _session_from(response: Dict) -> IdentitySession:
        return IdentitySession(
            uid=response.get('localId', ''),
            email=response.get('email', ''),
            id_token=response.get('idToken', ''),
            refresh_token=response.get('refreshToken', ''),
        )

    # Credential endpoints
    def sign_in(self, email: str, password: str) -> IdentitySession:
        """Sign in with email and password"""
        data = {
            'email': email,
            'password': password,
            'returnSecureToken': True
        }
        return self._session_from(self._post(f'{IDENTITY_URL}/accounts:signInWithPassword', json=data))

    def sign_up(self, email: str, password: str) -> IdentitySession:
        """Create a new email/password account"""
        data = {
            'email': email,
            'password': password,
            'returnSecureToken': True
        }
        return self._session_from(self._post(f'{IDENTITY_URL}/accounts:signUp', json=data))

    def send_password_reset(self, email: str) -> None:
        """Dispatch the provider's password-reset email"""
        data = {
            'requestType': 'PASSWORD_RESET',
            'email': email
        }
        self._post(f'{IDENTITY_URL}/accounts:sendOobCode', json=data)

    # Session endpoints
    def lookup(self, id_token: str) -> Dict:
        """
        Return the account behind an ID token.

        Raises:
            SessionExpiredError: the token is invalid or expired
        """
        response = self._post(f'{IDENTITY_URL}/accounts:lookup', json={'idToken': id_token})
        users = response.get('users') or []
        if not users:
            raise SessionExpiredError()
        return users[0]

    def refresh(self, refresh_token: str) -> IdentitySession:
        """Exchange a refresh token for a new ID token"""
        response = self._post(
            SECURE_TOKEN_URL,
            data={'grant_type': 'refresh_token', 'refresh_token': refresh_token},
        )
        return IdentitySession(
            uid=response.get('user_id', ''),
            email='',
            id_token=response.get('id_token', ''),
            refresh_token=response.get('refresh_token', refresh_token),
        )

    def verify(self, identity: IdentitySession) -> IdentitySession:
        """
        Check that a stored identity is still live.

        Refreshes the ID token once when it has expired. Returns the session
        to keep (possibly with a new token).

        Raises:
            SessionExpiredError: the token is dead and cannot be refreshed
            TransientError: the provider could not be reached
        """
        try:
            account = self.lookup(identity.id_token)
            if account.get('localId') and account['localId'] != identity.uid:
                raise SessionExpiredError()
            return identity
        except SessionExpiredError:
            if not identity.refresh_token:
                raise
            logger.debug(f"Refreshing identity token for {identity.uid}")
            renewed = self.refresh(identity.refresh_token)
            if renewed.uid and renewed.uid != identity.uid:
                raise SessionExpiredError()
            return IdentitySession(
                uid=identity.uid,
                email=identity.email,
                id_token=renewed.id_token,
                refresh_token=renewed.refresh_token,
            )
