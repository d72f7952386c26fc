"""
Custom exceptions for the Vimarsha front-end.

Every error a view can run into is one of these. Each carries a
user-facing message and the HTTP status the view answers with, so every
failure ends in a renderable page or JSON body instead of a crash.
"""

from vimarsha.messages import ErrorMessages, AuthMessages


class VimarshaError(Exception):
    """
    Base exception for all application errors.

    Use this as a catch-all when a view only needs to report the problem
    inline without caring about the specific type.
    """

    status_code = 500
    default_message = ErrorMessages.UNEXPECTED

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.user_message = message or self.default_message


# ============================================================================
# SCAN / CODEC ERRORS
# ============================================================================


class EmptyPayload(VimarshaError):
    """
    Raised when a scanned payload yields no identifier.

    Example:
        The QR text is blank, or a URL has no path segment left after
        trimming.
    """

    status_code = 400
    default_message = ErrorMessages.EMPTY_PAYLOAD


class DeviceAccessError(VimarshaError):
    """
    Raised when the camera or the QR decoder cannot be used.

    Example:
        The photo decoder did not answer in time, or the zbar library is
        not installed on the server.
    """

    status_code = 503
    default_message = ErrorMessages.DEVICE_ACCESS


# ============================================================================
# RECORD RESOLUTION ERRORS
# ============================================================================


class MaterialNotFoundError(VimarshaError):
    """
    Raised when no material document exists for an identifier.

    Not retryable without a new identifier.
    """

    status_code = 404
    default_message = ErrorMessages.MATERIAL_NOT_FOUND

    def __init__(self, identifier=None, message=None):
        super().__init__(message)
        self.identifier = identifier


class DataIntegrityError(VimarshaError):
    """
    Raised when a document exists but violates the minimal shape contract.

    Example:
        A material document without its own ``materialId`` field. The
        record is malformed, not missing, and is never auto-repaired.
    """

    status_code = 422
    default_message = ErrorMessages.DATA_INTEGRITY


class TransientError(VimarshaError):
    """
    Raised when the store or identity provider call itself fails.

    Timeouts, connectivity and permission failures land here. The view
    offers a "try again" instead of treating the item as nonexistent.
    """

    status_code = 503
    default_message = ErrorMessages.TRANSIENT


class DocumentExistsError(VimarshaError):
    """
    Raised by the document store when creating a key that is already taken.
    """

    status_code = 409


class DocumentMissingError(VimarshaError):
    """
    Raised by the document store when updating a key that does not exist.
    """

    status_code = 404


class DuplicateMaterialError(DocumentExistsError):
    """
    Raised when a newly minted identifier is already registered.

    Identifiers are never re-minted over an existing record.
    """

    status_code = 409
    default_message = ErrorMessages.DUPLICATE_MATERIAL


class ValidationError(VimarshaError):
    """
    Raised when submitted form data does not meet requirements.
    """

    status_code = 400
    default_message = ErrorMessages.INVALID_FORM


# ============================================================================
# AUTHENTICATION / AUTHORIZATION ERRORS
# ============================================================================


class PermissionDenied(VimarshaError):
    """
    Raised when the role check fails for a signed-in user.

    Forces sign-out and redirect, never silently ignored.
    """

    status_code = 403
    default_message = AuthMessages.ACCESS_DENIED


class AuthenticationError(VimarshaError):
    """
    Base exception for all identity-provider errors.
    """

    status_code = 401
    default_message = AuthMessages.INVALID_CREDENTIALS


class InvalidCredentialsError(AuthenticationError):
    """
    Raised when the email/password pair is rejected.
    """

    default_message = AuthMessages.INVALID_CREDENTIALS


class AccountExistsError(AuthenticationError):
    """
    Raised when registering an email that already has an account.
    """

    status_code = 409
    default_message = AuthMessages.EMAIL_EXISTS


class WeakPasswordError(AuthenticationError):
    """
    Raised when the identity provider rejects the password strength.
    """

    status_code = 400
    default_message = AuthMessages.WEAK_PASSWORD


class SessionExpiredError(AuthenticationError):
    """
    Raised when the stored identity token can no longer be used or refreshed.
    """

    default_message = AuthMessages.SESSION_EXPIRED
