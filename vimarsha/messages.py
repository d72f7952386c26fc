"""
User-friendly messages for the Vimarsha front-end.

Centralizes all user-facing text so views, services and templates say the
same thing for the same situation.
"""


class AuthMessages:
    """Messages related to authentication (login/logout/register)."""

    LOGIN_SUCCESS = "Welcome back! Login successful."
    LOGOUT_SUCCESS = "You have been logged out successfully."
    LOGIN_REQUIRED = "Please login to access this page."

    # Generic on purpose: never reveal whether the email exists
    INVALID_CREDENTIALS = "Invalid email or password. Please try again."
    ACCOUNT_DISABLED = (
        "Your account has been disabled. "
        "Please contact your administrator for assistance."
    )
    TOO_MANY_ATTEMPTS = (
        "Too many failed attempts. Please wait a moment and try again."
    )

    ACCESS_DENIED = (
        "Your account does not have access to this section. "
        "You have been signed out."
    )
    NOT_REGISTERED = "This account is not registered for this section."
    EMPLOYEE_ID_MISMATCH = "Employee ID does not match this account."
    ROLE_MISMATCH = "Role mismatch. You are registered as: {role}"
    SESSION_EXPIRED = "Your session has expired. Please login again."
    VERIFY_FAILED = (
        "We could not verify your access right now. "
        "Please check your connection and login again."
    )

    EMAIL_EXISTS = "An account with this email already exists."
    WEAK_PASSWORD = "Password must be at least 6 characters."
    RESET_SENT = "Password reset mail sent. Check your inbox."
    ENTER_EMAIL = "Enter your email address first."


class RegistrationMessages:
    """Messages related to staff registration."""

    REGISTRATION_SUCCESS = (
        "Registration successful! "
        "You can now login with your credentials."
    )
    ALL_FIELDS_REQUIRED = "Please fill in all required fields."
    INVALID_EMAIL = "Enter a valid email address."
    PASSWORD_TOO_SHORT = "Password must be at least {min_length} characters long."
    PASSWORDS_DO_NOT_MATCH = "Passwords do not match."
    INVALID_ROLE = "Please choose a valid role."


class MaterialMessages:
    """Messages related to material records."""

    CREATED = "Material saved & QR generated! The QR contains only the 7-character Material ID."
    UPDATED = "Material updated. QR metadata and Material ID were left unchanged."
    INSTALLATION_SAVED = "Installation details updated successfully."
    VERIFICATION_SUBMITTED = "Verification request submitted to the Railway Officer."
    REQUEST_APPROVED = "Request approved."
    REQUEST_REJECTED = "Request rejected."
    REQUEST_NOT_PENDING = "Only pending requests can be approved or rejected."
    FAULT_UPDATED = "Fault report updated."
    FAULT_NOT_FOUND = "Fault report not found."
    PROFILE_UPDATED = "Profile updated."
    NOTHING_TO_EXPORT = "There are no materials to export."


class ErrorMessages:
    """Messages for the error taxonomy."""

    UNEXPECTED = "An unexpected error occurred."
    EMPTY_PAYLOAD = "The QR code has no valid Material ID."
    DEVICE_ACCESS = (
        "Unable to access the camera or QR decoder. "
        "Check camera permissions and that the page is served over HTTPS."
    )
    MATERIAL_NOT_FOUND = "Material not found. Check the Material ID and try again."
    DATA_INTEGRITY = "This material record is damaged (its Material ID field is missing)."
    TRANSIENT = (
        "Unable to reach the server right now. "
        "Please check your connection and try again."
    )
    DUPLICATE_MATERIAL = (
        "A material with this Material ID is already registered. "
        "Check the depot code, lot and drawing number."
    )
    INVALID_FORM = "Please correct the highlighted fields."
    INVALID_IMAGE = "Only image files (png, jpg, jpeg, webp) are allowed."
