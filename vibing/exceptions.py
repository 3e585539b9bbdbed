"""
Exception Classes - Strongly typed exception hierarchy.

Every error the client raises derives from VibingError so callers can catch
one base class at the edge of their application.
"""


class VibingError(Exception):
    """Base exception for all storefront client errors."""

    pass


class ApiError(VibingError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, message={self.message!r})"


class SessionExpiredError(ApiError):
    """Raised after a 401 response; stored credentials are already cleared."""

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(401, message, "UNAUTHORIZED")


class AuthenticationRequiredError(VibingError):
    """Raised when an operation needs a logged-in user and there is none."""

    def __init__(self, message: str = "Authentication required. Please log in.") -> None:
        self.message = message
        super().__init__(message)


class AuthorizationError(VibingError):
    """Raised when the current user lacks a required role."""

    def __init__(self, required_roles: tuple[str, ...], actual_role: str) -> None:
        self.required_roles = required_roles
        self.actual_role = actual_role
        super().__init__(
            f"Authorization failed: role {actual_role} is not one of {', '.join(required_roles)}"
        )


class InputValidationError(VibingError):
    """Raised when user input is rejected before any network call."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(message)


class UploadValidationError(InputValidationError):
    """Raised when a file fails the local type/size checks."""

    def __init__(self, message: str) -> None:
        super().__init__("file", message)


class DisputeNotAllowedError(VibingError):
    """Raised when the server has flagged a purchase as not disputable."""

    def __init__(self, purchase_id: str) -> None:
        self.purchase_id = purchase_id
        super().__init__(f"Dispute cannot be requested for purchase {purchase_id}")


class VerificationExpiredError(VibingError):
    """Raised when a phone verification code is used after its expiry."""

    def __init__(self) -> None:
        super().__init__("Verification code has expired")


class PaymentError(VibingError):
    """Raised when the payment gateway or verification fails."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(f"Payment error: {message}")
