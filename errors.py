"""
Error taxonomy for the store API.

Every failure a handler can produce is an ApiError carrying the HTTP status,
a short machine-readable kind and a human message. The app's exception
handlers turn these into the {success: false, ...} envelope.
"""

from typing import Optional


class ApiError(Exception):
    status_code = 500
    error = "InternalError"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.message = message or self.message
        self.error = error or self.error
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    error = "MissingFields"
    message = "Please provide all required fields"


class InvalidFields(ValidationError):
    error = "InvalidFields"
    message = "Invalid request body"


class DuplicateError(ApiError):
    status_code = 400
    error = "DuplicateEmail"
    message = "User already exists"


class InvalidCredentials(ApiError):
    status_code = 400
    error = "InvalidCredentials"
    message = "Invalid credentials"


class AuthError(ApiError):
    status_code = 401
    error = "AuthError"


class MissingToken(AuthError):
    status_code = 401
    error = "MissingToken"
    message = "No token provided"


class Forbidden(AuthError):
    status_code = 403
    error = "Forbidden"
    message = "Invalid or expired token"


class NotFoundError(ApiError):
    status_code = 404
    error = "NotFound"
    message = "Resource not found"


class InternalError(ApiError):
    pass


# Token-level failures raised by SessionIssuer.verify; the access guard
# collapses both into Forbidden.
class TokenError(Exception):
    pass


class InvalidToken(TokenError):
    pass


class ExpiredToken(TokenError):
    pass
