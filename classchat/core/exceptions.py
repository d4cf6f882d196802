"""
Error taxonomy shared by services and the HTTP layer
"""


class ClassChatError(Exception):
    """Base exception for classroom chat errors"""
    status_code = 500
    error = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ClassChatError):
    """Raised when a required field is missing or empty"""
    status_code = 400
    error = "validation_error"


class AuthorizationError(ClassChatError):
    """Raised when the actor lacks the required role"""
    status_code = 403
    error = "not_authorized"


class NotFoundError(ClassChatError):
    """Raised when a classroom, user, message or access code doesn't exist"""
    status_code = 404
    error = "not_found"


class ConflictError(ClassChatError):
    """Raised on duplicate membership"""
    status_code = 409
    error = "conflict"


class UpstreamError(ClassChatError):
    """Raised when storage or the blob store fails"""
    status_code = 503
    error = "upstream_error"
