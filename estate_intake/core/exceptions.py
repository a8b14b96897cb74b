class AppError(Exception):
    """Base exception for application errors."""
    status_code = 500

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass

class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass

class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass

class StorageError(AppError):
    """Raised when an object storage operation fails."""
    pass

class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass

class ValidationError(AppError):
    """Raised when input validation fails."""
    status_code = 400

class PreconditionError(ValidationError):
    """Raised when an operation is requested in a state that does not allow it."""
    pass

class NotFoundError(AppError):
    """Raised when a referenced entity does not exist."""
    status_code = 404

class SessionNotFoundError(NotFoundError):
    """Raised when an intake session cannot be found."""
    pass

class RecordNotFoundError(NotFoundError):
    """Raised when a canonical record cannot be found."""
    pass

class SessionAlreadyConfirmedError(AppError):
    """Raised when an intake session has already been confirmed."""
    status_code = 409

class ExtractionParseError(AppError):
    """Raised when model output is still not valid JSON after one repair attempt."""
    status_code = 422

class RateLimitExceededError(AppError):
    """Raised when an actor exceeds the model-call rate limit."""
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: float = 0.0):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

class AuthenticationError(AppError):
    """Raised when a request carries no actor identity."""
    status_code = 401

class PermissionDeniedError(AppError):
    """Raised when the actor's role is below the one an operation requires."""
    status_code = 403
