class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class BadRequestError(AppError):
    """Raised when a request is well-formed but violates a timetable rule."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class NotFoundError(AppError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=404, details=details)

class ResourceNotFoundError(NotFoundError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID {resource_id} not found",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )

class ConflictError(AppError):
    """Raised when a write collides with a uniqueness rule in the database."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)
