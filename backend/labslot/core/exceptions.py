class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised when a slot or layout item is malformed (missing bounds, start >= end)."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class StateTransitionError(AppError):
    """Raised when an action is not allowed for the actor or the event's current situation."""
    def __init__(self, message: str, status_code: int = 409, details: dict = None):
        super().__init__(message, status_code=status_code, details=details)

class PersistenceError(AppError):
    """Raised when the backing store fails. Never retried here."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)


class NoOpChange:
    """Result marker: the mutation produced nothing observable to persist or notify."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_OP"


NO_OP = NoOpChange()
