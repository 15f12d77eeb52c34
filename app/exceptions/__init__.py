"""Custom exceptions for the LiveLedger application."""

class LedgerError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class ValidationError(LedgerError):
    """Raised when a value is rejected before entering the model."""
    def __init__(self, message, field=None):
        payload = {'field': field} if field else None
        super().__init__(message, 400, payload)
        self.field = field

class BusinessLogicError(LedgerError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(LedgerError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class CorruptBackupError(LedgerError):
    """Raised when a backup document is missing or has malformed required fields."""
    def __init__(self, message, path=None):
        payload = {'path': path} if path else None
        super().__init__(f"Corrupt backup: {message}", 400, payload)
        self.path = path

class LimitReachedError(LedgerError):
    """Raised when a free-tier caller proceeds past its order or export cap."""
    def __init__(self, kind, limit):
        message = f"Free plan limit reached: {limit} {kind} used. Upgrade to Pro to continue."
        super().__init__(message, 402, {'kind': kind, 'limit': limit})
        self.kind = kind
        self.limit = limit
