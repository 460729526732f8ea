"""Service-layer exceptions.

Every error carries a message that can be shown to the user as-is.
"""


class QuestboardError(Exception):
    """Base class for all expected failures."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(QuestboardError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"


class PermissionDeniedError(QuestboardError):
    """Raised when the caller does not own the entity being changed."""

    kind = "permission_denied"


class ValidationError(QuestboardError):
    """Raised when input breaks a quest or badge rule."""

    kind = "validation"


class ConflictError(QuestboardError):
    """Raised on duplicate starts or a stale progress write."""

    kind = "conflict"


class BackendError(QuestboardError):
    """Raised when the storage backend fails; the operation may succeed later."""

    kind = "backend"
