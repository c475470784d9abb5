"""Domain errors raised by the service layer and rendered by the API."""


class PosError(Exception):
    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str | None = None, error: str | None = None) -> None:
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)


class NotFound(PosError):
    status_code = 404
    default_message = "not found"


class ValidationFailed(PosError):
    status_code = 400
    default_message = "validation failed"


class ItemNotFound(ValidationFailed):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item with ID {item_id} not found")
        self.item_id = item_id


class InsufficientStock(PosError):
    status_code = 400
    default_message = "insufficient stock"


class Unauthorized(PosError):
    status_code = 401
    default_message = "not authorized"


class DuplicateKey(PosError):
    status_code = 400
    default_message = "duplicate key"


class InvalidStatus(PosError):
    status_code = 400

    def __init__(self, status: str, allowed: tuple[str, ...]) -> None:
        if allowed:
            message = f"Invalid status '{status}'. Must be one of: {', '.join(allowed)}"
        else:
            message = f"Invalid status '{status}'. No further changes are allowed"
        super().__init__(message)
        self.status = status
        self.allowed = allowed


def check_owner(document, user_id: int, action: str, noun: str) -> None:
    if document.user_id != user_id:
        raise Unauthorized(f"Not authorized to {action} this {noun}")


def integrity_error(exc) -> PosError:
    """Map a database IntegrityError onto the error the client should see."""
    detail = str(exc.orig)
    if getattr(exc.orig, "pgcode", None) == "23505" or "unique" in detail.lower():
        return DuplicateKey("Duplicate value for a unique field", detail)
    return ValidationFailed("Value violates a database constraint", detail)
