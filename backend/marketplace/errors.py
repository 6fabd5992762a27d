"""
Domain errors raised by the marketplace core.

Every error carries a stable ``code`` and a ``detail`` dict naming the
offending field or state, so the HTTP layer can render a useful message
without inspecting the exception type.
"""


class MarketplaceError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **detail):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.detail}


class ValidationError(MarketplaceError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, **detail):
        super().__init__(message, field=field, **detail)
        self.field = field


class InvalidTransition(MarketplaceError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current_state: str, event: str):
        super().__init__(
            f"Cannot apply '{event}' to a job in status '{current_state}'",
            current_state=current_state,
            event=event,
        )
        self.current_state = current_state
        self.event = event


class InvalidQuotationState(MarketplaceError):
    status_code = 409
    code = "INVALID_QUOTATION_STATE"

    def __init__(self, current_state: str, action: str, reason: str | None = None):
        message = f"Cannot {action} a quotation in status '{current_state}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, current_state=current_state, action=action)
        self.current_state = current_state
        self.action = action


class NotFound(MarketplaceError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str | None = None):
        super().__init__(f"{entity} not found", entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class Forbidden(MarketplaceError):
    status_code = 403
    code = "FORBIDDEN"


class Conflict(MarketplaceError):
    status_code = 409
    code = "CONFLICT"


class ConcurrencyConflict(MarketplaceError):
    status_code = 409
    code = "CONCURRENCY_CONFLICT"

    def __init__(self, entity: str, entity_id: str | None = None):
        super().__init__(
            f"{entity} was modified concurrently, retry with fresh state",
            entity=entity,
            id=entity_id,
        )


class AuthenticationError(MarketplaceError):
    status_code = 401
    code = "UNAUTHORIZED"
