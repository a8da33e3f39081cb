# poufmaker/core/errors.py
# Таксономия ошибок предметной области. Сервисы бросают их,
# HTTP-слой превращает в {"status": "error", "kind": ..., "message": ...}.


class DomainError(Exception):
    kind = "internal"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"status": "error", "kind": self.kind, "message": self.message}


class Unauthorized(DomainError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Not authorized"


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidRequest(DomainError):
    kind = "invalid_request"
    status_code = 400
    default_message = "Invalid request"


class Conflict(DomainError):
    kind = "conflict"
    status_code = 400
    default_message = "Conflict"


class InvalidState(DomainError):
    kind = "invalid_state"
    status_code = 400
    default_message = "Action is not valid in the current state"


class Internal(DomainError):
    pass
