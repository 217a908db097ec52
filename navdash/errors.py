from __future__ import annotations


class NavdashError(Exception):
    """Base class for errors surfaced to the user."""


class ValidationError(NavdashError, ValueError):
    pass


class NotFoundError(NavdashError, LookupError):
    def __init__(self, kind: str, entity_id: object) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class AuthorizationError(NavdashError):
    def __init__(self, message: str = "authorization required") -> None:
        super().__init__(message)


class TransportError(NavdashError):
    pass


class EditModeError(NavdashError):
    pass
