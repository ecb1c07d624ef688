from __future__ import annotations


class DomainError(Exception):
    """Base class for errors raised by the service layer.

    Routers translate these into HTTP responses; services never import
    FastAPI.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(DomainError):
    pass


class ForbiddenError(DomainError):
    """The record exists but belongs to another user."""


class ConflictError(DomainError):
    pass
