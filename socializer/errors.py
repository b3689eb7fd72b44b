"""
Domain errors raised by the service layer and mapped to HTTP responses.
"""

from __future__ import annotations


class SocializerError(Exception):
    """Base class for errors that should reach the API caller."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRequestError(SocializerError):
    status_code = 400


class PermissionDeniedError(SocializerError):
    status_code = 403


class NotFoundError(SocializerError):
    status_code = 404


class ConflictError(SocializerError):
    status_code = 409
