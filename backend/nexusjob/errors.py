"""Exception taxonomy shared by the repositories, the gateway and the API layer.

A missing chat is not an error: lookups return ``None`` so the
create-if-absent flow can branch on it.
"""

from __future__ import annotations


class NexusJobError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(NexusJobError):
    """Malformed or missing input, including unresolved references."""

    status_code = 422


class PermissionDeniedError(NexusJobError):
    status_code = 403


class AuthenticationError(NexusJobError):
    status_code = 401


class TransientServiceError(NexusJobError):
    """The store or network failed; the caller may retry."""

    status_code = 503


class ExternalModelError(NexusJobError):
    """The language model failed, timed out or returned unusable output.

    Raised and handled inside the recommendation gateway only.
    """

    status_code = 502
