# Overview: Domain error taxonomy shared by services and routes.

"""
Every failure the core can raise carries a stable ``kind`` tag and the HTTP
status the API answers with, so callers can tell "you may not do this at
all" (forbidden) from "this is not valid in the record's current state"
(workflow_violation).

None of these are retried by the core. Each request fails on its own.
"""

from __future__ import annotations


class ForgeError(Exception):
    """Base class for domain errors surfaced to API callers."""

    kind = "error"
    http_status = 400

    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.reason:
            body["reason"] = self.reason
        return body


class ValidationError(ForgeError):
    """Malformed input. Raised before authorization is evaluated."""

    kind = "validation_failed"
    http_status = 400


class AuthenticationError(ForgeError):
    kind = "authentication_required"
    http_status = 401


class PermissionDeniedError(ForgeError):
    """The requester holds no grant for the operation, or a forbid rule matched."""

    kind = "forbidden"
    http_status = 403


class NotFoundError(ForgeError):
    kind = "not_found"
    http_status = 404


class WorkflowViolationError(ForgeError):
    """Authorized in principle but illegal from the record's current status."""

    kind = "workflow_violation"
    http_status = 409


class InvariantViolationError(ForgeError):
    """
    Would persist a duplicate commission, a duplicate profile, or a
    non-positive amount. Never silently corrected.
    """

    kind = "invariant_violation"
    http_status = 409


class ConfigurationError(ForgeError):
    kind = "configuration_error"
    http_status = 500
