"""
Domain exception hierarchy.

Services raise these types; ``kanban.main`` registers one handler for the
``KanbanError`` family and renders the structured envelope::

    {"statusCode": 400, "message": "...", "details": {...}}

Usage:
    from kanban.exceptions import NotFoundError, RejectedError

    raise NotFoundError("Stage", stage_id)
    raise RejectedError("Stage is already completed", details={"status": "COMPLETED"})
"""

from typing import Any, Optional


class KanbanError(Exception):
    """Base class for every error the API renders as an envelope.

    Args:
        message: Human-readable explanation.
        details: Optional structured context returned to the client.
    """

    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(KanbanError):
    """Raised when a project, stage, user or role does not exist (or is trashed).

    Maps to HTTP 404.
    """

    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        details = {"resource": resource}
        if resource_id is not None:
            details["id"] = str(resource_id)
        super().__init__(msg, details)


class ForbiddenError(KanbanError):
    """Raised when the actor is not allowed to act on the target. Maps to HTTP 403."""

    status_code = 403


class RejectedError(KanbanError):
    """Raised when a request is well-formed but breaks a workflow rule.

    Wrong stage status, missing justification, unmet completion
    prerequisites. Maps to HTTP 400.
    """

    status_code = 400


class InvalidInputError(KanbanError):
    """Raised for malformed values the schema layer cannot catch (blank reason,
    start date after end date). Maps to HTTP 422."""

    status_code = 422


class ConflictError(KanbanError):
    """Raised when an operation would duplicate a unique value. Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    status_code = 409

    def __init__(self, resource: str, field: str, value: Any = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(
            f"{resource} with {field}={value!r} already exists",
            {"resource": resource, "field": field},
        )
