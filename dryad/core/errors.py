from __future__ import annotations


class DryadError(Exception):
    """Base class for domain failures raised by the service layer."""


class InvalidReferenceError(DryadError, ValueError):
    """Raised when a record points at a customer, job or user that does not exist."""


class DuplicateRecordError(DryadError):
    """Raised when a unique attribute (such as a user email) is already taken."""


class WorkflowError(DryadError):
    """Raised when a status transition or task completion is not allowed."""
