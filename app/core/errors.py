"""
Domain errors raised by the plan services.

Each carries the HTTP status the API layer answers with; the handlers in
app.main turn them into the {"success": false, "error": ...} envelope.
"""


class PlanError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PlanError):
    """Plan, task or student profile does not exist."""
    status_code = 404


class ForbiddenError(PlanError):
    """Caller does not own the plan."""
    status_code = 403


class ConflictError(PlanError):
    status_code = 409


class ValidationError(PlanError):
    """Malformed payload that passed schema validation."""
    status_code = 400
