"""
Service-wide exception hierarchy.

Services raise these types; blueprints register one handler per type in
``create_app`` and translate them into the standard ``api_error`` body.

Usage:
    from salesflow.core.exceptions import RecordNotFoundError, ValidationError

    raise RecordNotFoundError(resource="Employee", resource_id="SR001")
    raise ValidationError("name is required", details={"name": "required"})

Hierarchy misses are deliberately absent from this module: the location
resolver returns ``None`` and the chain builder switches to broadcast.
"""


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers (400 for malformed events).

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class MissingLocationError(ValidationError):
    """Raised when an employee lacks the location attribute its role requires.

    Args:
        role: Role code, e.g. "ASM".
        required_attribute: Employee field the role is anchored on, e.g. "area".
    """

    def __init__(self, role: str, required_attribute: str) -> None:
        self.role = role
        self.required_attribute = required_attribute
        super().__init__(
            f"{required_attribute} is required for {role} role",
            details={required_attribute: f"required for role {role}"},
        )


# Older call sites and the HTTP layer refer to the same failure by this name.
LocationRequirementError = MissingLocationError


class MalformedEventError(ValidationError):
    """Raised when an inbound event payload cannot be turned into an InboundEvent."""


class RecordNotFoundError(Exception):
    """Raised when a record or table row cannot be (re-)read.

    Args:
        resource: Human-readable entity name (e.g. "Employee", "DGR row").
        resource_id: The identifier or row index that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class InvalidTransitionError(Exception):
    """Raised when a decision targets a submission that is already terminal.

    Maps to HTTP 409.
    """

    def __init__(self, submission_id: str, current_status: str, requested: str) -> None:
        self.submission_id = submission_id
        self.current_status = current_status
        self.requested = requested
        super().__init__(
            f"Submission {submission_id} is already {current_status}; cannot set {requested}"
        )


class DeliveryError(Exception):
    """Raised by a Messenger when a single message could not be delivered.

    The dispatcher catches this per recipient; it never reaches workflow callers.
    """

    def __init__(self, address: str, reason: str, status_code: int | None = None) -> None:
        self.address = address
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Delivery to {address} failed: {reason}")
