"""
Error taxonomy for the confidence pool.

Every error carries an HTTP status code and a stable ``code`` string so the
JSON error handler in the app factory can surface it without knowing the
concrete type.
"""


class PoolError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 400
    code = "pool_error"
    default_message = "Request could not be completed"

    def __init__(self, message=None, details=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        data = {"error": self.code, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        return data


class InvalidPickData(PoolError):
    """A submitted pick is missing required fields or references bad data"""

    code = "invalid_pick_data"
    default_message = "Invalid pick data"


class DependentNotFound(PoolError):
    status_code = 404
    code = "dependent_not_found"
    default_message = "Dependent not found"


class DuplicateConfidenceValue(PoolError):
    """Two picks in one batch share a confidence value within a round"""

    code = "duplicate_confidence_value"

    def __init__(self, value, round_name):
        super().__init__(
            f"Duplicate points value {value} found in {round_name} round",
            details={"confidence_points": value, "round": round_name},
        )
        self.value = value
        self.round = round_name


class DuplicatePick(PoolError):
    status_code = 409
    code = "duplicate_pick"
    default_message = "A pick already exists for this game"


class NotFound(PoolError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class Unauthorized(PoolError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required"


class Forbidden(PoolError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class FormValidationError(PoolError):
    code = "validation_error"
    default_message = "Validation failed"

    def __init__(self, errors, message=None):
        super().__init__(message, details=errors)


class StorageFailure(PoolError):
    status_code = 500
    code = "storage_failure"
    default_message = "Internal server error"
