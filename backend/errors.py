"""
Error taxonomy shared by the components and the HTTP layer.
"""


class AttendanceError(Exception):
    """Base class. `message` is safe to return to the caller."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AttendanceError):
    status_code = 400


class ConflictError(AttendanceError):
    status_code = 409


class NotFoundError(AttendanceError):
    status_code = 404


class StorageFailure(AttendanceError):
    status_code = 500
