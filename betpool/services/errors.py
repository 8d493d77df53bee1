"""
Exceptions raised by BetPool services

API routes turn these into JSON error responses using ``status_code``.
"""


class BetPoolError(Exception):
    """Base class for errors a caller is expected to handle"""

    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class ValidationError(BetPoolError):
    """Bad or missing input"""

    status_code = 400


class NotFoundError(BetPoolError):
    """Unknown player or result"""

    status_code = 404


class ConflictError(BetPoolError):
    """Request clashes with existing state (pending pick, claimed fixture)"""

    status_code = 409


class UpstreamError(BetPoolError):
    """The sports data API could not be reached or answered with an error"""

    status_code = 502
