class POSError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRequest(POSError):
    status_code = 400


class TotalsMismatch(InvalidRequest):
    """Client-submitted totals disagree with the server's computation."""


class NotFound(POSError):
    status_code = 404


class PreconditionFailed(POSError):
    """The entity exists but is not in a state that allows the operation."""
    status_code = 409


class Conflict(POSError):
    """A unique field is already taken."""
    status_code = 409


class Forbidden(POSError):
    """The caller may not act on another staff member's behalf."""
    status_code = 403
