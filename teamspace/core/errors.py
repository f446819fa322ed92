"""
Domain errors raised by the call coordinator and its collaborators.

Each error carries the HTTP status it maps to; `teamspace.main` turns them
into JSON responses.
"""


class CallError(Exception):
    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(CallError):
    status_code = 401
    default_detail = "Unauthorized"


class NotFound(CallError):
    status_code = 404
    default_detail = "Call not found"


class Forbidden(CallError):
    status_code = 403
    default_detail = "Forbidden"


class Gone(CallError):
    status_code = 410
    default_detail = "This call has ended"


class UpstreamFailure(CallError):
    """The video-room or identity provider is unavailable or rejected a request."""

    status_code = 502
    default_detail = "Upstream provider error"


class InvalidRequest(CallError):
    status_code = 422
    default_detail = "Invalid request"
