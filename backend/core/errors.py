"""Gateway error taxonomy.

Every GatewayError carries the HTTP status and the generic message that is
safe to hand back to the caller. Detail (upstream bodies, tracebacks) goes to
the log, never into the message.
"""


class GatewayError(Exception):
    """Base class for failures rendered as a JSON error body."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(GatewayError):
    """Neither a session cookie nor a bearer credential was presented."""
    status_code = 401


class BadRequestError(GatewayError):
    """Required request fields are missing or empty."""
    status_code = 400


class ServiceUnavailableError(GatewayError):
    """The upstream API key is not configured on this process."""
    status_code = 500


class UpstreamError(GatewayError):
    """The LLM provider rejected the call or could not be reached."""
    status_code = 500


class StreamError(Exception):
    """Reading the upstream body failed after the response had started."""
    pass
