"""Exception types raised by the Trafikverket API client."""


class TrafikverketError(Exception):
    """Base class for every client failure."""


class TransportError(TrafikverketError):
    """The request never produced an HTTP response (timeout, DNS, refused)."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"

    def __init__(self, kind: str, message: str = ""):
        self.kind = kind
        super().__init__(f"{kind}: {message}" if message else kind)


class ApiError(TrafikverketError):
    """Non-2xx response, or an error reported inside the response envelope."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"Request failed, HTTP status code '{status_code}', and message '{body}'"
        )


class MalformedResponseError(ApiError):
    """Response body was not JSON; ``body`` holds the raw text."""


class StationNotFoundError(ApiError):
    """The envelope carried no measure point for the requested id."""
