class FluentHttpError(Exception):
    """Base exception for the fluenthttp library."""
    pass

# --- Builder Errors ---

class MalformedUrlError(FluentHttpError, ValueError):
    """A URL string could not be parsed into an absolute http(s) URL."""
    pass

class ReusedRequestError(FluentHttpError, RuntimeError):
    """A request builder was executed a second time."""
    pass

# --- Transport Errors ---

class TransportError(FluentHttpError):
    """An I/O failure while talking to the server."""
    pass

class DnsFailureError(TransportError): pass
class ConnectError(TransportError): pass
class WriteError(TransportError): pass
class ReadError(TransportError): pass
class RequestTimeoutError(TransportError): pass

class TooManyRedirectsError(TransportError):
    def __init__(self, max_redirects: int, location: str | None):
        super().__init__(f"Exceeded {max_redirects} redirects (next location: '{location}')")
        self.max_redirects = max_redirects
        self.location = location

class RedirectError(TransportError):
    """A redirect pointed somewhere that cannot be followed."""

    def __init__(self, location: str, reason: str):
        super().__init__(f"Cannot follow redirect to '{location}': {reason}")
        self.location = location

class HttpStatusError(TransportError):
    """The server answered with an error status, so there is no success body.

    ``body`` holds whatever the server sent on the error stream.
    """

    def __init__(self, status: int, url: str, body: str = ""):
        super().__init__(f"Server returned HTTP response code: {status} for URL: {url}")
        self.status = status
        self.url = url
        self.body = body
