import http.client
import io
import logging
import socket
from typing import BinaryIO, Callable, Mapping, Protocol

from .config import DEFAULT_CONFIG, HttpConfig
from .errors import (
    ConnectError,
    DnsFailureError,
    HttpStatusError,
    MalformedUrlError,
    ReadError,
    RedirectError,
    RequestTimeoutError,
    TooManyRedirectsError,
    TransportError,
    WriteError,
)
from .log import get_logger
from .urls import Url, request_target, resolve

_logger = get_logger(__name__)

_REDIRECT_AS_GET = (301, 302, 303)
_REDIRECT_KEEP_METHOD = (307, 308)


class Connection(Protocol):
    url: Url
    method: str
    do_output: bool
    follow_redirects: bool
    connect_timeout: float | None
    read_timeout: float | None
    fixed_length: int | None

    def set_header(self, key: str, value: str) -> None:
        ...

    def write(self, data: bytes) -> None:
        ...

    def response_code(self) -> int:
        ...

    def header_field(self, name: str) -> str | None:
        ...

    def header_fields(self) -> dict[str, list[str]]:
        ...

    def input_stream(self) -> BinaryIO:
        ...

    def error_stream(self) -> BinaryIO | None:
        ...

    def close(self) -> None:
        ...


ConnectionFactory = Callable[[Url], Connection]


def resolve_location(base: Url, location: str) -> Url:
    try:
        return resolve(base, location)
    except MalformedUrlError as e:
        raise RedirectError(location, str(e)) from e


def header_values(headers: Mapping[str, list[str]], name: str) -> list[str]:
    lowered = name.lower()
    return [value for key, values in headers.items() if key.lower() == lowered for value in values]


class ResponseStream(io.RawIOBase):
    """Readable body of a live response. Closing it closes the connection."""

    def __init__(self, response: http.client.HTTPResponse, connection: "HttpConnection"):
        super().__init__()
        self._response = response
        self._connection = connection

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        try:
            return self._response.readinto(buffer)
        except socket.timeout as e:
            raise RequestTimeoutError(f"Read timed out: {e}") from e
        except (OSError, http.client.HTTPException) as e:
            raise ReadError(f"Response read failed: {e}") from e

    def read(self, size: int = -1) -> bytes:
        try:
            if size is None or size < 0:
                return self._response.read()
            return self._response.read(size)
        except socket.timeout as e:
            raise RequestTimeoutError(f"Read timed out: {e}") from e
        except (OSError, http.client.HTTPException) as e:
            raise ReadError(f"Response read failed: {e}") from e

    def close(self) -> None:
        if not self.closed:
            try:
                self._connection.close()
            finally:
                super().close()


class HttpConnection:
    """A single HTTP exchange on top of ``http.client``.

    Configure the public attributes and headers, optionally ``write`` a body,
    then read the response. The request goes out on ``write`` or, when there
    is no body, on the first response accessor.
    """

    def __init__(self, url: Url, config: HttpConfig = DEFAULT_CONFIG, logger: logging.Logger | None = None):
        self.url: Url = url
        self.method: str = "GET"
        self.do_output: bool = False
        self.follow_redirects: bool = False
        self.connect_timeout: float | None = config.connect_timeout
        self.read_timeout: float | None = config.read_timeout
        self.fixed_length: int | None = None

        self._config = config
        self._logger = logger or _logger
        self._headers: dict[str, str] = {}
        self._conn: http.client.HTTPConnection | None = None
        self._response: http.client.HTTPResponse | None = None
        self._sent_body: bytes | None = None
        self._requested = False
        self._error_body: bytes | None = None

    def set_header(self, key: str, value: str) -> None:
        if self._requested:
            raise TransportError("Cannot set headers after the request was sent.")
        self._headers[key] = value

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def write(self, data: bytes) -> None:
        if self._requested:
            raise WriteError("Request body already written.")
        if not self.do_output:
            raise WriteError("Connection is not configured for output.")
        if self.fixed_length is not None and len(data) != self.fixed_length:
            raise WriteError(
                f"Body is {len(data)} bytes but fixed length is {self.fixed_length}."
            )
        self._send_request(bytes(data))

    def response_code(self) -> int:
        return self._ensure_response().status

    def header_field(self, name: str) -> str | None:
        values = self._ensure_response().msg.get_all(name)
        return values[-1] if values else None

    def header_fields(self) -> dict[str, list[str]]:
        message = self._ensure_response().msg
        fields: dict[str, list[str]] = {}
        for key in message.keys():
            if key not in fields:
                fields[key] = message.get_all(key) or []
        return fields

    def input_stream(self) -> ResponseStream:
        response = self._ensure_response()
        if response.status >= 400:
            body = self._read_error_body()
            raise HttpStatusError(
                response.status,
                self.url.geturl(),
                body.decode(self._config.encoding, errors="replace"),
            )
        return ResponseStream(response, self)

    def error_stream(self) -> BinaryIO | None:
        if self._response is None or self._response.status < 400:
            return None
        return io.BytesIO(self._read_error_body())

    def close(self) -> None:
        response, conn = self._response, self._conn
        self._conn = None
        try:
            if response is not None:
                response.close()
        finally:
            if conn is not None:
                conn.close()

    def _connect(self) -> http.client.HTTPConnection:
        host = self.url.hostname
        port = self.url.port
        timeout = self.connect_timeout if self.connect_timeout and self.connect_timeout > 0 else None

        if self.url.scheme.lower() == "https":
            conn = http.client.HTTPSConnection(host, port, timeout=timeout)
        else:
            conn = http.client.HTTPConnection(host, port, timeout=timeout)

        self._logger.debug("Connecting to %s:%s", host, port or "default")
        try:
            conn.connect()
        except socket.gaierror as e:
            raise DnsFailureError(f"DNS Failure for host '{host}'") from e
        except socket.timeout as e:
            raise RequestTimeoutError(f"Connect to '{host}' timed out") from e
        except OSError as e:
            raise ConnectError(f"Connection to '{host}' failed: {e}") from e

        if conn.sock is not None:
            read_timeout = self.read_timeout if self.read_timeout and self.read_timeout > 0 else None
            conn.sock.settimeout(read_timeout)

        return conn

    def _outgoing_headers(self, body: bytes | None) -> list[tuple[str, str]]:
        headers = list(self._headers.items())
        names = {key.lower() for key, _ in headers}

        if self._config.user_agent and "user-agent" not in names:
            headers.append(("User-Agent", self._config.user_agent))
        if body and "content-length" not in names:
            length = self.fixed_length if self.fixed_length is not None else len(body)
            headers.append(("Content-Length", str(length)))

        return headers

    def _send_request(self, body: bytes | None) -> None:
        self._requested = True
        self._sent_body = body
        self._conn = self._connect()

        skip_host = any(key.lower() == "host" for key in self._headers)
        try:
            self._conn.putrequest(
                self.method,
                request_target(self.url),
                skip_host=skip_host,
                skip_accept_encoding=True,
            )
            for key, value in self._outgoing_headers(body):
                self._conn.putheader(key, value)
            self._conn.endheaders(body)
        except socket.timeout as e:
            raise RequestTimeoutError(f"Write timed out: {e}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            raise WriteError(f"Request write failed: {e}") from e

    def _read_response(self) -> http.client.HTTPResponse:
        if self._conn is None:
            raise ReadError("Connection is closed.")
        try:
            return self._conn.getresponse()
        except socket.timeout as e:
            raise RequestTimeoutError(f"Read timed out: {e}") from e
        except (OSError, http.client.HTTPException) as e:
            raise ReadError(f"Response read failed: {e}") from e

    def _ensure_response(self) -> http.client.HTTPResponse:
        if self._response is not None:
            return self._response
        if not self._requested:
            self._send_request(None)

        response = self._read_response()
        redirects = 0

        while self.follow_redirects and self._is_followable(response):
            location = response.getheader("Location")
            redirects += 1
            if redirects > self._config.max_redirects:
                response.close()
                raise TooManyRedirectsError(self._config.max_redirects, location)

            response.read()
            self.close()
            self.url = resolve_location(self.url, location)

            body = self._sent_body
            if response.status in _REDIRECT_AS_GET and self.method != "HEAD":
                self.method = "GET"
                body = None

            self._logger.debug("Following %d redirect to %s", response.status, self.url.geturl())
            self._send_request(body)
            response = self._read_response()

        self._response = response
        return response

    @staticmethod
    def _is_followable(response: http.client.HTTPResponse) -> bool:
        if response.status not in _REDIRECT_AS_GET + _REDIRECT_KEEP_METHOD:
            return False
        return response.getheader("Location") is not None

    def _read_error_body(self) -> bytes:
        if self._error_body is None:
            try:
                self._error_body = self._response.read()
            except (OSError, http.client.HTTPException) as e:
                self._logger.debug("Could not read error body: %s", e)
                self._error_body = b""
        return self._error_body
