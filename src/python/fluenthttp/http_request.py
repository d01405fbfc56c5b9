import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .config import DEFAULT_CONFIG, HttpConfig
from .connection import Connection, ConnectionFactory, HttpConnection, header_values
from .errors import ReusedRequestError, TransportError
from .log import get_logger
from .state import RequestState
from .status import ResponseStatus
from .urls import Url, as_url

HttpErrorHandler = Callable[["HttpRequest", Exception], None]


class Method(Enum):
    CONNECT = "CONNECT"
    DELETE = "DELETE"
    GET = "GET"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    POST = "POST"
    PUT = "PUT"
    TRACE = "TRACE"


@dataclass(frozen=True)
class HttpResponse:
    status: ResponseStatus
    request: "HttpRequest" = field(repr=False, compare=False)
    body: str
    code: int = -1
    headers: dict[str, list[str]] = field(default_factory=dict)

    def header(self, name: str) -> list[str]:
        return header_values(self.headers, name)


class HttpRequest:
    """Single-use request with multi-valued headers and an appendable body.

    ``send()`` never raises on transport failure: the error goes to every
    registered handler, in order, and ``None`` is returned.
    """

    def __init__(
        self,
        method: Method,
        url: Url | str,
        *,
        config: HttpConfig = DEFAULT_CONFIG,
        logger: logging.Logger | None = None,
        connection_factory: ConnectionFactory | None = None,
    ):
        self._method = method
        self._url = as_url(url)
        self._config = config
        self._logger = logger or get_logger(__name__)
        self._connection_factory = connection_factory or (lambda u: HttpConnection(u, config, self._logger))

        self._headers: dict[str, list[str]] = {}
        self._request_body = io.StringIO()
        self._error_handlers: list[HttpErrorHandler] = []
        self._connection: Connection | None = None
        self._state = RequestState.UNSENT
        self._connect_timeout: float = -1
        self._read_timeout: float = -1
        self._follow_redirects = False

        self._logger.debug("HttpRequest(%s, %s)", method.value, self._url.geturl())

    # --- factories ---

    @classmethod
    def get(cls, url: Url | str, **kwargs) -> "HttpRequest":
        return cls(Method.GET, url, **kwargs)

    @classmethod
    def post(cls, url: Url | str, **kwargs) -> "HttpRequest":
        return cls(Method.POST, url, **kwargs)

    @classmethod
    def put(cls, url: Url | str, **kwargs) -> "HttpRequest":
        return cls(Method.PUT, url, **kwargs)

    @classmethod
    def delete(cls, url: Url | str, **kwargs) -> "HttpRequest":
        return cls(Method.DELETE, url, **kwargs)

    # --- accessors ---

    @property
    def method(self) -> Method:
        return self._method

    @property
    def url(self) -> Url:
        return self._url

    @property
    def request_body(self) -> str:
        return self._request_body.getvalue()

    @property
    def headers(self) -> dict[str, list[str]]:
        return {key: list(values) for key, values in self._headers.items()}

    @property
    def connection(self) -> Connection | None:
        return self._connection

    @property
    def state(self) -> RequestState:
        return self._state

    # --- configuration ---

    def add_header(self, key: str, value: str, *values: str) -> "HttpRequest":
        self._logger.debug("add_header(%s, %s)", key, (value, *values))

        if key not in self._headers:
            return self.set_header(key, value, *values)

        self._headers[key].extend((value, *values))
        return self

    def set_header(self, key: str, value: str, *values: str) -> "HttpRequest":
        self._logger.debug("set_header(%s, %s)", key, (value, *values))
        self._headers[key] = [value, *values]
        return self

    def add_error_handler(self, handler: HttpErrorHandler) -> "HttpRequest":
        self._error_handlers.append(handler)
        return self

    def append_to_body(self, obj: object) -> "HttpRequest":
        self._request_body.write(str(obj))
        return self

    def follow_redirects(self) -> "HttpRequest":
        self._follow_redirects = True
        return self

    def set_connect_timeout(self, timeout: float) -> "HttpRequest":
        self._logger.debug("set_connect_timeout(%s)", timeout)
        self._connect_timeout = timeout
        return self

    def set_read_timeout(self, timeout: float) -> "HttpRequest":
        self._logger.debug("set_read_timeout(%s)", timeout)
        self._read_timeout = timeout
        return self

    # --- execution ---

    def send(self) -> HttpResponse | None:
        self._logger.debug("send(%s %s)", self._method.value, self._url.geturl())

        if self._state is RequestState.SENT:
            raise ReusedRequestError("Cannot resend HttpRequests")

        self._state = RequestState.SENT
        body = self.request_body

        try:
            self._connection = self._connection_factory(self._url)
            self._prep_connection(self._connection, has_body=bool(body))

            if body:
                self._connection.write(body.encode(self._config.encoding, errors="replace"))

            code = self._connection.response_code()
            output = self._connection.input_stream().read()

            return HttpResponse(
                status=ResponseStatus.by_code(code),
                request=self,
                body=output.decode(self._config.encoding, errors="replace"),
                code=code,
                headers=self._connection.header_fields(),
            )

        except TransportError as e:
            self._logger.error("HttpRequest failed: %s", e)

            for handler in self._error_handlers:
                self._logger.debug("Running error handler: %r", handler)
                handler(self, e)

        finally:
            if self._connection is not None:
                self._connection.close()

        return None

    def _prep_connection(self, connection: Connection, has_body: bool) -> None:
        connection.method = self._method.value
        connection.do_output = has_body
        connection.follow_redirects = self._follow_redirects

        if self._connect_timeout > 0:
            connection.connect_timeout = self._connect_timeout

        if self._read_timeout > 0:
            connection.read_timeout = self._read_timeout

        self._apply_headers(connection)

    def _apply_headers(self, connection: Connection) -> None:
        for key, values in self._headers.items():
            connection.set_header(key, "; ".join(values))
