"""Chainable request builder with ``submit()`` and its ``Response``.

Headers hold a single string per name; ``add_header`` appends to it with
``"; "``. Error handlers receive ``(error_body, request)``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Callable

from .config import DEFAULT_CONFIG, HttpConfig
from .connection import Connection, ConnectionFactory, HttpConnection, header_values, resolve_location
from .errors import HttpStatusError, MalformedUrlError, ReusedRequestError, TooManyRedirectsError, TransportError
from .log import get_logger
from .state import RequestState
from .status import ResponseStatus
from .urls import Url, parse_url

ErrorHandler = Callable[[str, "Request"], None]


class Method(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    INFO = "INFO"


@dataclass(frozen=True)
class Response:
    status: ResponseStatus
    code: int
    headers: dict[str, list[str]]
    request: "Request" = field(repr=False, compare=False)
    body: str | None = None
    stream: BinaryIO | None = field(default=None, repr=False, compare=False)

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None

    def header(self, name: str) -> list[str]:
        return header_values(self.headers, name)

    def close(self) -> None:
        if self.stream is not None:
            self.stream.close()

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Request:
    def __init__(
        self,
        *,
        config: HttpConfig = DEFAULT_CONFIG,
        logger: logging.Logger | None = None,
        connection_factory: ConnectionFactory | None = None,
    ):
        self._method: Method = Method.GET
        self._url: Url | None = None
        self._body: str = ""
        self._headers: dict[str, str] = {}
        self._error_handlers: list[ErrorHandler] = []
        self._state = RequestState.UNSENT
        self._stream_response = False
        self._follow_redirects = False

        self._config = config
        self._logger = logger or get_logger(__name__)
        self._connection_factory = connection_factory or (lambda url: HttpConnection(url, config, self._logger))

    # --- configuration ---

    def set_header(self, key: str, value: str) -> "Request":
        """Set ``key`` to ``value``, replacing any previous value."""
        self._headers[key] = value
        return self

    def add_header(self, key: str, value: str) -> "Request":
        """Append ``value`` to ``key``, joined to any previous value with ``"; "``."""
        if key in self._headers:
            self._headers[key] = f"{self._headers[key]}; {value}"
        else:
            self._headers[key] = value
        return self

    def request_body(self, body: str) -> "Request":
        self._body = body
        return self

    def get(self) -> "Request":
        self._method = Method.GET
        return self

    def post(self) -> "Request":
        self._method = Method.POST
        return self

    def put(self) -> "Request":
        self._method = Method.PUT
        return self

    def delete(self) -> "Request":
        self._method = Method.DELETE
        return self

    def head(self) -> "Request":
        self._method = Method.HEAD
        return self

    def info(self) -> "Request":
        self._method = Method.INFO
        return self

    def url(self, url: str) -> "Request":
        self._url = parse_url(url)
        return self

    def stream_response(self) -> "Request":
        self._stream_response = True
        return self

    def allow_redirects(self) -> "Request":
        self._follow_redirects = True
        return self

    def disallow_redirects(self) -> "Request":
        self._follow_redirects = False
        return self

    def add_error_handler(self, handler: ErrorHandler) -> "Request":
        self._error_handlers.append(handler)
        return self

    # --- inspection ---

    @property
    def method(self) -> Method:
        return self._method

    @property
    def target(self) -> Url | None:
        return self._url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def body(self) -> str:
        return self._body

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def follows_redirects(self) -> bool:
        return self._follow_redirects

    @property
    def streams_response(self) -> bool:
        return self._stream_response

    # --- execution ---

    def submit(self) -> Response | None:
        """Perform the request.

        Returns ``None`` when a failure was handed to the registered error
        handlers. Without handlers, transport failures propagate.
        """
        if self._state is RequestState.SENT:
            raise ReusedRequestError("Cannot reuse Request instances.")
        if self._url is None:
            raise MalformedUrlError("Request has no URL.")

        self._state = RequestState.SENT
        redirects = 0

        while True:
            connection = self._connection_factory(self._url)
            keep_open = False
            try:
                code = self._open(connection)

                if self._follow_redirects and 300 <= code < 400:
                    location = connection.header_field("Location")
                    if location is not None:
                        redirects += 1
                        if redirects > self._config.max_redirects:
                            raise TooManyRedirectsError(self._config.max_redirects, location)
                        self._redirect_to(location, code)
                        continue

                if self._stream_response:
                    stream = connection.input_stream()
                    keep_open = True
                    return self._response(connection, code, stream=stream)

                stream = connection.input_stream()
                body = stream.read().decode(self._config.encoding, errors="replace")
                return self._response(connection, code, body=body)

            except TransportError as e:
                if not self._error_handlers:
                    raise
                self._run_error_handlers(e, connection)
                return None

            finally:
                if not keep_open:
                    connection.close()

    def _open(self, connection: Connection) -> int:
        connection.method = self._method.value
        connection.follow_redirects = False

        for key, value in self._headers.items():
            connection.set_header(key, value)

        if self._body:
            data = self._body.encode(self._config.encoding, errors="replace")
            connection.do_output = True
            connection.fixed_length = len(data)
            connection.write(data)

        return connection.response_code()

    def _redirect_to(self, location: str, code: int) -> None:
        previous = self._url
        self._url = resolve_location(self._url, location)
        self._method = Method.GET
        self._body = ""
        self._logger.info("Following %d redirect from %s to %s", code, previous.geturl(), self._url.geturl())

    def _response(self, connection: Connection, code: int, *, body: str | None = None, stream: BinaryIO | None = None) -> Response:
        return Response(
            status=ResponseStatus.by_code(code),
            code=code,
            headers=connection.header_fields(),
            request=self,
            body=body,
            stream=stream,
        )

    def _run_error_handlers(self, error: TransportError, connection: Connection) -> None:
        error_stream = connection.error_stream()
        if error_stream is not None:
            with error_stream:
                error_body = error_stream.read().decode(self._config.encoding, errors="replace")
        elif isinstance(error, HttpStatusError):
            error_body = error.body
        else:
            error_body = str(error)

        self._logger.warning("Request to %s failed, running %d error handler(s): %s",
                             self._url.geturl(), len(self._error_handlers), error)
        for handler in list(self._error_handlers):
            handler(error_body, self)
