import socket
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from queue import Queue
from typing import Callable, Generator

import pytest


@dataclass
class CapturedRequest:
    method: str
    target: str
    headers: list[tuple[str, str]]
    body: bytes

    def header(self, name: str) -> str | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


def read_request(sock: socket.socket) -> CapturedRequest | None:
    raw = bytearray()
    while b"\r\n\r\n" not in raw:
        chunk = sock.recv(4096)
        if not chunk:
            return None
        raw.extend(chunk)

    head, body = bytes(raw).split(b"\r\n\r\n", 1)
    lines = head.decode("latin-1").split("\r\n")
    method, target, _ = lines[0].split(" ", 2)

    headers = []
    for line in lines[1:]:
        key, _, value = line.partition(":")
        headers.append((key.strip(), value.strip()))

    content_length = 0
    for key, value in headers:
        if key.lower() == "content-length":
            content_length = int(value)

    body = bytearray(body)
    while len(body) < content_length:
        chunk = sock.recv(content_length - len(body))
        if not chunk:
            break
        body.extend(chunk)

    return CapturedRequest(method, target, headers, bytes(body))


def http_response(status: int, reason: str, body: bytes = b"", headers: tuple[tuple[str, str], ...] = ()) -> bytes:
    head = f"HTTP/1.1 {status} {reason}\r\n"
    for key, value in headers:
        head += f"{key}: {value}\r\n"
    head += f"Content-Length: {len(body)}\r\nConnection: close\r\n\r\n"
    return head.encode("latin-1") + body


Handler = Callable[[CapturedRequest], bytes]


class ServerFixture:
    def __init__(self, handler: Handler):
        self._handler = handler
        self._should_stop = threading.Event()
        self.requests: Queue[CapturedRequest] = Queue()
        self.listener_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener_sock.bind(("127.0.0.1", 0))
        self.port = self.listener_sock.getsockname()[1]
        self.thread = threading.Thread(target=self._accept_loop)

    def url(self, path: str = "/") -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def start(self):
        self.listener_sock.listen()
        self.thread.start()

    def stop(self):
        if not self._should_stop.is_set():
            self._should_stop.set()
            # Connect to unblock the accept() call
            try:
                socket.create_connection(("127.0.0.1", self.port), timeout=0.1).close()
            except OSError:
                pass
            self.thread.join(timeout=5.0)
            self.listener_sock.close()

    def _accept_loop(self):
        while not self._should_stop.is_set():
            try:
                client_sock, _ = self.listener_sock.accept()
            except OSError:
                break

            with client_sock:
                if self._should_stop.is_set():
                    break
                client_sock.settimeout(2.0)
                try:
                    captured = read_request(client_sock)
                    if captured is None:
                        continue
                    self.requests.put(captured)
                    client_sock.sendall(self._handler(captured))
                except OSError:
                    pass


@pytest.fixture
def server_factory() -> Callable[[Handler], Generator[ServerFixture, None, None]]:
    @contextmanager
    def _factory(handler: Handler):
        server = ServerFixture(handler)
        server.start()
        try:
            yield server
        finally:
            server.stop()

    return _factory


@pytest.fixture
def closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
