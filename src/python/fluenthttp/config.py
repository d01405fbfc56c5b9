import os
from dataclasses import dataclass

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/49.0.2623.87 Safari/537.36"
)


def _optional_float(name: str) -> float | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a number, got '{raw}'") from e


@dataclass(frozen=True)
class HttpConfig:
    """Settings shared by the request builders and the connection.

    Timeouts are in seconds; ``None`` (or anything non-positive) means no
    timeout is applied.
    """

    max_redirects: int = 10
    encoding: str = "utf-8"
    user_agent: str | None = DEFAULT_USER_AGENT
    connect_timeout: float | None = None
    read_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_redirects < 0:
            raise ValueError("max_redirects cannot be negative")

    @classmethod
    def from_env(cls) -> "HttpConfig":
        """
        Environment variables:
        - FLUENTHTTP_MAX_REDIRECTS
        - FLUENTHTTP_ENCODING
        - FLUENTHTTP_USER_AGENT (empty string disables the default agent)
        - FLUENTHTTP_CONNECT_TIMEOUT
        - FLUENTHTTP_READ_TIMEOUT
        """
        user_agent = os.environ.get("FLUENTHTTP_USER_AGENT", cls.user_agent)
        return cls(
            max_redirects=int(os.environ.get("FLUENTHTTP_MAX_REDIRECTS", cls.max_redirects)),
            encoding=os.environ.get("FLUENTHTTP_ENCODING", cls.encoding),
            user_agent=user_agent or None,
            connect_timeout=_optional_float("FLUENTHTTP_CONNECT_TIMEOUT"),
            read_timeout=_optional_float("FLUENTHTTP_READ_TIMEOUT"),
        )


DEFAULT_CONFIG = HttpConfig()
