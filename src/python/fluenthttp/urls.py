from urllib.parse import SplitResult, urljoin, urlsplit

from .errors import MalformedUrlError

Url = SplitResult

_SUPPORTED_SCHEMES = ("http", "https")


def parse_url(url: str) -> Url:
    if not isinstance(url, str):
        raise MalformedUrlError(f"URL must be a string, got {type(url).__name__}")

    try:
        parsed = urlsplit(url.strip())
        # Accessing .port validates it.
        _ = parsed.port
    except ValueError as e:
        raise MalformedUrlError(f"Malformed URL '{url}': {e}") from e

    if not parsed.scheme:
        raise MalformedUrlError(f"No protocol: '{url}'")
    if parsed.scheme.lower() not in _SUPPORTED_SCHEMES:
        raise MalformedUrlError(f"Unknown protocol '{parsed.scheme}' in '{url}'")
    if not parsed.hostname:
        raise MalformedUrlError(f"URL '{url}' has no host")

    return parsed


def as_url(url: "Url | str") -> Url:
    if isinstance(url, SplitResult):
        return url
    return parse_url(url)


def resolve(base: Url, location: str) -> Url:
    """Resolve a (possibly relative) Location header against the current URL."""
    return parse_url(urljoin(base.geturl(), location))


def request_target(url: Url) -> str:
    path = url.path or "/"
    if url.query:
        path = f"{path}?{url.query}"
    return path
