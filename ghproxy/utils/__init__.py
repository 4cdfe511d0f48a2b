from urllib.parse import urlsplit


def redact_url(url: str) -> str:
    """Drop userinfo and query from a URL before it ends up in logs or spans."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    if not parts.scheme:
        return url.split("?", 1)[0]
    return f"{parts.scheme}://{host}{parts.path}"
