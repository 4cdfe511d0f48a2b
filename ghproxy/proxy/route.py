import logging
import re
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from ghproxy.matcher import Classification, classify
from ghproxy.proxy.forwarder import forward
from ghproxy.utils.exception_logging import (
    format_exception_trace,
    log_exception_with_details,
)
from ghproxy.vars import PROXY_PREFIX

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

ERROR_BODY_PREFIX = "cfworker error:\n"

# Clients and servers tend to collapse the "//" of a URL embedded in a path
_SCHEME_ARTIFACT = re.compile(r"^https?:/+")


def get_search_redirect(request: Request) -> Optional[str]:
    """Return the redirect target for ``?q=<url>`` requests, if any."""
    values = request.query_params.getlist("q")
    if not values or not values[0]:
        return None
    return f"https://{request.url.netloc}{PROXY_PREFIX}{values[0]}"


def normalize_target_path(path: str) -> str:
    return _SCHEME_ARTIFACT.sub("https://", path, count=1)


def get_target_path(request: Request) -> str:
    """
    Extract the upstream URL embedded in the request path.

    The raw path is used so percent-encoding reaches upstream as the client
    sent it. The query string is kept.
    """
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.url.query
    if query:
        path = f"{path}?{query}"
    if path.startswith(PROXY_PREFIX):
        path = path[len(PROXY_PREFIX):]
    return normalize_target_path(path)


def error_response(exception: Exception) -> Response:
    return PlainTextResponse(
        ERROR_BODY_PREFIX + format_exception_trace(exception),
        status_code=502,
        headers={"access-control-allow-origin": "*"},
    )


async def handle_request(request: Request) -> Response:
    search_target = get_search_redirect(request)
    if search_target:
        return RedirectResponse(search_target, status_code=301)

    path = get_target_path(request)
    classification = classify(path)
    logger.debug(f"[Proxy] {request.method} {path.split('?', 1)[0]} -> {classification.value}")

    if classification is Classification.PROXYABLE:
        return await forward(request, path)
    if classification is Classification.RAW_REWRITE:
        return await forward(request, path.replace("/blob/", "/raw/", 1))
    return PlainTextResponse("404 Not Found", status_code=404)


async def proxy_all(request: Request) -> Response:
    """Catch-all endpoint: every request is either a GitHub resource or a 404."""
    try:
        return await handle_request(request)
    except Exception as e:
        log_exception_with_details(logger, "[Proxy]", e)
        return error_response(e)


# Register catch-all route for proxying. An empty method list matches every
# method, extension methods such as PROPFIND included.
router.add_route("/{path:path}", proxy_all, methods=[], include_in_schema=False)
