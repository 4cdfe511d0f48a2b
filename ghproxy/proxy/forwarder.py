"""
Outbound side of the proxy.

Issues the upstream request with manual redirect handling, hands redirects to
GitHub resources back to the client through this proxy, chases every other
redirect itself, and streams the final upstream body back untouched.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from urllib.parse import urljoin

import httpx
from fastapi import Request
from fastapi.responses import Response, StreamingResponse
from opentelemetry import trace
from starlette.background import BackgroundTask

from ghproxy.matcher import is_github_resource
from ghproxy.utils import redact_url
from ghproxy.utils.traced_requests import traced_hop
from ghproxy.vars import MAX_REDIRECTS, PROXY_PREFIX, PROXY_TIMEOUT

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# The HTTP client sets Host from the target URL
DROPPED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {"host"}

STRIPPED_RESPONSE_HEADERS = (
    "content-security-policy",
    "content-security-policy-report-only",
    "clear-site-data",
)

PREFLIGHT_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET,POST,PUT,PATCH,TRACE,DELETE,HEAD,OPTIONS",
    "access-control-max-age": "1728000",
}

# Dropped together with the body when a redirect turns the request into a GET
BODY_HEADERS = (
    "content-length",
    "content-type",
    "content-encoding",
    "content-language",
    "content-location",
)


class ProxyError(Exception):
    """Base class for failures raised by the forwarder itself."""


class TooManyRedirectsError(ProxyError):
    def __init__(self, url: str, hops: int):
        super().__init__(f"Too many redirects ({hops}) while fetching {redact_url(url)}")
        self.url = url
        self.hops = hops


class RedirectBodyError(ProxyError):
    def __init__(self, url: str, status_code: int):
        super().__init__(
            f"Cannot follow {status_code} redirect to {redact_url(url)}: "
            "the request body has already been streamed upstream"
        )
        self.url = url
        self.status_code = status_code


@dataclass
class OutboundRequest:
    """Mutable description of the upstream request, shared by every hop."""

    method: str
    headers: httpx.Headers
    body: Optional[AsyncIterator[bytes]] = None
    follow_redirects: bool = False
    hops: int = 0


def create_client() -> httpx.AsyncClient:
    """Create the per-request upstream client."""
    timeout = httpx.Timeout(PROXY_TIMEOUT if PROXY_TIMEOUT > 0 else None)
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=False,
        max_redirects=MAX_REDIRECTS,
    )


def preflight_response() -> Response:
    """Answer a CORS preflight without contacting upstream."""
    return Response(status_code=204, headers=PREFLIGHT_HEADERS)


def is_preflight(request: Request) -> bool:
    return (
        request.method == "OPTIONS"
        and "access-control-request-headers" in request.headers
    )


def has_request_body(headers) -> bool:
    if "transfer-encoding" in headers:
        return True
    try:
        return int(headers.get("content-length", "0")) > 0
    except ValueError:
        return False


def build_outbound_request(request: Request) -> OutboundRequest:
    """Mirror the inbound method, headers and (streamed) body."""
    headers = httpx.Headers(
        [
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in DROPPED_REQUEST_HEADERS
        ]
    )
    body = request.stream() if has_request_body(request.headers) else None
    return OutboundRequest(method=request.method, headers=headers, body=body)


def sanitize_headers(headers: httpx.Headers) -> httpx.Headers:
    """Open the response up to cross-origin use and drop page security policies."""
    headers["access-control-expose-headers"] = "*"
    headers["access-control-allow-origin"] = "*"
    for name in STRIPPED_RESPONSE_HEADERS:
        headers.pop(name, None)
    return headers


def stream_upstream(
    upstream: httpx.Response, headers: httpx.Headers, client: httpx.AsyncClient
) -> StreamingResponse:
    """
    Stream the raw upstream body to the client.

    The body is not decoded, so content-encoding and content-length stay valid.
    The upstream response and its client are closed once streaming ends, and
    again by the background task in case the body was never started.
    """

    async def close_upstream():
        await upstream.aclose()
        await client.aclose()

    async def iter_upstream():
        try:
            async for chunk in upstream.aiter_raw():
                yield chunk
        finally:
            await close_upstream()

    response = StreamingResponse(
        iter_upstream(),
        status_code=upstream.status_code,
        background=BackgroundTask(close_upstream),
    )
    for name, value in headers.multi_items():
        if name.lower() not in HOP_BY_HOP_HEADERS:
            response.headers.append(name, value)
    return response


def prepare_redirect_hop(outbound: OutboundRequest, status_code: int, url: str) -> None:
    """
    Update the outbound request for a redirect the proxy follows itself.

    Without a request body the method and headers are reused as they are. A
    streamed body cannot be replayed: redirects that turn the request into a
    GET under the fetch rules drop it, any other redirect fails.
    """
    outbound.hops += 1
    if outbound.hops > MAX_REDIRECTS:
        raise TooManyRedirectsError(url, outbound.hops)

    if outbound.body is not None:
        if (status_code in (301, 302) and outbound.method == "POST") or (
            status_code == 303 and outbound.method not in ("GET", "HEAD")
        ):
            outbound.method = "GET"
            outbound.body = None
            for name in BODY_HEADERS:
                outbound.headers.pop(name, None)
        else:
            raise RedirectBodyError(url, status_code)

    outbound.follow_redirects = True


async def proxy(url: str, outbound: OutboundRequest, client: httpx.AsyncClient) -> Response:
    """
    Fetch ``url`` and turn the upstream response into the client response.

    A Location pointing at a GitHub resource is prefixed so the client comes
    back through this proxy for the next hop. Any other Location is followed
    here, recursively, with automatic redirects enabled from then on.
    """
    with traced_hop(
        tracer,
        url,
        outbound.method,
        outbound.hops,
        extra_attrs={"proxy.follow_redirects": outbound.follow_redirects},
    ) as span:
        upstream_request = client.build_request(
            outbound.method, url, headers=outbound.headers, content=outbound.body
        )
        upstream = await client.send(
            upstream_request, stream=True, follow_redirects=outbound.follow_redirects
        )
        span.set_attribute("proxy.status_code", upstream.status_code)

        headers = httpx.Headers(upstream.headers)
        location = headers.get("location")
        next_url = None
        if location:
            if is_github_resource(location):
                headers["location"] = PROXY_PREFIX + location
                span.set_attribute("proxy.rewritten_location", headers["location"])
                logger.debug(f"[Proxy] Handing redirect back to client: {location}")
            else:
                next_url = urljoin(url, location)

    if next_url:
        await upstream.aclose()
        prepare_redirect_hop(outbound, upstream.status_code, next_url)
        logger.info(
            f"[Proxy] Following {upstream.status_code} redirect to {redact_url(next_url)}"
        )
        return await proxy(next_url, outbound, client)

    return stream_upstream(upstream, sanitize_headers(headers), client)


async def forward(request: Request, path: str) -> Response:
    """Proxy the inbound request to ``path``, a matched GitHub resource."""
    if is_preflight(request):
        return preflight_response()

    url = path if path.startswith("http") else "https://" + path
    outbound = build_outbound_request(request)

    client = create_client()
    try:
        return await proxy(url, outbound, client)
    except BaseException:
        await client.aclose()
        raise
