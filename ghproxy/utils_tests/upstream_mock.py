from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

import httpx
from starlette.requests import Request


class ChunkedBody(httpx.AsyncByteStream):
    """Response body that is only produced when iterated, like a network stream."""

    def __init__(self, content: bytes, chunk_size: int = 4):
        self.content = content
        self.chunk_size = chunk_size
        self.closed = False

    async def __aiter__(self):
        for i in range(0, len(self.content), self.chunk_size):
            yield self.content[i : i + self.chunk_size]

    async def aclose(self) -> None:
        self.closed = True


class FakeUpstream:
    """In-process stand-in for GitHub and friends, served via httpx.MockTransport."""

    def __init__(self, max_redirects: int = 20):
        self.max_redirects = max_redirects
        self.routes: Dict[str, object] = {}
        self.requests: List[httpx.Request] = []
        self.clients: List[httpx.AsyncClient] = []
        self.bodies: List[ChunkedBody] = []

    def add(self, url: str, status_code: int = 200, headers=None, content=b""):
        self.routes[url] = (status_code, headers or {}, content)

    def fail(self, url: str, exception: Exception):
        self.routes[url] = exception

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if isinstance(route, Exception):
            raise route
        status_code, headers, content = route or (404, {}, b"upstream not found")
        response_headers = httpx.Headers(headers)
        response_headers.setdefault("content-length", str(len(content)))
        body = ChunkedBody(content)
        self.bodies.append(body)
        return httpx.Response(status_code, headers=response_headers, stream=body)

    def create_client(self) -> httpx.AsyncClient:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            max_redirects=self.max_redirects,
        )
        self.clients.append(client)
        return client

    @property
    def urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]


def build_request(
    path: str = "/",
    method: str = "GET",
    query_string: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    body: bytes = b"",
    host: str = "proxy.example.com",
) -> Request:
    """Build a real Starlette request the way an ASGI server would."""
    header_list: List[Tuple[bytes, bytes]] = [(b"host", host.encode("latin-1"))]
    for name, value in (headers or {}).items():
        header_list.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": unquote(path),
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "query_string": query_string,
        "headers": header_list,
        "server": (host, 443),
        "client": ("192.168.1.100", 50000),
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


async def read_body(response) -> bytes:
    """Drain a StreamingResponse body iterator."""
    return b"".join([chunk async for chunk in response.body_iterator])
