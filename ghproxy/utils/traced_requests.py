import logging
from contextlib import contextmanager
from typing import Dict, Optional

from opentelemetry.trace import Tracer

from ghproxy.utils import redact_url

logger = logging.getLogger("uvicorn.error")


@contextmanager
def traced_hop(
    tracer: Tracer,
    url: str,
    method: str,
    hop: int,
    extra_attrs: Optional[Dict] = None,
):
    """Context manager that wraps one upstream request in a span and logs it."""
    safe_url = redact_url(url)
    with tracer.start_as_current_span("proxy_hop") as span:
        span.set_attribute("proxy.target_url", safe_url)
        span.set_attribute("proxy.method", method)
        span.set_attribute("proxy.hop", hop)
        if extra_attrs:
            for k, v in extra_attrs.items():
                span.set_attribute(k, v)
        logger.debug(f"[Proxy] Hop {hop}: {method} {safe_url}")
        yield span
