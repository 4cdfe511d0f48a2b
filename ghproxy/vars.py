import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "ghproxy")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

# Hop limit for redirects the proxy chases on behalf of the client
MAX_REDIRECTS = int(os.getenv("MAX_REDIRECTS", "20"))
# Outbound timeout in seconds, 0 disables it
PROXY_TIMEOUT = float(os.getenv("PROXY_TIMEOUT", "300"))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

# Route prefix in front of every proxied URL, e.g. /https://github.com/...
PROXY_PREFIX = "/"
