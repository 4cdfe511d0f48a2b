import pytest

from ghproxy.proxy import forwarder
from ghproxy.utils_tests.upstream_mock import FakeUpstream, build_request


@pytest.fixture
def upstream(monkeypatch):
    """Route every outbound request of the forwarder to a FakeUpstream."""
    fake = FakeUpstream(max_redirects=forwarder.MAX_REDIRECTS)
    monkeypatch.setattr(forwarder, "create_client", fake.create_client)
    return fake


@pytest.fixture
def make_request():
    return build_request
