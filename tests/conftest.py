# tests/conftest.py

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from netkit.core.dns.lookup import DnsResolver
from netkit.core.settings import ProbeSettings


class AsyncContextManagerMock:
    def __init__(self, return_value):
        self.return_value = return_value

    async def __aenter__(self):
        return self.return_value

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


class RaisingContextManager:
    def __init__(self, exc):
        self.exc = exc

    async def __aenter__(self):
        raise self.exc

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


class FakeResponse:
    def __init__(self, status, headers=None, reason=None):
        self.status = status
        self.headers = headers or {}
        self.reason = reason


class FakeSession:
    """
    Stand-in for aiohttp.ClientSession. `routes` maps a URL to a
    FakeResponse or an exception; `handler` answers any URL not routed.
    """

    def __init__(self, routes=None, handler=None):
        self.routes = routes or {}
        self.handler = handler
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        result = self.routes.get(url)
        if result is None and self.handler is not None:
            result = self.handler(url)
        if isinstance(result, BaseException):
            return RaisingContextManager(result)
        return AsyncContextManagerMock(result)


@pytest.fixture
def sample_domain():
    return "example.com"


@pytest.fixture
def settings():
    return ProbeSettings()


@pytest.fixture
def make_answers():
    """Build a dnspython-like answer: iterable rdata plus rrset.ttl."""

    def _make(rdatas, ttl=300):
        answers = MagicMock()
        answers.__iter__.return_value = list(rdatas)
        answers.rrset.ttl = ttl
        return answers

    return _make


@pytest.fixture
def make_mx():
    def _make(exchange, preference=10):
        record = MagicMock()
        record.exchange = MagicMock()
        record.exchange.to_text.return_value = exchange
        record.preference = preference
        return record

    return _make


@pytest.fixture
def make_txt():
    def _make(*strings):
        record = MagicMock()
        record.strings = tuple(s.encode() for s in strings)
        return record

    return _make


@pytest.fixture
def make_ns():
    def _make(target):
        record = MagicMock()
        record.target = MagicMock()
        record.target.to_text.return_value = target
        return record

    return _make


@pytest.fixture
def mock_query_client():
    client = MagicMock()
    client.query = AsyncMock()
    return client


@pytest.fixture
def dns_resolver(settings, mock_query_client):
    with patch(
        "netkit.core.dns.lookup.get_dns_servers", return_value=["192.0.2.53"]
    ):
        yield DnsResolver(settings, query_client=mock_query_client)


@pytest.fixture
def http_session():
    """Patch aiohttp.ClientSession with a FakeSession; yields a builder."""

    def _install(routes=None, handler=None):
        session = FakeSession(routes=routes, handler=handler)
        patcher = patch(
            "aiohttp.ClientSession", return_value=AsyncContextManagerMock(session)
        )
        session.session_class = patcher.start()
        patchers.append(patcher)
        return session

    patchers = []
    yield _install
    for patcher in patchers:
        patcher.stop()


@pytest.fixture
def response():
    return FakeResponse
