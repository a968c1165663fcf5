"""pytest fixtures for testing."""

import asyncio
from unittest.mock import MagicMock

import aiohttp
import dns.rdatatype
import pytest

from posture_audit.models.audit_target import AuditTarget
from posture_audit.models.dns_answer import RawAnswer


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse`` used as a context manager."""

    def __init__(self, status=200, payload=None, headers=None, delay=0.0):
        self.status = status
        self.payload = payload
        self.headers = headers or {}
        self.delay = delay

    async def json(self, content_type="application/json"):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=MagicMock(),
                history=(),
                status=self.status,
                message=f"HTTP {self.status}",
            )

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _RaisingContext:
    def __init__(self, exc):
        self.exc = exc

    async def __aenter__(self):
        raise self.exc

    async def __aexit__(self, exc_type, exc, tb):
        return False


def doh_payload(name, rdtype, records, status=0):
    """Build a Google-style DoH JSON body."""
    type_code = int(dns.rdatatype.from_text(rdtype))
    body = {"Status": status}
    if records:
        body["Answer"] = [
            {"name": f"{name}.", "type": type_code, "TTL": 300, "data": data}
            for data in records
        ]
    return body


class FakeSession:
    """In-process double for ``aiohttp.ClientSession``.

    DoH requests (``params`` carrying ``name``) are routed by
    ``(name, numeric type)``; unknown names answer NXDOMAIN. Other requests
    are routed by URL; unknown URLs answer 404. A route may be a
    FakeResponse, an exception to raise, or a list consumed in order.
    """

    def __init__(self):
        self.dns_routes = {}
        self.url_routes = {}
        self.calls = []

    def add_dns(self, name, rdtype, records=(), status=0, delay=0.0):
        type_code = str(int(dns.rdatatype.from_text(rdtype)))
        self.dns_routes[(name, type_code)] = FakeResponse(
            payload=doh_payload(name, rdtype, list(records), status), delay=delay
        )

    def add_dns_response(self, name, rdtype, response):
        type_code = str(int(dns.rdatatype.from_text(rdtype)))
        self.dns_routes[(name, type_code)] = response

    def add_url(self, url, response):
        self.url_routes[url] = response

    def dns_queries(self):
        return [params["name"] for _, params, _ in self.calls if params and "name" in params]

    def _route(self, route):
        if isinstance(route, list):
            route = route.pop(0)
        if isinstance(route, BaseException):
            return _RaisingContext(route)
        return route

    def get(self, url, params=None, headers=None, **kwargs):
        self.calls.append((url, params, headers))
        if params and "name" in params:
            route = self.dns_routes.get(
                (params["name"], params["type"]),
                FakeResponse(payload={"Status": 3}),
            )
        else:
            route = self.url_routes.get(url, FakeResponse(status=404, payload={}))
        return self._route(route)

    def head(self, url, allow_redirects=True, **kwargs):
        self.calls.append((url, None, None))
        return self._route(self.url_routes.get(url, FakeResponse(status=404)))


@pytest.fixture
def fake_session():
    """Fresh fake HTTP session with no routes."""
    return FakeSession()


@pytest.fixture
def make_answer():
    """Factory for RawAnswer objects."""

    def _make(data, rdtype="TXT", name="example.com"):
        return RawAnswer(
            name=name, type=int(dns.rdatatype.from_text(rdtype)), ttl=300, data=data
        )

    return _make


@pytest.fixture
def domain_target():
    return AuditTarget.parse("example.com")


@pytest.fixture
def ipv4_target():
    return AuditTarget.parse("203.0.113.45")


@pytest.fixture
def fake_response():
    """The FakeResponse class, for building custom routes."""
    return FakeResponse
