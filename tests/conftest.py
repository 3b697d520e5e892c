"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import os
import ssl
import warnings
from typing import Any, Callable, Dict, Iterable, Optional

import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.resolver
import httpx
import pytest

from surfacescan.scanner.base import ProbeFailure, Target
from surfacescan.scanner.engines.probe_layer import ProbeLayer
from surfacescan.scanner.engines.ssl_engine import TLSProbeResult
from surfacescan.scanner.orchestrator import ScanOrchestrator

TARGET_URL = "https://example.com"

# A Next.js-style catch-all page: served for every unknown path by SPA hosts
HOMEPAGE = (
    "<!DOCTYPE html><html><head><title>Acme</title>"
    '<meta name="viewport" content="width=device-width"></head>'
    '<body><div id="__next" data-reactroot="">'
    "<h1>Welcome to Acme</h1><p>The best widgets on the internet.</p></div>"
    '<script id="__NEXT_DATA__" type="application/json">{"props":{"pageProps":{}}}</script>'
    "</body></html>"
)

HTML_HEADERS = {"content-type": "text/html; charset=utf-8"}

SECURE_HEADERS = {
    "content-type": "text/html; charset=utf-8",
    "content-security-policy": "default-src 'self'",
    "strict-transport-security": "max-age=31536000; includeSubDomains",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "referrer-policy": "strict-origin-when-cross-origin",
    "permissions-policy": "camera=()",
    "x-xss-protection": "1; mode=block",
}


# ---------------------------------------------------------------------------
# Fake HTTP site
# ---------------------------------------------------------------------------

def _build_response(spec: Any, request: httpx.Request):
    """
    Route specs:
        404                                 status only
        (200, "body")                       status + text body
        (200, "body", {"header": "v"})      status + body + headers
        httpx.ConnectError                  transport failure class
        callable(request)                   full control (may be async)
    """
    if isinstance(spec, type) and issubclass(spec, Exception):
        raise spec("simulated failure", request=request)
    if callable(spec):
        return spec(request)
    if isinstance(spec, int):
        return httpx.Response(spec)
    status, body, *rest = spec
    return httpx.Response(status, text=body, headers=rest[0] if rest else None)


class FakeSite:
    """
    httpx.MockTransport handler backed by a route table.

    Keys are absolute URLs, optionally prefixed with a method
    ("OPTIONS https://example.com"). Unknown URLs get `default`.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None, default: Any = 404):
        self.routes = {self._key(k): v for k, v in (routes or {}).items()}
        self.default = default
        self.requests = []

    @staticmethod
    def _key(raw: str) -> str:
        return raw.rstrip("/")

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        url = self._key(str(request.url))
        spec = self.routes.get(f"{request.method} {url}", self.routes.get(url, self.default))
        return _build_response(spec, request)


# ---------------------------------------------------------------------------
# Fake DNS resolver
# ---------------------------------------------------------------------------

def _rdata(record_type: str, value: str):
    if record_type == "TXT":
        text = f'"{value}"'
    elif record_type == "CNAME":
        text = value if value.endswith(".") else f"{value}."
    elif record_type == "MX":
        text = f"10 {value.rstrip('.')}."
    else:
        text = value
    return dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.from_text(record_type), text)


class FakeResolver:
    """
    Stands in for dns.asyncresolver.Resolver.

    records: {("example.com", "TXT"): ["v=spf1 -all"], ...}
    errors:  {("example.com", "TXT"): dns.exception.Timeout()}
    Anything else raises NXDOMAIN.
    """

    def __init__(self, records: Optional[Dict] = None, errors: Optional[Dict] = None):
        self.records = {(n.lower(), t.upper()): list(v) for (n, t), v in (records or {}).items()}
        self.errors = {(n.lower(), t.upper()): e for (n, t), e in (errors or {}).items()}
        self.queries = []

    async def resolve(self, name: str, rdtype: str, lifetime: Optional[float] = None):
        key = (name.lower().rstrip("."), rdtype.upper())
        self.queries.append(key)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.records:
            raise dns.resolver.NXDOMAIN()
        return [_rdata(key[1], value) for value in self.records[key]]


# ---------------------------------------------------------------------------
# Fake TLS outcomes
# ---------------------------------------------------------------------------

def tls_ok(days: int = 90, protocol: str = "TLSv1.3", weak_protocols: Iterable[str] = ()):
    async def _connect(host: str, port: int, timeout: float) -> TLSProbeResult:
        return TLSProbeResult(
            host=host,
            port=port,
            protocol=protocol,
            cipher="TLS_AES_256_GCM_SHA384",
            subject={"CN": host},
            issuer={"O": "Let's Encrypt", "CN": "R3"},
            not_before="2025-01-01T00:00:00+00:00",
            not_after="2025-04-01T00:00:00+00:00",
            days_until_expiry=days,
            sans=[host],
            weak_protocols=list(weak_protocols),
        )
    return _connect


def tls_error(kind: str, message: str, code: Optional[int] = None):
    async def _connect(host: str, port: int, timeout: float) -> TLSProbeResult:
        return TLSProbeResult(host=host, port=port, error=ProbeFailure(kind, message, code=code))
    return _connect


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def homepage() -> str:
    return HOMEPAGE


@pytest.fixture
def secure_headers() -> Dict[str, str]:
    return dict(SECURE_HEADERS)


@pytest.fixture
def fake_site() -> Callable[..., FakeSite]:
    return FakeSite


@pytest.fixture
def fake_tls():
    """Namespace of canned TLS connectors: fake_tls.ok(days=3), fake_tls.error(...)."""
    class _FakeTLS:
        ok = staticmethod(tls_ok)
        error = staticmethod(tls_error)
    return _FakeTLS


@pytest.fixture
def make_probes():
    """
    Build a ProbeLayer with no network behind it.

        probes = make_probes(site=FakeSite({...}), dns={...}, tls=tls_ok(days=3))
    """
    def _make(
        site: Optional[Callable] = None,
        dns: Optional[Dict] = None,
        dns_errors: Optional[Dict] = None,
        tls: Optional[Callable] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> ProbeLayer:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(site if site is not None else FakeSite()),
            follow_redirects=True,
        )
        return ProbeLayer(
            config,
            client=client,
            resolver=FakeResolver(dns, dns_errors),
            tls_connector=tls or tls_ok(),
        )
    return _make


@pytest.fixture
def run_detector():
    """
    Run one detector end to end (baseline fetch included) and return its CheckResult.

        result = run_detector(ExposedFilesDetector(), probes)
    """
    def _run(
        detector,
        probes: ProbeLayer,
        url: str = TARGET_URL,
        subdomains: Optional[Iterable[str]] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        async def _go():
            orchestrator = ScanOrchestrator(config, probes=probes)
            ctx = await orchestrator.build_context(Target.from_url(url), probes, subdomains)
            return await detector.run(ctx)
        return asyncio.run(_go())
    return _run


# ---------------------------------------------------------------------------
# Local TLS listener
# ---------------------------------------------------------------------------

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")
CA_FILE = os.path.join(DATA_DIR, "ca.pem")
SERVER_CERT = os.path.join(DATA_DIR, "localhost.pem")


def server_context(version: Optional[ssl.TLSVersion] = None) -> ssl.SSLContext:
    """Server context for 127.0.0.1, optionally pinned to a single protocol version."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(SERVER_CERT)
    if version is not None:
        context.set_ciphers("ALL:@SECLEVEL=0")
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            context.minimum_version = version
            context.maximum_version = version
    return context


async def serve_tls(context: ssl.SSLContext, call: Callable):
    """Start a TLS listener on an ephemeral port and await call(port) against it."""
    async def _handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0, ssl=context)
    port = server.sockets[0].getsockname()[1]
    try:
        return await call(port)
    finally:
        server.close()
        await server.wait_closed()


@pytest.fixture
def tls_server():
    """
    Run a coroutine against a real local TLS listener.

        result = tls_server(lambda port: tls_probe("127.0.0.1", port, cafile=CA_FILE),
                            version=ssl.TLSVersion.TLSv1_1)

    Skips when the local OpenSSL cannot serve the requested version.
    """
    def _run(call: Callable, version: Optional[ssl.TLSVersion] = None):
        if version is not None and not getattr(ssl, f"HAS_{version.name}", True):
            pytest.skip(f"OpenSSL built without {version.name}")
        try:
            context = server_context(version)
        except (ValueError, ssl.SSLError) as e:
            pytest.skip(f"OpenSSL cannot serve {version}: {e}")
        return asyncio.run(serve_tls(context, call))
    return _run


@pytest.fixture
def ca_file() -> str:
    return CA_FILE
