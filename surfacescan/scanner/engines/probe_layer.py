# surfacescan/scanner/engines/probe_layer.py
"""
ProbeLayer: the single object detectors use to touch the network.

Bundles one shared httpx.AsyncClient, a lazily built dnspython async
resolver and the TLS probe, and applies the scan-wide defaults (timeouts,
User-Agent). Every call still takes an explicit timeout so a detector can
tighten it per probe.

Any of the three transports can be injected, which is how the test suite
runs detectors without a network:

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    probes = ProbeLayer(config, client=client, resolver=FakeResolver(...),
                        tls_connector=fake_tls)
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from surfacescan.config import DEFAULT_SCAN_CONFIG
from surfacescan.scanner.engines.dns_engine import DNSProbeResult, build_resolver, dns_probe
from surfacescan.scanner.engines.http_engine import DEFAULT_MAX_BODY, HTTPProbeResult, http_probe
from surfacescan.scanner.engines.ssl_engine import TLSProbeResult, tls_probe

logger = logging.getLogger(__name__)

TLSConnector = Callable[[str, int, float], Awaitable[TLSProbeResult]]


class ProbeLayer:
    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        client: Optional[httpx.AsyncClient] = None,
        resolver: Any = None,
        tls_connector: Optional[TLSConnector] = None,
    ):
        self.config = {**DEFAULT_SCAN_CONFIG, **(config or {})}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config["timeout"]),
            follow_redirects=True,
            verify=False,
            headers={"User-Agent": self.config["user_agent"]},
        )
        self._resolver = resolver
        self._tls_connector = tls_connector or tls_probe

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def resolver(self) -> Any:
        # Built on first use so a host without resolv.conf can still run HTTP-only scans
        if self._resolver is None:
            self._resolver = build_resolver(
                self.config.get("nameservers") or None,
                timeout=self.config["dns_timeout"],
            )
        return self._resolver

    async def http(
        self,
        url: str,
        method: str = "GET",
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        max_body: Optional[int] = None,
    ) -> HTTPProbeResult:
        return await http_probe(
            self._client,
            url,
            method=method,
            timeout=timeout or self.config["probe_timeout"],
            headers=headers,
            max_body=max_body or DEFAULT_MAX_BODY,
        )

    async def dns(
        self,
        name: str,
        record_type: str,
        timeout: Optional[float] = None,
    ) -> DNSProbeResult:
        return await dns_probe(
            self.resolver,
            name,
            record_type,
            timeout=timeout or self.config["dns_timeout"],
        )

    async def tls(
        self,
        host: str,
        port: int = 443,
        timeout: Optional[float] = None,
    ) -> TLSProbeResult:
        return await self._tls_connector(host, port, timeout or self.config["tls_timeout"])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ProbeLayer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
