# surfacescan/scanner/engines/dns_engine.py
"""
DNS probe: one bounded-timeout query for one record type.

Returns a DNSProbeResult:
    {
        "name": "_dmarc.example.com",
        "record_type": "TXT",
        "records": ["v=DMARC1; p=reject; rua=mailto:dmarc@example.com"],
        "error": None | ProbeFailure,
    }

Record text is normalized per type:
    TXT    strings of one record joined, decoded as UTF-8
    CNAME  target without the trailing dot
    MX     exchange host without the trailing dot
    other  rdata.to_text()

Never raises. NXDOMAIN / NoAnswer / timeouts come back as `error` with
kind nxdomain / no_answer / timeout / dns.

Requires: dnspython (dns.asyncresolver)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import dns.asyncresolver
import dns.exception
import dns.resolver

from surfacescan.scanner.base import ProbeFailure

logger = logging.getLogger(__name__)


@dataclass
class DNSProbeResult:
    name: str
    record_type: str
    records: List[str] = field(default_factory=list)
    error: Optional[ProbeFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_resolver(
    nameservers: Optional[Sequence[str]] = None,
    timeout: float = 5.0,
) -> dns.asyncresolver.Resolver:
    """Async resolver using the system config, or the given nameservers."""
    if nameservers:
        resolver = dns.asyncresolver.Resolver(configure=False)
        resolver.nameservers = list(nameservers)
    else:
        resolver = dns.asyncresolver.Resolver()
    resolver.timeout = timeout
    resolver.lifetime = timeout
    return resolver


def _rdata_text(rdata: Any, record_type: str) -> str:
    if record_type == "TXT":
        return b"".join(rdata.strings).decode("utf-8", errors="replace")
    if record_type == "CNAME":
        return str(rdata.target).rstrip(".").lower()
    if record_type == "MX":
        return str(rdata.exchange).rstrip(".").lower()
    return rdata.to_text()


async def dns_probe(
    resolver: Any,
    name: str,
    record_type: str = "A",
    timeout: float = 5.0,
) -> DNSProbeResult:
    """Resolve `name`/`record_type` within `timeout` seconds."""
    record_type = record_type.upper()
    result = DNSProbeResult(name=name, record_type=record_type)

    try:
        answer = await asyncio.wait_for(
            resolver.resolve(name, record_type, lifetime=timeout),
            timeout=timeout,
        )
        result.records = [_rdata_text(rdata, record_type) for rdata in answer]
    except dns.resolver.NXDOMAIN:
        result.error = ProbeFailure("nxdomain", f"{name} does not exist")
    except dns.resolver.NoAnswer:
        result.error = ProbeFailure("no_answer", f"{name} has no {record_type} records")
    except (asyncio.TimeoutError, dns.exception.Timeout):
        result.error = ProbeFailure("timeout", f"{record_type} lookup for {name} timed out after {timeout}s")
    except dns.exception.DNSException as e:
        result.error = ProbeFailure("dns", f"{type(e).__name__}: {e}")
    except Exception as e:
        logger.debug(f"DNS query failed for {name} {record_type}: {e}")
        result.error = ProbeFailure("error", f"{type(e).__name__}: {e}")

    if result.error:
        logger.debug(f"DNS probe {record_type} {name}: {result.error}")
    return result
