# surfacescan/scanner/engines/ssl_engine.py
"""
TLS probe: one verified handshake against host:port, plus one pinned
handshake per outdated protocol version.

Returns a TLSProbeResult:
    {
        "host": "example.com",
        "port": 443,
        "protocol": "TLSv1.3",
        "cipher": "TLS_AES_256_GCM_SHA384",
        "subject": {"CN": "example.com"},
        "issuer": {"O": "Let's Encrypt", "CN": "R3"},
        "not_before": "2025-01-05T00:00:00+00:00",
        "not_after": "2025-04-05T00:00:00+00:00",
        "days_until_expiry": 42,
        "sans": ["example.com", "www.example.com"],
        "weak_protocols": ["TLSv1"],
        "error": None | ProbeFailure,
    }

The handshake verifies the chain and hostname against the system trust
store. A verification failure comes back as kind "certificate" with the
OpenSSL verify code in `code` (10 = certificate has expired); any other
handshake failure is kind "tls"; refused / unreachable is "connection".
`weak_protocols` lists the outdated versions an unverified handshake
pinned to that single version completed with.

Never raises.
"""

from __future__ import annotations

import asyncio
import logging
import math
import ssl
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from surfacescan.scanner.base import ProbeFailure

logger = logging.getLogger(__name__)

# X509_V_ERR_CERT_HAS_EXPIRED
CERT_EXPIRED = 10

WEAK_PROTOCOLS = ("SSLv2", "SSLv3", "TLSv1", "TLSv1.1")

# Versions probed one at a time, newest first
WEAK_TLS_VERSIONS = {
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1": ssl.TLSVersion.TLSv1,
    "SSLv3": ssl.TLSVersion.SSLv3,
}

_NAME_FIELDS = {
    "commonName": "CN",
    "organizationName": "O",
    "organizationalUnitName": "OU",
    "countryName": "C",
    "stateOrProvinceName": "ST",
    "localityName": "L",
}


@dataclass
class TLSProbeResult:
    host: str
    port: int = 443
    protocol: Optional[str] = None
    cipher: Optional[str] = None
    subject: Dict[str, str] = field(default_factory=dict)
    issuer: Dict[str, str] = field(default_factory=dict)
    not_before: Optional[str] = None
    not_after: Optional[str] = None
    days_until_expiry: Optional[int] = None
    sans: List[str] = field(default_factory=list)
    weak_protocols: List[str] = field(default_factory=list)
    error: Optional[ProbeFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def certificate_expired(self) -> bool:
        if self.error is not None:
            return self.error.kind == "certificate" and self.error.code == CERT_EXPIRED
        return self.days_until_expiry is not None and self.days_until_expiry < 0


def _flatten_name(name: Tuple) -> Dict[str, str]:
    """((('commonName', 'example.com'),),) → {"CN": "example.com"}"""
    result: Dict[str, str] = {}
    for rdn in name:
        for key, value in rdn:
            result[_NAME_FIELDS.get(key, key)] = value
    return result


def _cert_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(ssl.cert_time_to_seconds(value), tz=timezone.utc)
    except ValueError:
        return None


def _fill_certificate(result: TLSProbeResult, cert: Dict) -> None:
    result.subject = _flatten_name(cert.get("subject", ()))
    result.issuer = _flatten_name(cert.get("issuer", ()))
    result.sans = [value for kind, value in cert.get("subjectAltName", ()) if kind.lower() == "dns"]

    not_before = _cert_time(cert.get("notBefore"))
    not_after = _cert_time(cert.get("notAfter"))
    result.not_before = not_before.isoformat() if not_before else cert.get("notBefore")
    result.not_after = not_after.isoformat() if not_after else cert.get("notAfter")

    if not_after:
        seconds_left = (not_after - datetime.now(timezone.utc)).total_seconds()
        result.days_until_expiry = math.floor(seconds_left / 86400)


def _pinned_context(version: ssl.TLSVersion, verify: bool, cafile: Optional[str] = None) -> ssl.SSLContext:
    """Context that can only negotiate `version`."""
    if verify:
        context = ssl.create_default_context(cafile=cafile)
    else:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    # OpenSSL 3 refuses pre-1.2 handshakes above security level 0
    context.set_ciphers("ALL:@SECLEVEL=0")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        context.minimum_version = version
        context.maximum_version = version
    return context


async def _handshake(
    result: TLSProbeResult,
    context: ssl.SSLContext,
    timeout: float,
) -> None:
    """One handshake; fills `result` with the peer certificate or the failure."""
    host, port = result.host, result.port
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(
                host, port, ssl=context, server_hostname=host, ssl_handshake_timeout=timeout,
            ),
            timeout=timeout,
        )
    except ssl.SSLCertVerificationError as e:
        result.error = ProbeFailure(
            "certificate", e.verify_message or str(e), code=e.verify_code,
        )
        return
    except ssl.SSLError as e:
        result.error = ProbeFailure("tls", e.reason or str(e))
        return
    except asyncio.TimeoutError:
        result.error = ProbeFailure("timeout", f"TLS handshake with {host}:{port} timed out after {timeout}s")
        return
    except OSError as e:
        result.error = ProbeFailure("connection", f"Connection failed to {host}:{port}: {e}")
        return

    result.error = None
    try:
        ssl_object = writer.get_extra_info("ssl_object")
        if ssl_object is not None:
            result.protocol = ssl_object.version()
            cipher = ssl_object.cipher()
            result.cipher = cipher[0] if cipher else None
            _fill_certificate(result, ssl_object.getpeercert() or {})
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ssl.SSLError) as e:
            logger.debug(f"TLS close for {host}:{port} raised {e}")


async def protocol_accepted(host: str, port: int, name: str, timeout: float = 10.0) -> bool:
    """Unverified handshake pinned to one protocol version."""
    version = WEAK_TLS_VERSIONS.get(name)
    if version is None:
        return False
    try:
        context = _pinned_context(version, verify=False)
    except (ValueError, ssl.SSLError) as e:
        logger.debug(f"TLS: {name} not available locally ({e})")
        return False

    probe = TLSProbeResult(host=host, port=port)
    await _handshake(probe, context, timeout)
    if probe.ok:
        logger.debug(f"TLS: {host}:{port} accepted {name}")
    return probe.ok


async def tls_probe(
    host: str,
    port: int = 443,
    timeout: float = 10.0,
    cafile: Optional[str] = None,
) -> TLSProbeResult:
    """
    Complete a verified TLS handshake and read the peer certificate, then
    record which outdated protocol versions the server still accepts.

    The default client context will not go below TLS 1.2, so a server that
    only speaks an outdated version fails the first handshake. When one of
    the pinned probes gets through, the verified handshake is repeated at
    that version so the certificate is still checked.
    """
    result = TLSProbeResult(host=host, port=port)
    await _handshake(result, ssl.create_default_context(cafile=cafile), timeout)

    if result.error is not None and result.error.kind == "timeout":
        return result

    accepted = await asyncio.gather(*(
        protocol_accepted(host, port, name, timeout) for name in WEAK_TLS_VERSIONS
    ))
    result.weak_protocols = [name for name, ok in zip(WEAK_TLS_VERSIONS, accepted) if ok]

    if result.error is not None and result.error.kind in ("tls", "connection") and result.weak_protocols:
        best = result.weak_protocols[0]
        logger.info(f"TLS: {host}:{port} only completed a handshake at {best}")
        await _handshake(result, _pinned_context(WEAK_TLS_VERSIONS[best], verify=True, cafile=cafile), timeout)

    return result
