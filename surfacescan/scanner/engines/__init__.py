# surfacescan/scanner/engines/__init__.py
"""
Probe layer. Each engine call is bounded by its timeout and returns a
normalized result or a typed ProbeFailure, never an exception. The TLS
probe is the only one that opens more than one connection: the verified
handshake plus one pinned handshake per outdated protocol version.
No retries happen here.
"""

from surfacescan.scanner.engines.dns_engine import DNSProbeResult, dns_probe
from surfacescan.scanner.engines.http_engine import HTTPProbeResult, http_probe
from surfacescan.scanner.engines.probe_layer import ProbeLayer
from surfacescan.scanner.engines.ssl_engine import TLSProbeResult, protocol_accepted, tls_probe

__all__ = [
    "DNSProbeResult",
    "HTTPProbeResult",
    "ProbeLayer",
    "TLSProbeResult",
    "dns_probe",
    "http_probe",
    "protocol_accepted",
    "tls_probe",
]
