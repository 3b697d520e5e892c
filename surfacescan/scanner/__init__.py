# surfacescan/scanner/__init__.py
"""
SurfaceScan detection engine.

Usage:
    from surfacescan.scanner import ScanOrchestrator

    orchestrator = ScanOrchestrator()
    result = orchestrator.execute("https://example.com")

Architecture:
    Orchestrator
    ├── ProbeLayer (one bounded network call each, never raises)
    │   ├── http_probe     - httpx GET/OPTIONS with body cap
    │   ├── dns_probe      - dnspython TXT/MX/CNAME lookups
    │   └── tls_probe      - verified handshake + pinned outdated-version probes
    │
    ├── Validators (is this 200 really the file we asked for?)
    │
    └── Detectors (probe → validate → findings)
        ├── SecurityHeadersDetector, CookiesDetector, CORSDetector,
        │   ServerInfoDetector, TechStackDetector   - baseline response
        ├── SSLCheckDetector                         - TLS certificate
        ├── EmailAuthDetector                        - SPF / DMARC
        ├── SecretLeakDetector, ClientPermissionsDetector - shipped JS
        ├── ExposedFilesDetector, AdminPathsDetector, RobotsDetector
        └── SubdomainTakeoverDetector                - dangling CNAMEs
"""

from surfacescan.scanner.orchestrator import ScanOrchestrator

__all__ = ["ScanOrchestrator"]
