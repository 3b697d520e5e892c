# surfacescan/scanner/detectors/__init__.py
"""
Detectors.
Each detector issues its own probes through ctx.probes, validates what
comes back, and turns confirmed observations into Findings.
"""
from surfacescan.scanner.detectors.headers import SecurityHeadersDetector
from surfacescan.scanner.detectors.cookies import CookiesDetector
from surfacescan.scanner.detectors.cors import CORSDetector
from surfacescan.scanner.detectors.server_info import ServerInfoDetector
from surfacescan.scanner.detectors.tech_stack import TechStackDetector
from surfacescan.scanner.detectors.ssl_check import SSLCheckDetector
from surfacescan.scanner.detectors.email_auth import EmailAuthDetector
from surfacescan.scanner.detectors.secret_leak import SecretLeakDetector
from surfacescan.scanner.detectors.client_permissions import ClientPermissionsDetector
from surfacescan.scanner.detectors.exposed_files import ExposedFilesDetector
from surfacescan.scanner.detectors.admin_paths import AdminPathsDetector
from surfacescan.scanner.detectors.robots import RobotsDetector
from surfacescan.scanner.detectors.subdomain_takeover import SubdomainTakeoverDetector

# Registry of all available detectors.
# ORDER MATTERS: ScanResult.checks follows this order, not completion order.
ALL_DETECTORS = {
    "security_headers": SecurityHeadersDetector,
    "cookies": CookiesDetector,
    "cors": CORSDetector,
    "server_info": ServerInfoDetector,
    "tech_stack": TechStackDetector,
    "ssl": SSLCheckDetector,
    "email_auth": EmailAuthDetector,
    "secret_leak": SecretLeakDetector,
    "client_permissions": ClientPermissionsDetector,
    "exposed_files": ExposedFilesDetector,
    "admin_paths": AdminPathsDetector,
    "robots": RobotsDetector,
    "subdomain_takeover": SubdomainTakeoverDetector,
}

__all__ = [
    "SecurityHeadersDetector", "CookiesDetector", "CORSDetector",
    "ServerInfoDetector", "TechStackDetector", "SSLCheckDetector",
    "EmailAuthDetector", "SecretLeakDetector", "ClientPermissionsDetector",
    "ExposedFilesDetector", "AdminPathsDetector", "RobotsDetector",
    "SubdomainTakeoverDetector", "ALL_DETECTORS",
]
