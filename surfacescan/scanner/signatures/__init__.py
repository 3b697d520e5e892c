# surfacescan/scanner/signatures/__init__.py
"""
Static lookup tables. Plain data, built once at import time and never
mutated; detectors are table-driven over these.
"""

from surfacescan.scanner.signatures.resources import (
    ADMIN_PATHS, SENSITIVE_FILES, AdminPath, SensitiveResource, admin_severity,
)
from surfacescan.scanner.signatures.secrets import SECRET_PATTERNS, SecretPattern
from surfacescan.scanner.signatures.takeover import (
    VULNERABLE_SERVICES, VulnerableServiceRule, match_service,
)
from surfacescan.scanner.signatures.tech import TECH_SIGNATURES, TechSignature

__all__ = [
    "ADMIN_PATHS",
    "SECRET_PATTERNS",
    "SENSITIVE_FILES",
    "TECH_SIGNATURES",
    "VULNERABLE_SERVICES",
    "AdminPath",
    "SecretPattern",
    "SensitiveResource",
    "TechSignature",
    "VulnerableServiceRule",
    "admin_severity",
    "match_service",
]
