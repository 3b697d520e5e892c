# surfacescan/scanner/detectors/headers.py
"""
Security Headers detector.

Reads the baseline response headers and reports every missing security
header. Strict-Transport-Security only applies to HTTPS targets.

Checks performed:
    MEDIUM:
        - Missing Content-Security-Policy
        - Missing Strict-Transport-Security (HTTPS only)
        - Missing X-Frame-Options

    LOW:
        - Missing X-Content-Type-Options
        - Missing Referrer-Policy
        - Missing Permissions-Policy
        - Missing X-XSS-Protection (legacy)

details maps each header name to its value (None when missing).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext

logger = logging.getLogger(__name__)


# Order matters for the report
SECURITY_HEADERS = {
    "Content-Security-Policy": {
        "severity": "medium",
        "description": (
            "CSP prevents XSS attacks by controlling which resources can be loaded. "
            "This is your main defense if malicious code ever gets injected."
        ),
        "remediation": (
            "Add header: Content-Security-Policy: default-src 'self'; script-src 'self'; "
            "style-src 'self' 'unsafe-inline'"
        ),
    },
    "Strict-Transport-Security": {
        "severity": "medium",
        "https_only": True,
        "description": (
            "HSTS tells browsers to always use HTTPS. Without it, users can be "
            "downgraded from HTTPS to HTTP by a man-in-the-middle."
        ),
        "remediation": "Add header: Strict-Transport-Security: max-age=31536000; includeSubDomains",
    },
    "X-Frame-Options": {
        "severity": "medium",
        "description": "Prevents clickjacking by controlling if your site can be embedded in iframes on other sites",
        "remediation": "Add header: X-Frame-Options: DENY (or SAMEORIGIN if you need iframes)",
    },
    "X-Content-Type-Options": {
        "severity": "low",
        "description": "Prevents browsers from guessing file types, which can cause security issues in edge cases",
        "remediation": "Add header: X-Content-Type-Options: nosniff",
    },
    "Referrer-Policy": {
        "severity": "low",
        "description": "Controls how much URL information is shared when users click links to other sites",
        "remediation": "Add header: Referrer-Policy: strict-origin-when-cross-origin",
    },
    "Permissions-Policy": {
        "severity": "low",
        "description": "Restricts which browser features (camera, mic, location) your site can use",
        "remediation": "Add header: Permissions-Policy: geolocation=(), microphone=(), camera=()",
    },
    "X-XSS-Protection": {
        "severity": "low",
        "description": "Legacy XSS filter. Deprecated in modern browsers but still helps older ones.",
        "remediation": "Add header: X-XSS-Protection: 1; mode=block",
    },
}


class SecurityHeadersDetector(BaseDetector):
    name = "security_headers"
    check_name = "Security Headers"
    requires_baseline = True
    passed_without_baseline = False

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        baseline = ctx.baseline
        issues: List[Finding] = []
        details: Dict[str, Any] = {}

        for header, info in SECURITY_HEADERS.items():
            if info.get("https_only") and not ctx.target.is_https:
                continue

            value = baseline.header(header)
            details[header] = value
            if value:
                continue

            lower = header.lower()
            issues.append(Finding(
                id=f"missing-{lower}",
                severity=info["severity"],
                category="Security Headers",
                title=f"Missing {header} header",
                description=info["description"],
                remediation=info["remediation"],
                evidence=Evidence(
                    query=f"HTTP response header: {lower}",
                    response="Header not present in response",
                    verify_command=f'curl -sI {ctx.target.url} | grep -i "{lower}"',
                ),
            ))

        logger.debug(f"security_headers: {len(issues)} missing on {ctx.target.url}")
        return CheckResult.completed(self.check_name, issues, details=details)
