# surfacescan/scanner/detectors/cors.py
"""
CORS Configuration detector.

Passive part reads Access-Control-* on the baseline response:
    ACAO: *                          → medium
    ACAO: * with credentials=true    → critical

Active part sends two OPTIONS preflights to the root URL:
    Origin: https://evil-attacker-site.com reflected back   → critical
    Origin: null accepted                                   → high

A preflight that fails in transport is skipped; servers that reject
OPTIONS are common and say nothing about CORS.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext

logger = logging.getLogger(__name__)

CATEGORY = "CORS"
TEST_ORIGIN = "https://evil-attacker-site.com"

_CORS_HEADERS = {
    "allowOrigin": "access-control-allow-origin",
    "allowCredentials": "access-control-allow-credentials",
    "allowMethods": "access-control-allow-methods",
    "allowHeaders": "access-control-allow-headers",
    "exposeHeaders": "access-control-expose-headers",
    "maxAge": "access-control-max-age",
}


class CORSDetector(BaseDetector):
    name = "cors"
    check_name = "CORS Configuration"
    requires_baseline = True

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        url = ctx.target.url
        details: Dict[str, Any] = {key: ctx.baseline.header(header) for key, header in _CORS_HEADERS.items()}
        issues: List[Finding] = []

        if details["allowOrigin"] == "*":
            credentials = details["allowCredentials"]
            evidence = Evidence(
                query=f"HTTP response headers from {url}",
                response=(
                    f"Access-Control-Allow-Origin: *"
                    + (f", Access-Control-Allow-Credentials: {credentials}" if credentials else "")
                ),
                verify_command=f'curl -sI {url} | grep -i "access-control"',
            )
            if (credentials or "").lower() == "true":
                issues.append(Finding(
                    id="cors-wildcard-credentials",
                    severity="critical",
                    category=CATEGORY,
                    title="CORS allows any origin with credentials",
                    description=(
                        "Access-Control-Allow-Origin: * with credentials enabled allows any website "
                        "to make authenticated requests"
                    ),
                    remediation="Never use wildcard (*) origin with credentials. Specify exact allowed origins instead.",
                    evidence=evidence,
                ))
            else:
                issues.append(Finding(
                    id="cors-wildcard",
                    severity="medium",
                    category=CATEGORY,
                    title="CORS allows any origin",
                    description="Access-Control-Allow-Origin: * allows any website to read responses from your API",
                    remediation="Restrict to specific trusted origins: Access-Control-Allow-Origin: https://yourdomain.com",
                    evidence=evidence,
                ))

        reflected = await self._preflight(ctx, TEST_ORIGIN, config)
        if reflected == TEST_ORIGIN:
            issues.append(Finding(
                id="cors-origin-reflection",
                severity="critical",
                category=CATEGORY,
                title="CORS reflects arbitrary origin",
                description="The server reflects any Origin header back, allowing any website to make requests",
                remediation="Validate the Origin header against an allowlist of trusted domains",
                evidence=Evidence(
                    query=f"OPTIONS {url} with Origin: {TEST_ORIGIN}",
                    response=f"Access-Control-Allow-Origin: {reflected} (reflected our test origin)",
                    verify_command=(
                        f'curl -s -X OPTIONS -H "Origin: {TEST_ORIGIN}" -I {url} '
                        f'| grep -i "access-control-allow-origin"'
                    ),
                ),
            ))

        null_allowed = await self._preflight(ctx, "null", config)
        if null_allowed == "null":
            issues.append(Finding(
                id="cors-null-origin",
                severity="high",
                category=CATEGORY,
                title="CORS allows null origin",
                description='The server accepts "null" origin, which can be exploited via sandboxed iframes',
                remediation='Do not allowlist "null" as an allowed origin',
                evidence=Evidence(
                    query=f"OPTIONS {url} with Origin: null",
                    response=f"Access-Control-Allow-Origin: {null_allowed}",
                    verify_command=(
                        f'curl -s -X OPTIONS -H "Origin: null" -I {url} '
                        f'| grep -i "access-control-allow-origin"'
                    ),
                ),
            ))

        return CheckResult.completed(self.check_name, issues, details=details)

    async def _preflight(self, ctx: ScanContext, origin: str, config: Dict[str, Any]):
        response = await ctx.probes.http(
            ctx.target.url,
            method="OPTIONS",
            timeout=config.get("probe_timeout", 5),
            headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
            max_body=10_000,
        )
        if not response.ok:
            logger.debug(f"cors: preflight with Origin {origin} failed ({response.error})")
            return None
        return response.header("access-control-allow-origin")
