# surfacescan/scanner/detectors/robots.py
"""
Robots.txt Analysis detector.

Disallow rules are a map of what the owner does not want indexed, which
often is exactly what an attacker wants to look at. Reports:
    - disallowed paths naming sensitive areas          → low
    - "Disallow: /" (all crawlers blocked)             → info

Neither severity fails the check. A robots.txt that turns out to be the
application shell is treated as missing.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext
from surfacescan.scanner.validators import is_application_shell, is_html_content_type, looks_like_html

logger = logging.getLogger(__name__)

CATEGORY = "Information Disclosure"

SENSITIVE_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"admin", r"login", r"dashboard", r"api", r"private", r"secret", r"backup",
    r"\.env", r"config", r"database", r"db", r"internal", r"staging", r"dev",
    r"test", r"tmp", r"temp", r"upload", r"files", r"assets/private", r"\.git",
    r"\.svn", r"cgi-bin", r"wp-includes", r"wp-content/uploads", r"user",
    r"account", r"member", r"payment", r"checkout", r"order", r"invoice",
))


def parse_robots(content: str) -> Dict[str, Any]:
    disallowed: List[str] = []
    sitemaps: List[str] = []
    disallow_all = False

    for line in content.splitlines():
        line = line.split("#", 1)[0].strip()
        lower = line.lower()
        if lower.startswith("disallow:"):
            path = line[len("disallow:"):].strip()
            if path == "/":
                disallow_all = True
            elif path:
                disallowed.append(path)
        elif lower.startswith("sitemap:"):
            sitemap = line[len("sitemap:"):].strip()
            if sitemap:
                sitemaps.append(sitemap)

    sensitive: List[str] = []
    for path in disallowed:
        if path not in sensitive and any(p.search(path) for p in SENSITIVE_PATTERNS):
            sensitive.append(path)

    return {
        "disallowedPaths": disallowed,
        "sitemaps": sitemaps,
        "sensitivePathsFound": sensitive,
        "disallowAll": disallow_all,
    }


def _preview(items: List[str], limit: int) -> str:
    return ", ".join(items[:limit]) + ("..." if len(items) > limit else "")


class RobotsDetector(BaseDetector):
    name = "robots"
    check_name = "Robots.txt Analysis"

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        url = ctx.target.resolve("/robots.txt")
        response = await ctx.probes.http(
            url, timeout=config.get("probe_timeout", 5), max_body=config.get("max_body", 100_000),
        )
        if not response.ok:
            return CheckResult.inconclusive(self.check_name, str(response.error), details={"exists": False})

        missing = {"exists": False, "disallowedPaths": [], "sitemaps": [], "sensitivePathsFound": []}
        if response.status != 200:
            return CheckResult.completed(self.check_name, [], details=missing)

        body = response.body
        if is_application_shell(ctx.baseline_signature, body) or (
            is_html_content_type(response.content_type) and looks_like_html(body)
        ):
            logger.debug(f"robots: {url} served the application shell, ignoring")
            return CheckResult.completed(self.check_name, [], details=missing)

        parsed = parse_robots(body)
        sensitive = parsed["sensitivePathsFound"]
        issues: List[Finding] = []

        if sensitive:
            issues.append(Finding(
                id="robots-sensitive-paths",
                severity="low",
                category=CATEGORY,
                title="robots.txt reveals potentially sensitive paths",
                description=f"Found {len(sensitive)} potentially sensitive paths: {_preview(sensitive, 5)}",
                remediation=(
                    "Hiding paths in robots.txt is not a security measure, and it reveals your "
                    "directory structure to attackers. Ensure these paths are properly secured."
                ),
                evidence=Evidence(
                    query="HTTP GET /robots.txt",
                    response=f"Disallowed paths found: {_preview(sensitive, 3)}",
                    verify_command=f"curl -s {url}",
                ),
            ))

        if parsed["disallowAll"]:
            issues.append(Finding(
                id="robots-disallow-all",
                severity="info",
                category=CATEGORY,
                title="robots.txt blocks all crawlers",
                description="The site blocks all search engine crawlers. This may affect SEO.",
                remediation=(
                    "If this is intentional, no action needed. Otherwise, update robots.txt "
                    "to allow search engines."
                ),
                evidence=Evidence(
                    query="HTTP GET /robots.txt",
                    response='Contains "Disallow: /" - blocking all crawlers',
                    verify_command=f"curl -s {url}",
                ),
            ))

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "exists": True,
                "disallowedPaths": parsed["disallowedPaths"],
                "sitemaps": parsed["sitemaps"],
                "sensitivePathsFound": sensitive,
            },
            passed=not any(i.severity not in ("info", "low") for i in issues),
        )
