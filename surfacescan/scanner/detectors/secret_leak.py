# surfacescan/scanner/detectors/secret_leak.py
"""
API Key Exposure detector: service credentials shipped to the browser.

Scans, in this order:
    1. every inline <script> body of the root page
    2. the raw root page HTML (data attributes, JSON blobs)
    3. the first `max_scripts` same-origin <script src> files

against every SecretPattern whose confidence passes `min_confidence`.
Matches are masked before they go anywhere (findings, details, logs) and
deduplicated by (service, masked value), so a key embedded in three
bundles is reported once, at its first location.

Output details:
    {
        "status": "completed",
        "keysFound": [
            {"service": "OpenAI", "masked": "sk-proj-****abcd",
             "location": "inline script", "confidence": "high"}
        ],
        "scriptsScanned": ["https://example.com/static/app.js"],
        "scriptErrors": {"https://example.com/static/vendor.js": "timeout: ..."}
    }

Config options:
    max_scripts        same-origin script files fetched (default 5)
    max_script_bytes   bytes scanned per script (default 500 000)
    script_timeout     per-script timeout in seconds (default 5)
    min_confidence     "medium" (all patterns) or "high"
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from urllib.parse import urljoin, urlsplit

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext
from surfacescan.scanner.engines.http_engine import HTTPProbeResult
from surfacescan.scanner.signatures.secrets import SECRET_PATTERNS, SecretPattern

logger = logging.getLogger(__name__)

CATEGORY = "Exposed Secrets"

_INLINE_SCRIPT = re.compile(r"<script(?![^>]*\bsrc=)[^>]*>([\s\S]*?)</script>", re.IGNORECASE)
_SCRIPT_SRC = re.compile(r"""<script[^>]+src=["']([^"']+)["'][^>]*>""", re.IGNORECASE)

_CONFIDENCE_RANK = {"medium": 1, "high": 2}


# ---------------------------------------------------------------------------
# Helpers shared with other script-scanning detectors
# ---------------------------------------------------------------------------

def inline_scripts(html: str) -> List[str]:
    """Non-empty bodies of <script> tags without a src attribute."""
    return [m.group(1) for m in _INLINE_SCRIPT.finditer(html) if m.group(1).strip()]


def same_origin_scripts(html: str, page_url: str) -> List[str]:
    """Absolute URLs of <script src> tags served from the page's own host, in page order."""
    page_host = urlsplit(page_url).hostname
    urls: List[str] = []
    for match in _SCRIPT_SRC.finditer(html):
        try:
            url = urljoin(page_url, match.group(1).strip())
            parts = urlsplit(url)
        except ValueError:
            continue
        if parts.scheme in ("http", "https") and parts.hostname == page_host and url not in urls:
            urls.append(url)
    return urls


async def fetch_root_page(ctx: ScanContext, timeout: float) -> Optional[HTTPProbeResult]:
    """The baseline page when it was a success, otherwise one fresh fetch."""
    if ctx.has_baseline and 200 <= ctx.baseline.status < 300:
        return ctx.baseline
    response = await ctx.probes.http(ctx.target.url, timeout=timeout)
    if response.ok and 200 <= response.status < 300:
        return response
    return None


def mask_secret(value: str) -> str:
    """Keep a short prefix and suffix, redact the middle."""
    if len(value) <= 16:
        return f"{value[:4]}****{value[-4:]}"
    return f"{value[:8]}****{value[-4:]}"


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SecretMatch:
    pattern: SecretPattern
    masked: str
    location: str


def scan_content(
    content: str,
    location: str,
    patterns: Iterable[SecretPattern] = SECRET_PATTERNS,
) -> List[SecretMatch]:
    """All pattern matches in `content`, masked, in table then text order."""
    found: List[SecretMatch] = []
    for pattern in patterns:
        for match in pattern.pattern.finditer(content):
            found.append(SecretMatch(pattern=pattern, masked=mask_secret(match.group(0)), location=location))
    return found


def dedupe_matches(matches: Iterable[SecretMatch]) -> List[SecretMatch]:
    """First occurrence of each (service, masked) pair, order preserved."""
    seen: Set[Tuple[str, str]] = set()
    unique: List[SecretMatch] = []
    for match in matches:
        key = (match.pattern.service, match.masked)
        if key in seen:
            continue
        seen.add(key)
        unique.append(match)
    return unique


def patterns_for(min_confidence: str) -> Tuple[SecretPattern, ...]:
    floor = _CONFIDENCE_RANK.get(min_confidence, 1)
    return tuple(p for p in SECRET_PATTERNS if _CONFIDENCE_RANK[p.confidence] >= floor)


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------

class SecretLeakDetector(BaseDetector):
    name = "secret_leak"
    check_name = "API Key Exposure"

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        page = await fetch_root_page(ctx, config.get("timeout", 10))
        if page is None:
            return CheckResult.inconclusive(self.check_name, "Root page could not be fetched")

        patterns = patterns_for(config.get("min_confidence", "medium"))
        html = page.body
        page_url = page.final_url or ctx.target.url

        matches: List[SecretMatch] = []
        for script in inline_scripts(html):
            matches.extend(scan_content(script, "inline script", patterns))
        matches.extend(scan_content(html, "HTML source", patterns))

        scripts = same_origin_scripts(html, page_url)[: config.get("max_scripts", 5)]
        scanned: List[str] = []
        script_errors: Dict[str, str] = {}

        # Sequential: at most max_scripts small requests
        for script_url in scripts:
            response = await ctx.probes.http(
                script_url,
                timeout=config.get("script_timeout", 5),
                max_body=config.get("max_script_bytes", 500_000),
            )
            if not response.ok:
                script_errors[script_url] = str(response.error)
                continue
            if response.status != 200:
                script_errors[script_url] = f"HTTP {response.status}"
                continue
            scanned.append(script_url)
            matches.extend(scan_content(response.body, script_url, patterns))

        unique = dedupe_matches(matches)
        issues = [self._finding(match, page_url) for match in unique]

        if issues:
            logger.info(
                f"secret_leak: {len(issues)} exposed secret(s) on {ctx.target.url}: "
                + ", ".join(f"{m.pattern.service} {m.masked}" for m in unique)
            )

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "keysFound": [
                    {
                        "service": m.pattern.service,
                        "masked": m.masked,
                        "location": m.location,
                        "confidence": m.pattern.confidence,
                    }
                    for m in unique
                ],
                "scriptsScanned": scanned,
                "scriptErrors": script_errors,
            },
        )

    def _finding(self, match: SecretMatch, page_url: str) -> Finding:
        pattern = match.pattern
        source = page_url if match.location in ("inline script", "HTML source") else match.location
        visible_prefix = match.masked.split("****", 1)[0]
        return Finding(
            id=f"apikey-{pattern.service.lower()}-{match.masked[:8]}",
            severity=pattern.severity,
            category=CATEGORY,
            title=f"{pattern.name} exposed: {match.masked}",
            description=pattern.description,
            remediation=pattern.fix,
            evidence=Evidence(
                query=f"{pattern.name} pattern in {match.location}",
                response=f"Found {match.masked} (confidence: {pattern.confidence})",
                verify_command=f"curl -s {source} | grep -o '{visible_prefix}[^\"]*' | head -n 1",
            ),
        )
