# surfacescan/scanner/detectors/client_permissions.py
"""
Client-Side Permissions detector.

Looks for permission and plan checks (isAdmin, isPro, role === 'admin', ...)
in the JavaScript the site ships. Finding one is not proof of a bug, only
a prompt to confirm the server enforces the same rule, so every match is
folded into a single medium "Code Review" finding.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Tuple
from urllib.parse import urlsplit

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext
from surfacescan.scanner.detectors.secret_leak import fetch_root_page, inline_scripts, same_origin_scripts

logger = logging.getLogger(__name__)

PERMISSION_PATTERNS: Tuple[Tuple[str, re.Pattern], ...] = (
    # Plan / subscription
    ("isPro", re.compile(r"\b(?:is|has)Pro\b", re.IGNORECASE)),
    ("isPremium", re.compile(r"\b(?:is|has)Premium\b", re.IGNORECASE)),
    ("isPaid", re.compile(r"\b(?:is|has)Paid\b", re.IGNORECASE)),
    ("isSubscribed", re.compile(r"\b(?:is|has)Subscribed\b", re.IGNORECASE)),
    ("subscription check", re.compile(r"""\bsubscription\s*(?:===?|!==?)\s*['"](?:pro|premium|paid)""", re.IGNORECASE)),
    ("plan check", re.compile(r"""\bplan\s*(?:===?|!==?)\s*['"](?:pro|premium|free|paid)""", re.IGNORECASE)),
    # Roles
    ("isAdmin", re.compile(r"\b(?:is|has)Admin\b", re.IGNORECASE)),
    ("role === admin", re.compile(r"""\brole\s*(?:===?|!==?)\s*['"]admin['"]""", re.IGNORECASE)),
    ("userRole", re.compile(r"\buserRole\b", re.IGNORECASE)),
    ("isModerator", re.compile(r"\b(?:is|has)Moderator\b", re.IGNORECASE)),
    # Feature gates
    ("canAccess*", re.compile(r"\bcanAccess\w+\b", re.IGNORECASE)),
    ("hasFeature", re.compile(r"\bhasFeature\b", re.IGNORECASE)),
    ("featureEnabled", re.compile(r"\bfeatureEnabled\b", re.IGNORECASE)),
)

CONTEXT_CHARS = 30


def scan_permission_patterns(content: str, location: str) -> List[Dict[str, str]]:
    """First match of each pattern with a little surrounding code."""
    found: List[Dict[str, str]] = []
    for name, pattern in PERMISSION_PATTERNS:
        match = pattern.search(content)
        if match is None:
            continue
        start = max(0, match.start() - CONTEXT_CHARS)
        end = min(len(content), match.end() + CONTEXT_CHARS)
        snippet = re.sub(r"\s+", " ", content[start:end]).strip()
        found.append({"name": name, "location": location, "context": snippet})
    return found


class ClientPermissionsDetector(BaseDetector):
    name = "client_permissions"
    check_name = "Client-Side Permissions"

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        page = await fetch_root_page(ctx, config.get("timeout", 10))
        if page is None:
            return CheckResult.inconclusive(self.check_name, "Root page could not be fetched")

        page_url = page.final_url or ctx.target.url
        matches: List[Dict[str, str]] = []

        for script in inline_scripts(page.body):
            matches.extend(scan_permission_patterns(script, "inline script"))

        max_bytes = config.get("max_script_bytes", 300_000)
        for script_url in same_origin_scripts(page.body, page_url)[: config.get("max_scripts", 3)]:
            response = await ctx.probes.http(
                script_url, timeout=config.get("script_timeout", 5), max_body=max_bytes,
            )
            if not response.ok or response.status != 200:
                logger.debug(f"client_permissions: skipped {script_url} ({response.error or response.status})")
                continue
            matches.extend(scan_permission_patterns(response.body[:max_bytes], urlsplit(script_url).path))

        names: List[str] = []
        for match in matches:
            if match["name"] not in names:
                names.append(match["name"])

        issues: List[Finding] = []
        if names:
            shown = '", "'.join(names[:5])
            first = matches[0]
            issues.append(Finding(
                id="clientside-permission-check",
                severity="medium",
                category="Code Review",
                title="Possible client-side permission checks found",
                description=(
                    f'Found patterns like "{shown}" in JavaScript. If these control '
                    "access to paid features or admin functions, make sure they're ALSO enforced on "
                    "your server. Client-side checks can be bypassed via browser DevTools."
                ),
                remediation=(
                    "Ensure all permission checks happen on your backend API, not just in frontend "
                    "JavaScript. The server should verify permissions before returning sensitive data "
                    "or allowing actions."
                ),
                evidence=Evidence(
                    query=f"Permission patterns in {first['location']}",
                    response=first["context"],
                    verify_command=f"curl -s {page_url} | grep -oE '(is|has)(Pro|Premium|Admin)'",
                ),
            ))

        return CheckResult.completed(
            self.check_name,
            issues,
            details={"patternsFound": matches},
        )
