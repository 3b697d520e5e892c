# surfacescan/scanner/detectors/cookies.py
"""
Cookie Security detector.

Inspects every Set-Cookie header on the baseline response:
    - no Secure on an HTTPS site                   → high
    - no HttpOnly                                  → high for session-like
                                                     names, medium otherwise
    - no SameSite                                  → medium
    - SameSite=None without Secure                 → high

Cookie values never leave this module: evidence shows the header with the
value replaced by [VALUE].
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext

CATEGORY = "Cookie Security"

SESSION_NAME = re.compile(r"sess|token|auth|jwt|sid|login|user", re.IGNORECASE)
_SAME_SITE_VALUES = ("strict", "lax", "none")


def parse_cookie(raw: str) -> Dict[str, Any]:
    """Flags from the attributes after the first `;`, never from the name or value."""
    pair, *attributes = raw.split(";")
    flags: Dict[str, str] = {}
    for attribute in attributes:
        key, _, value = attribute.partition("=")
        flags[key.strip().lower()] = value.strip().lower()

    same_site = flags.get("samesite")
    return {
        "name": pair.split("=", 1)[0].strip(),
        "hasSecure": "secure" in flags,
        "hasHttpOnly": "httponly" in flags,
        "hasSameSite": "samesite" in flags,
        "sameSiteValue": same_site if same_site in _SAME_SITE_VALUES else None,
    }


def mask_cookie(raw: str) -> str:
    return re.sub(r"=([^;]+)", "=[VALUE]", raw, count=1)


class CookiesDetector(BaseDetector):
    name = "cookies"
    check_name = "Cookie Security"
    requires_baseline = True

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        issues: List[Finding] = []
        cookies: List[Dict[str, Any]] = []
        verify = f'curl -sI {ctx.target.url} | grep -i "set-cookie"'

        for raw in ctx.baseline.header_values("set-cookie"):
            cookie = parse_cookie(raw)
            cookies.append(cookie)
            name = cookie["name"]

            def _issue(suffix: str, severity: str, title: str, description: str, fix: str) -> Finding:
                return Finding(
                    id=f"cookie-{suffix}-{name}",
                    severity=severity,
                    category=CATEGORY,
                    title=title,
                    description=description,
                    remediation=fix,
                    evidence=Evidence(
                        query=f'Set-Cookie header for "{name}"',
                        response=mask_cookie(raw),
                        verify_command=verify,
                    ),
                )

            if ctx.target.is_https and not cookie["hasSecure"]:
                issues.append(_issue(
                    "no-secure", "high",
                    f'Cookie "{name}" missing Secure flag',
                    "Cookie can be transmitted over unencrypted connections",
                    f"Add Secure flag to cookie: Set-Cookie: {name}=value; Secure; HttpOnly; SameSite=Lax",
                ))

            if not cookie["hasHttpOnly"]:
                issues.append(_issue(
                    "no-httponly", "high" if SESSION_NAME.search(name) else "medium",
                    f'Cookie "{name}" missing HttpOnly flag',
                    "Cookie is accessible via JavaScript, making it vulnerable to XSS theft",
                    f"Add HttpOnly flag to cookie: Set-Cookie: {name}=value; HttpOnly; Secure; SameSite=Lax",
                ))

            if not cookie["hasSameSite"]:
                issues.append(_issue(
                    "no-samesite", "medium",
                    f'Cookie "{name}" missing SameSite attribute',
                    "Cookie may be sent with cross-site requests, enabling CSRF attacks",
                    f"Add SameSite attribute: Set-Cookie: {name}=value; SameSite=Lax; Secure; HttpOnly",
                ))
            elif cookie["sameSiteValue"] == "none" and not cookie["hasSecure"]:
                issues.append(_issue(
                    "samesite-none-insecure", "high",
                    f'Cookie "{name}" has SameSite=None without Secure',
                    "SameSite=None requires the Secure flag to work properly",
                    f"Add Secure flag when using SameSite=None: Set-Cookie: {name}=value; SameSite=None; Secure",
                ))

        return CheckResult.completed(self.check_name, issues, details={"cookies": cookies})
