# surfacescan/scanner/signatures/takeover.py
"""
Hosting services whose unclaimed resources can be registered by anyone.

A subdomain is a takeover candidate when its CNAME matches `cname_pattern`
AND the page served for it contains one of `fingerprints` (the provider's
"nothing here" error page). A CNAME match alone only means the subdomain
points at the provider.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple


@dataclass(frozen=True)
class VulnerableServiceRule:
    name: str
    cname_pattern: Pattern[str]
    fingerprints: Tuple[str, ...]
    severity: str

    def matches(self, cname: str) -> bool:
        return bool(self.cname_pattern.search(cname))

    def find_fingerprint(self, body: str) -> Optional[str]:
        for fingerprint in self.fingerprints:
            if fingerprint in body:
                return fingerprint
        return None


def _rule(name: str, suffix: str, fingerprints: Tuple[str, ...], severity: str = "high") -> VulnerableServiceRule:
    return VulnerableServiceRule(
        name=name,
        cname_pattern=re.compile(suffix, re.IGNORECASE),
        fingerprints=fingerprints,
        severity=severity,
    )


VULNERABLE_SERVICES: Tuple[VulnerableServiceRule, ...] = (
    _rule("AWS S3", r"\.s3[.-].*\.amazonaws\.com$",
          ("NoSuchBucket", "The specified bucket does not exist"), "critical"),
    _rule("GitHub Pages", r"\.github\.io$",
          ("There isn't a GitHub Pages site here", "For root URLs"), "critical"),
    _rule("Heroku", r"\.herokuapp\.com$",
          ("No such app", "herokucdn.com/error-pages/no-such-app"), "critical"),
    _rule("Azure", r"\.azurewebsites\.net$",
          ("404 Web Site not found", "Microsoft Azure App Service"), "critical"),
    _rule("Netlify", r"\.netlify\.app$",
          ("Not Found - Request ID",)),
    _rule("Vercel", r"\.vercel\.app$",
          ("The deployment you are trying to access",)),
    _rule("Cloudfront", r"\.cloudfront\.net$",
          ("The request could not be satisfied", "ERROR: The request could not be satisfied")),
    _rule("Fastly", r"\.fastly\.net$",
          ("Fastly error: unknown domain",)),
    _rule("Pantheon", r"\.pantheonsite\.io$",
          ("The gods are wise", "404 error unknown site")),
    _rule("Tumblr", r"\.tumblr\.com$",
          ("There's nothing here", "Whatever you were looking for doesn't currently exist")),
    _rule("Shopify", r"\.myshopify\.com$",
          ("Sorry, this shop is currently unavailable",)),
    _rule("Surge.sh", r"\.surge\.sh$",
          ("project not found",)),
    _rule("UserVoice", r"\.uservoice\.com$",
          ("This UserVoice subdomain is currently available",)),
    _rule("Ghost", r"\.ghost\.io$",
          ("The thing you were looking for is no longer here",)),
    _rule("Cargo", r"\.cargo\.site$",
          ("<title>404 — File not found</title>",)),
    _rule("Fly.io", r"\.fly\.dev$",
          ("Could not resolve host",)),
    _rule("Railway", r"\.railway\.app$",
          ("Application not found",)),
    _rule("Render", r"\.onrender\.com$",
          ("Not Found",)),
)


def match_service(cname: str) -> Optional[VulnerableServiceRule]:
    """First rule whose CNAME pattern matches, or None."""
    for rule in VULNERABLE_SERVICES:
        if rule.matches(cname):
            return rule
    return None
