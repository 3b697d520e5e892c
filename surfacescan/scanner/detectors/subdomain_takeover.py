# surfacescan/scanner/detectors/subdomain_takeover.py
"""
Subdomain Takeover detector.

Checks caller-supplied subdomains for dangling CNAMEs into hosting
services that let anyone claim an unused name. Per candidate:

    1. CNAME lookup            no CNAME / unknown service → skipped
    2. GET https://<sub>       transport failure → retry once over http://
    3. fingerprint search      match → vulnerable (finding)
                               no match → claimed (no finding)

DNS or HTTP failures make the candidate inconclusive; they never produce
a finding. A CNAME into a known provider alone proves nothing.

Output details:
    {
        "status": "completed",
        "checkedCount": 3,
        "totalSubdomains": 14,
        "results": [
            {"subdomain": "docs.example.com", "cname": "example.github.io",
             "service": "GitHub Pages",
             "evidence": "There isn't a GitHub Pages site here"}
        ],
        "inconclusive": ["old.example.com"]
    }

Config options:
    batch_size    candidates checked at once (default 3)
    max_checks    candidates checked per scan (default 10)
    http_timeout  per-request timeout in seconds (default 5)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext, run_in_batches
from surfacescan.scanner.signatures.takeover import match_service

logger = logging.getLogger(__name__)

CATEGORY = "Subdomain Security"

SKIPPED = "skipped"
CLAIMED = "claimed"
VULNERABLE = "vulnerable"
INCONCLUSIVE = "inconclusive"


def normalize_candidates(subdomains: Iterable[str]) -> List[str]:
    """Lower-cased, trailing-dot-free, de-duplicated, input order kept."""
    seen: List[str] = []
    for raw in subdomains or []:
        name = (raw or "").strip().lower().rstrip(".")
        if name and name not in seen:
            seen.append(name)
    return seen


class SubdomainTakeoverDetector(BaseDetector):
    name = "subdomain_takeover"
    check_name = "Subdomain Takeover"

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        candidates = normalize_candidates(ctx.subdomains)
        to_check = candidates[: config.get("max_checks", 10)]

        if not to_check:
            return CheckResult.completed(
                self.check_name,
                [],
                details={"checkedCount": 0, "totalSubdomains": 0, "results": [], "inconclusive": []},
            )

        async def _check(subdomain: str) -> Dict[str, Any]:
            return await self._check_subdomain(ctx, subdomain, config)

        outcomes = await run_in_batches(to_check, _check, config.get("batch_size", 3))

        issues: List[Finding] = []
        vulnerable: List[Dict[str, str]] = []
        inconclusive: List[str] = []

        for subdomain, outcome in zip(to_check, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Takeover check for {subdomain} crashed: {outcome}")
                inconclusive.append(subdomain)
                continue

            if outcome["state"] == INCONCLUSIVE:
                inconclusive.append(subdomain)
            elif outcome["state"] == VULNERABLE:
                vulnerable.append({
                    "subdomain": subdomain,
                    "cname": outcome["cname"],
                    "service": outcome["service"],
                    "evidence": outcome["fingerprint"],
                })
                issues.append(self._finding(subdomain, outcome))

        logger.info(
            f"subdomain_takeover: {len(issues)} vulnerable of {len(to_check)} checked "
            f"({len(candidates)} supplied, {len(inconclusive)} inconclusive)"
        )

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "checkedCount": len(to_check),
                "totalSubdomains": len(candidates),
                "results": vulnerable,
                "inconclusive": inconclusive,
            },
        )

    async def _check_subdomain(self, ctx: ScanContext, subdomain: str, config: Dict[str, Any]) -> Dict[str, Any]:
        lookup = await ctx.probes.dns(subdomain, "CNAME", timeout=config.get("dns_timeout", 5))
        if not lookup.ok:
            if lookup.error.kind in ("nxdomain", "no_answer"):
                return {"state": SKIPPED}
            return {"state": INCONCLUSIVE, "error": str(lookup.error)}
        if not lookup.records:
            return {"state": SKIPPED}

        cname = lookup.records[0].lower()
        rule = match_service(cname)
        if rule is None:
            return {"state": SKIPPED, "cname": cname}

        timeout = config.get("http_timeout", 5)
        response = await ctx.probes.http(f"https://{subdomain}", timeout=timeout)
        if not response.ok:
            logger.debug(f"Takeover check: https://{subdomain} failed ({response.error}), trying http")
            response = await ctx.probes.http(f"http://{subdomain}", timeout=timeout)
        if not response.ok:
            return {"state": INCONCLUSIVE, "cname": cname, "service": rule.name, "error": str(response.error)}

        fingerprint = rule.find_fingerprint(response.body)
        if fingerprint is None:
            return {"state": CLAIMED, "cname": cname, "service": rule.name}

        return {
            "state": VULNERABLE,
            "cname": cname,
            "service": rule.name,
            "severity": rule.severity,
            "fingerprint": fingerprint,
            "url": response.url,
            "status": response.status,
        }

    def _finding(self, subdomain: str, outcome: Dict[str, Any]) -> Finding:
        service = outcome["service"]
        cname = outcome["cname"]
        return Finding(
            id=f"subdomain-takeover-{subdomain.replace('.', '-')}",
            severity=outcome["severity"],
            category=CATEGORY,
            title=f"Subdomain takeover possible: {subdomain}",
            description=(
                f"The subdomain {subdomain} has a CNAME pointing to {service} ({cname}), "
                f"but the service appears unclaimed. An attacker could register this on "
                f"{service} and serve malicious content from your domain."
            ),
            remediation=(
                f"Either claim the {service} resource or remove the CNAME record for {subdomain} "
                f"from your DNS."
            ),
            evidence=Evidence(
                query=f"CNAME {subdomain} → {cname}; GET {outcome['url']}",
                response=f"HTTP {outcome['status']}; body contains \"{outcome['fingerprint']}\"",
                verify_command=f"dig +short CNAME {subdomain} && curl -s {outcome['url']} | head -n 20",
            ),
        )
