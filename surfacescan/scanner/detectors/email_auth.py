# surfacescan/scanner/detectors/email_auth.py
"""
Email Security (DNS) detector: SPF and DMARC for the target's domain.

Three lookups, run together:
    TXT  <domain>          → the v=spf1 record
    TXT  _dmarc.<domain>   → the v=DMARC1 record
    MX   <domain>          → recorded only (hasMxRecords)

A failed lookup (NXDOMAIN, no answer, timeout) counts as "record absent".

Output details:
    {
        "status": "completed",
        "domain": "example.com",
        "spf": {"exists": true, "record": "v=spf1 include:_spf.google.com ~all",
                "policy": "softfail"},
        "dmarc": {"exists": true, "record": "v=DMARC1; p=none", "policy": "none"},
        "hasMxRecords": true
    }
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext
from surfacescan.scanner.engines.dns_engine import DNSProbeResult

logger = logging.getLogger(__name__)

CATEGORY = "Email Security"

# SPF qualifier → result name (RFC 7208 section 4.6.2)
SPF_QUALIFIERS = {
    "+": "pass",
    "-": "fail",
    "~": "softfail",
    "?": "neutral",
}


# ---------------------------------------------------------------------------
# Record parsing
# ---------------------------------------------------------------------------

def find_record(result: DNSProbeResult, prefix: str) -> Optional[str]:
    """First TXT string starting with `prefix` (case-insensitive)."""
    if not result.ok:
        return None
    for record in result.records:
        if record.strip().lower().startswith(prefix):
            return record.strip()
    return None


def parse_spf_policy(record: str) -> Optional[str]:
    """
    Result name of the trailing `all` mechanism, or None without one.

    'v=spf1 include:_spf.google.com ~all' → 'softfail'
    'v=spf1 a mx all'                     → 'pass'
    """
    for part in reversed(record.split()[1:]):
        part_lower = part.lower()
        if part_lower.lstrip("+-~?") != "all":
            continue
        qualifier = part_lower[0] if part_lower[0] in SPF_QUALIFIERS else "+"
        return SPF_QUALIFIERS[qualifier]
    return None


def parse_dmarc_tags(record: str) -> Dict[str, str]:
    """'v=DMARC1; p=none; rua=mailto:x@y' → {'v': 'DMARC1', 'p': 'none', 'rua': ...}"""
    tags: Dict[str, str] = {}
    for part in record.split(";"):
        if "=" not in part:
            continue
        key, _, value = part.partition("=")
        tags[key.strip().lower()] = value.strip()
    return tags


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------

class EmailAuthDetector(BaseDetector):
    name = "email_auth"
    check_name = "Email Security (DNS)"

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        domain = ctx.target.hostname
        timeout = config.get("dns_timeout", 5)

        spf_lookup, dmarc_lookup, mx_lookup = await asyncio.gather(
            ctx.probes.dns(domain, "TXT", timeout=timeout),
            ctx.probes.dns(f"_dmarc.{domain}", "TXT", timeout=timeout),
            ctx.probes.dns(domain, "MX", timeout=timeout),
        )
        for lookup in (spf_lookup, dmarc_lookup, mx_lookup):
            if not lookup.ok:
                logger.debug(f"email_auth: {lookup.record_type} {lookup.name} → {lookup.error}")

        spf_record = find_record(spf_lookup, "v=spf1")
        dmarc_record = find_record(dmarc_lookup, "v=dmarc1")
        spf_policy = parse_spf_policy(spf_record) if spf_record else None
        dmarc_policy = None
        if dmarc_record:
            dmarc_policy = parse_dmarc_tags(dmarc_record).get("p", "").lower() or None

        issues: List[Finding] = []

        if spf_record is None:
            issues.append(Finding(
                id="dns-no-spf",
                severity="medium",
                category=CATEGORY,
                title="No SPF record found",
                description=(
                    "Without SPF, anyone can send emails pretending to be from your domain. "
                    "Receiving servers have no list of authorized senders to check against."
                ),
                remediation=(
                    "Add a TXT record to your DNS: v=spf1 include:_spf.google.com ~all "
                    "(adjust based on your email provider)"
                ),
                evidence=Evidence(
                    query=f"TXT {domain}",
                    response=self._lookup_summary(spf_lookup, "No v=spf1 record"),
                    verify_command=f"dig +short TXT {domain}",
                ),
            ))
        elif spf_policy == "pass":
            issues.append(Finding(
                id="dns-spf-permissive",
                severity="high",
                category=CATEGORY,
                title="SPF policy is too permissive (+all)",
                description="Your SPF record ends with +all which allows anyone to send email as your domain",
                remediation="Change +all to ~all or -all in your SPF record",
                evidence=Evidence(
                    query=f"TXT {domain}",
                    response=spf_record,
                    verify_command=f"dig +short TXT {domain}",
                ),
            ))

        if dmarc_record is None:
            issues.append(Finding(
                id="dns-no-dmarc",
                severity="medium",
                category=CATEGORY,
                title="No DMARC record found",
                description=(
                    "DMARC tells email servers what to do when SPF/DKIM checks fail. "
                    "Without it, spoofed emails may still be delivered."
                ),
                remediation=(
                    f"Add a TXT record for _dmarc.{domain}: "
                    f"v=DMARC1; p=quarantine; rua=mailto:dmarc@{domain}"
                ),
                evidence=Evidence(
                    query=f"TXT _dmarc.{domain}",
                    response=self._lookup_summary(dmarc_lookup, "No v=DMARC1 record"),
                    verify_command=f"dig +short TXT _dmarc.{domain}",
                ),
            ))
        elif dmarc_policy == "none":
            issues.append(Finding(
                id="dns-dmarc-none",
                severity="low",
                category=CATEGORY,
                title='DMARC policy is set to "none"',
                description="DMARC is configured but set to monitoring only. Spoofed emails are not rejected.",
                remediation=(
                    "Consider changing DMARC policy from p=none to p=quarantine or p=reject after monitoring"
                ),
                evidence=Evidence(
                    query=f"TXT _dmarc.{domain}",
                    response=dmarc_record,
                    verify_command=f"dig +short TXT _dmarc.{domain}",
                ),
            ))

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "domain": domain,
                "spf": {"exists": spf_record is not None, "record": spf_record, "policy": spf_policy},
                "dmarc": {"exists": dmarc_record is not None, "record": dmarc_record, "policy": dmarc_policy},
                "hasMxRecords": mx_lookup.ok and bool(mx_lookup.records),
            },
        )

    @staticmethod
    def _lookup_summary(lookup: DNSProbeResult, missing: str) -> str:
        if lookup.ok:
            return f"{missing} among {len(lookup.records)} TXT record(s)"
        return f"Lookup failed ({lookup.error})"
