# surfacescan/scanner/detectors/ssl_check.py
"""
SSL/TLS detector.

One verified handshake against the target's host and port, plus one
unverified handshake pinned to each outdated protocol version.

Severity classification:
    CRITICAL - site served over plain HTTP, or certificate expired
    HIGH     - certificate expires within 7 days, outdated protocol
               (SSLv2/SSLv3/TLSv1/TLSv1.1), any other validation or
               handshake failure
    MEDIUM   - certificate expires within 30 days

A timeout or refused connection says nothing about the certificate, so
the check reports inconclusive instead of a finding.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext
from surfacescan.scanner.engines.ssl_engine import WEAK_PROTOCOLS, WEAK_TLS_VERSIONS, TLSProbeResult

logger = logging.getLogger(__name__)

CATEGORY = "SSL/TLS"

_OPENSSL_FLAGS = {"TLSv1.1": "-tls1_1", "TLSv1": "-tls1", "SSLv3": "-ssl3"}


def tls_details(result: TLSProbeResult) -> Dict[str, Any]:
    return {
        "valid": result.ok and not result.certificate_expired,
        "issuer": result.issuer.get("O") or result.issuer.get("CN") or ("Unknown" if result.ok else None),
        "subject": result.subject.get("CN") or ("Unknown" if result.ok else None),
        "validFrom": result.not_before,
        "validTo": result.not_after,
        "daysUntilExpiry": result.days_until_expiry,
        "protocol": result.protocol,
        "cipher": result.cipher,
        "error": result.error.message if result.error else None,
        "weakProtocols": list(result.weak_protocols),
    }


def _outdated_protocols(result: TLSProbeResult) -> List[str]:
    weak = list(result.weak_protocols)
    if result.protocol in WEAK_PROTOCOLS and result.protocol not in weak:
        weak.insert(0, result.protocol)
    return weak


class SSLCheckDetector(BaseDetector):
    name = "ssl"
    check_name = "SSL/TLS"

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        target = ctx.target

        if not target.is_https:
            return CheckResult.completed(
                self.check_name,
                [Finding(
                    id="no-https",
                    severity="critical",
                    category=CATEGORY,
                    title="Site not using HTTPS",
                    description="The site is served over unencrypted HTTP, exposing all traffic to interception",
                    remediation="Enable HTTPS with a valid SSL certificate (use Let's Encrypt for free certificates)",
                    evidence=Evidence(
                        query=f"Scheme of {target.url}",
                        response="http",
                        verify_command=f"curl -sI {target.url}",
                    ),
                )],
                details={"valid": False},
            )

        host, port = target.hostname, target.tls_port
        result = await ctx.probes.tls(host, port, timeout=config.get("tls_timeout", 10))
        details = tls_details(result)
        verify = f"openssl s_client -connect {host}:{port} -servername {host} </dev/null"

        if not result.ok and result.error.kind in ("timeout", "connection", "error"):
            logger.info(f"ssl: handshake with {host}:{port} inconclusive ({result.error})")
            return CheckResult.inconclusive(self.check_name, str(result.error), details=details)

        issues: List[Finding] = []

        if result.certificate_expired:
            ago = abs(result.days_until_expiry) if result.days_until_expiry is not None else None
            issues.append(Finding(
                id="ssl-expired",
                severity="critical",
                category=CATEGORY,
                title="SSL certificate has expired",
                description=(
                    f"Certificate expired {ago} days ago" if ago is not None
                    else f"Certificate has expired ({result.error.message})"
                ),
                remediation="Renew your SSL certificate immediately",
                evidence=Evidence(
                    query=f"TLS handshake {host}:{port}",
                    response=details["error"] or f"notAfter={result.not_after}",
                    verify_command=verify,
                ),
            ))
        elif not result.ok:
            issues.append(Finding(
                id="ssl-error",
                severity="high",
                category=CATEGORY,
                title="SSL certificate validation failed",
                description=result.error.message,
                remediation="Ensure you have a valid SSL certificate from a trusted CA",
                evidence=Evidence(
                    query=f"TLS handshake {host}:{port}",
                    response=str(result.error),
                    verify_command=verify,
                ),
            ))
        else:
            issues.extend(self._expiry_findings(result, verify))

        weak = _outdated_protocols(result)
        if weak:
            issues.append(Finding(
                id="weak-tls",
                severity="high",
                category=CATEGORY,
                title=f"Outdated TLS version: {weak[0]}",
                description=(
                    "Using an outdated TLS version that has known vulnerabilities "
                    f"(accepted: {', '.join(weak)})"
                ),
                remediation="Configure your server to use TLS 1.2 or TLS 1.3 only",
                evidence=Evidence(
                    query=f"TLS handshake {host}:{port} pinned to each of {', '.join(WEAK_TLS_VERSIONS)}",
                    response=f"Accepted {', '.join(weak)}; handshake completed at {result.protocol or 'no version'}",
                    verify_command=f"openssl s_client -connect {host}:{port} {_OPENSSL_FLAGS.get(weak[0], '')} </dev/null",
                ),
            ))

        return CheckResult.completed(self.check_name, issues, details=details)

    @staticmethod
    def _expiry_findings(result: TLSProbeResult, verify: str) -> List[Finding]:
        days = result.days_until_expiry
        if days is None or days >= 30:
            return []

        evidence = Evidence(
            query=f"TLS handshake {result.host}:{result.port}",
            response=f"notAfter={result.not_after} ({days} days)",
            verify_command=verify,
        )
        if days < 7:
            return [Finding(
                id="ssl-expiring-soon",
                severity="high",
                category=CATEGORY,
                title="SSL certificate expiring very soon",
                description=f"Certificate expires in {days} days",
                remediation="Renew your SSL certificate before it expires",
                evidence=evidence,
            )]
        return [Finding(
            id="ssl-expiring",
            severity="medium",
            category=CATEGORY,
            title="SSL certificate expiring soon",
            description=(
                f"Certificate expires on {result.not_after} ({days} days). "
                "Most hosting auto-renews, but worth checking."
            ),
            remediation="Check your hosting provider for auto-renewal settings, or manually renew before expiry",
            evidence=evidence,
        )]
