# surfacescan/scanner/detectors/admin_paths.py
"""
Admin Paths detector.

Probes well-known admin, database and debug endpoints (ADMIN_PATHS). A path
is reported only when it answers 200, is not the application shell, and
its body matches at least one of the entry's content markers.

Severity comes from the kind of tool, not the entry:
    database tooling (phpMyAdmin, Adminer)        critical
    debug/profiler endpoints, install scripts     high
    anything else                                 medium

Config options:
    batch_size     concurrent requests per batch (default 3)
    max_body       body ceiling in bytes
    probe_timeout  per-request timeout in seconds
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from surfacescan.scanner.base import (
    BaseDetector, CheckResult, Evidence, Finding, ScanContext, run_in_batches, slugify,
)
from surfacescan.scanner.signatures.resources import ADMIN_PATHS, AdminPath, admin_severity
from surfacescan.scanner.validators import evaluate_response, marker_validator

logger = logging.getLogger(__name__)


class AdminPathsDetector(BaseDetector):
    name = "admin_paths"
    check_name = "Admin Paths"

    def __init__(self, paths=ADMIN_PATHS):
        self.paths = tuple(paths)

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        timeout = config.get("probe_timeout", 5)
        max_body = config.get("max_body", 500_000)

        async def _check(admin_path: AdminPath):
            url = ctx.target.resolve(admin_path.path)
            response = await ctx.probes.http(url, timeout=timeout, max_body=max_body)
            verdict = evaluate_response(
                response,
                ctx.baseline_signature,
                marker_validator(admin_path.content_markers),
                judge_oversized=False,
            )
            return response, verdict

        outcomes = await run_in_batches(self.paths, _check, config.get("batch_size", 3))

        issues: List[Finding] = []
        details: Dict[str, Dict[str, Any]] = {}

        for admin_path, outcome in zip(self.paths, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Admin path check {admin_path.path} crashed: {outcome}")
                details[admin_path.path] = {"status": 0, "accessible": False, "validated": False,
                                            "verdict": "inconclusive"}
                continue

            response, verdict = outcome
            details[admin_path.path] = {
                "status": response.status,
                "accessible": verdict.accepted,
                "validated": verdict.accepted,
                "verdict": verdict.stage,
            }
            if not verdict.accepted:
                continue

            severity, fix = admin_severity(admin_path.path)
            issues.append(Finding(
                id=f"admin-{slugify(admin_path.path)}",
                severity=severity,
                category="Admin Paths",
                title=f"{admin_path.name} found: {admin_path.path}",
                description=admin_path.description,
                remediation=fix,
                evidence=Evidence(
                    query=f"GET {response.url}",
                    response=f"HTTP {response.status}; page content matches {admin_path.name}",
                    verify_command=f"curl -s -o /dev/null -w '%{{http_code}}' {response.url}",
                ),
            ))

        logger.info(f"admin_paths: {len(issues)} exposed of {len(self.paths)} on {ctx.target.url}")

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "baseline": "available" if ctx.baseline_signature else "unavailable",
                "paths": details,
            },
        )
