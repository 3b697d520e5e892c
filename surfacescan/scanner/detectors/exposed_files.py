# surfacescan/scanner/detectors/exposed_files.py
"""
Exposed Files detector.

GETs every SENSITIVE_FILES path on the target in fixed-size batches and
runs each response through the three-stage filter in validators.py
(status → application-shell rejection → type validator). Only validated
responses become findings; everything else is recorded in details.

Output details:
    {
        "status": "completed",
        "baseline": "available" | "unavailable",
        "paths": {
            "/.env": {"status": 200, "accessible": true, "validated": true,
                      "verdict": "validator"},
            "/.git/config": {"status": 404, "accessible": false, "validated": false,
                             "verdict": "status"},
            ...
        },
        "inconclusive": ["/backup.sql"]
    }

Config options:
    batch_size     concurrent requests per batch (default 5)
    max_body       body ceiling in bytes before the oversized rule applies
    probe_timeout  per-request timeout in seconds
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from surfacescan.scanner.base import (
    BaseDetector, CheckResult, Evidence, Finding, ScanContext, run_in_batches, slugify,
)
from surfacescan.scanner.engines.http_engine import HTTPProbeResult
from surfacescan.scanner.signatures.resources import SENSITIVE_FILES, SensitiveResource
from surfacescan.scanner.validators import Verdict, evaluate_response, get_validator

logger = logging.getLogger(__name__)

CATEGORY = "Exposed Files"


class ExposedFilesDetector(BaseDetector):
    name = "exposed_files"
    check_name = "Exposed Files"

    def __init__(self, resources=SENSITIVE_FILES):
        self.resources = tuple(resources)

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        timeout = config.get("probe_timeout", 5)
        max_body = config.get("max_body", 50_000)

        async def _check(resource: SensitiveResource):
            url = ctx.target.resolve(resource.path)
            response = await ctx.probes.http(url, timeout=timeout, max_body=max_body)
            verdict = evaluate_response(
                response, ctx.baseline_signature, get_validator(resource.validator),
            )
            return resource, response, verdict

        outcomes = await run_in_batches(self.resources, _check, config.get("batch_size", 5))

        issues: List[Finding] = []
        paths: Dict[str, Dict[str, Any]] = {}
        inconclusive: List[str] = []

        for resource, outcome in zip(self.resources, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Exposed file check {resource.path} crashed: {outcome}")
                inconclusive.append(resource.path)
                paths[resource.path] = {"status": 0, "accessible": False, "validated": False,
                                        "verdict": "inconclusive"}
                continue

            _, response, verdict = outcome
            paths[resource.path] = {
                "status": response.status,
                "accessible": verdict.accepted,
                "validated": verdict.accepted,
                "verdict": verdict.stage,
            }
            if verdict.stage == "inconclusive":
                inconclusive.append(resource.path)
            if verdict.accepted:
                issues.append(self._finding(resource, response, verdict))

        logger.info(
            f"exposed_files: {len(issues)} validated of {len(self.resources)} paths "
            f"on {ctx.target.url} ({len(inconclusive)} inconclusive)"
        )

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "baseline": "available" if ctx.baseline_signature else "unavailable",
                "paths": paths,
                "inconclusive": inconclusive,
            },
        )

    def _finding(self, resource: SensitiveResource, response: HTTPProbeResult, verdict: Verdict) -> Finding:
        return Finding(
            id=f"exposed-{slugify(resource.path)}",
            severity=resource.severity,
            category=CATEGORY,
            title=f"{resource.name} accessible: {resource.path}",
            description=resource.description,
            remediation=resource.fix,
            evidence=Evidence(
                query=f"GET {response.url}",
                response=(
                    f"HTTP {response.status}, Content-Type: {response.content_type or 'none'}. "
                    f"{verdict.reason}"
                ),
                verify_command=f"curl -s {response.url} | head -n 5",
            ),
        )
