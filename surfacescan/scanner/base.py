# surfacescan/scanner/base.py
"""
Base classes for the surfacescan detection engine.

Architecture:
    Target flows through:  Orchestrator → Detectors → CheckResult → ScanResult

Probes:        Single bounded network operations (HTTP, DNS, TLS) living in
               scanner/engines. Probes NEVER raise; failures come back as a
               ProbeFailure value on the result.

BaseDetector:  Runs its own probes against the target and turns what it
               observes into Findings. A Finding is only created after the
               observation passed the detector's validation step.

This separation means:
  - Detectors can be tested against fake probes without any network
  - Each detector can fail independently without crashing the whole scan
  - "no findings" and "could not run" stay distinguishable in details["status"]
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar, Union,
)
from urllib.parse import urlsplit

from surfacescan.config import get_detector_config

if TYPE_CHECKING:
    from surfacescan.scanner.engines.http_engine import HTTPProbeResult
    from surfacescan.scanner.engines.probe_layer import ProbeLayer
    from surfacescan.scanner.validators import PageSignature

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


SEVERITIES = ("critical", "high", "medium", "low", "info")

STATUS_COMPLETED = "completed"
STATUS_INCONCLUSIVE = "inconclusive"
STATUS_FAILED = "failed"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def slugify(value: str) -> str:
    """'/.git/config' → '--git-config' (finding id fragment)."""
    return re.sub(r"[^a-z0-9]", "-", value, flags=re.IGNORECASE)


async def run_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int,
) -> List[Union[R, BaseException]]:
    """
    Run `worker` over `items` in fixed-size batches.

    At most `batch_size` workers are in flight at any instant, and a batch
    only starts once every item of the previous batch has settled. Results
    come back in input order; an exception raised by a worker is returned
    in its slot instead of propagating.
    """
    size = max(1, int(batch_size))
    results: List[Union[R, BaseException]] = []
    for start in range(0, len(items), size):
        batch = items[start:start + size]
        results.extend(
            await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
        )
    return results


# ---------------------------------------------------------------------------
# Data structures: these flow through the entire pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Target:
    """
    The host being scanned, normalized to scheme + host (+ port).

    Fields:
        url:       Base URL without trailing slash, e.g. "https://example.com"
        hostname:  Lower-cased host, e.g. "example.com"
        is_https:  Whether the scan talks to the target over TLS
        port:      Explicit port from the input URL, if any
    """
    url: str
    hostname: str
    is_https: bool
    port: Optional[int] = None

    @classmethod
    def from_url(cls, url: str) -> "Target":
        raw = (url or "").strip()
        if not re.match(r"^https?://", raw, flags=re.IGNORECASE):
            raw = f"https://{raw}"

        parts = urlsplit(raw)
        hostname = (parts.hostname or "").lower()
        if not hostname:
            raise ValueError(f"Invalid target URL: {url!r}")
        try:
            port = parts.port
        except ValueError:
            raise ValueError(f"Invalid port in target URL: {url!r}") from None

        scheme = parts.scheme.lower()
        host = f"[{hostname}]" if ":" in hostname else hostname
        netloc = host if port is None else f"{host}:{port}"
        return cls(url=f"{scheme}://{netloc}", hostname=hostname, is_https=scheme == "https", port=port)

    @property
    def tls_port(self) -> int:
        return self.port or 443

    def resolve(self, path: str) -> str:
        """Absolute URL for a path on this target."""
        return f"{self.url}/{path.lstrip('/')}"


@dataclass(frozen=True)
class ProbeFailure:
    """
    Typed failure returned by a probe instead of raising.

    kind is one of: timeout, connection, tls, certificate, nxdomain,
    no_answer, dns, invalid, error. `code` carries a protocol-specific
    number when one exists (e.g. the X.509 verify code).
    """
    kind: str
    message: str
    code: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass(frozen=True)
class Evidence:
    query: str
    response: str
    verify_command: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "query": self.query,
            "response": self.response,
            "verifyCommand": self.verify_command,
        }


@dataclass(frozen=True)
class Finding:
    """
    A single security observation produced by a detector.

    Fields:
        id:           Stable identifier, e.g. "exposed---env", "dns-no-spf".
        severity:     One of: critical, high, medium, low, info.
        category:     Grouping shown in reports, e.g. "Exposed Files".
        title:        Human-readable one-liner.
        description:  What was found.
        remediation:  How to fix it.
        evidence:     What was checked, what came back, and how to reproduce it.
    """
    id: str
    severity: str
    category: str
    title: str
    description: str
    remediation: str
    evidence: Optional[Evidence] = None

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {self.severity!r} for finding {self.id}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "severity": self.severity,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "fix": self.remediation,
        }
        if self.evidence is not None:
            data["evidence"] = self.evidence.to_dict()
        return data


@dataclass
class CheckResult:
    """
    Output of one detector for one scan.

    `passed` means "no actionable findings". details["status"] is always one
    of completed / inconclusive / failed so consumers can tell a clean
    result from a detector that could not run; the latter two also carry
    details["error"].
    """
    name: str
    passed: bool = True
    issues: List[Finding] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @classmethod
    def completed(
        cls,
        name: str,
        issues: Sequence[Finding],
        details: Optional[Dict[str, Any]] = None,
        passed: Optional[bool] = None,
    ) -> "CheckResult":
        issues = list(issues)
        return cls(
            name=name,
            passed=(not issues) if passed is None else passed,
            issues=issues,
            details={"status": STATUS_COMPLETED, **(details or {})},
        )

    @classmethod
    def inconclusive(
        cls,
        name: str,
        error: str,
        details: Optional[Dict[str, Any]] = None,
        passed: bool = True,
    ) -> "CheckResult":
        return cls(
            name=name,
            passed=passed,
            details={"status": STATUS_INCONCLUSIVE, "error": error, **(details or {})},
        )

    @classmethod
    def failed(cls, name: str, error: str) -> "CheckResult":
        return cls(name=name, passed=True, details={"status": STATUS_FAILED, "error": error})

    @property
    def status(self) -> str:
        return self.details.get("status", STATUS_COMPLETED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "issues": [issue.to_dict() for issue in self.issues],
            "details": self.details,
            "duration": self.duration_seconds,
        }


def summarize(checks: Sequence[CheckResult]) -> Dict[str, int]:
    """Summary counts for a list of check results."""
    findings = [issue for check in checks for issue in check.issues]
    summary = {
        "total": len(findings),
        "passed": sum(1 for c in checks if c.passed),
        "failed": sum(1 for c in checks if not c.passed),
    }
    for severity in SEVERITIES:
        summary[severity] = sum(1 for f in findings if f.severity == severity)
    return summary


@dataclass
class ScanResult:
    """
    Everything one scan produced. Read-only once returned by the orchestrator.

    Fields:
        url:        Normalized target base URL
        timestamp:  ISO-8601 UTC start time
        duration:   Wall-clock milliseconds
        checks:     One CheckResult per scheduled detector, in registry order
        summary:    {total, passed, failed, critical, high, medium, low, info}
        baseline:   {"status": "available"|"unavailable", "statusCode", "error"}
    """
    url: str
    timestamp: str
    duration: int
    checks: List[CheckResult] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)
    baseline: Dict[str, Any] = field(default_factory=dict)

    @property
    def findings(self) -> List[Finding]:
        return [issue for check in self.checks for issue in check.issues]

    def get_check(self, name: str) -> Optional[CheckResult]:
        for check in self.checks:
            if check.name == name:
                return check
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "timestamp": self.timestamp,
            "duration": self.duration,
            "checks": [check.to_dict() for check in self.checks],
            "summary": dict(self.summary),
            "baseline": dict(self.baseline),
        }


@dataclass
class ScanContext:
    """
    The data bag handed to every detector.

    Created by the orchestrator after the baseline fetch. Detectors read the
    target, the baseline response and its signature, and issue further
    probes through `probes`. Nothing here is mutated once detectors start.
    """
    target: Target
    probes: "ProbeLayer"
    config: Dict[str, Any] = field(default_factory=dict)

    # Root page, fetched once before any detector runs
    baseline: Optional["HTTPProbeResult"] = None
    baseline_signature: Optional["PageSignature"] = None

    # Candidate subdomains supplied by the caller (takeover detector)
    subdomains: List[str] = field(default_factory=list)

    @property
    def has_baseline(self) -> bool:
        return self.baseline is not None and self.baseline.ok

    def detector_config(self, detector_name: str) -> Dict[str, Any]:
        return get_detector_config(detector_name, self.config)


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseDetector(ABC):
    """
    Abstract base for detectors.

    To create a new detector:
        1. Subclass BaseDetector
        2. Set `name` (registry key, e.g. "exposed_files") and
           `check_name` (report name, e.g. "Exposed Files")
        3. Set `requires_baseline = True` if you read ctx.baseline
        4. Implement `async detect(ctx, config) -> CheckResult`

    The base class handles automatically:
        - Timing (duration_seconds is set automatically)
        - Error catching (exceptions become a "failed" CheckResult)
        - Baseline gating (an "inconclusive" result when the root page
          could not be fetched)
    """

    requires_baseline: bool = False
    # `passed` reported when the baseline is missing
    passed_without_baseline: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique detector identifier. Used as registry and config key."""
        ...

    @property
    @abstractmethod
    def check_name(self) -> str:
        """Name of the CheckResult in reports."""
        ...

    async def run(self, ctx: ScanContext) -> CheckResult:
        """
        Execute the detector with timing and error isolation.

        DO NOT OVERRIDE THIS METHOD. Override `detect()` instead.

        Returns CheckResult, always, even on failure.
        """
        start = time.monotonic()

        if self.requires_baseline and not ctx.has_baseline:
            logger.debug(f"Detector '{self.name}' skipped: baseline page unavailable")
            result = CheckResult.inconclusive(
                self.check_name,
                "Baseline page could not be fetched",
                passed=self.passed_without_baseline,
            )
        else:
            try:
                result = await self.detect(ctx, ctx.detector_config(self.name))
            except Exception as e:
                logger.exception(f"Detector '{self.name}' failed for {ctx.target.url}")
                result = CheckResult.failed(self.check_name, f"{type(e).__name__}: {e}")

        result.name = self.check_name
        result.duration_seconds = round(time.monotonic() - start, 2)
        return result

    @abstractmethod
    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        """
        Perform the actual detection. Override this in subclasses.

        Args:
            ctx:    ScanContext with the target, baseline and probe layer.
            config: Detector-specific config (see config.DETECTOR_DEFAULTS).

        Returns:
            CheckResult, normally built with CheckResult.completed() or
            CheckResult.inconclusive().
        """
        ...
