# surfacescan/scanner/orchestrator.py
"""
Scan Orchestrator: coordinates one scan of one host.

Pipeline:

    1. Normalize the target URL (Target.from_url)
    2. Fetch the baseline page once and compute its signature
    3. Build the ScanContext shared by every detector
    4. Run the enabled detectors, at most `workers` at a time
    5. Collect one CheckResult per detector, in registry order
    6. Summarize into a ScanResult

Usage:
    from surfacescan import ScanOrchestrator

    orchestrator = ScanOrchestrator({"workers": 2})
    result = orchestrator.execute("https://example.com", subdomains=["docs.example.com"])
    report = result.to_dict()

Configuration errors (unknown detector name, bad worker count) raise
ValueError from the constructor, before any network I/O. Everything after
that is caught and recorded in the result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Type

from surfacescan.config import enabled_detector_names, load_config
from surfacescan.scanner.base import (
    BaseDetector,
    CheckResult,
    ScanContext,
    ScanResult,
    Target,
    now_utc,
    summarize,
)
from surfacescan.scanner.detectors import ALL_DETECTORS
from surfacescan.scanner.engines.probe_layer import ProbeLayer
from surfacescan.scanner.validators import page_signature

logger = logging.getLogger(__name__)


class ScanOrchestrator:
    """
    Runs detectors against a target and assembles the ScanResult.

    Typical usage:
        result = ScanOrchestrator().execute("example.com")

    `probes` lets callers (and tests) supply a ProbeLayer with their own
    transports; a ProbeLayer created here is closed when the scan ends,
    an injected one is left open. `registry` replaces ALL_DETECTORS.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        probes: Optional[ProbeLayer] = None,
        registry: Optional[Dict[str, Type[BaseDetector]]] = None,
    ):
        self.config = load_config(config)
        self.registry = dict(registry or ALL_DETECTORS)
        self.detector_names = enabled_detector_names(self.config, list(self.registry))
        self._probes = probes

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------

    def execute(self, url: str, subdomains: Optional[Sequence[str]] = None) -> ScanResult:
        """Synchronous wrapper around scan(), running on its own event loop."""
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            return loop.run_until_complete(self.scan(url, subdomains))
        finally:
            asyncio.set_event_loop(None)
            loop.close()

    async def scan(self, url: str, subdomains: Optional[Sequence[str]] = None) -> ScanResult:
        """
        Scan one host.

        Args:
            url:         Target URL or bare host; https is assumed without a scheme.
            subdomains:  Candidate subdomains for the takeover check.

        Returns:
            ScanResult with one CheckResult per enabled detector.

        Raises:
            ValueError if `url` has no usable host.
        """
        target = Target.from_url(url)
        started_at = now_utc()
        start = time.monotonic()

        owns_probes = self._probes is None
        probes = self._probes or ProbeLayer(self.config)

        logger.info(f"Scan started for {target.url} ({len(self.detector_names)} detectors)")
        try:
            ctx = await self.build_context(target, probes, subdomains)
            checks = await self._run_detectors(ctx)
        finally:
            if owns_probes:
                await probes.aclose()

        result = ScanResult(
            url=target.url,
            timestamp=started_at.isoformat(),
            duration=int((time.monotonic() - start) * 1000),
            checks=checks,
            summary=summarize(checks),
            baseline=self._baseline_block(ctx),
        )

        logger.info(
            f"Scan finished for {target.url} in {result.duration}ms: "
            f"{result.summary['total']} findings "
            f"({result.summary['critical']} critical, {result.summary['high']} high)"
        )
        return result

    # -------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------

    async def build_context(
        self,
        target: Target,
        probes: ProbeLayer,
        subdomains: Optional[Sequence[str]] = None,
    ) -> ScanContext:
        """Fetch the baseline page and build the context shared by all detectors."""
        baseline = await probes.http(
            target.url,
            timeout=self.config["timeout"],
            max_body=self.config["baseline_max_bytes"],
        )

        signature = None
        if baseline.ok and 200 <= baseline.status < 300 and baseline.body:
            signature = page_signature(baseline.body)

        if not baseline.ok:
            logger.warning(
                f"Baseline fetch failed for {target.url} ({baseline.error}); "
                f"header checks will be inconclusive and shell rejection is off"
            )
        else:
            logger.debug(f"Baseline for {target.url}: HTTP {baseline.status}, {len(baseline.body)} chars")

        return ScanContext(
            target=target,
            probes=probes,
            config=self.config,
            baseline=baseline,
            baseline_signature=signature,
            subdomains=list(subdomains or []),
        )

    async def _run_detectors(self, ctx: ScanContext) -> List[CheckResult]:
        semaphore = asyncio.Semaphore(int(self.config["workers"]))
        detectors: List[BaseDetector] = [self.registry[name]() for name in self.detector_names]

        async def _run(detector: BaseDetector) -> CheckResult:
            async with semaphore:
                logger.debug(f"Running detector '{detector.name}' for {ctx.target.url}")
                return await detector.run(ctx)

        outcomes = await asyncio.gather(*(_run(d) for d in detectors), return_exceptions=True)

        checks: List[CheckResult] = []
        for detector, outcome in zip(detectors, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Detector '{detector.name}' escaped its error handler: {outcome!r}")
                outcome = CheckResult.failed(detector.check_name, f"{type(outcome).__name__}: {outcome}")
            else:
                logger.info(
                    f"Detector '{detector.name}' {outcome.status} in {outcome.duration_seconds}s "
                    f"with {len(outcome.issues)} findings"
                )
            checks.append(outcome)
        return checks

    @staticmethod
    def _baseline_block(ctx: ScanContext) -> Dict[str, Any]:
        baseline = ctx.baseline
        if baseline is None or not baseline.ok:
            return {
                "status": "unavailable",
                "statusCode": None,
                "error": str(baseline.error) if baseline is not None else "not fetched",
            }
        return {"status": "available", "statusCode": baseline.status, "error": None}
