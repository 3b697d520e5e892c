# surfacescan/scanner/detectors/tech_stack.py
"""
Technology Stack detector. Informational: never produces findings.

Output details:
    {
        "status": "completed",
        "detected": [
            {"name": "Vercel", "category": "hosting", "confidence": "high"},
            {"name": "Next.js", "category": "framework", "confidence": "medium"}
        ],
        "summary": {"hosting": ["Vercel"], "framework": ["Next.js"]}
    }
"""

from __future__ import annotations

from typing import Any, Dict, List

from surfacescan.scanner.base import BaseDetector, CheckResult, ScanContext
from surfacescan.scanner.engines.http_engine import HTTPProbeResult
from surfacescan.scanner.signatures.tech import TECH_SIGNATURES


def detect_technologies(response: HTTPProbeResult) -> List[Dict[str, str]]:
    """Header signatures first (high confidence), then HTML (medium)."""
    detected: List[Dict[str, str]] = []
    seen = set()

    for tech in TECH_SIGNATURES:
        for header, pattern in tech.headers:
            value = response.header(header)
            if value and pattern.search(value):
                detected.append({"name": tech.name, "category": tech.category, "confidence": "high"})
                seen.add(tech.name)
                break

    html = response.body or ""
    for tech in TECH_SIGNATURES:
        if tech.name in seen:
            continue
        if any(pattern.search(html) for pattern in tech.html):
            detected.append({"name": tech.name, "category": tech.category, "confidence": "medium"})
            seen.add(tech.name)

    return detected


class TechStackDetector(BaseDetector):
    name = "tech_stack"
    check_name = "Technology Stack"
    requires_baseline = True

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        detected = detect_technologies(ctx.baseline)

        summary: Dict[str, List[str]] = {}
        for tech in detected:
            summary.setdefault(tech["category"], []).append(tech["name"])

        return CheckResult.completed(
            self.check_name,
            [],
            details={"detected": detected, "summary": summary},
            passed=True,
        )
