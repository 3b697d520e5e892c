"""Tests for the scan orchestrator, batching and configuration."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from surfacescan import configure_logging
from surfacescan.config import enabled_detector_names, get_detector_config, load_config
from surfacescan.scanner.base import BaseDetector, CheckResult, Finding, run_in_batches
from surfacescan.scanner.detectors import ALL_DETECTORS
from surfacescan.scanner.orchestrator import ScanOrchestrator

ROOT = "https://example.com"
HTML = {"content-type": "text/html; charset=utf-8"}


class BoomDetector(BaseDetector):
    name = "boom"
    check_name = "Boom"

    async def detect(self, ctx, config):
        raise RuntimeError("detector exploded")


class QuietDetector(BaseDetector):
    name = "quiet"
    check_name = "Quiet"

    async def detect(self, ctx, config):
        return CheckResult.completed(self.check_name, [Finding(
            id="quiet-finding", severity="low", category="Test", title="t", description="d", remediation="r",
        )])


# ---------------------------------------------------------------------------
# Batching
# ---------------------------------------------------------------------------

class TestRunInBatches:
    def test_never_exceeds_batch_size(self):
        in_flight = 0
        peak = 0

        async def worker(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item * 2

        results = asyncio.run(run_in_batches(list(range(11)), worker, 3))
        assert results == [i * 2 for i in range(11)]
        assert peak == 3

    def test_batches_start_after_previous_settles(self):
        events = []

        async def worker(item):
            events.append(("start", item))
            await asyncio.sleep(0.01 * (3 - item % 3))
            events.append(("end", item))

        asyncio.run(run_in_batches([0, 1, 2, 3], worker, 3))
        last_end_in_first_batch = max(events.index(("end", i)) for i in range(3))
        assert events.index(("start", 3)) > last_end_in_first_batch

    def test_exceptions_returned_in_place(self):
        async def worker(item):
            if item == 1:
                raise ValueError("bad item")
            return item

        results = asyncio.run(run_in_batches([0, 1, 2], worker, 2))
        assert results[0] == 0
        assert isinstance(results[1], ValueError)
        assert results[2] == 2


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SURFACESCAN_WORKERS", raising=False)
        config = load_config()
        assert config["workers"] == 4
        assert config["min_confidence"] == "medium"

    def test_env_then_overrides(self, monkeypatch):
        monkeypatch.setenv("SURFACESCAN_WORKERS", "2")
        monkeypatch.setenv("SURFACESCAN_SKIP_ADMIN_PATHS", "yes")
        assert load_config()["workers"] == 2
        assert load_config()["skip_admin_paths"] is True
        assert load_config({"workers": 6})["workers"] == 6

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("SURFACESCAN_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            load_config()

    @pytest.mark.parametrize("overrides", [
        {"workers": 0},
        {"timeout": 0},
        {"probe_timeout": -1},
        {"min_confidence": "low"},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            load_config(overrides)

    def test_detector_options_override_defaults(self):
        config = load_config({"probe_timeout": 3, "detector_options": {"exposed_files": {"batch_size": 2}}})
        detector_cfg = get_detector_config("exposed_files", config)
        assert detector_cfg["batch_size"] == 2
        assert detector_cfg["max_body"] == 50_000
        assert detector_cfg["probe_timeout"] == 3

    def test_enabled_names_keep_registry_order(self):
        registered = list(ALL_DETECTORS)
        names = enabled_detector_names({"detectors": ["robots", "ssl"]}, registered)
        assert names == ["ssl", "robots"]

    def test_unknown_detector(self):
        with pytest.raises(ValueError, match="nope"):
            enabled_detector_names({"detectors": ["nope"]}, list(ALL_DETECTORS))


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class TestOrchestrator:
    def test_unknown_detector_fails_before_network(self, make_probes):
        with pytest.raises(ValueError):
            ScanOrchestrator({"detectors": ["exposed_files", "does_not_exist"]}, probes=make_probes())

    def test_full_scan_against_spa_host(self, make_probes, fake_site, homepage, secure_headers):
        site = fake_site(default=(200, homepage, secure_headers))
        probes = make_probes(site=site, dns={
            ("example.com", "TXT"): ["v=spf1 -all"],
            ("_dmarc.example.com", "TXT"): ["v=DMARC1; p=reject"],
        })
        result = ScanOrchestrator(probes=probes).execute(ROOT)

        assert [c.name for c in result.checks] == [cls.check_name for cls in ALL_DETECTORS.values()]
        assert result.findings == []
        assert result.summary["total"] == 0
        assert result.summary["passed"] == len(ALL_DETECTORS)
        assert result.baseline == {"status": "available", "statusCode": 200, "error": None}
        assert all(c.details["status"] in ("completed", "inconclusive") for c in result.checks)

    def test_report_shape(self, make_probes, fake_site, homepage):
        site = fake_site({
            ROOT: (200, homepage, HTML),
            f"{ROOT}/.env": (200, "API_KEY=abc123\n", {"content-type": "text/plain"}),
        })
        orchestrator = ScanOrchestrator({"detectors": ["exposed_files", "security_headers"]}, probes=make_probes(site=site))
        report = orchestrator.execute("example.com/some/page").to_dict()

        assert report["url"] == ROOT
        assert set(report) == {"url", "timestamp", "duration", "checks", "summary", "baseline"}
        assert [c["name"] for c in report["checks"]] == ["Security Headers", "Exposed Files"]
        exposed = report["checks"][1]
        assert exposed["passed"] is False
        assert exposed["issues"][0]["id"] == "exposed---env"
        assert set(exposed["issues"][0]) == {"id", "severity", "category", "title", "description", "fix", "evidence"}
        assert report["summary"]["critical"] == 1
        assert report["summary"]["medium"] == 3
        assert report["summary"]["low"] == 4
        assert report["summary"]["total"] == 8

    def test_neglected_host(self, make_probes, fake_site, fake_tls, homepage):
        site = fake_site({
            ROOT: (200, homepage, HTML),
            f"{ROOT}/.env": (200, "DB_PASSWORD=hunter2\n", {"content-type": "text/plain"}),
        })
        probes = make_probes(site=site, tls=fake_tls.error("certificate", "certificate has expired", code=10))
        result = ScanOrchestrator(probes=probes).execute(ROOT)

        ids = {f.id for f in result.findings}
        assert {"missing-content-security-policy", "ssl-expired", "dns-no-spf", "dns-no-dmarc",
                "exposed---env"} <= ids
        assert result.summary["critical"] >= 2
        assert result.summary["total"] == sum(len(c.issues) for c in result.checks)
        assert result.summary["failed"] == sum(1 for c in result.checks if not c.passed)

    def test_crashing_detector_is_isolated(self, make_probes):
        registry = {"boom": BoomDetector, "quiet": QuietDetector}
        result = ScanOrchestrator(probes=make_probes(), registry=registry).execute(ROOT)

        boom, quiet = result.checks
        assert boom.details["status"] == "failed"
        assert "detector exploded" in boom.details["error"]
        assert boom.issues == []
        assert [f.id for f in quiet.issues] == ["quiet-finding"]
        assert result.summary["low"] == 1

    def test_baseline_failure_degrades(self, make_probes, fake_site):
        site = fake_site({
            ROOT: httpx.ConnectError,
            f"{ROOT}/.env": (200, "API_KEY=abc123\n", {"content-type": "text/plain"}),
        })
        orchestrator = ScanOrchestrator(
            {"detectors": ["security_headers", "cookies", "exposed_files"]}, probes=make_probes(site=site),
        )
        result = orchestrator.execute(ROOT)

        assert result.baseline["status"] == "unavailable"
        assert result.baseline["error"].startswith("connection")
        headers, cookies, exposed = result.checks
        assert headers.details["status"] == "inconclusive"
        assert headers.passed is False
        assert cookies.details["status"] == "inconclusive"
        assert [f.id for f in exposed.issues] == ["exposed---env"]

    def test_workers_bound_concurrent_detectors(self, make_probes):
        state = {"in_flight": 0, "peak": 0}

        def make(index):
            class SlowDetector(BaseDetector):
                name = f"slow{index}"
                check_name = f"Slow {index}"

                async def detect(self, ctx, config):
                    state["in_flight"] += 1
                    state["peak"] = max(state["peak"], state["in_flight"])
                    await asyncio.sleep(0.02)
                    state["in_flight"] -= 1
                    return CheckResult.completed(self.check_name, [])
            return SlowDetector

        registry = {f"slow{i}": make(i) for i in range(6)}
        result = ScanOrchestrator({"workers": 2}, probes=make_probes(), registry=registry).execute(ROOT)

        assert len(result.checks) == 6
        assert state["peak"] == 2

    def test_subdomains_reach_takeover_detector(self, make_probes, fake_site):
        site = fake_site({"https://docs.example.com": (404, "There isn't a GitHub Pages site here")})
        probes = make_probes(site=site, dns={("docs.example.com", "CNAME"): ["acme.github.io"]})
        orchestrator = ScanOrchestrator({"detectors": ["subdomain_takeover"]}, probes=probes)

        result = orchestrator.execute(ROOT, subdomains=["docs.example.com"])
        assert [f.id for f in result.findings] == ["subdomain-takeover-docs-example-com"]

    def test_bad_url(self, make_probes):
        with pytest.raises(ValueError):
            ScanOrchestrator(probes=make_probes()).execute("https://")


class TestConfigureLogging:
    @pytest.fixture
    def basic_config_calls(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        return calls

    def test_debug_env_selects_debug_level(self, monkeypatch, basic_config_calls):
        monkeypatch.setenv("SURFACESCAN_DEBUG", "true")
        configure_logging()
        assert basic_config_calls[0]["level"] == logging.DEBUG
        assert basic_config_calls[0]["datefmt"] == "%H:%M:%S"

    def test_default_is_info(self, monkeypatch, basic_config_calls):
        monkeypatch.delenv("SURFACESCAN_DEBUG", raising=False)
        configure_logging()
        assert basic_config_calls[0]["level"] == logging.INFO

    def test_explicit_flag_wins_over_env(self, monkeypatch, basic_config_calls):
        monkeypatch.setenv("SURFACESCAN_DEBUG", "true")
        configure_logging(debug=False)
        assert basic_config_calls[0]["level"] == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
