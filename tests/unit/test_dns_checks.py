"""Tests for the DNS-driven detectors: email authentication and subdomain takeover."""

from __future__ import annotations

import dns.exception
import httpx
import pytest

from surfacescan.scanner.detectors.email_auth import (
    EmailAuthDetector,
    parse_dmarc_tags,
    parse_spf_policy,
)
from surfacescan.scanner.detectors.subdomain_takeover import (
    SubdomainTakeoverDetector,
    normalize_candidates,
)
from surfacescan.scanner.signatures.takeover import match_service

DOMAIN = "example.com"


def _ids(result):
    return [f.id for f in result.issues]


class TestSPFParsing:
    @pytest.mark.parametrize("record, policy", [
        ("v=spf1 include:_spf.google.com ~all", "softfail"),
        ("v=spf1 ip4:192.0.2.0/24 -all", "fail"),
        ("v=spf1 a mx ?all", "neutral"),
        ("v=spf1 +all", "pass"),
        ("v=spf1 a mx all", "pass"),
        ("v=spf1 include:mailgun.org", None),
    ])
    def test_trailing_all_mechanism(self, record, policy):
        assert parse_spf_policy(record) == policy

    def test_dmarc_tags(self):
        tags = parse_dmarc_tags("v=DMARC1; p=Quarantine; rua=mailto:dmarc@example.com;")
        assert tags == {"v": "DMARC1", "p": "Quarantine", "rua": "mailto:dmarc@example.com"}


class TestEmailAuthDetector:
    def test_strict_setup_passes(self, make_probes, run_detector):
        probes = make_probes(dns={
            (DOMAIN, "TXT"): ["google-site-verification=abc", "v=spf1 include:_spf.google.com -all"],
            (f"_dmarc.{DOMAIN}", "TXT"): ["v=DMARC1; p=reject; rua=mailto:dmarc@example.com"],
            (DOMAIN, "MX"): ["aspmx.l.google.com"],
        })
        result = run_detector(EmailAuthDetector(), probes)

        assert result.passed
        assert result.issues == []
        assert result.details["domain"] == DOMAIN
        assert result.details["spf"] == {
            "exists": True,
            "record": "v=spf1 include:_spf.google.com -all",
            "policy": "fail",
        }
        assert result.details["dmarc"]["policy"] == "reject"
        assert result.details["hasMxRecords"] is True

    def test_missing_records(self, make_probes, run_detector):
        result = run_detector(EmailAuthDetector(), make_probes())

        assert _ids(result) == ["dns-no-spf", "dns-no-dmarc"]
        assert {f.severity for f in result.issues} == {"medium"}
        assert {f.category for f in result.issues} == {"Email Security"}
        assert "rua=mailto:dmarc@example.com" in result.issues[1].remediation
        assert result.details["spf"]["exists"] is False
        assert result.details["hasMxRecords"] is False

    def test_permissive_spf_and_monitoring_dmarc(self, make_probes, run_detector):
        probes = make_probes(dns={
            (DOMAIN, "TXT"): ["v=spf1 +all"],
            (f"_dmarc.{DOMAIN}", "TXT"): ["v=DMARC1; p=none"],
        })
        result = run_detector(EmailAuthDetector(), probes)

        assert _ids(result) == ["dns-spf-permissive", "dns-dmarc-none"]
        assert [f.severity for f in result.issues] == ["high", "low"]
        assert "dns-no-spf" not in _ids(result)
        assert result.details["spf"]["exists"] is True
        assert result.details["spf"]["policy"] == "pass"
        assert result.details["spf"]["record"] == "v=spf1 +all"
        assert result.details["dmarc"]["exists"] is True

    def test_softfail_is_not_reported(self, make_probes, run_detector):
        probes = make_probes(dns={
            (DOMAIN, "TXT"): ["v=spf1 include:_spf.google.com ~all"],
            (f"_dmarc.{DOMAIN}", "TXT"): ["v=DMARC1; p=quarantine"],
        })
        result = run_detector(EmailAuthDetector(), probes)
        assert result.issues == []

    def test_lookup_timeout_counts_as_absent(self, make_probes, run_detector):
        probes = make_probes(
            dns={(f"_dmarc.{DOMAIN}", "TXT"): ["v=DMARC1; p=reject"]},
            dns_errors={(DOMAIN, "TXT"): dns.exception.Timeout()},
        )
        result = run_detector(EmailAuthDetector(), probes)

        assert _ids(result) == ["dns-no-spf"]
        assert "Lookup failed" in result.issues[0].evidence.response

    def test_queries_target_hostname(self, make_probes, run_detector):
        probes = make_probes()
        run_detector(EmailAuthDetector(), probes, url="https://mail.example.org/login")
        assert set(probes.resolver.queries) == {
            ("mail.example.org", "TXT"),
            ("_dmarc.mail.example.org", "TXT"),
            ("mail.example.org", "MX"),
        }


class TestTakeoverSignatures:
    def test_match_service(self):
        assert match_service("acme.github.io").name == "GitHub Pages"
        assert match_service("acme-assets.s3.us-east-1.amazonaws.com").name == "AWS S3"
        assert match_service("acme.example.net") is None

    def test_normalize_candidates(self):
        assert normalize_candidates(["Docs.Example.com.", "docs.example.com", "", "api.example.com"]) == [
            "docs.example.com",
            "api.example.com",
        ]


class TestSubdomainTakeoverDetector:
    def test_no_candidates(self, make_probes, run_detector):
        result = run_detector(SubdomainTakeoverDetector(), make_probes())

        assert result.passed
        assert result.details["status"] == "completed"
        assert result.details["checkedCount"] == 0

    def test_dangling_github_pages(self, make_probes, fake_site, run_detector):
        site = fake_site({
            "https://docs.example.com": (404, "<h1>404</h1><p>There isn't a GitHub Pages site here.</p>"),
        })
        probes = make_probes(site=site, dns={("docs.example.com", "CNAME"): ["acme.github.io"]})
        result = run_detector(SubdomainTakeoverDetector(), probes, subdomains=["docs.example.com"])

        assert _ids(result) == ["subdomain-takeover-docs-example-com"]
        finding = result.issues[0]
        assert finding.severity == "critical"
        assert finding.category == "Subdomain Security"
        assert result.details["results"] == [{
            "subdomain": "docs.example.com",
            "cname": "acme.github.io",
            "service": "GitHub Pages",
            "evidence": "There isn't a GitHub Pages site here",
        }]

    def test_claimed_service_is_not_reported(self, make_probes, fake_site, run_detector):
        site = fake_site({"https://docs.example.com": (200, "<h1>Acme docs</h1>")})
        probes = make_probes(site=site, dns={("docs.example.com", "CNAME"): ["acme.github.io"]})
        result = run_detector(SubdomainTakeoverDetector(), probes, subdomains=["docs.example.com"])

        assert result.issues == []
        assert result.details["checkedCount"] == 1
        assert result.details["inconclusive"] == []

    def test_unknown_provider_never_fetched(self, make_probes, fake_site, run_detector):
        site = fake_site()
        probes = make_probes(site=site, dns={("www.example.com", "CNAME"): ["lb.example.net"]})
        result = run_detector(SubdomainTakeoverDetector(), probes, subdomains=["www.example.com"])

        assert result.issues == []
        assert all(r.url.host != "www.example.com" for r in site.requests)

    def test_falls_back_to_http(self, make_probes, fake_site, run_detector):
        site = fake_site({
            "https://shop.example.com": httpx.ConnectError,
            "http://shop.example.com": (404, "<p>No such app</p>"),
        })
        probes = make_probes(site=site, dns={("shop.example.com", "CNAME"): ["acme-shop.herokuapp.com"]})
        result = run_detector(SubdomainTakeoverDetector(), probes, subdomains=["shop.example.com"])

        assert _ids(result) == ["subdomain-takeover-shop-example-com"]

    def test_unreachable_candidate_is_inconclusive(self, make_probes, fake_site, run_detector):
        site = fake_site({
            "https://shop.example.com": httpx.ConnectError,
            "http://shop.example.com": httpx.ConnectError,
        })
        probes = make_probes(site=site, dns={("shop.example.com", "CNAME"): ["acme-shop.herokuapp.com"]})
        result = run_detector(SubdomainTakeoverDetector(), probes, subdomains=["shop.example.com"])

        assert result.issues == []
        assert result.details["inconclusive"] == ["shop.example.com"]

    def test_dns_timeout_is_inconclusive_and_nxdomain_skipped(self, make_probes, run_detector):
        probes = make_probes(dns_errors={("slow.example.com", "CNAME"): dns.exception.Timeout()})
        result = run_detector(
            SubdomainTakeoverDetector(), probes, subdomains=["slow.example.com", "gone.example.com"],
        )

        assert result.issues == []
        assert result.details["inconclusive"] == ["slow.example.com"]
        assert result.details["checkedCount"] == 2

    def test_max_checks(self, make_probes, run_detector):
        probes = make_probes()
        subdomains = [f"s{i}.example.com" for i in range(15)]
        result = run_detector(SubdomainTakeoverDetector(), probes, subdomains=subdomains)

        assert result.details["checkedCount"] == 10
        assert result.details["totalSubdomains"] == 15
        assert len(probes.resolver.queries) == 10
