"""Tests for the detectors that read the baseline response: headers, cookies, CORS, server info, tech stack."""

from __future__ import annotations

import httpx

from surfacescan.scanner.detectors.cookies import CookiesDetector, mask_cookie, parse_cookie
from surfacescan.scanner.detectors.cors import TEST_ORIGIN, CORSDetector
from surfacescan.scanner.detectors.headers import SECURITY_HEADERS, SecurityHeadersDetector
from surfacescan.scanner.detectors.server_info import ServerInfoDetector
from surfacescan.scanner.detectors.tech_stack import TechStackDetector

ROOT = "https://example.com"
HTML = {"content-type": "text/html; charset=utf-8"}


def _ids(result):
    return [f.id for f in result.issues]


def _root(site_factory, homepage, headers, url=ROOT, **routes):
    return site_factory({url: (200, homepage, headers), **routes})


class TestSecurityHeaders:
    def test_all_present(self, make_probes, fake_site, run_detector, homepage, secure_headers):
        site = _root(fake_site, homepage, secure_headers)
        result = run_detector(SecurityHeadersDetector(), make_probes(site=site))

        assert result.passed
        assert result.issues == []
        assert set(result.details) == {"status", *SECURITY_HEADERS}

    def test_all_missing_on_https(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, HTML)
        result = run_detector(SecurityHeadersDetector(), make_probes(site=site))

        assert _ids(result) == [f"missing-{h.lower()}" for h in SECURITY_HEADERS]
        assert {f.category for f in result.issues} == {"Security Headers"}
        severities = {f.id: f.severity for f in result.issues}
        assert severities["missing-content-security-policy"] == "medium"
        assert severities["missing-x-xss-protection"] == "low"
        assert result.details["Content-Security-Policy"] is None

    def test_hsts_not_required_over_http(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, HTML, url="http://example.com")
        result = run_detector(SecurityHeadersDetector(), make_probes(site=site), url="http://example.com")

        assert "missing-strict-transport-security" not in _ids(result)
        assert "Strict-Transport-Security" not in result.details
        assert len(result.issues) == len(SECURITY_HEADERS) - 1

    def test_baseline_unavailable(self, make_probes, fake_site, run_detector):
        site = fake_site({ROOT: httpx.ConnectError})
        result = run_detector(SecurityHeadersDetector(), make_probes(site=site))

        assert result.issues == []
        assert result.details["status"] == "inconclusive"
        assert result.passed is False


class TestCookies:
    def test_parse_cookie(self):
        cookie = parse_cookie("session_id=abc123; Path=/; Secure; HttpOnly; SameSite=Lax")
        assert cookie == {
            "name": "session_id",
            "hasSecure": True,
            "hasHttpOnly": True,
            "hasSameSite": True,
            "sameSiteValue": "lax",
        }

    def test_flags_not_read_from_name_or_value(self):
        cookie = parse_cookie("secure_httponly_samesite=Secure; Path=/")
        assert cookie["hasSecure"] is False
        assert cookie["hasHttpOnly"] is False
        assert cookie["hasSameSite"] is False
        assert cookie["sameSiteValue"] is None

    def test_attribute_names_case_insensitive(self):
        cookie = parse_cookie("id=1; SECURE; httpOnly; samesite = NONE")
        assert cookie["hasSecure"] and cookie["hasHttpOnly"]
        assert cookie["sameSiteValue"] == "none"

    def test_mask_cookie_hides_value(self):
        assert mask_cookie("token=eyJhbGciOi; Path=/") == "token=[VALUE]; Path=/"

    def test_secure_cookie_passes(self, make_probes, fake_site, run_detector, homepage):
        headers = [("content-type", "text/html"), ("set-cookie", "sid=1; Secure; HttpOnly; SameSite=Strict")]
        site = fake_site({ROOT: lambda request: httpx.Response(200, text=homepage, headers=headers)})
        result = run_detector(CookiesDetector(), make_probes(site=site))

        assert result.passed
        assert result.details["cookies"][0]["name"] == "sid"

    def test_insecure_session_cookie(self, make_probes, fake_site, run_detector, homepage):
        headers = [
            ("content-type", "text/html"),
            ("set-cookie", "session_token=secretvalue; Path=/"),
            ("set-cookie", "theme=dark; Secure; HttpOnly; SameSite=None"),
        ]
        site = fake_site({ROOT: lambda request: httpx.Response(200, text=homepage, headers=headers)})
        result = run_detector(CookiesDetector(), make_probes(site=site))

        assert [(f.id, f.severity) for f in result.issues] == [
            ("cookie-no-secure-session_token", "high"),
            ("cookie-no-httponly-session_token", "high"),
            ("cookie-no-samesite-session_token", "medium"),
        ]
        assert all("secretvalue" not in f.evidence.response for f in result.issues)

    def test_secure_in_cookie_name_is_not_the_secure_flag(self, make_probes, fake_site, run_detector, homepage):
        headers = [("content-type", "text/html"), ("set-cookie", "secure_token=httponly; Path=/")]
        site = fake_site({ROOT: lambda request: httpx.Response(200, text=homepage, headers=headers)})
        result = run_detector(CookiesDetector(), make_probes(site=site))

        assert _ids(result) == [
            "cookie-no-secure-secure_token",
            "cookie-no-httponly-secure_token",
            "cookie-no-samesite-secure_token",
        ]

    def test_samesite_none_without_secure(self, make_probes, fake_site, run_detector, homepage):
        headers = [("content-type", "text/html"), ("set-cookie", "prefs=1; HttpOnly; SameSite=None")]
        site = fake_site({"http://example.com": lambda request: httpx.Response(200, text=homepage, headers=headers)})
        result = run_detector(CookiesDetector(), make_probes(site=site), url="http://example.com")

        assert [(f.id, f.severity) for f in result.issues] == [("cookie-samesite-none-insecure-prefs", "high")]

    def test_non_session_cookie_without_httponly_is_medium(self, make_probes, fake_site, run_detector, homepage):
        headers = [("content-type", "text/html"), ("set-cookie", "theme=dark; Secure; SameSite=Lax")]
        site = fake_site({ROOT: lambda request: httpx.Response(200, text=homepage, headers=headers)})
        result = run_detector(CookiesDetector(), make_probes(site=site))

        assert [(f.id, f.severity) for f in result.issues] == [("cookie-no-httponly-theme", "medium")]


class TestCORS:
    def test_no_cors_headers(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, HTML)
        result = run_detector(CORSDetector(), make_probes(site=site))

        assert result.passed
        assert result.details["allowOrigin"] is None

    def test_wildcard(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, {**HTML, "access-control-allow-origin": "*"})
        result = run_detector(CORSDetector(), make_probes(site=site))

        assert [(f.id, f.severity) for f in result.issues] == [("cors-wildcard", "medium")]

    def test_wildcard_with_credentials(self, make_probes, fake_site, run_detector, homepage):
        headers = {**HTML, "access-control-allow-origin": "*", "access-control-allow-credentials": "true"}
        site = _root(fake_site, homepage, headers)
        result = run_detector(CORSDetector(), make_probes(site=site))

        assert _ids(result) == ["cors-wildcard-credentials"]
        assert result.issues[0].severity == "critical"

    def test_origin_reflection_and_null(self, make_probes, fake_site, run_detector, homepage):
        def reflect(request):
            return httpx.Response(204, headers={"access-control-allow-origin": request.headers["origin"]})

        site = _root(fake_site, homepage, HTML, **{f"OPTIONS {ROOT}": reflect})
        result = run_detector(CORSDetector(), make_probes(site=site))

        assert [(f.id, f.severity) for f in result.issues] == [
            ("cors-origin-reflection", "critical"),
            ("cors-null-origin", "high"),
        ]
        preflights = [r for r in site.requests if r.method == "OPTIONS"]
        assert [r.headers["origin"] for r in preflights] == [TEST_ORIGIN, "null"]

    def test_failed_preflight_is_ignored(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, HTML, **{f"OPTIONS {ROOT}": httpx.ConnectError})
        result = run_detector(CORSDetector(), make_probes(site=site))

        assert result.issues == []
        assert result.details["status"] == "completed"


class TestServerInfo:
    def test_quiet_server(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, {**HTML, "server": "cloudflare"})
        result = run_detector(ServerInfoDetector(), make_probes(site=site))

        assert result.passed
        assert result.details["server"] == "cloudflare"

    def test_versions_disclosed(self, make_probes, fake_site, run_detector, homepage):
        headers = {
            **HTML,
            "server": "Apache/2.4.41 (Ubuntu)",
            "x-powered-by": "PHP/7.4.3",
            "x-aspnet-version": "4.0.30319",
            "x-generator": "Drupal 9",
            "via": "1.1 varnish",
        }
        site = _root(fake_site, homepage, headers)
        result = run_detector(ServerInfoDetector(), make_probes(site=site))

        assert [(f.id, f.severity) for f in result.issues] == [
            ("server-x-powered-by", "medium"),
            ("server-version-disclosure", "medium"),
            ("server-aspnet-version", "medium"),
            ("server-generator", "low"),
        ]
        assert result.details["phpVersion"] == "7.4.3"
        assert result.details["otherHeaders"] == {"x-generator": "Drupal 9", "via": "1.1 varnish"}

    def test_uncommon_server_without_version(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, {**HTML, "server": "openresty"})
        result = run_detector(ServerInfoDetector(), make_probes(site=site))

        assert [(f.id, f.severity) for f in result.issues] == [("server-info-disclosure", "low")]

    def test_platform_server_names_not_flagged(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, {**HTML, "server": "Vercel"})
        result = run_detector(ServerInfoDetector(), make_probes(site=site))
        assert result.issues == []


class TestTechStack:
    def test_headers_and_html(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, {**HTML, "x-vercel-id": "iad1::abc", "server": "Vercel"})
        result = run_detector(TechStackDetector(), make_probes(site=site))

        detected = {t["name"]: t["confidence"] for t in result.details["detected"]}
        assert detected["Vercel"] == "high"
        assert detected["Next.js"] == "medium"
        assert detected["React"] == "medium"
        assert result.details["summary"]["hosting"] == ["Vercel"]
        assert result.passed
        assert result.issues == []

    def test_header_match_wins_over_html(self, make_probes, fake_site, run_detector, homepage):
        site = _root(fake_site, homepage, {**HTML, "x-powered-by": "Next.js"})
        result = run_detector(TechStackDetector(), make_probes(site=site))

        nextjs = [t for t in result.details["detected"] if t["name"] == "Next.js"]
        assert nextjs == [{"name": "Next.js", "category": "framework", "confidence": "high"}]
