# surfacescan/scanner/detectors/server_info.py
"""
Server Information detector: response headers that fingerprint the stack.

Checks performed:
    MEDIUM:
        - X-Powered-By present
        - Server header with a version number
        - X-AspNet-Version / X-AspNetMvc-Version present

    LOW:
        - Server header naming an uncommon product (bare cloudflare,
          nginx, apache, vercel*, netlify* are not flagged)
        - X-Generator present
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from surfacescan.scanner.base import BaseDetector, CheckResult, Evidence, Finding, ScanContext

CATEGORY = "Information Disclosure"

# Recorded in details only
INFO_HEADERS = (
    "x-runtime",
    "x-version",
    "x-generator",
    "x-drupal-cache",
    "x-drupal-dynamic-cache",
    "x-pingback",
    "x-redirect-by",
    "via",
    "x-varnish",
)

COMMON_SERVERS = ("cloudflare", "nginx", "apache")
COMMON_SERVER_PREFIXES = ("vercel", "netlify")

_VERSION = re.compile(r"\d+\.\d+")
_PHP_VERSION = re.compile(r"PHP/([\d.]+)", re.IGNORECASE)


def _finding(
    id: str, severity: str, title: str, description: str, fix: str,
    header: str, display: str, value: str, url: str,
) -> Finding:
    return Finding(
        id=id,
        severity=severity,
        category=CATEGORY,
        title=title,
        description=description,
        remediation=fix,
        evidence=Evidence(
            query=f"HTTP response header: {header}",
            response=f"{display}: {value}",
            verify_command=f'curl -sI {url} | grep -i "^{header}:"',
        ),
    )


class ServerInfoDetector(BaseDetector):
    name = "server_info"
    check_name = "Server Information"
    requires_baseline = True

    async def detect(self, ctx: ScanContext, config: Dict[str, Any]) -> CheckResult:
        headers = ctx.baseline
        url = ctx.target.url
        issues: List[Finding] = []

        server: Optional[str] = headers.header("server")
        powered_by = headers.header("x-powered-by")
        aspnet = headers.header("x-aspnet-version")
        aspnet_mvc = headers.header("x-aspnetmvc-version")
        generator = headers.header("x-generator")

        php_version = None
        if powered_by:
            php = _PHP_VERSION.search(powered_by)
            php_version = php.group(1) if php else None
            issues.append(_finding(
                "server-x-powered-by", "medium",
                "X-Powered-By header exposes technology stack",
                f"Server reveals: {powered_by}. This helps attackers target known vulnerabilities.",
                'Remove X-Powered-By header. In PHP: header_remove("X-Powered-By"); '
                'In Express: app.disable("x-powered-by")',
                "x-powered-by", "X-Powered-By", powered_by, url,
            ))

        if server:
            server_lower = server.lower()
            if _VERSION.search(server):
                issues.append(_finding(
                    "server-version-disclosure", "medium",
                    "Server header exposes version information",
                    f"Server header reveals: {server}. Version info helps attackers find known vulnerabilities.",
                    "Configure your web server to hide version info. Apache: ServerTokens Prod. "
                    "Nginx: server_tokens off;",
                    "server", "Server", server, url,
                ))
            elif server_lower not in COMMON_SERVERS and not server_lower.startswith(COMMON_SERVER_PREFIXES):
                issues.append(_finding(
                    "server-info-disclosure", "low",
                    "Server header present",
                    f"Server: {server}. Consider hiding server type.",
                    "Configure your web server to hide or minimize the Server header",
                    "server", "Server", server, url,
                ))

        if aspnet:
            issues.append(_finding(
                "server-aspnet-version", "medium",
                "X-AspNet-Version header exposes framework version",
                f"ASP.NET version {aspnet} is exposed",
                'In web.config, add: <httpRuntime enableVersionHeader="false" />',
                "x-aspnet-version", "X-AspNet-Version", aspnet, url,
            ))

        if aspnet_mvc:
            issues.append(_finding(
                "server-aspnetmvc-version", "medium",
                "X-AspNetMvc-Version header exposes MVC version",
                f"ASP.NET MVC version {aspnet_mvc} is exposed",
                "In Application_Start, add: MvcHandler.DisableMvcResponseHeader = true;",
                "x-aspnetmvc-version", "X-AspNetMvc-Version", aspnet_mvc, url,
            ))

        if generator:
            issues.append(_finding(
                "server-generator", "low",
                "X-Generator header reveals CMS/platform",
                f"Generator: {generator}",
                "Remove the X-Generator header from your responses",
                "x-generator", "X-Generator", generator, url,
            ))

        return CheckResult.completed(
            self.check_name,
            issues,
            details={
                "server": server,
                "poweredBy": powered_by,
                "aspNetVersion": aspnet,
                "phpVersion": php_version,
                "otherHeaders": {
                    name: headers.header(name) for name in INFO_HEADERS if headers.header(name)
                },
            },
        )
