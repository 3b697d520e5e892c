# surfacescan/scanner/signatures/resources.py
"""
Sensitive files and admin endpoints probed on the target.

SENSITIVE_FILES entries name a content validator (key into
validators.VALIDATORS). A file without a validator is accepted only when
the response is not HTML.

ADMIN_PATHS entries carry content markers; at least one must match for the
page to count as a real instance. Admin severity is derived from the path
class by admin_severity().
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple


@dataclass(frozen=True)
class SensitiveResource:
    path: str
    name: str
    severity: str
    description: str
    fix: str
    validator: Optional[str] = None


@dataclass(frozen=True)
class AdminPath:
    path: str
    name: str
    description: str
    content_markers: Tuple[Pattern[str], ...] = ()


SENSITIVE_FILES: Tuple[SensitiveResource, ...] = (
    # ── Environment files ──
    SensitiveResource(
        path="/.env",
        name="Environment file",
        severity="critical",
        description="Environment file contains API keys, database passwords and other secrets.",
        fix="Block access to .env files in your web server config.",
        validator="env",
    ),
    SensitiveResource(
        path="/.env.local",
        name="Local environment file",
        severity="critical",
        description="Local environment file may contain development secrets.",
        fix="Block access to .env* files in your web server config.",
        validator="env",
    ),
    SensitiveResource(
        path="/.env.production",
        name="Production environment file",
        severity="critical",
        description="Production secrets exposed.",
        fix="Block access to .env* files in your web server config.",
        validator="env",
    ),

    # ── Git metadata ──
    SensitiveResource(
        path="/.git/config",
        name="Git config",
        severity="critical",
        description="Git repository exposed. Attackers can download your entire source code.",
        fix="Block access to the .git directory in your web server or hosting config.",
        validator="git_config",
    ),
    SensitiveResource(
        path="/.git/HEAD",
        name="Git HEAD",
        severity="critical",
        description="Git repository exposed. Source code can be reconstructed.",
        fix="Block access to the .git directory in your web server config.",
        validator="git_head",
    ),

    # ── Database dumps and backups ──
    SensitiveResource(
        path="/backup.sql",
        name="SQL backup",
        severity="critical",
        description="Database backup exposed. It contains all of your data.",
        fix="Remove backup files from the web root and never store them publicly.",
        validator="sql",
    ),
    SensitiveResource(
        path="/database.sql",
        name="Database dump",
        severity="critical",
        description="Database dump exposed.",
        fix="Remove database files from the web root.",
        validator="sql",
    ),
    SensitiveResource(
        path="/dump.sql",
        name="Database dump",
        severity="critical",
        description="Database dump exposed.",
        fix="Remove database files from the web root.",
        validator="sql",
    ),
    SensitiveResource(
        path="/db.sql",
        name="Database file",
        severity="critical",
        description="Database file exposed.",
        fix="Remove database files from the web root.",
        validator="sql",
    ),
    SensitiveResource(
        path="/backup.zip",
        name="Site backup archive",
        severity="critical",
        description="Backup archive exposed. It usually holds source code and configuration.",
        fix="Remove backup archives from the web root.",
        validator="archive",
    ),
    SensitiveResource(
        path="/backup.tar.gz",
        name="Site backup archive",
        severity="critical",
        description="Backup archive exposed. It usually holds source code and configuration.",
        fix="Remove backup archives from the web root.",
        validator="archive",
    ),

    # ── Source maps ──
    SensitiveResource(
        path="/main.js.map",
        name="JavaScript source map",
        severity="high",
        description="Source maps expose your original source code to anyone.",
        fix="Disable source maps in production: devtool: false in webpack or sourcemap: false in Vite.",
        validator="source_map",
    ),
    SensitiveResource(
        path="/bundle.js.map",
        name="Bundle source map",
        severity="high",
        description="Source maps expose your original source code.",
        fix="Disable source maps in production builds.",
        validator="source_map",
    ),
    SensitiveResource(
        path="/app.js.map",
        name="App source map",
        severity="high",
        description="Source maps expose your original source code.",
        fix="Disable source maps in production builds.",
        validator="source_map",
    ),
    SensitiveResource(
        path="/_next/static/chunks/main.js.map",
        name="Next.js source map",
        severity="high",
        description="Next.js source maps expose your original source code.",
        fix="Set productionBrowserSourceMaps: false in next.config.js.",
        validator="source_map",
    ),

    # ── Debug and info pages ──
    SensitiveResource(
        path="/phpinfo.php",
        name="PHP info page",
        severity="high",
        description="PHP info page exposes server configuration and installed modules.",
        fix="Remove phpinfo.php from production servers.",
        validator="php_info",
    ),
    SensitiveResource(
        path="/info.php",
        name="PHP info page",
        severity="high",
        description="PHP info page exposes server configuration.",
        fix="Remove info.php from production servers.",
        validator="php_info",
    ),
    SensitiveResource(
        path="/debug.log",
        name="Debug log",
        severity="high",
        description="Debug logs may contain sensitive information and stack traces.",
        fix="Remove or restrict access to log files.",
        validator="log",
    ),
    SensitiveResource(
        path="/error.log",
        name="Error log",
        severity="medium",
        description="Error logs may expose internal paths and errors.",
        fix="Remove or restrict access to log files.",
        validator="log",
    ),
    SensitiveResource(
        path="/wp-content/debug.log",
        name="WordPress debug log",
        severity="high",
        description="WordPress debug log may contain sensitive errors.",
        fix="Remove the log or disable WP_DEBUG_LOG in production.",
        validator="log",
    ),

    # ── Config files ──
    SensitiveResource(
        path="/wp-config.php",
        name="WordPress config",
        severity="critical",
        description="WordPress configuration contains database credentials.",
        fix="Make sure PHP files are executed by the server, not served as plain text.",
        validator="php_config",
    ),
    SensitiveResource(
        path="/config.json",
        name="Config JSON",
        severity="high",
        description="Configuration file may contain sensitive settings.",
        fix="Move config files outside the web root or block access.",
        validator="json_config",
    ),
    SensitiveResource(
        path="/composer.json",
        name="Composer manifest",
        severity="low",
        description="Exposes PHP dependencies, which helps attackers match known vulnerabilities.",
        fix="Block access to composer.json and composer.lock in production.",
        validator="composer_json",
    ),

    # ── Informational ──
    SensitiveResource(
        path="/package.json",
        name="NPM package file",
        severity="low",
        description="Exposes dependencies, which helps attackers match known vulnerabilities.",
        fix="Consider blocking access to package.json in production.",
        validator="package_json",
    ),
    SensitiveResource(
        path="/.gitignore",
        name="Git ignore file",
        severity="low",
        description="Reveals project structure and which files the developer considers sensitive.",
        fix="Block access to dotfiles in your web server config.",
        validator="gitignore",
    ),
)


def _markers(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


ADMIN_PATHS: Tuple[AdminPath, ...] = (
    # Database tools
    AdminPath(
        path="/phpmyadmin",
        name="phpMyAdmin",
        description="Database management UI reachable from the internet.",
        content_markers=_markers(r"phpMyAdmin", r"pma_", r"mysql"),
    ),
    AdminPath(
        path="/phpmyadmin/",
        name="phpMyAdmin",
        description="Database management UI reachable from the internet.",
        content_markers=_markers(r"phpMyAdmin", r"pma_"),
    ),
    AdminPath(
        path="/adminer.php",
        name="Adminer",
        description="Database management tool reachable from the internet.",
        content_markers=_markers(r"adminer", r"login.*database"),
    ),

    # WordPress
    AdminPath(
        path="/wp-admin/install.php",
        name="WordPress Install",
        description="WordPress installation script is still accessible.",
        content_markers=_markers(r"wordpress", r"installation", r"wp-install"),
    ),
    AdminPath(
        path="/wp-login.php",
        name="WordPress Login",
        description="WordPress login page is publicly reachable.",
        content_markers=_markers(r"wp-login", r"wordpress", r"login.*form"),
    ),

    # Debug endpoints
    AdminPath(
        path="/_profiler",
        name="Symfony Profiler",
        description="Symfony debug profiler exposes application internals.",
        content_markers=_markers(r"symfony", r"profiler", r"debug"),
    ),
    AdminPath(
        path="/elmah.axd",
        name="ELMAH",
        description="ASP.NET error log is publicly readable.",
        content_markers=_markers(r"elmah", r"error.*log", r"asp\.net"),
    ),
    AdminPath(
        path="/server-status",
        name="Apache Server Status",
        description="Apache status page exposes server information and live requests.",
        content_markers=_markers(r"apache", r"server.*status", r"requests.*being.*processed"),
    ),
    AdminPath(
        path="/server-info",
        name="Apache Server Info",
        description="Apache info page exposes server configuration.",
        content_markers=_markers(r"apache", r"server.*info", r"module"),
    ),
    AdminPath(
        path="/phpinfo.php",
        name="PHP Info",
        description="PHP configuration exposed.",
        content_markers=_markers(r"php version", r"configuration", r"php\.ini"),
    ),
    AdminPath(
        path="/info.php",
        name="PHP Info",
        description="PHP configuration exposed.",
        content_markers=_markers(r"php version", r"configuration"),
    ),
)


# (path class, severity, fix); first match wins
_ADMIN_SEVERITY_RULES: Tuple[Tuple[Pattern[str], str, str], ...] = (
    (
        re.compile(r"phpmyadmin|adminer|mysql", re.IGNORECASE),
        "critical",
        "Remove or restrict access to database tools. Never expose them to the public internet.",
    ),
    (
        re.compile(r"profiler|debug|elmah|server-status|server-info|phpinfo", re.IGNORECASE),
        "high",
        "Remove debug endpoints from production. They expose sensitive server information.",
    ),
    (
        re.compile(r"install", re.IGNORECASE),
        "high",
        "Remove installation scripts once setup is complete.",
    ),
)

_ADMIN_DEFAULT = ("medium", "Restrict access to admin paths by IP or remove them from public access.")


def admin_severity(path: str) -> Tuple[str, str]:
    """(severity, fix) for an admin path based on what kind of tool it is."""
    for pattern, severity, fix in _ADMIN_SEVERITY_RULES:
        if pattern.search(path):
            return severity, fix
    return _ADMIN_DEFAULT
