# surfacescan/scanner/validators.py
"""
Content validators: decide whether a 200 response is really the resource
that was asked for.

Single-page apps and catch-all routes answer 200 with the homepage for any
path, so a status code alone proves nothing. Every candidate goes through
three stages (evaluate_response):

    1. status      must be exactly 200
    2. shell       must not be the application shell (baseline page)
    3. validator   must look like the expected file type

Oversized bodies (truncated by the probe) skip stages 2 and 3 and are
accepted only when the response is not HTML. Marker-validated resources
opt out of that shortcut.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Pattern, Sequence

from surfacescan.scanner.engines.http_engine import HTTPProbeResult

ContentValidator = Callable[[str, str], bool]

SIGNATURE_SAMPLE_CHARS = 5000
SHELL_LENGTH_TOLERANCE = 0.05

# Hydration payloads and framework root attributes
SPA_MARKERS = ("__NEXT_DATA__", "__NUXT__", "data-reactroot", "ng-app")


# ---------------------------------------------------------------------------
# Baseline signature / application-shell detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageSignature:
    hash: int
    length: int


def rolling_hash(text: str, sample: int = SIGNATURE_SAMPLE_CHARS) -> int:
    """h = h*31 + c over the first `sample` chars, wrapped to signed 32-bit."""
    h = 0
    for ch in text[:sample]:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def page_signature(body: str) -> PageSignature:
    return PageSignature(hash=rolling_hash(body), length=len(body))


def is_application_shell(baseline: Optional[PageSignature], body: str) -> bool:
    """True if `body` is the target's catch-all page rather than a real resource."""
    if baseline is None:
        return False

    if rolling_hash(body) == baseline.hash:
        return True

    if baseline.length == 0:
        return False
    length_diff = abs(len(body) - baseline.length) / baseline.length
    if length_diff < SHELL_LENGTH_TOLERANCE:
        return any(marker in body for marker in SPA_MARKERS)
    return False


# ---------------------------------------------------------------------------
# Per-type validators: (body, content_type) -> bool
# ---------------------------------------------------------------------------

def is_html_content_type(content_type: str) -> bool:
    return "text/html" in (content_type or "").lower()


def looks_like_html(body: str) -> bool:
    head = body.lstrip()[:15].lower()
    return head.startswith("<!doctype") or head.startswith("<html")


def _is_html(body: str, content_type: str) -> bool:
    return is_html_content_type(content_type) or looks_like_html(body)


def _json_object(body: str) -> Optional[dict]:
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


_ENV_LINE = re.compile(r"^[A-Z_][A-Z0-9_]*\s*=.+", re.MULTILINE)
_GIT_SECTION = re.compile(r"\[(core|remote|branch|user|submodule)", re.IGNORECASE)
_GIT_REF = re.compile(r"^ref: refs/(heads|tags)/")
_GIT_SHA = re.compile(r"^[a-f0-9]{40}$")
_SQL = re.compile(r"(CREATE TABLE|INSERT INTO|DROP TABLE|SELECT \* FROM|ALTER TABLE|--.*dump)", re.IGNORECASE)
_LOG_LINE = re.compile(r"\d{4}[-/]\d{2}[-/]\d{2}|\[error\]|\[warning\]|\[info\]|\[debug\]", re.IGNORECASE)
_GITIGNORE_LINE = re.compile(r"^[#*/\w.\-]+$", re.MULTILINE)
_GITIGNORE_HINTS = ("node_modules", ".env", "*.log", ".git", "dist/", "build/")
_ARCHIVE_TYPES = ("application/zip", "application/gzip", "application/x-gzip", "application/x-tar", "application/octet-stream")


def validate_env(body: str, content_type: str) -> bool:
    if _is_html(body, content_type):
        return False
    return bool(_ENV_LINE.search(body))


def validate_git_config(body: str, content_type: str) -> bool:
    if _is_html(body, content_type):
        return False
    return bool(_GIT_SECTION.search(body))


def validate_git_head(body: str, content_type: str) -> bool:
    if is_html_content_type(content_type):
        return False
    head = body.strip()
    return bool(_GIT_REF.match(head) or _GIT_SHA.match(head))


def validate_sql(body: str, content_type: str) -> bool:
    if _is_html(body, content_type):
        return False
    return bool(_SQL.search(body))


def validate_source_map(body: str, content_type: str) -> bool:
    if is_html_content_type(content_type):
        return False
    parsed = _json_object(body)
    return parsed is not None and "version" in parsed and ("sources" in parsed or "mappings" in parsed)


def validate_php_info(body: str, content_type: str) -> bool:
    # phpinfo() output is HTML by nature
    return "PHP Version" in body and "Configuration" in body


def validate_log(body: str, content_type: str) -> bool:
    if _is_html(body, content_type):
        return False
    return bool(_LOG_LINE.search(body))


def validate_json_config(body: str, content_type: str) -> bool:
    if is_html_content_type(content_type):
        return False
    try:
        json.loads(body)
    except ValueError:
        return False
    return True


def validate_gitignore(body: str, content_type: str) -> bool:
    if _is_html(body, content_type):
        return False
    return bool(_GITIGNORE_LINE.search(body)) and any(hint in body for hint in _GITIGNORE_HINTS)


def validate_archive(body: str, content_type: str) -> bool:
    # ZIP local header; gzip magic 1f 8b (0x8b decodes to U+FFFD)
    if body.startswith("PK\x03\x04") or body.startswith("\x1f\ufffd"):
        return True
    content_type = (content_type or "").lower()
    return any(t in content_type for t in _ARCHIVE_TYPES)


def validate_php_config(body: str, content_type: str) -> bool:
    # Only counts when PHP source is served unexecuted
    if "<?php" in body or "<?=" in body:
        return "DB_" in body or "database" in body or "password" in body
    return False


def validate_package_json(body: str, content_type: str) -> bool:
    if is_html_content_type(content_type):
        return False
    parsed = _json_object(body)
    return parsed is not None and any(key in parsed for key in ("name", "version", "dependencies"))


def validate_composer_json(body: str, content_type: str) -> bool:
    if is_html_content_type(content_type):
        return False
    parsed = _json_object(body)
    return parsed is not None and any(key in parsed for key in ("require", "autoload", "name"))


def validate_not_html(body: str, content_type: str) -> bool:
    return not _is_html(body, content_type)


VALIDATORS: Dict[str, ContentValidator] = {
    "env": validate_env,
    "git_config": validate_git_config,
    "git_head": validate_git_head,
    "sql": validate_sql,
    "source_map": validate_source_map,
    "php_info": validate_php_info,
    "log": validate_log,
    "json_config": validate_json_config,
    "gitignore": validate_gitignore,
    "archive": validate_archive,
    "php_config": validate_php_config,
    "package_json": validate_package_json,
    "composer_json": validate_composer_json,
}


def get_validator(name: Optional[str]) -> ContentValidator:
    """Validator by registry key; None means the generic not-HTML rule."""
    if name is None:
        return validate_not_html
    try:
        return VALIDATORS[name]
    except KeyError:
        raise ValueError(f"Unknown content validator: {name!r}") from None


def marker_validator(markers: Sequence[Pattern[str]]) -> ContentValidator:
    """Validator that accepts a body matching any of `markers`."""
    def _validate(body: str, content_type: str) -> bool:
        if not markers:
            return True
        return any(marker.search(body) for marker in markers)
    return _validate


# ---------------------------------------------------------------------------
# Three-stage filter
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Verdict:
    """
    Outcome of evaluating one probed resource.

    stage: where the decision was made
        inconclusive  transport failure, nothing to judge
        status        non-200 response
        shell         application-shell false positive
        validator     body checked against the type validator
        oversized     body over the size ceiling, judged on content-type
    """
    accepted: bool
    stage: str
    reason: str = ""


def evaluate_response(
    response: HTTPProbeResult,
    baseline: Optional[PageSignature],
    validator: ContentValidator,
    judge_oversized: bool = True,
) -> Verdict:
    """
    Run the three stages against one response.

    With judge_oversized=False a truncated body gets no content-type
    shortcut: whatever prefix was read must still pass the shell check and
    the validator.
    """
    if not response.ok:
        return Verdict(False, "inconclusive", str(response.error))

    if response.status != 200:
        return Verdict(False, "status", f"HTTP {response.status}")

    if response.truncated and judge_oversized:
        if is_html_content_type(response.content_type):
            return Verdict(False, "oversized", "Oversized HTML response")
        return Verdict(True, "oversized", f"Oversized {response.content_type or 'unknown'} response")

    if is_application_shell(baseline, response.body):
        return Verdict(False, "shell", "Response matches the application shell")

    if validator(response.body, response.content_type):
        return Verdict(True, "validator", "Content matches the expected file type")
    return Verdict(False, "validator", "Content does not match the expected file type")
