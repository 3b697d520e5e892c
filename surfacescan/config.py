# surfacescan/config.py
"""
Scan configuration.

All timeouts are in seconds. Values are resolved in this order (later wins):

    DEFAULT_SCAN_CONFIG  →  SURFACESCAN_* environment variables  →  caller overrides

Environment variables:
    SURFACESCAN_TIMEOUT            baseline / general request timeout
    SURFACESCAN_WORKERS            detectors running at the same time
    SURFACESCAN_USER_AGENT         User-Agent sent with every HTTP probe
    SURFACESCAN_NAMESERVERS        comma-separated resolver IPs (default: system)
    SURFACESCAN_SKIP_ADMIN_PATHS   "true" to skip admin path enumeration
    SURFACESCAN_DEBUG              "true" for debug logging

Per-detector options live in DETECTOR_DEFAULTS and can be overridden with
config["detector_options"][<detector name>].
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

DEFAULT_USER_AGENT = "SurfaceScan/1.0 (Security Audit)"

DEFAULT_SCAN_CONFIG: Dict[str, Any] = {
    "timeout": 10,                  # baseline page + general requests
    "probe_timeout": 5,             # per-path probes
    "dns_timeout": 5,
    "tls_timeout": 10,
    "workers": 4,                   # detectors in flight at once
    "user_agent": DEFAULT_USER_AGENT,
    "nameservers": [],              # empty = system resolver
    "baseline_max_bytes": 2_000_000,
    "detectors": None,              # None = every registered detector
    "skip_admin_paths": False,
    "min_confidence": "medium",     # lowest secret-pattern confidence reported
    "debug": False,
    "detector_options": {},
}

# Batch sizes are the in-detector concurrency limit.
DETECTOR_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "exposed_files": {
        "batch_size": 5,
        "max_body": 50_000,
    },
    "admin_paths": {
        "batch_size": 3,
        "max_body": 500_000,
    },
    "secret_leak": {
        "max_scripts": 5,
        "max_script_bytes": 500_000,
        "script_timeout": 5,
    },
    "client_permissions": {
        "max_scripts": 3,
        "max_script_bytes": 300_000,
        "script_timeout": 5,
    },
    "subdomain_takeover": {
        "batch_size": 3,
        "max_checks": 10,
        "http_timeout": 5,
    },
    "robots": {
        "max_body": 100_000,
    },
}

CONFIDENCE_LEVELS = ("medium", "high")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_number(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}

    timeout = _env_number("SURFACESCAN_TIMEOUT")
    if timeout is not None:
        overrides["timeout"] = timeout

    workers = _env_number("SURFACESCAN_WORKERS")
    if workers is not None:
        overrides["workers"] = int(workers)

    user_agent = os.getenv("SURFACESCAN_USER_AGENT")
    if user_agent:
        overrides["user_agent"] = user_agent

    nameservers = os.getenv("SURFACESCAN_NAMESERVERS")
    if nameservers:
        overrides["nameservers"] = [ns.strip() for ns in nameservers.split(",") if ns.strip()]

    skip_admin = _env_bool("SURFACESCAN_SKIP_ADMIN_PATHS")
    if skip_admin is not None:
        overrides["skip_admin_paths"] = skip_admin

    debug = _env_bool("SURFACESCAN_DEBUG")
    if debug is not None:
        overrides["debug"] = debug

    return overrides


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the effective scan config.

    Raises ValueError for values that would make the scan meaningless
    (non-positive worker count or timeouts, unknown confidence tier).
    """
    config = {**DEFAULT_SCAN_CONFIG, **_env_overrides(), **(overrides or {})}

    if int(config["workers"]) < 1:
        raise ValueError(f"workers must be >= 1, got {config['workers']}")
    for key in ("timeout", "probe_timeout", "dns_timeout", "tls_timeout"):
        if float(config[key]) <= 0:
            raise ValueError(f"{key} must be positive, got {config[key]}")
    if config["min_confidence"] not in CONFIDENCE_LEVELS:
        raise ValueError(
            f"min_confidence must be one of {CONFIDENCE_LEVELS}, got {config['min_confidence']!r}"
        )
    return config


def get_detector_config(detector_name: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Per-detector view of the scan config.

    Shared timeouts and the user agent come from the top-level config;
    detector-specific knobs from DETECTOR_DEFAULTS, then any
    config["detector_options"][detector_name] overrides.
    """
    detector_cfg: Dict[str, Any] = {
        "timeout": config.get("timeout", DEFAULT_SCAN_CONFIG["timeout"]),
        "probe_timeout": config.get("probe_timeout", DEFAULT_SCAN_CONFIG["probe_timeout"]),
        "dns_timeout": config.get("dns_timeout", DEFAULT_SCAN_CONFIG["dns_timeout"]),
        "tls_timeout": config.get("tls_timeout", DEFAULT_SCAN_CONFIG["tls_timeout"]),
        "min_confidence": config.get("min_confidence", DEFAULT_SCAN_CONFIG["min_confidence"]),
    }
    detector_cfg.update(DETECTOR_DEFAULTS.get(detector_name, {}))
    detector_cfg.update((config.get("detector_options") or {}).get(detector_name, {}))
    return detector_cfg


def enabled_detector_names(config: Dict[str, Any], registered: List[str]) -> List[str]:
    """Resolve config["detectors"] against the registry, preserving registry order."""
    requested = config.get("detectors")
    if requested is None:
        names = list(registered)
    else:
        unknown = [name for name in requested if name not in registered]
        if unknown:
            raise ValueError(f"Unknown detector(s): {', '.join(unknown)}")
        names = [name for name in registered if name in requested]

    if config.get("skip_admin_paths"):
        names = [name for name in names if name != "admin_paths"]
    return names
