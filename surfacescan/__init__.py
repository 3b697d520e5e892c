# surfacescan/__init__.py
"""
surfacescan: unauthenticated, read-only web host reconnaissance.

Usage:
    from surfacescan import ScanOrchestrator, configure_logging

    configure_logging()
    result = ScanOrchestrator().execute("https://example.com")
    print(result.summary)
"""

from __future__ import annotations

import logging
from typing import Optional

from surfacescan.config import load_config

__version__ = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(debug: Optional[bool] = None) -> None:
    """
    Set up root logging for command-line and worker entry points.

    With debug=None the level follows the scan config, so
    SURFACESCAN_DEBUG=true switches on per-probe debug output.
    """
    if debug is None:
        debug = bool(load_config()["debug"])

    if debug:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, datefmt="%H:%M:%S")
    else:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


from surfacescan.scanner.orchestrator import ScanOrchestrator  # noqa: E402

__all__ = ["ScanOrchestrator", "configure_logging", "__version__"]
