from __future__ import annotations

import logging
from typing import Optional

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"

# Lowest level let through from the HTTP stack under simple-salesforce.
_THIRD_PARTY_FLOORS = {
    "urllib3.connection": logging.ERROR,
    "urllib3.connectionpool": logging.WARNING,
    "simple_salesforce": logging.INFO,
}


def configure_logging(level: Optional[int]) -> None:
    """Configure root logging once; safe to call multiple times.

    sfengine loggers follow ``level``. The third-party loggers above never go
    below their floor, so ``-vv`` shows cache and session debugging without
    every HTTP request.
    """
    lvl = level if level is not None else logging.WARNING
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(
            level=lvl,
            format=_DEFAULT_FMT,
            datefmt=_DEFAULT_DATEFMT,
        )

    for name, floor in _THIRD_PARTY_FLOORS.items():
        logging.getLogger(name).setLevel(max(lvl, floor))
