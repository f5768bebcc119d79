from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sfengine")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .cache import Cache, shared_cache
from .engine import SessionManager
from .models import Credential, LoginResult, Session

__all__ = [
    "Cache",
    "Credential",
    "LoginResult",
    "Session",
    "SessionManager",
    "__version__",
    "shared_cache",
]

# Keep library modules quiet unless the app configures logging:
logging.getLogger(__name__).addHandler(logging.NullHandler())
