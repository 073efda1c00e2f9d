"""
PyHeaderBlock - request filtering by client IP and header rules

Blocks HTTP requests whose headers match configured name/value patterns,
with per-header whitelist overrides and an optional client IP allowlist.
Ships as an engine, an ASGI middleware and a small forwarding application.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core.config import HeaderBlockConfig, HeaderRuleConfig, Settings, create_config
from .core.engine import DecisionContext, DenyReason, HeaderBlockEngine, Verdict, VerdictAction
from .core.exceptions import (
    PyHeaderBlockError, ConfigurationError, AccessDeniedError,
    IPNotAllowedError, BlockedHeaderError
)
from .middleware import HeaderBlockMiddleware

__all__ = [
    "__version__",
    "__license__",
    "HeaderBlockConfig",
    "HeaderRuleConfig",
    "Settings",
    "create_config",
    "DecisionContext",
    "DenyReason",
    "HeaderBlockEngine",
    "Verdict",
    "VerdictAction",
    "PyHeaderBlockError",
    "ConfigurationError",
    "AccessDeniedError",
    "IPNotAllowedError",
    "BlockedHeaderError",
    "HeaderBlockMiddleware",
]
