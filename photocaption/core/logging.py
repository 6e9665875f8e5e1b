"""
Purpose:
- One-time logging setup with a Rich handler.
- Modules log through logging.getLogger(__name__); this only wires the root logger.
"""

from __future__ import annotations
import logging
from rich.logging import RichHandler

_MANAGED_ATTR = "_photocaption_managed"

def configure_logging(level: str = "INFO") -> None:
    """
    Install a RichHandler on the root logger (idempotent) and set the level.
    """
    root = logging.getLogger()
    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)

    if not any(getattr(h, _MANAGED_ATTR, False) for h in root.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(handler, _MANAGED_ATTR, True)
        root.addHandler(handler)

    root.setLevel(resolved)
    # chatty client libs
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
    logging.getLogger("openai").setLevel(max(resolved, logging.WARNING))
