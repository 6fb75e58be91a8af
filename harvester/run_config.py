"""
Harvest Configuration
=====================
Single source of truth for ALL harvester defaults and runtime limits.

The engine, browser session, paginator and CLI read from one immutable
``HarvestConfig``.  CLI flags populate it via ``from_cli_args``; library
callers construct it directly and override only what they need.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .targets import ResourceTarget
from .utils import format_total

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "total": 0,                      # records to harvest, 0 = unlimited
    "headless": True,
    "silent": False,
    "sleep_time": 2.0,               # seconds between page interactions
    "hibernation_time": 60 * 20,     # seconds to sleep when rate limited
    "enable_grafting": True,
    "full_api": False,               # visit each record's detail page
    "proxy_url": None,
    "graft_interval": 100,           # jumps between grafts
    "max_navigation_attempts": 3,    # before the first successful start only
    "navigation_retry_delay": 60.0,  # seconds
    "detail_retry_delay": 2.0,       # seconds
    "pause_poll_interval": 0.2,      # seconds
    "max_detail_pages": 4,           # concurrent detail-page fetches
}


def _default_logger() -> logging.Logger:
    # The package logger carries a NullHandler, so records are discarded
    # unless the application configures logging.
    return logging.getLogger("harvester")


def _sandbox_disabled() -> bool:
    return bool(os.environ.get("NO_SANDBOX"))


@dataclass(frozen=True)
class HarvestConfig:
    """
    Immutable configuration consumed by every harvester component.

    Populate via:
      - ``HarvestConfig()``                → all defaults
      - ``HarvestConfig(total=50)``        → override one value
      - ``HarvestConfig.from_cli_args(ns)`` → from argparse Namespace
    """

    # ---- Limits ----
    total: int = _DEFAULTS["total"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    proxy_url: Optional[str] = _DEFAULTS["proxy_url"]
    no_sandbox: bool = field(default_factory=_sandbox_disabled)

    # ---- Output ----
    silent: bool = _DEFAULTS["silent"]
    logger: logging.Logger = field(default_factory=_default_logger, compare=False, repr=False)

    # ---- Pacing ----
    sleep_time: float = _DEFAULTS["sleep_time"]
    hibernation_time: float = _DEFAULTS["hibernation_time"]
    pause_poll_interval: float = _DEFAULTS["pause_poll_interval"]

    # ---- Grafting ----
    enable_grafting: bool = _DEFAULTS["enable_grafting"]
    graft_interval: int = _DEFAULTS["graft_interval"]

    # ---- Full-detail mode ----
    full_api: bool = _DEFAULTS["full_api"]
    max_detail_pages: int = _DEFAULTS["max_detail_pages"]
    detail_retry_delay: float = _DEFAULTS["detail_retry_delay"]

    # ---- Navigation retries ----
    max_navigation_attempts: int = _DEFAULTS["max_navigation_attempts"]
    navigation_retry_delay: float = _DEFAULTS["navigation_retry_delay"]

    def __post_init__(self):
        if self.total < 0:
            raise ValueError(f"total must be >= 0, got {self.total}")
        if self.graft_interval < 1:
            raise ValueError(f"graft_interval must be >= 1, got {self.graft_interval}")
        if self.max_detail_pages < 1:
            raise ValueError(f"max_detail_pages must be >= 1, got {self.max_detail_pages}")

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args, **overrides) -> "HarvestConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        kwargs = dict(
            total=getattr(args, "count", _DEFAULTS["total"]),
            headless=not getattr(args, "visible", False),
            silent=getattr(args, "silent", _DEFAULTS["silent"]),
            sleep_time=getattr(args, "sleep", _DEFAULTS["sleep_time"]),
            hibernation_time=getattr(args, "hibernate", _DEFAULTS["hibernation_time"]),
            enable_grafting=not getattr(args, "no_graft", False),
            full_api=getattr(args, "full", _DEFAULTS["full_api"]),
            proxy_url=getattr(args, "proxy", None),
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, target: ResourceTarget) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("HARVEST RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {target.url}")
        logger.info(f"  Total:            {format_total(self.total)}")
        logger.info(f"  Headless:         {self.headless}")
        logger.info(f"  Sleep:            {self.sleep_time}s between jumps")
        logger.info(f"  Hibernation:      {self.hibernation_time}s when rate limited")
        logger.info(f"  Grafting:         {'every ' + str(self.graft_interval) + ' jumps' if self.enable_grafting else 'disabled'}")
        logger.info(f"  Full detail:      {self.full_api}")
        if self.proxy_url:
            logger.info(f"  Proxy:            {self.proxy_url}")
        if self.no_sandbox:
            logger.info("  Sandbox:          disabled (NO_SANDBOX)")
        logger.info("=" * 60)
