"""
Harvest session state shared by the engine, paginator and hibernator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class SessionState:
    """Mutable iteration state, created with the engine, discarded on stop."""
    started: bool = False
    paused: bool = False
    finished: bool = False
    stop_requested: bool = False

    # Grafting: replay the last captured API request on a fresh browser
    graft: bool = False
    last_url: Optional[str] = None
    last_headers: Dict[str, str] = field(default_factory=dict)

    # Rate limiting
    hibernate: bool = False

    # Counters
    index: int = 0          # records emitted
    jumps: int = 0          # page stimulations
    sleep_remaining: int = 0
