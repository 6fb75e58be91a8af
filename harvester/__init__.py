"""
Graph Harvester Package
Harvests paginated result sets by driving a real browser and intercepting
the private API calls the page makes for itself.

CLI Usage:
    python -m harvester <hashtag|location|user> <id> [options]

    Options:
        --count         Records to harvest, 0 for unlimited (default: 0)
        --visible       Show the browser window
        --silent        No status line on stdout
        --sleep         Seconds between page interactions (default: 2)
        --hibernate     Seconds to sleep when rate limited (default: 1200)
        --no-graft      Disable grafting
        --full          Visit every record's detail page
        --proxy         Proxy server for the browser
        --output        Output file path
        --format        json, jsonl or csv (default: json)
"""

import logging

from .buffers import LockedBuffer, PostIdSet
from .engine import ScrapeEngine
from .hibernation import Hibernator, is_rate_limited
from .interception import InterceptionPipeline
from .monitor import (
    ConsoleStatusReporter,
    NullStatusReporter,
    Progress,
    ProgressEvent,
    RecordingStatusReporter,
    StatusReporter,
)
from .paginator import Paginator, Record
from .run_config import HarvestConfig
from .session import BrowserSession, NavigationError
from .state import SessionState
from .targets import ResourceTarget, hashtag, location, match_url, user

# Discard log records unless the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'ScrapeEngine',
    'HarvestConfig',
    'ResourceTarget',
    'hashtag',
    'location',
    'user',
    'match_url',
    # Components
    'BrowserSession',
    'NavigationError',
    'InterceptionPipeline',
    'Paginator',
    'Record',
    'Hibernator',
    'is_rate_limited',
    'LockedBuffer',
    'PostIdSet',
    'SessionState',
    # Status reporting
    'Progress',
    'ProgressEvent',
    'StatusReporter',
    'NullStatusReporter',
    'ConsoleStatusReporter',
    'RecordingStatusReporter',
]

__version__ = '1.0.0'
