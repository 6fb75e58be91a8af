#!/usr/bin/env python3
"""
Command-line Harvester
======================
Harvest a hashtag, location or user feed and export the records.

All configuration flows through ``HarvestConfig``, the single source of
truth for defaults; flags only override.

Run with: python -m harvester hashtag nofilter --count 100
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

# Load .env file (NO_SANDBOX, proxies) before anything else
env_path = Path(__file__).resolve().parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv()  # tries CWD

from .engine import ScrapeEngine
from .exporters import FORMATS, export
from .monitor import format_summary
from .run_config import HarvestConfig
from .session import NavigationError
from .targets import PRESETS

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='graph-harvester',
        description='Harvest paginated feeds through the page\'s private API',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m harvester hashtag nofilter --count 100
  python -m harvester user instagram --format csv --output out/instagram.csv
  python -m harvester location 213385402 --full --no-graft
        """
    )
    parser.add_argument('resource', choices=sorted(PRESETS), help='Kind of feed to harvest')
    parser.add_argument('id', help='Hashtag, location id or user name')
    parser.add_argument('--count', type=int, default=0, help='Records to harvest, 0 for unlimited (default: 0)')
    parser.add_argument('--visible', action='store_true', help='Show the browser window')
    parser.add_argument('--silent', action='store_true', help='Do not print the status line')
    parser.add_argument('--sleep', type=float, default=2.0, help='Seconds between page interactions (default: 2)')
    parser.add_argument('--hibernate', type=float, default=1200.0, help='Seconds to sleep when rate limited (default: 1200)')
    parser.add_argument('--no-graft', action='store_true', help='Disable grafting')
    parser.add_argument('--full', action='store_true', help='Visit every record\'s detail page for the full payload')
    parser.add_argument('--proxy', type=str, help='Proxy server for the browser, e.g. http://host:3128')
    parser.add_argument('--output', type=str, help='Output file path (default: <resource>_<id>.<format>)')
    parser.add_argument('--format', type=str, default='json', choices=FORMATS, help='Output format (default: json)')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Log level (default: WARNING)')
    return parser


async def _harvest(engine: ScrapeEngine) -> list:
    """Collect every record; Ctrl-C requests a clean stop instead of killing the browser."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, engine.force_stop)
    except NotImplementedError:
        pass  # Windows event loops have no signal handlers

    records = []
    async for record in engine.generator():
        records.append(record)
    return records


def main(argv=None) -> int:
    """Parse argv, build HarvestConfig, run."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    cfg = HarvestConfig.from_cli_args(args)
    target = PRESETS[args.resource](args.id)
    cfg.log_summary(target)

    engine = ScrapeEngine(target, cfg)
    start = time.time()
    try:
        records = asyncio.run(_harvest(engine))
    except NavigationError as e:
        logger.error(str(e))
        return 1
    elapsed = time.time() - start

    output = args.output or f"{args.resource}_{args.id}.{args.format}"
    path = export(records, output, args.format)

    if not cfg.silent:
        stop_reason = "stopped by user" if engine.state.stop_requested else "completed"
        print(format_summary(args.id, len(records), engine.state.jumps, elapsed, stop_reason))
        print(f"  Exported: {path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
