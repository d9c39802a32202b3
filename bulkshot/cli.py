"""
Command-line shell for bulkshot.

    bulkshot configs/urls.txt --format pdf --out ./captures
    python -m bulkshot configs/urls.txt --viewport-only --width 1280

Exit codes: 0 when every URL was captured, 1 when some failed or there was
nothing to capture, 2 on a hard failure, 130 on Ctrl-C.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from bulkshot.capture.ingest import ingest
from bulkshot.capture.options import LAYOUTS, LOAD_STATES, SUPPORTED_FORMATS
from bulkshot.core.config import Config, get_config
from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import ErrorComponent, ErrorStage, ErrorType
from bulkshot.core.errors import BulkshotError, ConfigurationError
from bulkshot.core.logging import get_logger, init_cli_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_HARD_FAILURE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    cfg = get_config()
    ap = argparse.ArgumentParser(
        prog="bulkshot",
        description="Capture full-page screenshots or PDFs for a list of URLs.",
    )
    ap.add_argument("urls_file", nargs="?", default=str(cfg.urls_file),
                    help=f"File with one URL per line (default: {cfg.urls_file})")
    ap.add_argument("--out", dest="output_dir",
                    help=f"Base output directory (default: {cfg.base_out_dir})")
    ap.add_argument("--format", dest="file_format", choices=SUPPORTED_FORMATS + ("jpg",),
                    help="Output format (default: png)")
    ap.add_argument("--quality", type=int, help="JPEG quality 0-100 (default: 80)")
    ap.add_argument("--width", type=int, help="Viewport width (default: 1920)")
    ap.add_argument("--height", type=int, help="Viewport height (default: 1080)")
    ap.add_argument("--scale", dest="device_scale_factor", type=float, help="Device scale factor (default: 1)")
    ap.add_argument("--delay", type=int, help="Settle delay after load, ms (default: 1000)")
    ap.add_argument("--timeout", type=int,
                    help=f"Navigation timeout, ms (default: {cfg.nav_timeout_ms})")
    ap.add_argument("--wait-until", dest="wait_until", action="append",
                    metavar="COND", help=f"Load condition, repeatable ({', '.join(LOAD_STATES)})")
    ap.add_argument("--no-scroll", dest="scroll_page", action="store_false", default=None,
                    help="Do not scroll to trigger lazy content")
    ap.add_argument("--scroll-delay", dest="scroll_delay", type=int, help="Pause between scroll ticks, ms (default: 300)")
    ap.add_argument("--viewport-only", dest="full_page", action="store_false", default=None,
                    help="Capture only the visible viewport")
    ap.add_argument("--headed", dest="headed", action="store_true", default=None,
                    help="Show the browser window")
    ap.add_argument("--user-agent", dest="user_agent", help="User agent override")
    ap.add_argument("--layout", choices=LAYOUTS,
                    help=f"Output layout (default: {cfg.output_layout})")
    ap.add_argument("--options-json", dest="options_json",
                    help="JSON file with options (authUrls, cookies, any option key)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return ap


def load_options_file(path: str) -> Dict[str, Any]:
    """
    Load option overrides from a JSON object file.

    Raises:
        ConfigurationError: If the file is unreadable or not a JSON object
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text("utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot load options file {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Options file {p} must contain a JSON object")
    return data


FLAG_FIELDS = (
    "output_dir",
    "file_format",
    "quality",
    "width",
    "height",
    "device_scale_factor",
    "delay",
    "timeout",
    "wait_until",
    "scroll_page",
    "scroll_delay",
    "full_page",
    "user_agent",
    "layout",
)


# Application config supplies these when neither a flag nor the options file does
CONFIG_DEFAULTS = {
    "output_dir": lambda cfg: str(cfg.base_out_dir),
    "timeout": lambda cfg: cfg.nav_timeout_ms,
    "layout": lambda cfg: cfg.output_layout,
    "headless": lambda cfg: cfg.headless,
}


def options_from_args(args: argparse.Namespace, cfg=None) -> Dict[str, Any]:
    """
    Merge config defaults, the --options-json file and explicit flags.

    Precedence, lowest first: application config, options file, flags.
    Flags that were not given (None) leave the lower layers in place.
    Later keys win in resolve_options(), so flags are added last.
    """
    cfg = cfg or get_config()
    overrides: Dict[str, Any] = {}
    for field, default in CONFIG_DEFAULTS.items():
        overrides[field] = default(cfg)

    if args.options_json:
        for key, value in load_options_file(args.options_json).items():
            # re-insert so the file's key (either spelling) comes after the default
            overrides.pop(key, None)
            overrides[key] = value

    for field in FLAG_FIELDS:
        value = getattr(args, field)
        if value is not None:
            overrides.pop(field, None)
            overrides[field] = value
    if args.headed:
        overrides["headless"] = False
    return overrides


def check_config(cfg: Config) -> None:
    """Validate settings, recording a config_error before re-raising."""
    try:
        cfg.validate()
    except ConfigurationError as e:
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.CONFIG,
            stage=ErrorStage.VALIDATE_CONFIG,
            domain="local",
            error_type=ErrorType.CONFIG_ERROR,
        )
        raise


def _print_summary(summary) -> None:
    print(f"\nRun {summary.run_id}: {summary.success} captured, {summary.failed} failed")
    for result in summary.failures:
        print(f"  ✗ {result.url}: {result.error}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = get_config()
    init_cli_logging(verbose=args.verbose, log_dir=cfg.log_dir, level=cfg.log_level)

    try:
        check_config(cfg)
        overrides = options_from_args(args, cfg)
        urls = ingest(args.urls_file)
        if not urls:
            logger.warning(f"No valid URLs found in {args.urls_file}")

        from bulkshot.capture.orchestrator import run_batch

        summary = asyncio.run(run_batch(urls, overrides))
    except KeyboardInterrupt:
        print("\n[abort] KeyboardInterrupt - stopping capture.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except (BulkshotError, ValueError) as e:
        logger.error(str(e))
        print(f"[error] {e}", file=sys.stderr)
        return EXIT_HARD_FAILURE

    _print_summary(summary)
    if summary.total == 0 or summary.failed:
        return EXIT_FAILURES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
