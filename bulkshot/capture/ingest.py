"""
URL ingestion: turn a newline-delimited list into capturable URLs.

Malformed lines are dropped with a warning and a parse_error record, and
never abort ingestion. The only hard failure is a list file that cannot be opened.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import ErrorComponent, ErrorSeverity, ErrorStage, ErrorType
from bulkshot.core.errors import IngestionError
from bulkshot.core.logging import get_logger
from bulkshot.utils.url_utils import (
    CAPTURABLE_SCHEMES,
    explicit_scheme,
    lowercase_scheme,
    validate_url,
)

logger = get_logger(__name__)

DEFAULT_SCHEME = "https"


@dataclass(frozen=True)
class UrlParseResult:
    """Outcome of parsing one candidate line: exactly one of url/error is set."""

    candidate: str
    url: Optional[str] = None
    error: Optional[str] = None
    assumed_scheme: bool = False

    @property
    def ok(self) -> bool:
        return self.url is not None


def parse_url(candidate: str) -> UrlParseResult:
    """
    Parse one candidate into an absolute http(s) URL.

    A candidate without a scheme is retried once with https:// prepended.

    Args:
        candidate: Raw text of one line

    Returns:
        UrlParseResult with either `url` or `error`

    Example:
        >>> parse_url("example.org").url
        'https://example.org'
        >>> parse_url("not a url").ok
        False
    """
    s = (candidate or "").strip()
    if not s:
        return UrlParseResult(candidate=s, error="empty line")

    scheme = explicit_scheme(s)
    if scheme is not None:
        if scheme not in CAPTURABLE_SCHEMES:
            return UrlParseResult(candidate=s, error=f"unsupported scheme '{scheme}'")
        url = lowercase_scheme(s)
        if validate_url(url):
            return UrlParseResult(candidate=s, url=url)
        return UrlParseResult(candidate=s, error="invalid URL")

    # scheme-relative: //host/path
    fallback = f"{DEFAULT_SCHEME}:{s}" if s.startswith("//") else f"{DEFAULT_SCHEME}://{s}"
    if validate_url(fallback):
        return UrlParseResult(candidate=s, url=fallback, assumed_scheme=True)
    return UrlParseResult(candidate=s, error=f"invalid URL even after adding {DEFAULT_SCHEME}://")


def parse_url_lines(lines: Iterable[str], source: str = "<text>") -> List[str]:
    """
    Parse candidate lines, skipping blanks and '#' comments.

    Order is preserved and duplicates are kept.

    Args:
        lines: Candidate lines
        source: Name used in diagnostics

    Returns:
        List of valid absolute URLs

    Example:
        >>> parse_url_lines(["https://example.com/a/b", "not a url", "# c", "", "example.org"])
        ['https://example.com/a/b', 'https://example.org']
    """
    urls: List[str] = []
    for lineno, line in enumerate(lines, start=1):
        s = line.strip()
        if not s or s.startswith("#"):
            continue

        result = parse_url(s)
        if not result.ok:
            logger.warning(f"Skipping {source}:{lineno} {s!r}: {result.error}")
            get_error_logger().log_error(
                component=ErrorComponent.INGEST,
                stage=ErrorStage.PARSE_LINE,
                error_type=ErrorType.PARSE_ERROR,
                domain="unknown",
                message=f"{result.error}: {s!r}",
                severity=ErrorSeverity.WARNING,
                metadata={"source": source, "line": lineno},
            )
            continue
        if result.assumed_scheme:
            logger.info(f"Assuming {DEFAULT_SCHEME}:// for {s!r} ({source}:{lineno})")
        urls.append(result.url)
    return urls


def read_urls_from_file(path: Union[str, os.PathLike]) -> List[str]:
    """
    Read URLs from a UTF-8 text file, one per line.

    Args:
        path: Path to the URL list

    Returns:
        List of valid absolute URLs, in file order

    Raises:
        IngestionError: If the file is missing, unreadable, or not UTF-8
    """
    p = Path(path)
    logger.info(f"Reading URLs from: {p}")
    try:
        # utf-8-sig tolerates a BOM written by Windows editors
        text = p.read_text("utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.INGEST,
            stage=ErrorStage.READ_URL_FILE,
            domain="local",
            error_type=ErrorType.FILE_ERROR,
            metadata={"path": str(p)},
        )
        if isinstance(e, FileNotFoundError):
            raise IngestionError(f"URL list file not found: {p}", path=p) from e
        raise IngestionError(f"Cannot read URL list file {p}: {e}", path=p) from e

    urls = parse_url_lines(text.splitlines(), source=str(p))
    logger.info(f"Loaded {len(urls)} URLs from {p}")
    return urls


def ingest(source: Union[str, os.PathLike], text: bool = False) -> List[str]:
    """
    Ingest a URL list from a file path, or from raw text when text=True.

    Example:
        >>> ingest("example.org\\n# skip\\n", text=True)
        ['https://example.org']
    """
    if text:
        return parse_url_lines(str(source).splitlines())
    return read_urls_from_file(source)
