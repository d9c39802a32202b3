"""
Output path derivation.

derive_path() is a pure function of (base_dir, run_id, url, format, layout);
it never touches the filesystem. Two layouts are supported:

    run_folder:        <base>/<host>/<run_id>/<path>.<ext>
    inline_timestamp:  <base>/<host>/<path>_<run_id>.<ext>

Within one run the orchestrator goes through claim_path(), so URLs that
sanitize to the same name (or duplicate URLs) get an '_N' counter instead
of overwriting each other.
"""

import re
from pathlib import Path
from typing import MutableSet, Union

from bulkshot.utils.url_utils import hostname_of, path_of


MAX_PATH_TOKEN_LEN = 100
ROOT_TOKEN = "root"
UNKNOWN_HOST_TOKEN = "unknown-host"

_UNSAFE_HOST_RE = re.compile(r"[^A-Za-z0-9_.\-]")
_UNSAFE_PATH_RE = re.compile(r"[^A-Za-z0-9_\-]")


def sanitize_hostname(hostname: str) -> str:
    """
    Make a hostname safe as a directory name.

    Example:
        >>> sanitize_hostname("sub.example.com")
        'sub.example.com'
        >>> sanitize_hostname("bücher.de")
        'b_cher.de'
    """
    if not hostname:
        return UNKNOWN_HOST_TOKEN
    return _UNSAFE_HOST_RE.sub("_", hostname)


def sanitize_path(pathname: str, max_len: int = MAX_PATH_TOKEN_LEN) -> str:
    """
    Turn a URL path into a filename stem.

    Leading/trailing slashes are stripped, inner slashes become '-', every
    other character outside [A-Za-z0-9_-] becomes '_'. The empty path and
    '/' map to 'root'. The result is capped at max_len characters.

    Example:
        >>> sanitize_path("/a/b")
        'a-b'
        >>> sanitize_path("/")
        'root'
        >>> sanitize_path("/docs/v1.2/index.html")
        'docs-v1_2-index_html'
    """
    if not pathname or pathname == "/":
        return ROOT_TOKEN
    cleaned = pathname.strip("/").replace("/", "-")
    cleaned = _UNSAFE_PATH_RE.sub("_", cleaned)
    # a path made only of slashes ("//") cleans down to nothing
    return (cleaned or ROOT_TOKEN)[:max_len]


def derive_path(
    base_dir: Union[str, Path],
    run_id: str,
    url: str,
    file_format: str,
    layout: str = "run_folder",
    occurrence: int = 1,
) -> Path:
    """
    Compute the output file for one URL.

    Args:
        base_dir: Base output directory
        run_id: Run identifier shared by the whole batch
        url: Absolute URL being captured
        file_format: png, jpeg or pdf (used as the extension)
        layout: run_folder or inline_timestamp
        occurrence: 1 for the first claim of this name in a run; N >= 2
            appends '_N' to the path token (trimmed to stay within
            MAX_PATH_TOKEN_LEN)

    Returns:
        Target file path

    Example:
        >>> derive_path("./out", "2024-01-01_00-00-00", "https://example.com/a/b", "png")
        PosixPath('out/example.com/2024-01-01_00-00-00/a-b.png')
    """
    host = sanitize_hostname(hostname_of(url))
    stem = sanitize_path(path_of(url))
    if occurrence > 1:
        counter = f"_{occurrence}"
        stem = stem[: MAX_PATH_TOKEN_LEN - len(counter)] + counter
    base = Path(base_dir)

    if layout == "run_folder":
        return base / host / run_id / f"{stem}.{file_format}"
    if layout == "inline_timestamp":
        return base / host / f"{stem}_{run_id}.{file_format}"
    raise ValueError(f"Unknown output layout: {layout!r}")


def claim_path(
    taken: MutableSet[Path],
    base_dir: Union[str, Path],
    run_id: str,
    url: str,
    file_format: str,
    layout: str = "run_folder",
) -> Path:
    """
    Derive a path for `url` that no earlier URL of this run has claimed.

    The returned path is added to `taken`.

    Example:
        >>> taken = set()
        >>> claim_path(taken, "out", "r1", "https://a.com/x/y", "png").name
        'x-y.png'
        >>> claim_path(taken, "out", "r1", "https://a.com/x-y", "png").name
        'x-y_2.png'
    """
    occurrence = 1
    while True:
        path = derive_path(base_dir, run_id, url, file_format, layout, occurrence)
        if path not in taken:
            taken.add(path)
            return path
        occurrence += 1
