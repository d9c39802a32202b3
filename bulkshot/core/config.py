"""
Application settings for bulkshot.

Settings come from configs/.env (loaded with python-dotenv) or the process
environment. They give the command-line shell its defaults and tell the
loggers where to write. Everything that shapes a single capture run
(format, viewport, scrolling, auth) is a CaptureOptions field instead.
"""

import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

from bulkshot.core.errors import ConfigurationError


DEFAULT_ENV_PATH = Path("configs/.env")

VALID_LAYOUTS = ("run_folder", "inline_timestamp")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
# "new" and "shell" are both headless Chromium modes
HEADLESS_VALUES = {"new", "shell", "true", "1", "yes", "on"}
HEADED_VALUES = {"false", "0", "no", "off"}


def parse_headless(value: str) -> Optional[bool]:
    """HEADLESS / headless spelling to a bool; None if it is not one we know."""
    s = value.strip().lower()
    if s in HEADLESS_VALUES:
        return True
    if s in HEADED_VALUES:
        return False
    return None


class Config:
    """
    Settings snapshot taken when the object is created.

    Malformed numbers and HEADLESS spellings do not raise here; they are
    reported by validate() together with every other problem.
    """

    def __init__(self, env_path: Optional[Path] = None):
        load_dotenv(dotenv_path=env_path or DEFAULT_ENV_PATH, override=True)
        self._problems: List[str] = []

        # Logging
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_dir: Path = Path(os.getenv("LOG_DIR", "logs"))
        self.error_log_dir: Path = Path(os.getenv("ERROR_LOG_DIR", "logs/errors"))

        # CLI defaults
        self.base_out_dir: Path = Path(os.getenv("BASE_OUT_DIR", "screenshots"))
        self.urls_file: Path = Path(os.getenv("URLS_FILE", "configs/urls.txt"))
        self.nav_timeout_ms: int = self._int("NAV_TIMEOUT_MS", 60000)
        self.headless: bool = self._headless()
        self.output_layout: str = os.getenv("OUTPUT_LAYOUT", "run_folder")

    def _int(self, name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            self._problems.append(f"{name} must be an integer, got {raw!r}")
            return default

    def _headless(self) -> bool:
        raw = os.getenv("HEADLESS", "1")
        parsed = parse_headless(raw)
        if parsed is None:
            self._problems.append(f"HEADLESS must be one of {', '.join(sorted(HEADLESS_VALUES | HEADED_VALUES))}, got {raw!r}")
            return True
        return parsed

    def validate(self) -> None:
        """
        Check every setting and report all problems at once.

        Raises:
            ConfigurationError: If any setting is invalid (a ValueError)
        """
        errors = list(self._problems)

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {self.log_level}")
        if self.nav_timeout_ms <= 0:
            errors.append(f"NAV_TIMEOUT_MS must be positive, got {self.nav_timeout_ms}")
        if self.output_layout not in VALID_LAYOUTS:
            errors.append(f"OUTPUT_LAYOUT must be one of {', '.join(VALID_LAYOUTS)}, got {self.output_layout}")

        if errors:
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    def __repr__(self) -> str:
        fields = ("base_out_dir", "urls_file", "nav_timeout_ms", "headless", "output_layout", "log_level", "log_dir")
        return "Config(" + ", ".join(f"{name}={getattr(self, name)}" for name in fields) + ")"


_config: Optional[Config] = None


def get_config(env_path: Optional[Path] = None) -> Config:
    """
    Shared Config, created on first use.

    env_path only matters on that first call; use reset_config() to
    re-read the environment.
    """
    global _config
    if _config is None:
        _config = Config(env_path=env_path)
    return _config


def reset_config() -> None:
    global _config
    _config = None


def validate_config(env_path: Optional[Path] = None) -> None:
    """Fail fast at startup on a bad environment."""
    get_config(env_path=env_path).validate()
