"""
Per-run capture options.

CaptureOptions is an immutable pydantic model, down to its per-host auth and
cookie maps (read-only mapping proxies). resolve_options() merges caller
values over DEFAULT_OPTIONS and validates the result into a fresh record
for each run, so no run ever holds the shared defaults object.

Both snake_case field names and the camelCase names used by the desktop
shell (outputDir, fileFormat, waitUntil, ...) are accepted.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from bulkshot.core.config import parse_headless
from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import ErrorComponent, ErrorStage, ErrorType
from bulkshot.core.errors import ConfigurationError


SUPPORTED_FORMATS = ("png", "jpeg", "pdf")
FORMAT_ALIASES = {"jpg": "jpeg"}

LOAD_STATES = ("load", "domcontentloaded", "networkidle", "commit")
LOAD_STATE_ALIASES = {"networkidle0": "networkidle", "networkidle2": "networkidle"}

LAYOUTS = ("run_folder", "inline_timestamp")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


class HttpCredentials(BaseModel):
    """Basic-auth credentials for one hostname."""
    username: str
    password: str

    model_config = ConfigDict(frozen=True)


class CaptureOptions(BaseModel):
    """
    Immutable configuration for one capture run.

    Every field has a default; see DEFAULT_OPTIONS.
    """
    output_dir: Path = Field(default=Path("./screenshots"), description="Base output directory")
    file_format: Literal["png", "jpeg", "pdf"] = Field(default="png", description="Capture format")
    quality: int = Field(default=80, ge=0, le=100, description="JPEG quality (jpeg only)")
    width: int = Field(default=1920, gt=0, description="Viewport width in pixels")
    height: int = Field(default=1080, gt=0, description="Viewport height in pixels")
    device_scale_factor: float = Field(default=1.0, gt=0, description="Device pixel ratio")
    delay: int = Field(default=1000, ge=0, description="Settle delay after navigation (ms)")
    scroll_page: bool = Field(default=True, description="Auto-scroll before capture")
    scroll_delay: int = Field(default=300, ge=0, description="Interval between scroll ticks (ms)")
    timeout: int = Field(default=60000, gt=0, description="Navigation timeout (ms)")
    wait_until: Tuple[str, ...] = Field(default=("networkidle",), description="Navigation completion conditions")
    auth_urls: Dict[str, HttpCredentials] = Field(default_factory=dict, validate_default=True, description="hostname -> credentials")
    cookies: Dict[str, Tuple[Dict[str, Any], ...]] = Field(default_factory=dict, validate_default=True, description="hostname -> cookies")
    headless: bool = Field(default=True, description="Run the browser without a window")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1, description="User-Agent override")
    full_page: bool = Field(default=True, description="Capture beyond the viewport")
    layout: Literal["run_folder", "inline_timestamp"] = Field(default="run_folder", description="Output path layout")

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("file_format", mode="before")
    @classmethod
    def normalize_format(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return FORMAT_ALIASES.get(v, v)
        return v

    @field_validator("wait_until", mode="before")
    @classmethod
    def normalize_wait_until(cls, v: Any) -> Tuple[str, ...]:
        """
        Accept one condition or a sequence; map networkidle0/2 to networkidle.

        Duplicates are dropped, order is kept.
        """
        if isinstance(v, str):
            v = [v]
        if not v:
            raise ValueError("wait_until needs at least one condition")

        out: List[str] = []
        for item in v:
            state = LOAD_STATE_ALIASES.get(str(item).strip().lower(), str(item).strip().lower())
            if state not in LOAD_STATES:
                raise ValueError(
                    f"unsupported wait_until condition {item!r} "
                    f"(expected one of {', '.join(LOAD_STATES + tuple(LOAD_STATE_ALIASES))})"
                )
            if state not in out:
                out.append(state)
        return tuple(out)

    @field_validator("headless", mode="before")
    @classmethod
    def normalize_headless(cls, v: Any) -> Any:
        if isinstance(v, str):
            parsed = parse_headless(v)
            return v if parsed is None else parsed
        return v

    @field_validator("cookies", mode="before")
    @classmethod
    def normalize_cookies(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return {host: tuple(dict(c) for c in (cookies or ())) for host, cookies in v.items()}
        return v

    @field_validator("auth_urls", mode="before")
    @classmethod
    def plain_auth_map(cls, v: Any) -> Any:
        return dict(v) if isinstance(v, Mapping) else v

    @field_validator("auth_urls")
    @classmethod
    def freeze_auth_urls(cls, v: Dict[str, HttpCredentials]) -> Mapping[str, HttpCredentials]:
        return MappingProxyType(dict(v))

    @field_validator("cookies")
    @classmethod
    def freeze_cookies(cls, v: Dict[str, Tuple[Dict[str, Any], ...]]) -> Mapping[str, Tuple[Mapping[str, Any], ...]]:
        return MappingProxyType({host: tuple(MappingProxyType(dict(c)) for c in cookies) for host, cookies in v.items()})

    @field_serializer("auth_urls")
    def dump_auth_urls(self, v: Mapping[str, HttpCredentials]) -> Dict[str, Dict[str, str]]:
        return {host: creds.model_dump() for host, creds in v.items()}

    @field_serializer("cookies")
    def dump_cookies(self, v: Mapping[str, Tuple[Mapping[str, Any], ...]]) -> Dict[str, List[Dict[str, Any]]]:
        return {host: [dict(c) for c in cookies] for host, cookies in v.items()}

    @model_validator(mode="after")
    def pdf_needs_headless(self) -> "CaptureOptions":
        # Chromium only prints to PDF in headless mode
        if self.file_format == "pdf" and not self.headless:
            raise ValueError("PDF output requires headless mode")
        return self

    @property
    def extension(self) -> str:
        """File extension for the configured format."""
        return self.file_format

    @property
    def is_document(self) -> bool:
        return self.file_format == "pdf"

    def credentials_for(self, hostname: str) -> Optional[HttpCredentials]:
        return self.auth_urls.get(hostname)

    def cookies_for(self, hostname: str) -> List[Dict[str, Any]]:
        return [dict(c) for c in self.cookies.get(hostname, ())]

    def describe(self) -> Dict[str, Any]:
        """
        Effective options for logging, with auth/cookie maps reduced to hostnames.
        """
        data = self.model_dump(mode="json")
        data["auth_urls"] = sorted(self.auth_urls) or "None"
        data["cookies"] = sorted(self.cookies) or "None"
        return data


DEFAULT_OPTIONS = CaptureOptions()


def resolve_options(
    overrides: Union[CaptureOptions, Mapping[str, Any], None] = None,
    base: CaptureOptions = DEFAULT_OPTIONS,
) -> CaptureOptions:
    """
    Merge caller options over the defaults, field by field.

    Args:
        overrides: A CaptureOptions, a mapping using snake_case or camelCase
            keys, or None for pure defaults. Keys whose value is None are
            treated as "not supplied".
        base: Options to merge over (default: DEFAULT_OPTIONS)

    Returns:
        A fresh validated CaptureOptions

    Raises:
        ConfigurationError: If any merged field is invalid

    Example:
        >>> opts = resolve_options({"fileFormat": "jpeg", "quality": 70})
        >>> opts.file_format, opts.quality, opts.width
        ('jpeg', 70, 1920)
    """
    if overrides is None:
        supplied: Dict[str, Any] = {}
    elif isinstance(overrides, CaptureOptions):
        supplied = overrides.model_dump(exclude_unset=True)
    elif isinstance(overrides, Mapping):
        supplied = {k: v for k, v in overrides.items() if v is not None}
    else:
        raise ConfigurationError(f"Options must be a mapping or CaptureOptions, got {type(overrides).__name__}")

    merged: Dict[str, Any] = base.model_dump()
    field_by_alias = {info.alias or name: name for name, info in CaptureOptions.model_fields.items()}
    for key, value in supplied.items():
        merged[field_by_alias.get(key, key)] = value

    try:
        return CaptureOptions.model_validate(merged)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'options'}: {err['msg']}" for err in e.errors()
        )
        get_error_logger().log_error(
            component=ErrorComponent.CONFIG,
            stage=ErrorStage.RESOLVE_OPTIONS,
            error_type=ErrorType.CONFIG_ERROR,
            domain="local",
            message=problems,
            metadata={"keys": sorted(map(str, supplied))},
        )
        raise ConfigurationError(f"Invalid capture options: {problems}") from e
