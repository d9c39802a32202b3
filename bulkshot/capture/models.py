"""
Result records produced by a capture run.

Both models are frozen: a CaptureResult is never changed after the
pipeline creates it, and a RunSummary is built exactly once per run.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CaptureStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


CANCELED_MESSAGE = "canceled"
BATCH_ERROR_PREFIX = "Batch-level error"


class CaptureResult(BaseModel):
    """
    Outcome of one URL.

    Successful records carry `file`, failed records carry `error`.
    """
    url: str = Field(..., min_length=1, description="URL as given to the run")
    status: CaptureStatus = Field(..., description="success or failed")
    file: Optional[str] = Field(None, description="Written file (success only)")
    error: Optional[str] = Field(None, description="Failure message (failed only)")

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    @model_validator(mode="after")
    def check_outcome(self) -> "CaptureResult":
        if self.status == CaptureStatus.SUCCESS and not self.file:
            raise ValueError("a successful capture must name its file")
        if self.status == CaptureStatus.FAILED and not self.error:
            raise ValueError("a failed capture must carry an error message")
        return self

    @classmethod
    def succeeded(cls, url: str, file: Union[str, Path]) -> "CaptureResult":
        return cls(url=url, status=CaptureStatus.SUCCESS, file=str(file))

    @classmethod
    def failed(cls, url: str, error: str) -> "CaptureResult":
        return cls(url=url, status=CaptureStatus.FAILED, error=error or "Unknown error")

    @property
    def ok(self) -> bool:
        return self.status == CaptureStatus.SUCCESS

    def to_log_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class RunSummary(BaseModel):
    """
    Aggregate outcome of one run, persisted as _log_<run_id>.json.

    Counts are always derived from `results`; use from_results().
    """
    run_id: str = Field(..., min_length=1, description="Run identifier")
    success: int = Field(0, ge=0, description="Number of successful captures")
    failed: int = Field(0, ge=0, description="Number of failed captures")
    canceled: bool = Field(False, description="Whether the run was canceled")
    results: Tuple[CaptureResult, ...] = Field(default_factory=tuple, description="One record per URL, input order")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_counts(self) -> "RunSummary":
        if self.success + self.failed != len(self.results):
            raise ValueError(
                f"success ({self.success}) + failed ({self.failed}) "
                f"must equal the number of results ({len(self.results)})"
            )
        return self

    @classmethod
    def from_results(
        cls,
        run_id: str,
        results: Sequence[CaptureResult],
        canceled: bool = False,
    ) -> "RunSummary":
        """
        Build a summary, counting successes and failures from the records.

        Example:
            >>> s = RunSummary.from_results("2024-01-01_00-00-00", [
            ...     CaptureResult.succeeded("https://a.com", "out/a.png"),
            ...     CaptureResult.failed("https://b.com", "timeout"),
            ... ])
            >>> (s.success, s.failed)
            (1, 1)
        """
        results = tuple(results)
        success = sum(1 for r in results if r.ok)
        return cls(
            run_id=run_id,
            success=success,
            failed=len(results) - success,
            canceled=canceled,
            results=results,
        )

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failures(self) -> List[CaptureResult]:
        return [r for r in self.results if not r.ok]

    def to_log_dict(self) -> Dict[str, Any]:
        """JSON shape of the run log artifact."""
        data: Dict[str, Any] = {
            "run_id": self.run_id,
            "success": self.success,
            "failed": self.failed,
            "results": [r.to_log_dict() for r in self.results],
        }
        if self.canceled:
            data["canceled"] = True
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_log_dict(), ensure_ascii=False, indent=2)
