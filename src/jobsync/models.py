from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
import math
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


class JobType(str, Enum):
    GENERATION = "generation"
    UPSCALE = "upscale"
    REFINE = "refine"
    MULTI_ANGLE = "multi-angle"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

# The backend serializes its enums either by name or by ordinal.
_STATUS_NAMES: dict[str, JobStatus] = {
    "queued": JobStatus.QUEUED,
    "running": JobStatus.RUNNING,
    "completed": JobStatus.COMPLETED,
    "succeeded": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
    "cancelled": JobStatus.FAILED,
}
_STATUS_CODES: dict[int, JobStatus] = {
    0: JobStatus.QUEUED,
    1: JobStatus.RUNNING,
    2: JobStatus.COMPLETED,
    3: JobStatus.FAILED,
    4: JobStatus.FAILED,
}
_TYPE_NAMES: dict[str, JobType] = {
    "generation": JobType.GENERATION,
    "generate": JobType.GENERATION,
    "upscale": JobType.UPSCALE,
    "refine": JobType.REFINE,
    "multi-angle": JobType.MULTI_ANGLE,
    "multi_angle": JobType.MULTI_ANGLE,
    "multiangle": JobType.MULTI_ANGLE,
}
_TYPE_CODES: dict[int, JobType] = {
    1: JobType.GENERATION,
    2: JobType.REFINE,
    3: JobType.MULTI_ANGLE,
    4: JobType.UPSCALE,
}


def _lookup(value: Any, *, names: dict[str, Any], codes: dict[int, Any], label: str) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        raise ValueError(f"invalid job {label}: {value!r}")
    if isinstance(value, int):
        if value in codes:
            return codes[value]
        raise ValueError(f"unknown job {label} code: {value}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in names:
            return names[normalized]
        if normalized.isdigit() and int(normalized) in codes:
            return codes[int(normalized)]
    raise ValueError(f"unknown job {label}: {value!r}")


class Job(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "jobId"))
    type: JobType
    status: JobStatus
    progress: int = 0
    message: str | None = Field(
        default=None,
        validation_alias=AliasChoices("message", "progressMessage", "errorMessage"),
    )
    result: Any = Field(default=None, validation_alias=AliasChoices("result", "resultId"))
    owner_id: str = Field(
        validation_alias=AliasChoices("owner_id", "ownerId", "sessionId", "projectId"),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("created_at", "createdAt"),
    )

    @model_validator(mode="before")
    @classmethod
    def _camel_case_keys(cls, data: Any) -> Any:
        # System.Text.Json defaults to PascalCase property names.
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        for key, value in data.items():
            if isinstance(key, str) and key[:1].isupper():
                normalized.setdefault(key[:1].lower() + key[1:], value)
        if normalized.get("message") is None:
            for key in ("progressMessage", "errorMessage"):
                if normalized.get(key) is not None:
                    normalized["message"] = normalized[key]
                    break
        return normalized

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> str:
        if isinstance(value, bool) or value is None:
            raise ValueError("identifier must be a string or integer")
        normalized = str(value).strip()
        if not normalized:
            raise ValueError("identifier must not be empty")
        return normalized

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> JobType:
        return _lookup(value, names=_TYPE_NAMES, codes=_TYPE_CODES, label="type")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> JobStatus:
        return _lookup(value, names=_STATUS_NAMES, codes=_STATUS_CODES, label="status")

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> int:
        if value is None:
            return 0
        if isinstance(value, bool):
            raise ValueError("progress must be a number")
        if isinstance(value, str):
            value = float(value)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError("progress must be a finite number")
        return max(0, min(100, int(round(value))))

    @field_validator("result")
    @classmethod
    def _result_only_when_completed(cls, value: Any, info: ValidationInfo) -> Any:
        if info.data.get("status") is not JobStatus.COMPLETED:
            return None
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
