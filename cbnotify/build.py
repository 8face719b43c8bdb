"""Cloud Build event models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class BuildStatus(str, Enum):
    STATUS_UNKNOWN = "STATUS_UNKNOWN"
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    WORKING = "WORKING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


# Numeric values from the cloudbuild.v1 Build.Status proto enum
_STATUS_NUMBERS: dict[int, BuildStatus] = {
    0: BuildStatus.STATUS_UNKNOWN,
    10: BuildStatus.PENDING,
    1: BuildStatus.QUEUED,
    2: BuildStatus.WORKING,
    3: BuildStatus.SUCCESS,
    4: BuildStatus.FAILURE,
    5: BuildStatus.INTERNAL_ERROR,
    6: BuildStatus.TIMEOUT,
    7: BuildStatus.CANCELLED,
    9: BuildStatus.EXPIRED,
}

FAILED_STATUSES = frozenset(
    {BuildStatus.FAILURE, BuildStatus.INTERNAL_ERROR, BuildStatus.TIMEOUT}
)

SERVICE_NAME_KEY = "_SERVICE_NAME"
REPO_NAME_KEY = "REPO_NAME"
TRIGGER_NAME_KEY = "TRIGGER_NAME"
PROJECT_ID_KEY = "PROJECT_ID"


class _CloudBuildModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class RepoSource(_CloudBuildModel):
    project_id: str = ""
    repo_name: str = ""
    branch_name: str = ""
    tag_name: str = ""
    commit_sha: str = ""


class Source(_CloudBuildModel):
    repo_source: RepoSource | None = None


class Build(_CloudBuildModel):
    """The subset of a Cloud Build resource the notifier reads."""

    id: str = ""
    project_id: str = ""
    status: BuildStatus = BuildStatus.STATUS_UNKNOWN
    log_url: str = ""
    build_trigger_id: str = ""
    substitutions: dict[str, str] = Field(default_factory=dict)
    source: Source | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, BuildStatus):
            return value
        if isinstance(value, int):
            return _STATUS_NUMBERS.get(value, BuildStatus.STATUS_UNKNOWN)
        if isinstance(value, str) and value in BuildStatus.__members__:
            return BuildStatus[value]
        return BuildStatus.STATUS_UNKNOWN

    @field_validator("substitutions", mode="before")
    @classmethod
    def _stringify_substitutions(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    def substitution(self, key: str) -> str:
        """Return a substitution value, or "" when it is absent."""
        return self.substitutions.get(key, "")

    @property
    def service_name(self) -> str:
        return self.substitution(SERVICE_NAME_KEY)

    @property
    def repo_name(self) -> str:
        name = self.substitution(REPO_NAME_KEY)
        if not name and self.source is not None and self.source.repo_source is not None:
            name = self.source.repo_source.repo_name
        return name
