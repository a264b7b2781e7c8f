"""Pydantic models for Project Online records."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MODE_ERROR = "Mode must be 'PwaProjectToDevOps' or 'DevOpsOnly' if provided."


class SyncMode(str, Enum):
    """Where the project data of a sync request comes from."""

    SOURCE_TO_TARGET = "PwaProjectToDevOps"
    TARGET_ONLY = "DevOpsOnly"


class PwaTask(BaseModel):
    """A task of a Project Online project."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    uid: str = Field(default="", validation_alias=AliasChoices("taskUid", "uid", "id"))
    name: str = Field(default="", validation_alias=AliasChoices("taskName", "name"))
    start_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("startDate", "start", "start_date")
    )
    finish_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("finishDate", "finish", "finish_date")
    )

    @field_validator("name", mode="before")
    @classmethod
    def blank_none_name(cls, value: Any) -> Any:
        return "" if value is None else value


class PwaProject(BaseModel):
    """A Project Online project together with its tasks.

    Name and dates are not checked here; ``sync.mapper.validate_project``
    collects those problems so they can be reported together.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    uid: str = Field(default="", validation_alias=AliasChoices("projectUid", "uid", "id"))
    name: str = Field(default="", validation_alias=AliasChoices("projectName", "name"))
    start_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("startDate", "start", "start_date")
    )
    finish_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("finishDate", "finish", "finish_date")
    )
    tasks: list[PwaTask] = Field(default_factory=list)
    mode: SyncMode = SyncMode.SOURCE_TO_TARGET

    @field_validator("name", mode="before")
    @classmethod
    def blank_none_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("tasks", mode="before")
    @classmethod
    def empty_none_tasks(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return SyncMode.SOURCE_TO_TARGET
        if isinstance(value, SyncMode):
            return value
        try:
            return SyncMode(str(value).strip())
        except ValueError:
            raise ValueError(MODE_ERROR) from None


class PwaProjectSummary(BaseModel):
    """A project as listed by Project Online, without tasks."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    uid: str
    name: str
    start_date: datetime | None = None
    finish_date: datetime | None = None


def _unset_date(value: Any) -> Any:
    """Project Server reports unset dates as 0001-01-01."""
    if isinstance(value, str) and value.startswith("0001-01-01"):
        return None
    return value


class ODataProject(BaseModel):
    """Project entity from the ProjectServer REST API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    start_date: datetime | None = Field(default=None, alias="StartDate")
    finish_date: datetime | None = Field(default=None, alias="FinishDate")

    @field_validator("start_date", "finish_date", mode="before")
    @classmethod
    def unset_dates(cls, value: Any) -> Any:
        return _unset_date(value)

    def to_summary(self) -> PwaProjectSummary:
        return PwaProjectSummary(
            uid=self.id,
            name=self.name,
            start_date=self.start_date,
            finish_date=self.finish_date,
        )


class ODataTask(BaseModel):
    """Task entity from the ProjectServer REST API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="Id")
    name: str | None = Field(default=None, alias="Name")
    start: datetime | None = Field(default=None, alias="Start")
    finish: datetime | None = Field(default=None, alias="Finish")

    @field_validator("start", "finish", mode="before")
    @classmethod
    def unset_dates(cls, value: Any) -> Any:
        return _unset_date(value)

    def to_task(self) -> PwaTask:
        return PwaTask(
            uid=self.id,
            name=self.name or "",
            start_date=self.start,
            finish_date=self.finish,
        )
