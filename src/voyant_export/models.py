# ABOUTME: Data models for bibliographic records and export outcomes
# ABOUTME: Pydantic models validate catalog data; dataclasses track one export job
"""Data models for voyant-export"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Creator(BaseModel):
    """A named contributor to a record."""

    model_config = ConfigDict(frozen=True)

    given_name: str | None = None
    family_name: str
    role: str = ""

    @field_validator("family_name")
    @classmethod
    def validate_family_name(cls, v: str) -> str:
        """Family name is the one part of a name that is always required."""
        if not v or not v.strip():
            raise ValueError("Creator family name must not be empty")
        return v

    @field_validator("given_name", mode="before")
    @classmethod
    def blank_given_name_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("role", mode="before")
    @classmethod
    def none_role_is_empty(cls, v):
        return "" if v is None else v

    @property
    def full_name(self) -> str:
        if self.given_name:
            return f"{self.given_name} {self.family_name}"
        return self.family_name


class Record(BaseModel):
    """One bibliographic entry handed over by a source catalog."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable identifier, used as the payload directory name")
    title: str = ""
    creators: list[Creator] = Field(default_factory=list)
    date: str | None = None
    abstract_text: str | None = None
    item_type: str | None = None
    publisher: str | None = None
    language: str | None = None
    rights: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("title", mode="before")
    @classmethod
    def none_title_is_empty(cls, v):
        return "" if v is None else v

    @field_validator(
        "date", "abstract_text", "item_type", "publisher", "language", "rights", mode="before"
    )
    @classmethod
    def blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("tags", "creators", mode="before")
    @classmethod
    def none_is_empty_list(cls, v):
        return [] if v is None else v


class ItemStatus(str, Enum):
    """Terminal states of one record in an export."""

    SAVED = "saved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Result of processing one record."""

    record_id: str
    status: ItemStatus
    reason: str | None = None


@dataclass
class ExportJob:
    """State of a single export invocation. Never persisted."""

    output_path: Path
    temp_root: Path
    records: list = field(default_factory=list)
    success_count: int = 0
    skip_count: int = 0
    failure_count: int = 0

    def tally(self, outcome: ItemOutcome) -> None:
        if outcome.status is ItemStatus.SAVED:
            self.success_count += 1
        elif outcome.status is ItemStatus.SKIPPED:
            self.skip_count += 1
        else:
            self.failure_count += 1


@dataclass
class ExportReport:
    """What an export run did, returned to the caller."""

    collection_name: str | None = None
    output_path: Path | None = None
    total: int = 0
    success_count: int = 0
    skip_count: int = 0
    failure_count: int = 0
    outcomes: list[ItemOutcome] = field(default_factory=list)
    cancelled: bool = False
    empty: bool = False

    @property
    def archived(self) -> bool:
        return self.output_path is not None and not (self.cancelled or self.empty)
