from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import PngxError

T = TypeVar("T")


class DocumentVersion(str, Enum):
    ORIGINAL = "original"
    ARCHIVED = "archived"


class Resource(BaseModel):
    """Server record identified by an integer ID. Immutable once decoded."""

    model_config = ConfigDict(frozen=True)

    id: int


class Document(Resource):
    title: str = ""
    content: Optional[str] = None
    correspondent: Optional[int] = None
    document_type: Optional[int] = None
    tags: list[int] = Field(default_factory=list)
    created: Optional[date] = None
    added: Optional[datetime] = None
    archive_serial_number: Optional[int] = None
    original_file_name: Optional[str] = None
    mime_type: Optional[str] = None

    @field_validator("created", mode="before")
    @classmethod
    def _date_part(cls, v: Any) -> Any:
        # older servers send a full timestamp here
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v


class Tag(Resource):
    name: str
    slug: str = ""
    color: Optional[str] = None
    is_inbox_tag: Optional[bool] = None
    document_count: Optional[int] = None


class Correspondent(Resource):
    name: str
    slug: str = ""
    document_count: Optional[int] = None


class DocumentType(Resource):
    name: str
    slug: str = ""
    document_count: Optional[int] = None


class UiUser(BaseModel):
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def display_name(self) -> str:
        full = f"{(self.first_name or '').strip()} {(self.last_name or '').strip()}".strip()
        return full or self.username


class ServerStatus(BaseModel):
    """Server version (and the calling user when the server reports one)."""

    version: str
    user: Optional[UiUser] = None


class Page(BaseModel, Generic[T]):
    """One response of a cursor-paginated list endpoint."""

    count: int = Field(..., ge=0)
    next: Optional[str] = None
    previous: Optional[str] = None
    results: list[T] = Field(default_factory=list)

    @model_validator(mode="after")
    def _count_covers_results(self) -> "Page[T]":
        if len(self.results) > self.count:
            raise ValueError(f"page holds {len(self.results)} results but count is {self.count}")
        return self

    @property
    def items(self) -> list[T]:
        return self.results

    @property
    def total_count(self) -> int:
        return self.count

    @property
    def next_cursor(self) -> Optional[str]:
        return self.next or None


class Envelope(BaseModel, Generic[T]):
    """Paginated result set plus the count metadata scripting consumers rely on."""

    results: list[T] = Field(default_factory=list)
    total_count: int = Field(..., ge=0)
    showing: int = Field(..., ge=0)
    has_more: bool

    @model_validator(mode="after")
    def _showing_matches(self) -> "Envelope[T]":
        if self.showing != len(self.results):
            raise ValueError(f"showing={self.showing} but {len(self.results)} results")
        return self

    @classmethod
    def build(cls, results: list[T], total_count: int, exhausted: bool) -> "Envelope[T]":
        showing = len(results)
        return cls(
            results=results,
            total_count=total_count,
            showing=showing,
            has_more=False if exhausted else showing < total_count,
        )


class ResolvedDocument(BaseModel):
    """A document with its tag/correspondent/type IDs resolved to names."""

    id: int
    title: str
    correspondent: Optional[int] = None
    correspondent_name: Optional[str] = None
    document_type: Optional[int] = None
    document_type_name: Optional[str] = None
    tags: list[int] = Field(default_factory=list)
    tag_names: list[str] = Field(default_factory=list)
    created: Optional[date] = None
    added: Optional[datetime] = None
    archive_serial_number: Optional[int] = None
    original_file_name: Optional[str] = None


@dataclass(frozen=True)
class BatchItem(Generic[T]):
    id: int
    value: Optional[T] = None
    error: Optional[PngxError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult(Generic[T]):
    items: list[BatchItem[T]] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return all(i.ok for i in self.items)

    @property
    def succeeded(self) -> list[BatchItem[T]]:
        return [i for i in self.items if i.ok]

    @property
    def failed(self) -> list[BatchItem[T]]:
        return [i for i in self.items if not i.ok]

    def exit_code(self) -> int:
        """Exit code of the most severe failure, 0 when every item succeeded."""
        codes = [i.error.exit_code for i in self.failed if i.error is not None]
        return max(codes, default=0)


@dataclass(frozen=True)
class DownloadedFile:
    document_id: int
    path: Path
    bytes_written: int
