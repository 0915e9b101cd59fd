from __future__ import annotations

import json
from typing import Any, Callable, Sequence

import typer
from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import OutputFormat
from .models import Correspondent, DocumentType, Envelope, ResolvedDocument, Tag

Row = Callable[[Any], list[str]]


def _opt(v: Any, default: str = "") -> str:
    return default if v is None else str(v)


_COLUMNS: dict[type, tuple[list[str], Row]] = {
    ResolvedDocument: (
        ["ID", "Title", "Correspondent", "Type", "Created", "Tags"],
        lambda d: [
            str(d.id),
            d.title,
            _opt(d.correspondent_name),
            _opt(d.document_type_name),
            _opt(d.created),
            ", ".join(d.tag_names),
        ],
    ),
    Tag: (
        ["ID", "Name", "Color", "Documents"],
        lambda t: [str(t.id), t.name, _opt(t.color), _opt(t.document_count)],
    ),
    Correspondent: (
        ["ID", "Name", "Documents"],
        lambda c: [str(c.id), c.name, _opt(c.document_count)],
    ),
    DocumentType: (
        ["ID", "Name", "Documents"],
        lambda d: [str(d.id), d.name, _opt(d.document_count)],
    ),
}


def _table(headers: Sequence[str]) -> Table:
    table = Table(box=box.MARKDOWN, show_edge=True, pad_edge=True)
    for h in headers:
        table.add_column(h, overflow="fold")
    return table


def list_table(items: Sequence[BaseModel], kind: type) -> Table:
    headers, row = _COLUMNS[kind]
    table = _table(headers)
    for item in items:
        table.add_row(*(Text(cell) for cell in row(item)))
    return table


def detail_fields(doc: ResolvedDocument) -> list[tuple[str, str]]:
    fields = [
        ("ID", str(doc.id)),
        ("Title", doc.title),
        ("Created", _opt(doc.created, "N/A")),
        ("Added", _opt(doc.added, "N/A")),
        ("Correspondent", doc.correspondent_name or "N/A"),
        ("Document Type", doc.document_type_name or "N/A"),
        ("Tags", ", ".join(doc.tag_names)),
    ]
    if doc.original_file_name:
        fields.append(("Original File", doc.original_file_name))
    if doc.archive_serial_number is not None:
        fields.append(("ASN", str(doc.archive_serial_number)))
    return fields


def detail_table(doc: ResolvedDocument) -> Table:
    table = _table(["Field", "Value"])
    for name, value in detail_fields(doc):
        table.add_row(Text(name), Text(value))
    return table


def to_json(data: Any) -> str:
    if isinstance(data, BaseModel):
        return data.model_dump_json(indent=2)
    if isinstance(data, (list, tuple)):
        return json.dumps(
            [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data],
            indent=2,
        )
    return json.dumps(data, indent=2)


class Renderer:
    """Prints results as tables or JSON on stdout; hints and notices go to stderr."""

    def __init__(self, fmt: OutputFormat, out: Console | None = None, err: Console | None = None):
        self.fmt = fmt
        self.out = out or Console(soft_wrap=True)
        self.err = err or Console(stderr=True)

    def _json(self, data: Any) -> None:
        self.out.print(to_json(data), markup=False, highlight=False, emoji=False, soft_wrap=True)

    def envelope(self, envelope: Envelope[Any], kind: type) -> None:
        if self.fmt is OutputFormat.JSON:
            self._json(envelope)
        else:
            self.out.print(list_table(envelope.results, kind))
        if envelope.has_more:
            self.err.print(
                f"Showing {envelope.showing} of {envelope.total_count} results "
                "(use -n to change limit or --all to fetch all)",
                markup=False,
                highlight=False,
                emoji=False,
            )

    def items(self, items: Sequence[BaseModel], kind: type) -> None:
        if self.fmt is OutputFormat.JSON:
            self._json(list(items))
        else:
            self.out.print(list_table(items, kind))

    def documents(self, docs: Sequence[ResolvedDocument], single: bool = False) -> None:
        """Detail tables, or JSON: one object when a single ID was asked for, else an array."""
        if self.fmt is OutputFormat.JSON:
            self._json(docs[0] if single and docs else list(docs))
            return
        for i, doc in enumerate(docs):
            if i:
                self.out.print()
            self.out.print(detail_table(doc))

    def text(self, value: str) -> None:
        # raw document text, written unchanged
        typer.echo(value, file=self.out.file)

    def notice(self, message: str) -> None:
        self.err.print(message, markup=False, highlight=False, emoji=False, soft_wrap=True)
