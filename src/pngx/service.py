from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import Iterator, Optional, Sequence

import httpx

from .batch import run_batch
from .client import PaperlessClient
from .config import RuntimeOptions, Session
from .exporter import FilesystemExporter
from .models import (
    BatchResult,
    Correspondent,
    Document,
    DocumentType,
    DocumentVersion,
    DownloadedFile,
    Envelope,
    ResolvedDocument,
    ServerStatus,
    Tag,
)
from .pagination import collect, paginate

logger = logging.getLogger(__name__)


@contextmanager
def connect(session: Session, options: RuntimeOptions) -> Iterator[PaperlessClient]:
    """HTTP client bound to ``session`` for the duration of one command."""
    with httpx.Client(timeout=httpx.Timeout(options.timeout)) as http:
        yield PaperlessClient(http=http, session=session, page_size=options.page_size)


class NameResolver:
    """Maps tag, correspondent and document type IDs to their names."""

    def __init__(
        self,
        tags: dict[int, str],
        correspondents: dict[int, str],
        document_types: dict[int, str],
    ):
        self.tags = tags
        self.correspondents = correspondents
        self.document_types = document_types

    @classmethod
    def fetch(cls, client: PaperlessClient) -> "NameResolver":
        return cls(
            tags={t.id: t.name for t in collect(client.tags_page)},
            correspondents={c.id: c.name for c in collect(client.correspondents_page)},
            document_types={d.id: d.name for d in collect(client.document_types_page)},
        )

    def tag_name(self, tag_id: int) -> str:
        return self.tags.get(tag_id, f"#{tag_id}")

    def resolve(self, doc: Document) -> ResolvedDocument:
        return ResolvedDocument(
            id=doc.id,
            title=doc.title,
            correspondent=doc.correspondent,
            correspondent_name=self.correspondents.get(doc.correspondent) if doc.correspondent else None,
            document_type=doc.document_type,
            document_type_name=self.document_types.get(doc.document_type) if doc.document_type else None,
            tags=list(doc.tags),
            tag_names=[self.tag_name(t) for t in doc.tags],
            created=doc.created,
            added=doc.added,
            archive_serial_number=doc.archive_serial_number,
            original_file_name=doc.original_file_name,
        )


class DocumentService:
    """Command-level orchestration: pagination, batches and name resolution."""

    def __init__(self, client: PaperlessClient):
        self.client = client
        self._names: Optional[NameResolver] = None

    def names(self) -> NameResolver:
        if self._names is None:
            self._names = NameResolver.fetch(self.client)
        return self._names

    def _resolved(self, envelope: Envelope[Document]) -> Envelope[ResolvedDocument]:
        if not envelope.results:
            return Envelope.build([], total_count=envelope.total_count, exhausted=True)
        names = self.names()
        return Envelope(
            results=[names.resolve(d) for d in envelope.results],
            total_count=envelope.total_count,
            showing=envelope.showing,
            has_more=envelope.has_more,
        )

    # --- paginated ---

    def list_documents(self, limit: Optional[int]) -> Envelope[ResolvedDocument]:
        return self._resolved(paginate(self.client.documents_page, limit))

    def search(self, query: str, limit: Optional[int]) -> Envelope[ResolvedDocument]:
        return self._resolved(paginate(partial(self.client.search_page, query), limit))

    def inbox(self, limit: Optional[int]) -> Envelope[ResolvedDocument]:
        return self._resolved(paginate(self.client.inbox_page, limit))

    # --- metadata ---

    def tags(self) -> list[Tag]:
        return collect(self.client.tags_page)

    def correspondents(self) -> list[Correspondent]:
        return collect(self.client.correspondents_page)

    def document_types(self) -> list[DocumentType]:
        return collect(self.client.document_types_page)

    def server_status(self) -> ServerStatus:
        return self.client.server_status()

    # --- batches ---

    def get_documents(self, ids: Sequence[int]) -> BatchResult[ResolvedDocument]:
        names = self.names()
        return run_batch(ids, lambda i: names.resolve(self.client.document(i)))

    def contents(self, ids: Sequence[int]) -> BatchResult[str]:
        return run_batch(ids, self.client.document_content)

    def open_urls(self, ids: Sequence[int]) -> BatchResult[str]:
        def op(document_id: int) -> str:
            self.client.document(document_id)
            return self.client.details_url(document_id)

        return run_batch(ids, op)

    def download(
        self,
        ids: Sequence[int],
        version: DocumentVersion = DocumentVersion.ARCHIVED,
        out_dir: Path = Path("."),
        explicit_path: Optional[Path] = None,
    ) -> BatchResult[DownloadedFile]:
        exporter = FilesystemExporter(out_dir)

        def op(document_id: int) -> DownloadedFile:
            doc = self.client.document(document_id)
            path = exporter.target_for(doc, version, explicit_path)
            f = exporter.open_binary_for_write(path)
            try:
                with f:
                    written = self.client.download_document(document_id, version, f)
            except Exception:
                path.unlink(missing_ok=True)
                raise
            logger.info("downloaded %d bytes to %s", written, path)
            return DownloadedFile(document_id=document_id, path=path, bytes_written=written)

        return run_batch(ids, op, explicit_path=explicit_path)
