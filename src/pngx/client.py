from __future__ import annotations

import logging
from typing import Any, BinaryIO, Callable, Optional, TypeVar
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ValidationError

from .config import DEFAULT_PAGE_SIZE, Session
from .errors import ApiError, IoFailure, NotFound, ServerError, Unauthorized, Unreachable
from .models import Correspondent, Document, DocumentType, DocumentVersion, Page, ServerStatus, Tag

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DOCUMENT_LIST_FIELDS = (
    "id,title,correspondent,document_type,tags,created,added,archive_serial_number,original_file_name"
)

API_VERSION_ACCEPT = "application/json; version=9"


class _ShapeMismatch(ValueError):
    pass


def _flat(payload: Any, wrap_key: Optional[str]) -> Any:
    return payload


def _wrapped(payload: Any, wrap_key: Optional[str]) -> Any:
    if not wrap_key or not isinstance(payload, dict) or not isinstance(payload.get(wrap_key), dict):
        raise _ShapeMismatch(f"no '{wrap_key}' object in response")
    # nested fields win; siblings of the wrapper (e.g. "user") are kept
    siblings = {k: v for k, v in payload.items() if k != wrap_key}
    return {**siblings, **payload[wrap_key]}


# Tried in order: the flat shape first, then the shape nested under a known key.
_DECODERS: tuple[Callable[[Any, Optional[str]], Any], ...] = (_flat, _wrapped)


def decode(model: type[M], payload: Any, wrap_key: Optional[str] = None) -> M:
    """Validate ``payload`` as ``model`` through the decoder chain."""
    first_error: Optional[Exception] = None
    for unwrap in _DECODERS:
        try:
            return model.model_validate(unwrap(payload, wrap_key))
        except (ValidationError, _ShapeMismatch) as e:
            if first_error is None:
                first_error = e
    raise ServerError(f"unexpected response for {model.__name__}: {first_error}")


def _request_error(url: str, e: httpx.RequestError) -> ApiError:
    if isinstance(e, httpx.TimeoutException):
        return Unreachable(f"request timed out: {url}")
    if isinstance(e, (httpx.TooManyRedirects, httpx.DecodingError)):
        return ServerError(f"bad response from {url}: {e}")
    return Unreachable(f"cannot reach {url}: {e}")


class PaperlessClient:
    """Thin Paperless-ngx REST client.

    Every call is a single request; failures are mapped to the typed errors in
    :mod:`pngx.errors` and never retried here.
    """

    def __init__(self, http: httpx.Client, session: Session, page_size: int = DEFAULT_PAGE_SIZE):
        self._http = http
        self._session = session
        self._page_size = page_size

    @property
    def session(self) -> Session:
        return self._session

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Token {self._session.token.get_secret_value()}",
            "Accept": API_VERSION_ACCEPT,
        }

    def _url(self, path: str) -> str:
        return f"{self._session.root}/{path.lstrip('/')}"

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return
        if resp.status_code in (401, 403):
            raise Unauthorized()
        if resp.status_code == 404:
            raise NotFound(f"not found: {resp.request.url}")
        msg = f"{resp.request.method} {resp.request.url} -> {resp.status_code}: {resp.text[:500]}"
        raise ServerError(msg, status=resp.status_code)

    def _get(self, url: str, params: Optional[dict[str, str]] = None) -> httpx.Response:
        logger.debug("GET %s params=%s", url, params)
        try:
            resp = self._http.get(url, headers=self._headers(), params=params, follow_redirects=True)
        except httpx.RequestError as e:
            raise _request_error(url, e) from e
        self._raise_for_status(resp)
        return resp

    def _get_json(self, url: str, params: Optional[dict[str, str]] = None) -> Any:
        resp = self._get(url, params)
        try:
            return resp.json()
        except ValueError as e:
            raise ServerError(f"malformed JSON from {url}: {e}", status=resp.status_code) from e

    def _check_cursor(self, cursor: str) -> str:
        expected = self._session.base_url.scheme
        returned = urlsplit(cursor).scheme
        if returned != expected:
            raise ServerError(
                f'server returned pagination URL with scheme "{returned}" but client uses "{expected}"; '
                "configure your server to trust proxy headers (e.g. PAPERLESS_PROXY_SSL_HEADER)"
            )
        return cursor

    def _page(self, model: type[M], path: str, params: dict[str, str], cursor: Optional[str]) -> Page[M]:
        if cursor:
            payload = self._get_json(self._check_cursor(cursor))
        else:
            payload = self._get_json(self._url(path), {**params, "page_size": str(self._page_size)})
        return decode(Page[model], payload)

    # --- collections (one page per call; see pngx.pagination) ---

    def documents_page(self, cursor: Optional[str] = None) -> Page[Document]:
        return self._page(Document, "api/documents/", {"fields": DOCUMENT_LIST_FIELDS}, cursor)

    def search_page(self, query: str, cursor: Optional[str] = None) -> Page[Document]:
        return self._page(Document, "api/documents/", {"query": query}, cursor)

    def inbox_page(self, cursor: Optional[str] = None) -> Page[Document]:
        params = {"is_in_inbox": "true", "fields": DOCUMENT_LIST_FIELDS}
        return self._page(Document, "api/documents/", params, cursor)

    def tags_page(self, cursor: Optional[str] = None) -> Page[Tag]:
        return self._page(Tag, "api/tags/", {}, cursor)

    def correspondents_page(self, cursor: Optional[str] = None) -> Page[Correspondent]:
        return self._page(Correspondent, "api/correspondents/", {}, cursor)

    def document_types_page(self, cursor: Optional[str] = None) -> Page[DocumentType]:
        return self._page(DocumentType, "api/document_types/", {}, cursor)

    # --- single documents ---

    def document(self, document_id: int) -> Document:
        return decode(Document, self._get_json(self._url(f"api/documents/{document_id}/")))

    def document_content(self, document_id: int) -> str:
        return self.document(document_id).content or ""

    def download_url(self, document_id: int, version: DocumentVersion) -> str:
        """Location of the original upload or of the archived (preview) rendition."""
        if version is DocumentVersion.ORIGINAL:
            return self._url(f"api/documents/{document_id}/download/")
        return self._url(f"api/documents/{document_id}/preview/")

    def details_url(self, document_id: int) -> str:
        """Web UI page of a document."""
        return self._url(f"documents/{document_id}/details")

    def download_document(self, document_id: int, version: DocumentVersion, dest: BinaryIO) -> int:
        url = self.download_url(document_id, version)
        logger.debug("GET %s (stream)", url)
        written = 0
        try:
            with self._http.stream("GET", url, headers=self._headers(), follow_redirects=True) as resp:
                if resp.status_code >= 400:
                    resp.read()
                self._raise_for_status(resp)
                for chunk in resp.iter_bytes():
                    if chunk:
                        try:
                            dest.write(chunk)
                        except OSError as e:
                            raise IoFailure(f"failed to write document {document_id}: {e}") from e
                        written += len(chunk)
        except httpx.RequestError as e:
            raise _request_error(url, e) from e
        return written

    # --- server ---

    def server_status(self) -> ServerStatus:
        return decode(ServerStatus, self._get_json(self._url("api/ui_settings/")), wrap_key="settings")

    def server_version(self) -> str:
        return self.server_status().version
