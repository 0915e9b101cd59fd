from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import Any, Iterator, Optional

import typer
from pydantic import ValidationError

from .auth import CredentialStore
from .batch import check_explicit_path
from .config import (
    OutputFormat,
    RuntimeOptions,
    Session,
    Settings,
    config_file_path,
    resolve_options,
    resolve_session,
)
from .errors import MissingCredentials, PngxError
from .models import BatchResult, Correspondent, DocumentType, DocumentVersion, ResolvedDocument, Tag
from .output import Renderer
from .pagination import effective_limit
from .service import DocumentService, connect

logger = logging.getLogger(__name__)

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="CLI for Paperless-ngx. Default output is a table; use -o json for structured output.",
)
auth_app = typer.Typer(no_args_is_help=True, help="Manage authentication")
documents_app = typer.Typer(no_args_is_help=True, help="List, view, and download documents")
app.add_typer(auth_app, name="auth")
app.add_typer(documents_app, name="documents")
app.add_typer(documents_app, name="doc", hidden=True)


@dataclass
class State:
    url: Optional[str] = None
    token: Optional[str] = None
    output: Optional[OutputFormat] = None


def _version() -> str:
    try:
        return package_version("pngx")
    except PackageNotFoundError:
        return "unknown"


def _init_logging(verbose: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("pngx").setLevel(level)
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose >= 2 else logging.WARNING)


@contextmanager
def _errors() -> Iterator[None]:
    try:
        yield
    except PngxError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=e.exit_code)


def _settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)


def _resolve(state: State) -> tuple[Session, RuntimeOptions]:
    settings = Settings()
    stored = CredentialStore(config_file_path(settings)).read()
    flags: dict[str, Any] = {"url": state.url, "token": state.token, "output_format": state.output}
    env = settings.layer()
    options = resolve_options(flags, env, stored)
    return resolve_session(flags, env, stored), options


def _load(state: State) -> tuple[Session, RuntimeOptions]:
    try:
        return _resolve(state)
    except ValidationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)


@contextmanager
def _service(ctx: typer.Context) -> Iterator[tuple[DocumentService, Renderer]]:
    with _errors():
        session, options = _load(ctx.obj)
        with connect(session, options) as client:
            yield DocumentService(client), Renderer(options.output_format)


def _finish(result: BatchResult[Any]) -> None:
    for item in result.failed:
        typer.echo(f"Document {item.id}: {item.error}", err=True)
    if not result.all_ok:
        raise typer.Exit(code=result.exit_code())


LIMIT_OPTION = typer.Option(25, "--limit", "-n", min=0, help="Maximum number of results (0 for unlimited)")
ALL_OPTION = typer.Option(False, "--all", "-a", help="Fetch all results")


@app.callback()
def main_callback(
        ctx: typer.Context,
        url: Optional[str] = typer.Option(None, "--url", help="Paperless-ngx server URL"),
        token: Optional[str] = typer.Option(None, "--token", help="API authentication token"),
        output: Optional[OutputFormat] = typer.Option(None, "--output", "-o", help="Output format"),
        verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
) -> None:
    _init_logging(verbose)
    ctx.obj = State(url=url, token=token, output=output)


# --- auth ---


@auth_app.command("login")
def auth_login(
        url: Optional[str] = typer.Option(None, help="Server URL (skip interactive prompt)"),
        token: Optional[str] = typer.Option(None, help="API token (skip interactive prompt)"),
) -> None:
    """Save server URL and API token."""
    if (url is None) != (token is None):
        typer.echo(
            "Both --url and --token are required for non-interactive login. "
            "Either provide both flags or omit both for interactive mode.",
            err=True,
        )
        raise typer.Exit(code=2)
    if url is None:
        if not sys.stdin.isatty():
            typer.echo(
                "Cannot run interactive login without a terminal. "
                "Use: pngx auth login --url <URL> --token <TOKEN>",
                err=True,
            )
            raise typer.Exit(code=2)
        url = typer.prompt("Paperless-ngx URL")
        token = typer.prompt("API Token", hide_input=True)

    url, token = url.strip(), (token or "").strip()
    if not url or not token:
        typer.echo("URL and token must not be empty", err=True)
        raise typer.Exit(code=2)

    with _errors():
        path = CredentialStore(config_file_path(_settings())).set(url, token)
    typer.echo(f"Credentials saved to {path}")


@auth_app.command("logout")
def auth_logout() -> None:
    """Remove saved credentials."""
    store = CredentialStore(config_file_path(_settings()))
    with _errors():
        removed = store.clear()
    if removed:
        typer.echo(f"Logged out. Config removed from {store.path}")
    else:
        typer.echo(f"No config file found at {store.path}")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show current configuration and verify the connection."""
    store = CredentialStore(config_file_path(_settings()))
    with _errors():
        if store.path.exists():
            typer.echo(f"Config file: {store.path}\n")
            for line in store.masked_lines():
                typer.echo(line)
            typer.echo("")
        try:
            session, options = _load(ctx.obj)
        except MissingCredentials:
            if store.path.exists():
                raise
            typer.echo("Not configured. Run `pngx auth login` to set up.")
            return
        with connect(session, options) as client:
            status = DocumentService(client).server_status()
    who = status.user.display_name() if status.user else "unknown user"
    typer.echo(f"Connected to {session.root} as {who} (paperless-ngx {status.version})")


# --- documents ---


@documents_app.command("list")
def documents_list(ctx: typer.Context, limit: int = LIMIT_OPTION, all_: bool = ALL_OPTION) -> None:
    """List all documents."""
    with _service(ctx) as (svc, out):
        out.envelope(svc.list_documents(effective_limit(limit, all_)), ResolvedDocument)


@documents_app.command("get")
def documents_get(ctx: typer.Context, ids: list[int] = typer.Argument(..., help="Document IDs")) -> None:
    """Show documents by ID."""
    with _service(ctx) as (svc, out):
        result = svc.get_documents(ids)
        if result.succeeded:
            out.documents([item.value for item in result.succeeded], single=len(ids) == 1)
    _finish(result)


@documents_app.command("content")
def documents_content(ctx: typer.Context, ids: list[int] = typer.Argument(..., help="Document IDs")) -> None:
    """Show the text content of documents."""
    with _service(ctx) as (svc, out):
        result = svc.contents(ids)
        for i, item in enumerate(result.succeeded):
            if len(ids) > 1:
                if i:
                    out.text("")
                out.notice(f"--- Document {item.id} ---")
            out.text(item.value)
    _finish(result)


@documents_app.command("open")
def documents_open(ctx: typer.Context, ids: list[int] = typer.Argument(..., help="Document IDs")) -> None:
    """Open documents in the web UI."""
    with _service(ctx) as (svc, out):
        result = svc.open_urls(ids)
        for item in result.succeeded:
            typer.launch(item.value)
            out.notice(f"Opened {item.value}")
    _finish(result)


@documents_app.command("download")
def documents_download(
        ctx: typer.Context,
        ids: list[int] = typer.Argument(..., help="Document IDs"),
        original: bool = typer.Option(False, "--original", help="Download the original file instead of the archived version"),
        file: Optional[Path] = typer.Option(None, "--file", "--dest", help="Output file path (only valid with a single ID)"),
        out_dir: Path = typer.Option(Path("."), "--dir", help="Directory for generated file names"),
) -> None:
    """Download document files."""
    with _errors():
        check_explicit_path(ids, file)
    version = DocumentVersion.ORIGINAL if original else DocumentVersion.ARCHIVED
    with _service(ctx) as (svc, out):
        result = svc.download(ids, version=version, out_dir=out_dir, explicit_path=file)
        for item in result.succeeded:
            out.notice(f"Downloaded {item.value.bytes_written} bytes to {item.value.path}")
    _finish(result)


# --- search & inbox ---


@app.command("search")
def search(
        ctx: typer.Context,
        query: str = typer.Argument(..., help="Search query"),
        limit: int = LIMIT_OPTION,
        all_: bool = ALL_OPTION,
) -> None:
    """Search documents."""
    with _service(ctx) as (svc, out):
        envelope = svc.search(query, effective_limit(limit, all_))
        if not envelope.results and out.fmt is OutputFormat.TABLE:
            out.notice(f"No documents found for query: {query}")
            return
        out.envelope(envelope, ResolvedDocument)


@app.command("inbox")
def inbox(ctx: typer.Context, limit: int = LIMIT_OPTION, all_: bool = ALL_OPTION) -> None:
    """List documents in the inbox."""
    with _service(ctx) as (svc, out):
        envelope = svc.inbox(effective_limit(limit, all_))
        if not envelope.results and out.fmt is OutputFormat.TABLE:
            out.notice("Inbox is empty")
            return
        out.envelope(envelope, ResolvedDocument)


# --- metadata ---


@app.command("tags")
def tags(ctx: typer.Context) -> None:
    """List tags."""
    with _service(ctx) as (svc, out):
        out.items(svc.tags(), Tag)


@app.command("correspondents")
def correspondents(ctx: typer.Context) -> None:
    """List correspondents."""
    with _service(ctx) as (svc, out):
        out.items(svc.correspondents(), Correspondent)


@app.command("document-types")
def document_types(ctx: typer.Context) -> None:
    """List document types."""
    with _service(ctx) as (svc, out):
        out.items(svc.document_types(), DocumentType)


@app.command("version")
def version(ctx: typer.Context) -> None:
    """Show client and server version."""
    typer.echo(f"pngx {_version()}")
    try:
        session, options = _resolve(ctx.obj)
    except (PngxError, ValidationError) as e:
        logger.debug("skipping server version: %s", e)
        return
    with _errors():
        with connect(session, options) as client:
            typer.echo(f"paperless-ngx {client.server_version()}")


def main() -> None:
    app()


if __name__ == "__main__":
    sys.exit(main())
