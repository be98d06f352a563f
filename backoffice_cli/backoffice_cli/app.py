"""Back-office CLI -- Typer-based operator interface.

Provides commands to run the API server, create the schema, render an
invoice to a local file and compute token storage hashes for support
diagnostics.  Human-readable output goes to *stderr* via Rich; values a
script may want to capture (hashes, file paths) go to *stdout*.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import typer
from backoffice_core.errors import BackofficeError
from backoffice_core.state.database import get_engine, get_session
from backoffice_core.state.repository import hash_token
from backoffice_core.state.tables import Base
from backoffice_core.storage.blob_store import LocalBlobStore
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="backoffice",
    help="Back-office services: customer magic-link login and invoice PDFs.",
    no_args_is_help=True,
)
console = Console(stderr=True)

_DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///.backoffice/state.db"


def _database_url(value: str | None) -> str:
    return value or os.environ.get("API_DATABASE_URL") or _DEFAULT_DATABASE_URL


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind the API server to."),
    port: int = typer.Option(8000, "--port", "-p", help="API server port."),
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        help="Database URL (defaults to API_DATABASE_URL, then a local SQLite file).",
    ),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    os.environ["API_DATABASE_URL"] = _database_url(database_url)
    os.environ["API_HOST"] = host
    os.environ["API_PORT"] = str(port)

    console.print(f"[green]✓[/green] API server starting on http://{host}:{port}")
    console.print(f"[green]✓[/green] OpenAPI docs at http://{host}:{port}/docs")
    uvicorn.run("backoffice_api.main:app", host=host, port=port, reload=reload, log_level="info")


# ---------------------------------------------------------------------------
# init-db
# ---------------------------------------------------------------------------


async def _create_tables(database_url: str) -> list[str]:
    engine = get_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()
    return sorted(Base.metadata.tables)


@app.command("init-db")
def init_db(
    database_url: str | None = typer.Option(None, "--database-url", help="Database URL."),
) -> None:
    """Create any missing tables (development; production uses Alembic)."""
    url = _database_url(database_url)
    if url.startswith("sqlite"):
        db_path = url.split("///", 1)[-1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    try:
        tables = asyncio.run(_create_tables(url))
    except Exception as exc:
        console.print(f"[red]Failed to create tables: {exc}[/red]")
        raise typer.Exit(code=3) from exc

    table = Table(title="Tables ensured")
    table.add_column("Table")
    for name in tables:
        table.add_row(name)
    console.print(table)


# ---------------------------------------------------------------------------
# render-invoice
# ---------------------------------------------------------------------------


async def _render_invoice(
    database_url: str,
    output_dir: Path,
    invoice_id: str | None,
    order_id: str | None,
    brand_name: str | None,
    support_email: str | None,
) -> tuple[str, Path]:
    from backoffice_api.services.invoice_pdf_service import InvoicePdfService

    engine = get_engine(database_url)
    store = LocalBlobStore(output_dir)
    branding: dict[str, str] = {}
    if brand_name:
        branding["brand_name"] = brand_name
    if support_email:
        branding["support_email"] = support_email
    try:
        async with get_session(engine) as session:
            service = InvoicePdfService(session, store, **branding)
            rendered = await service.render(invoice_id=invoice_id, order_id=order_id)
    finally:
        await engine.dispose()
    return rendered.invoice_number, store.path_for(rendered.storage_path)


@app.command("render-invoice")
def render_invoice(
    invoice_id: str | None = typer.Option(None, "--invoice-id", help="Invoice to render."),
    order_id: str | None = typer.Option(None, "--order-id", help="Render the order's latest invoice."),
    output_dir: Path = typer.Option(
        Path("invoices"),
        "--output-dir",
        "-o",
        help="Directory the PDF is written below ({customer_id}/{invoice_number}.pdf).",
    ),
    database_url: str | None = typer.Option(None, "--database-url", help="Database URL."),
    brand_name: str | None = typer.Option(None, "--brand-name", help="Override the header brand."),
    support_email: str | None = typer.Option(None, "--support-email", help="Override the footer contact."),
) -> None:
    """Render an invoice PDF to a local file and record its storage path."""
    if not invoice_id and not order_id:
        console.print("[red]Provide --invoice-id or --order-id.[/red]")
        raise typer.Exit(code=3)

    try:
        invoice_number, pdf_path = asyncio.run(
            _render_invoice(
                _database_url(database_url),
                output_dir,
                invoice_id,
                order_id,
                brand_name,
                support_email,
            )
        )
    except (BackofficeError, ValueError) as exc:
        message = exc.message if isinstance(exc, BackofficeError) else str(exc)
        console.print(f"[red]{message}[/red]")
        raise typer.Exit(code=3) from exc

    console.print(f"[green]✓[/green] Invoice {invoice_number} rendered")
    typer.echo(str(pdf_path))


# ---------------------------------------------------------------------------
# hash-token
# ---------------------------------------------------------------------------


@app.command("hash-token")
def hash_token_command(
    token: str = typer.Argument(..., help="Plaintext magic-link or session token."),
) -> None:
    """Print the SHA-256 hash under which *token* is stored."""
    typer.echo(hash_token(token))
