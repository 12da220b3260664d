from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Optional

import typer

from tablebase.app.core.logging import setup_logging
from tablebase.db.registry import ProjectRegistry
from tablebase.db.settings import get_store_settings
from tablebase.exceptions import TablebaseError

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _registry(data_dir: Optional[Path]) -> ProjectRegistry:
    return ProjectRegistry(data_dir or get_store_settings().data_dir)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    data_dir: Optional[Path] = typer.Option(None, help="Project data root (default: TABLEBASE_DATA_DIR)"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
    log_level: Optional[str] = typer.Option(None, help="Overrides LOG_LEVEL"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    if data_dir is not None:
        os.environ["TABLEBASE_DATA_DIR"] = str(data_dir)
        get_store_settings.cache_clear()
    setup_logging(level=log_level)
    uvicorn.run(
        "tablebase.api.fastapi:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


@app.command("rotate-secret")
def rotate_secret(
    project: str = typer.Argument(..., help="Project whose signing secret is replaced"),
    data_dir: Optional[Path] = typer.Option(None, help="Project data root (default: TABLEBASE_DATA_DIR)"),
):
    """Replace a project's signing secret; outstanding tokens stop verifying."""
    setup_logging()
    try:
        _registry(data_dir).rotate_secret(project)
    except TablebaseError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Rotated signing secret for {project}")


@app.command("compact")
def compact(
    project: str = typer.Argument(..., help="Project name"),
    table: str = typer.Argument(..., help="Table (collection) name"),
    data_dir: Optional[Path] = typer.Option(None, help="Project data root (default: TABLEBASE_DATA_DIR)"),
):
    """Rebuild a table's SQLite file to reclaim space left by deleted documents."""
    setup_logging()
    registry = _registry(data_dir)

    async def _run() -> int:
        try:
            collection = await registry.get_collection(project, table)
            return await collection.vacuum()
        finally:
            await registry.close()

    try:
        kept = asyncio.run(_run())
    except TablebaseError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Compacted {project}/{table}: {kept} documents")


if __name__ == "__main__":
    app()
