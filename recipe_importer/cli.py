"""
Command-line interface for the Drive recipe importer.

This module provides the CLI entry point: authenticating with Google Drive,
previewing the recipe documents a folder holds, and importing them into
Mealie.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from recipe_importer.config import get_settings
from recipe_importer.utils.errors import RecipeImporterError
from recipe_importer.utils.logging import setup_logging

app = typer.Typer(
    name="recipe-importer",
    help="Import recipe documents from Google Drive into Mealie",
    add_completion=False,
)
console = Console()

FOLDER_ARGUMENT = typer.Argument(
    None,
    help="Google Drive folder ID (defaults to GOOGLE_DRIVE_FOLDER_ID)",
)
INCLUDE_ROOT_OPTION = typer.Option(
    None,
    "--include-root-tag/--no-include-root-tag",
    help="Tag recipes with the root folder's name (defaults to INCLUDE_ROOT_FOLDER_AS_TAG)",
)


@app.callback()
def main() -> None:
    """Load ``.env`` and configure logging before any command runs."""
    load_dotenv()
    setup_logging()


@app.command()
def connect(
    credentials_path: Optional[Path] = typer.Option(
        None,
        "--credentials",
        "-c",
        help="Path to Google OAuth2 client secrets JSON",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Force re-authentication",
    ),
):
    """Authenticate with Google Drive and save the token."""

    async def _connect():
        from recipe_importer.google_drive.auth import GoogleDriveAuth

        auth = GoogleDriveAuth(credentials_path=credentials_path)
        await auth.authenticate(force_reauth=force)
        return auth

    try:
        auth = asyncio.run(_connect())
    except RecipeImporterError as e:
        console.print(f"[red]✗[/red] Authentication failed: {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Token saved to {auth.token_path}")


@app.command("list")
def list_recipes(
    folder_id: Optional[str] = FOLDER_ARGUMENT,
    include_root_tag: Optional[bool] = INCLUDE_ROOT_OPTION,
):
    """List the recipe documents found below a Drive folder."""

    async def _list():
        from recipe_importer.google_drive.client import create_drive_client
        from recipe_importer.google_drive.walker import get_all_recipe_docs

        root = folder_id or get_settings().google_drive_folder_id
        if not root:
            console.print("[red]Error:[/red] no folder ID given and GOOGLE_DRIVE_FOLDER_ID is not set")
            raise typer.Exit(1)

        drive_client = create_drive_client()
        await drive_client.connect()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Walking Drive folders...", total=None)
            return await get_all_recipe_docs(drive_client, root, include_root_folder=include_root_tag)

    try:
        records = asyncio.run(_list())
    except RecipeImporterError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not records:
        console.print("No recipe documents found")
        return

    table = Table(title=f"Recipe documents ({len(records)} files)")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="dim")
    table.add_column("Tags")
    table.add_column("Characters", justify="right")

    for record in records:
        table.add_row(record.name, record.mime_type, ", ".join(record.tags), str(len(record.content)))

    console.print(table)


@app.command("import")
def import_recipes(
    folder_id: Optional[str] = FOLDER_ARGUMENT,
    include_root_tag: Optional[bool] = INCLUDE_ROOT_OPTION,
):
    """Import every recipe document below a Drive folder into Mealie."""

    async def _import():
        from recipe_importer.pipeline import create_import_pipeline

        pipeline = create_import_pipeline(include_root_folder=include_root_tag)
        try:
            return await pipeline.run(folder_id)
        finally:
            await pipeline.close()

    try:
        summary = asyncio.run(_import())
    except RecipeImporterError as e:
        console.print(f"[red]Fatal error:[/red] {e}")
        raise typer.Exit(1)

    console.print(
        f"Found {summary.discovered} documents: "
        f"[green]{len(summary.imported)} imported[/green], "
        f"[red]{len(summary.failed)} failed[/red]"
    )
    for outcome in summary.failed:
        console.print(f"  [red]✗[/red] {outcome.name}: {outcome.error}")


if __name__ == "__main__":
    app()
