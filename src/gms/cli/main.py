#!/usr/bin/env python3
"""
GMS CLI - Command-line interface for the Goal Management System.

Provides commands for:
- init: Initialize the GMS database
- mcp: Run the MCP server
- export / import: Move goals in and out of JSONL snapshots
- show: Print a goal or task envelope
"""

import asyncio
import sqlite3
from pathlib import Path
from typing import Optional

import typer

from gms.core.database import SqliteGoalRepository, initialize_database
from gms.core.errors import GmsError
from gms.core.models import GetGoalRequest, GetTaskRequest
from gms.core.paths import get_db_path, get_snapshot_path
from gms.io.snapshot import export_snapshot, import_snapshot
from gms.mcp.handlers import GmsToolDeps, handle_get_goal, handle_get_task
from gms.mcp.helpers import validate_request, wrap_tool_response

# Create the main CLI app
cli = typer.Typer(
    name="gms",
    help="GMS CLI - Inspect goals and task trees and run the MCP server",
    no_args_is_help=True,
)


def _require_database(db_path: Path) -> None:
    if not db_path.exists():
        typer.echo(f"Database not found: {db_path}", err=True)
        typer.echo("Run 'gms init' to create the database first.", err=True)
        raise typer.Exit(1)


@cli.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing database",
    ),
) -> None:
    """
    Initialize the GMS database.

    Creates the goal store in .gms/gms.db relative to the repository root,
    or ~/.gms/gms.db if not in a repository. Goals are restored from the
    snapshot file when one exists.
    """
    db_path = get_db_path()

    if db_path.exists():
        if force:
            typer.echo(f"Overwriting existing database: {db_path}")
            db_path.unlink()
        else:
            typer.echo(f"Database already exists: {db_path}", err=True)
            typer.echo(
                "Use --force to overwrite or set GMS_DB_PATH to another location.",
                err=True,
            )
            raise typer.Exit(1)

    try:
        typer.echo(f"Initializing database at: {db_path}")
        initialize_database(db_path)
        typer.echo("✓ Database initialized successfully!")

        snapshot_path = get_snapshot_path()
        if snapshot_path.exists():
            typer.echo(f"Restoring database from snapshot: {snapshot_path}")
            try:
                count = asyncio.run(
                    import_snapshot(SqliteGoalRepository(db_path), snapshot_path)
                )
                typer.echo(f"✓ Restored {count} goal(s) from snapshot.")
            except ValueError as e:
                typer.echo(f"Error importing snapshot: {e}", err=True)
                raise typer.Exit(1)

    except sqlite3.Error as e:
        typer.echo(f"Error initializing database: {e}", err=True)
        raise typer.Exit(1)
    except PermissionError as e:
        typer.echo(f"Permission error: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def mcp(
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port for SSE transport (runs in stdio mode if not specified)",
    ),
) -> None:
    """
    Start the Model Context Protocol (MCP) server.

    By default, runs using stdio transport. If --port is provided,
    runs using SSE transport on the specified port.
    """
    from gms.mcp.server import start_mcp_server

    try:
        asyncio.run(start_mcp_server(port=port))
    except KeyboardInterrupt:
        typer.echo("\nServer stopped.", err=True)
    except ValueError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)


@cli.command("export")
def export_(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Snapshot file to write (uses default if not specified)",
    ),
) -> None:
    """
    Export all goals to a JSONL snapshot.
    """
    db_path = get_db_path()
    _require_database(db_path)
    snapshot_path = output or get_snapshot_path()

    try:
        count = asyncio.run(
            export_snapshot(SqliteGoalRepository(db_path), snapshot_path)
        )
    except sqlite3.Error as e:
        typer.echo(f"Error exporting snapshot: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✓ Exported {count} goal(s) to {snapshot_path}")


@cli.command("import")
def import_(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file to import"),
) -> None:
    """
    Import goals from a JSONL snapshot, replacing goals with the same id.
    """
    db_path = get_db_path()
    _require_database(db_path)

    try:
        count = asyncio.run(
            import_snapshot(SqliteGoalRepository(db_path), snapshot_path)
        )
    except FileNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)
    except (ValueError, sqlite3.Error) as e:
        typer.echo(f"Error importing snapshot: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✓ Imported {count} goal(s) from {snapshot_path}")


@cli.command()
def show(
    goal_id: str = typer.Argument(..., help="Goal id"),
    task_id: Optional[str] = typer.Option(
        None,
        "--task",
        "-t",
        help="Show a single task of the goal instead of the whole goal",
    ),
) -> None:
    """
    Print the JSON envelope returned by gms_get_goal or gms_get_task.
    """
    db_path = get_db_path()
    _require_database(db_path)
    deps = GmsToolDeps(goal_repository=SqliteGoalRepository(db_path))

    try:
        if task_id is None:
            request = validate_request(GetGoalRequest, goal_id=goal_id)
            envelope = asyncio.run(handle_get_goal(deps, request))
        else:
            request = validate_request(
                GetTaskRequest, goal_id=goal_id, task_id=task_id
            )
            envelope = asyncio.run(handle_get_task(deps, request))
    except GmsError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)
    typer.echo(wrap_tool_response(envelope))


if __name__ == "__main__":
    cli()
