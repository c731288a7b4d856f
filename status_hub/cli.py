"""status-hub operator CLI."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import typer

from status_hub.app import StatusHubApp, create_app
from status_hub.errors import AccessDeniedError, PendingActivationError
from status_hub.models.entities import DocumentModel
from status_hub.seed import apply_seed, load_seed
from status_hub.shared.logging_config import configure_logging
from status_hub.shared.settings import AssistantSettings, StorageSettings, WorkflowSettings

app = typer.Typer(add_completion=False, help="status-hub: multi-tenant project status portal")


def _env(db: Optional[Path]) -> dict[str, str]:
    env = dict(os.environ)
    if db is not None:
        env["STATUS_HUB_STORE"] = "sqlite"
        env["STATUS_HUB_SQLITE_PATH"] = str(db)
    return env


def _app(db: Optional[Path]) -> StatusHubApp:
    return create_app(_env(db))


def _emit_rows(rows: list[DocumentModel]) -> None:
    typer.echo(json.dumps([row.to_document() for row in rows], indent=2, sort_keys=True))


def _emit(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _denied(exc: PermissionError) -> typer.Exit:
    _emit({"error": "access_denied", "reason_code": getattr(exc, "reason_code", "")})
    return typer.Exit(code=2)


@app.callback()
def main(
    log_level: str = typer.Option("", "--log-level", help="Defaults to STATUS_HUB_LOG_LEVEL."),
    json_logs: bool = typer.Option(False, "--json-logs"),
) -> None:
    configure_logging(level=log_level or None, json_output=json_logs)


@app.command()
def status(db: Optional[Path] = typer.Option(None, "--db")) -> None:
    """Print the effective storage, workflow and assistant configuration."""
    env = _env(db)
    storage = StorageSettings.from_env(env)
    assistant = AssistantSettings.from_env(env)
    workflow = WorkflowSettings.from_env(env)
    _emit(
        {
            "store": storage.backend,
            "sqlite_path": str(storage.sqlite_path),
            "strict_transitions": workflow.strict_transitions,
            "llm_provider": assistant.provider,
            "context_budget": assistant.context_budget,
        }
    )


@app.command()
def seed(path: Path, db: Optional[Path] = typer.Option(None, "--db")) -> None:
    """Load clients, projects, logs, tickets, leads and users from a YAML fixture.

    Use --db to persist into a SQLite file; the default in-memory store is
    discarded when the command exits.
    """
    hub = _app(db)
    counts = apply_seed(hub.entities, load_seed(path))
    _emit({"seeded": counts})


@app.command()
def projects(
    subject: str = typer.Option(..., "--as", help="Identity subject id of the caller."),
    include_archived: bool = typer.Option(False, "--include-archived"),
    db: Optional[Path] = typer.Option(None, "--db"),
) -> None:
    """List the projects visible to a subject."""
    try:
        _emit_rows(_app(db).list_projects(subject, include_archived=include_archived))
    except (AccessDeniedError, PendingActivationError) as exc:
        raise _denied(exc) from exc


@app.command()
def logs(
    subject: str = typer.Option(..., "--as"),
    project: str = typer.Option("", "--project"),
    db: Optional[Path] = typer.Option(None, "--db"),
) -> None:
    """List the project logs visible to a subject."""
    try:
        _emit_rows(_app(db).list_logs(subject, project_id=project or None))
    except (AccessDeniedError, PendingActivationError) as exc:
        raise _denied(exc) from exc


@app.command()
def requests(
    subject: str = typer.Option(..., "--as"),
    db: Optional[Path] = typer.Option(None, "--db"),
) -> None:
    """List the change requests visible to a subject."""
    try:
        _emit_rows(_app(db).list_change_requests(subject))
    except (AccessDeniedError, PendingActivationError) as exc:
        raise _denied(exc) from exc


@app.command()
def audit(
    subject: str = typer.Option(..., "--as"),
    limit: int = typer.Option(50, "--limit"),
    db: Optional[Path] = typer.Option(None, "--db"),
) -> None:
    """Print the newest audit entries (admin only)."""
    try:
        _emit_rows(_app(db).list_audit(subject, limit=limit))
    except (AccessDeniedError, PendingActivationError) as exc:
        raise _denied(exc) from exc


@app.command()
def context(
    subject: str = typer.Option(..., "--as"),
    db: Optional[Path] = typer.Option(None, "--db"),
) -> None:
    """Print the role-scoped context pack the assistant would receive."""
    try:
        _emit(_app(db).context_pack(subject))
    except AccessDeniedError as exc:
        raise _denied(exc) from exc


@app.command()
def ask(
    prompt: str,
    subject: str = typer.Option(..., "--as"),
    db: Optional[Path] = typer.Option(None, "--db"),
) -> None:
    """Ask the assistant a question over the caller's scoped context."""
    try:
        reply = _app(db).ask(subject, prompt)
    except AccessDeniedError as exc:
        raise _denied(exc) from exc
    _emit(reply)


if __name__ == "__main__":
    app()
