from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from hireflow.browser.platforms import classify_platform
from hireflow.config import Settings, get_settings
from hireflow.core.orchestrator import ApplicationOrchestrator, serialize_record
from hireflow.db.init import init_database
from hireflow.db.repositories import Repository
from hireflow.db.session import SessionLocal
from hireflow.logging_config import configure_logging
from hireflow.types import ApplicantProfile, DocumentRefs, LoginCredentials, StartRequest

app = typer.Typer(help="Hireflow CLI")
sessions_app = typer.Typer(help="Inspect recorded application sessions")

app.add_typer(sessions_app, name="sessions")

_INITIALIZED = False
WAIT_STEP_SEC = 0.2


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def build_orchestrator(settings: Settings) -> ApplicationOrchestrator:
    return ApplicationOrchestrator(settings)


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


async def _run_session(
    orchestrator: ApplicationOrchestrator,
    request: StartRequest,
    *,
    approve: bool,
) -> dict[str, Any]:
    try:
        started = await orchestrator.start(request)
        session_id = started.session_id
        output: dict[str, Any] = {"start": started.model_dump()}

        session = await orchestrator.store.get(session_id)
        if approve and session is not None and session.status == "ready_for_submission":
            output["decision"] = (await orchestrator.approve(session.approval_token)).model_dump()

        while await orchestrator.store.get(session_id) is not None:
            await asyncio.sleep(WAIT_STEP_SEC)

        output["session"] = await orchestrator.get_session(session_id)
        return output
    finally:
        await orchestrator.shutdown()


@app.command("init")
def init_cmd() -> None:
    """Initialize the database and data directories."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@app.command("platform")
def platform_cmd(url: str = typer.Argument(...)) -> None:
    """Show which applicant tracking system a job URL belongs to."""
    platform = classify_platform(url)
    _echo({"platform": platform.name, "tag": platform.tag, "supported": platform.known})


@app.command("apply")
def apply_cmd(
    url: str = typer.Option(..., "--url"),
    profile_file: Path = typer.Option(..., "--profile", exists=True, readable=True),
    resume: str = typer.Option("", "--resume"),
    cover_letter: str = typer.Option("", "--cover-letter"),
    email: str = typer.Option("", "--login-email"),
    password: str = typer.Option("", "--login-password", envvar="HIREFLOW_LOGIN_PASSWORD"),
    auth_method: str = typer.Option("email", "--auth-method"),
    approval_window: Optional[float] = typer.Option(None, "--approval-window", min=0.1),
    approve: bool = typer.Option(False, "--approve", help="Submit right after filling instead of waiting"),
) -> None:
    """Run one application session in-process until it finishes."""
    configure_logging()
    ensure_initialized()

    settings = get_settings()
    if approval_window is not None:
        settings = settings.model_copy(update={"approval_window_sec": approval_window})

    try:
        profile = ApplicantProfile.model_validate_json(profile_file.read_text(encoding="utf-8"))
        credentials = (
            LoginCredentials(email=email, password=password, method=auth_method) if email or password else None
        )
        request = StartRequest(
            job_url=url,
            profile=profile,
            credentials=credentials,
            documents=DocumentRefs(resume=resume, cover_letter=cover_letter),
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    result = asyncio.run(_run_session(build_orchestrator(settings), request, approve=approve))
    _echo(result)


@sessions_app.command("list")
def sessions_list(
    status: str = typer.Option("", "--status"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        records = Repository(db).list_session_records(limit=limit, status=status or None)
        _echo(
            [
                {
                    "id": record.id,
                    "status": record.status,
                    "platform": record.platform,
                    "job_title": record.job_title,
                    "company": record.company,
                    "job_url": record.job_url,
                    "created_at": record.created_at.isoformat() if record.created_at else None,
                }
                for record in records
            ]
        )


@sessions_app.command("show")
def sessions_show(session_id: str = typer.Argument(...)) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        record = Repository(db).get_session_record(session_id)
        if record is None:
            raise typer.BadParameter(f"session {session_id} not found")
        _echo(serialize_record(record))


@sessions_app.command("logs")
def sessions_logs(
    session_id: str = typer.Option("", "--session-id"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        logs = Repository(db).list_application_logs(limit=limit, session_id=session_id or None)
        _echo(
            [
                {
                    "id": log.id,
                    "session_id": log.session_id,
                    "status": log.status,
                    "submission_result": log.submission_result,
                    "job_title": log.job_title,
                    "company": log.company,
                    "platform": log.platform,
                    "error": log.error,
                    "details": log.details_json,
                    "created_at": log.created_at.isoformat() if log.created_at else None,
                }
                for log in logs
            ]
        )


if __name__ == "__main__":
    app()
