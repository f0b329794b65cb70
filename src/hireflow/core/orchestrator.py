from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from hireflow.browser.driver import BrowserFactory, PlaywrightBrowserFactory
from hireflow.browser.evidence import EvidenceRecorder
from hireflow.browser.fields import FieldMapper
from hireflow.browser.job_details import extract_job_details
from hireflow.browser.login import LoginCoordinator
from hireflow.browser.matching import Found, first_match, is_present
from hireflow.browser.platforms import classify_platform
from hireflow.browser.verification import SubmissionVerifier
from hireflow.config import Settings, get_settings
from hireflow.core.events import EventBus
from hireflow.core.runtime import get_event_bus
from hireflow.core.session import ApplicationSession
from hireflow.core.statuses import TERMINAL_STATUSES
from hireflow.core.store import SessionStore
from hireflow.core.timers import ApprovalTimer, LoginPoller
from hireflow.db.base import utc_now
from hireflow.db.repositories import Repository
from hireflow.errors import (
    BrowserUnavailable,
    LoginTimeout,
    SelectorNotFound,
    SubmissionUnverified,
    TokenInvalidOrExpired,
)
from hireflow.llm.writer import CoverLetterWriter
from hireflow.notify import messages
from hireflow.notify.dispatcher import NotificationDispatcher
from hireflow.types import (
    CloseResult,
    DecisionResult,
    FillResult,
    LoginCheckResult,
    SessionStatus,
    StartRequest,
    StartResult,
    SubmitResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVALID_TOKEN_MESSAGE = "Invalid or expired approval token"
EXPIRED_LINK_MESSAGE = "Approval link has expired"


def _default_session_factory() -> Callable[[], Session]:
    from hireflow.db.session import SessionLocal

    return SessionLocal


class ApplicationOrchestrator:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        browser_factory: BrowserFactory | None = None,
        dispatcher: NotificationDispatcher | None = None,
        writer: CoverLetterWriter | None = None,
        session_factory: Callable[[], Session] | None = None,
        event_bus: EventBus | None = None,
        store: SessionStore | None = None,
    ):
        self.settings = settings or get_settings()
        self.browser_factory = browser_factory or PlaywrightBrowserFactory(self.settings)
        self.dispatcher = dispatcher or NotificationDispatcher(self.settings)
        self.writer = writer or CoverLetterWriter(self.settings)
        self.session_factory = session_factory or _default_session_factory()
        self.event_bus = event_bus or get_event_bus()
        self.store = store or SessionStore()
        self.login = LoginCoordinator(self.settings)
        self.mapper = FieldMapper(self.settings)
        self.verifier = SubmissionVerifier(self.settings)
        self.evidence = EvidenceRecorder(self.settings)

    # Public operations. None of them raise.

    async def start(self, request: StartRequest) -> StartResult:
        await self.sweep_expired()

        session = ApplicationSession(
            job_url=request.job_url,
            profile=request.profile.model_copy(deep=True),
            documents=request.documents.model_copy(),
            credentials=request.credentials,
            auto_proceed=request.auto_proceed,
            expires_at=utc_now() + timedelta(hours=self.settings.session_ttl_hours),
        )
        await self.store.add(session)
        self._persist_new(session)
        self._arm_deadline(session)
        logger.info("Session created session_id=%s url=%s", session.id, session.job_url)

        async with session.lock:
            try:
                return await self._start_locked(session)
            except BrowserUnavailable as exc:
                await self._terminate_locked(session, "failed", error=str(exc))
                return self._start_result(session, success=False, message=str(exc), browser_unavailable=True)
            except Exception as exc:
                logger.exception("Session start failed session_id=%s", session.id)
                await self._terminate_locked(session, "failed", error=f"Failed to start session: {exc}")
                return self._start_result(session, success=False, message=session.error)

    async def check_login(self, session_id: str) -> LoginCheckResult:
        session = await self.store.get(session_id)
        if session is None:
            status = await self.store.retired_status_for(session_id)
            message = f"Session already finished ({status})" if status else "Session not found"
            return LoginCheckResult(success=False, message=message, session_id=session_id, status=status or "")

        async with session.lock:
            if session.status != "pending_login":
                can_proceed = session.status not in TERMINAL_STATUSES
                return self._login_result(
                    session,
                    success=can_proceed,
                    message=f"Session is {session.status}",
                    can_proceed=can_proceed and session.is_logged_in,
                )

            try:
                authenticated = await self.login.is_authenticated(session.page, session.login_url)
            except Exception as exc:
                logger.warning("Login check failed session_id=%s: %s", session.id, exc)
                return self._login_result(session, success=False, message=f"Login check failed: {exc}")

            if not authenticated:
                return self._login_result(session, success=True, message="Still waiting for login")

            if session.poller is not None:
                session.poller.mark_satisfied()
                await session.poller.stop()
            await self._authenticated_locked(session)
            return self._login_result(
                session,
                success=session.status not in {"failed", "expired"},
                message=f"Login detected; session is {session.status}",
                can_proceed=session.status not in TERMINAL_STATUSES,
            )

    async def fill_form(self, session_id: str) -> FillResult:
        session = await self.store.get(session_id)
        if session is None:
            return FillResult(success=False, message="Session not found", session_id=session_id)
        async with session.lock:
            return await self._fill_locked(session)

    async def submit(self, session_id: str) -> SubmitResult:
        session = await self.store.get(session_id)
        if session is None:
            status = await self.store.retired_status_for(session_id)
            message = f"Application already processed ({status})" if status else "Session not found"
            return SubmitResult(success=False, message=message, session_id=session_id, status=status or "")

        async with session.lock:
            if session.status not in {"form_filled", "ready_for_submission"}:
                return SubmitResult(
                    success=False,
                    message=f"Form must be filled before submitting (status {session.status})",
                    session_id=session.id,
                    status=session.status,
                )
            if session.timer is not None:
                await session.timer.stop()
            await self._transition(session, "approved")
            return await self._submit_locked(session)

    async def approve(self, token: str) -> DecisionResult:
        try:
            session = await self._resolve_token(token)
        except TokenInvalidOrExpired as exc:
            return DecisionResult(success=False, message=str(exc))

        async with session.lock:
            refusal = await self._decision_refusal(session)
            if refusal is not None:
                return refusal
            if session.status != "ready_for_submission":
                return DecisionResult(
                    success=False,
                    message=f"Application is not ready for approval (status {session.status})",
                    session_id=session.id,
                    status=session.status,
                )

            if session.timer is not None:
                await session.timer.stop()
            await self._transition(session, "approved")
            result = await self._submit_locked(session)

        return DecisionResult(
            success=result.submitted,
            message=result.message,
            session_id=session.id,
            status=result.status,
        )

    async def reject(self, token: str) -> DecisionResult:
        try:
            session = await self._resolve_token(token)
        except TokenInvalidOrExpired as exc:
            return DecisionResult(success=False, message=str(exc))

        async with session.lock:
            refusal = await self._decision_refusal(session)
            if refusal is not None:
                return refusal

            if session.timer is not None:
                await session.timer.stop()
            await self._terminate_locked(session, "rejected", error="Rejected by applicant")

        return DecisionResult(
            success=True,
            message="Application rejected; it will not be submitted",
            session_id=session.id,
            status=session.status,
        )

    async def close(self, session_id: str) -> CloseResult:
        session = await self.store.get(session_id)
        if session is None:
            return CloseResult(success=True, message="Session already closed", session_id=session_id)

        async with session.lock:
            if session.released:
                return CloseResult(
                    success=True,
                    message="Session already closed",
                    session_id=session.id,
                    status=session.status,
                )
            if session.terminal:
                await self._release(session)
            else:
                await self._terminate_locked(session, "failed", error="Session closed before completion")

        return CloseResult(
            success=True,
            message="Session closed",
            session_id=session.id,
            status=session.status,
            released=True,
        )

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        session = await self.store.get(session_id)
        if session is not None:
            return session.snapshot()

        def load(repo: Repository) -> dict[str, Any] | None:
            record = repo.get_session_record(session_id)
            return serialize_record(record) if record else None

        return self._persist("load_session", load)

    async def sweep_expired(self) -> int:
        expired = 0
        for session in await self.store.list_sessions():
            if not session.is_expired() or session.lock.locked():
                continue
            async with session.lock:
                if session.released or session.terminal or not session.is_expired():
                    continue
                await self._terminate_locked(session, "expired", error="Session expired")
                expired += 1
        if expired:
            logger.info("Expired %s stale sessions", expired)
        return expired

    async def shutdown(self) -> None:
        for session in await self.store.list_sessions():
            await self.close(session.id)
        await self.dispatcher.drain()
        await self.browser_factory.shutdown()

    # Stages. Every *_locked helper expects session.lock to be held.

    async def _start_locked(self, session: ApplicationSession) -> StartResult:
        session.page = await self.browser_factory.open_page()
        await session.page.navigate(session.job_url)
        await self._capture(session, "page-loaded")

        session.job = await extract_job_details(session.page)
        session.platform = classify_platform(session.job_url)
        session.requires_login = await self.login.requires_login(session.page)
        session.login_url = await session.page.get_url()
        logger.info(
            "Session %s platform=%s requires_login=%s",
            session.id,
            session.platform.name,
            session.requires_login,
        )

        if not session.requires_login:
            session.is_logged_in = True
            return await self._ready_locked(session, "No login required")

        credentials = session.credentials
        if credentials is not None and credentials.automatable:
            if await self.login.attempt_login(session.page, credentials):
                session.is_logged_in = True
                await self._capture(session, "login-success")
                return await self._ready_locked(session, "Logged in automatically")
            logger.info("Automated login failed session_id=%s; waiting for manual login", session.id)

        await self._transition(session, "pending_login")
        self._notify(
            session,
            messages.login_instructions(
                title=session.job.title,
                company=session.job.company,
                platform=session.platform.name,
                job_url=session.job_url,
                platform_hint=session.platform.instructions,
                session_id=session.id,
                poll_interval_sec=self.settings.login_poll_interval_sec,
                max_attempts=self.settings.login_poll_max_attempts,
            ),
        )
        self._start_poller(session)
        return self._start_result(
            session,
            success=True,
            message="Login required. Please log in to the job site; the session continues once login is detected.",
        )

    async def _ready_locked(self, session: ApplicationSession, message: str) -> StartResult:
        await self._transition(session, "ready_to_fill")
        if session.auto_proceed:
            fill = await self._fill_locked(session)
            message = f"{message}. {fill.message}"
        return self._start_result(session, success=session.status not in {"failed", "expired"}, message=message)

    async def _authenticated_locked(self, session: ApplicationSession) -> None:
        session.is_logged_in = True
        await self._capture(session, "login-success")
        await self._transition(session, "ready_to_fill")
        if session.auto_proceed:
            await self._fill_locked(session)

    async def _fill_locked(self, session: ApplicationSession) -> FillResult:
        if session.status == "pending_login":
            return self._fill_result(session, success=False, message="Please login first")
        if session.status != "ready_to_fill":
            return self._fill_result(
                session,
                success=False,
                message=f"Form cannot be filled while session is {session.status}",
            )

        page = session.page
        try:
            if not await is_present(page, "application_form", platform=session.platform.tag):
                entry = await first_match(page, "apply_entry", platform=session.platform.tag)
                if isinstance(entry, Found):
                    await entry.element.click()
                    await page.wait(self.settings.apply_settle_sec)
            await self._capture(session, "before-form-fill")

            if session.profile.enable_ai_cover_letter and not session.cover_letter:
                session.cover_letter = await self._generate_cover_letter(session)

            session.fill_report = await self.mapper.fill(
                page,
                session.profile,
                documents=session.documents,
                cover_letter=session.cover_letter,
            )
            await self._capture(session, "form-filled")
            await self._transition(session, "form_filled")
        except Exception as exc:
            logger.exception("Form filling failed session_id=%s", session.id)
            await self._terminate_locked(session, "failed", error=f"Form filling failed: {exc}")
            return self._fill_result(session, success=False, message=session.error)

        if session.filled_count == 0:
            await self._terminate_locked(session, "failed", error="No form fields could be filled")
            return self._fill_result(session, success=False, message=session.error)

        await self._transition(session, "ready_for_submission")
        self._arm_timer(session)
        window = self.settings.approval_window_sec
        self._notify(
            session,
            messages.review_request(
                title=session.job.title,
                company=session.job.company,
                filled_count=session.filled_count,
                approve_url=self.approval_url(session.approval_token),
                reject_url=self.rejection_url(session.approval_token),
                window_sec=window,
                session_id=session.id,
            ),
        )
        return self._fill_result(
            session,
            success=True,
            message=(
                f"Filled {session.filled_count} fields; submitting automatically in {window:g}s "
                "unless approved or rejected sooner"
            ),
        )

    async def _submit_locked(self, session: ApplicationSession) -> SubmitResult:
        page = session.page
        try:
            await self._capture(session, "pre-submission")
            session.form_present = await is_present(page, "application_form", platform=session.platform.tag)
            button = (await first_match(page, "submit_button", platform=session.platform.tag)).unwrap()
        except SelectorNotFound:
            return await self._finish_submission(session, "failed", result="error", error="Submit button not found")
        except Exception as exc:
            logger.exception("Submission setup failed session_id=%s", session.id)
            return await self._finish_submission(session, "failed", result="error", error=f"Submission failed: {exc}")

        try:
            session.submit_attempted = True
            await button.click()
            await page.wait(self.settings.submit_settle_sec)
            await self._capture(session, "confirmation")
            verdict = await self.verifier.verify(
                page,
                form_present_before=session.form_present,
                platform=session.platform.tag,
            )
            if not verdict.verified:
                raise SubmissionUnverified(verdict.confidence, verdict.signal)
        except SubmissionUnverified as exc:
            return await self._finish_submission(session, "failed", result="unverified", error=str(exc))
        except Exception as exc:
            logger.exception("Submission failed session_id=%s", session.id)
            return await self._finish_submission(session, "failed", result="error", error=f"Submission failed: {exc}")

        session.submitted_at = utc_now()
        return await self._finish_submission(session, "submitted", result="verified")

    async def _finish_submission(
        self,
        session: ApplicationSession,
        status: SessionStatus,
        *,
        result: str,
        error: str = "",
    ) -> SubmitResult:
        session.submission_result = result
        await self._terminate_locked(session, status, error=error)
        submitted = session.status == "submitted"
        return SubmitResult(
            success=submitted,
            message="Application submitted successfully" if submitted else session.error,
            session_id=session.id,
            status=session.status,
            submitted=submitted,
            verified=result == "verified",
        )

    async def _terminate_locked(self, session: ApplicationSession, status: SessionStatus, *, error: str = "") -> None:
        if session.terminal:
            await self._release(session)
            return

        if error:
            session.error = error
        await self._transition(session, status)
        self._log_application(session)
        if status in {"submitted", "failed"}:
            self._notify(
                session,
                messages.confirmation(
                    title=session.job.title,
                    company=session.job.company,
                    submitted=status == "submitted",
                    status=status,
                    session_id=session.id,
                    error=session.error,
                ),
            )
        await self._release(session)

    async def _release(self, session: ApplicationSession) -> None:
        if session.released:
            return
        session.released = True

        for handle in (session.timer, session.poller, session.deadline):
            if handle is not None:
                await handle.stop()

        if session.page is not None:
            try:
                await session.page.close()
            except Exception as exc:
                logger.warning("Closing browser page failed session_id=%s: %s", session.id, exc)
            session.page = None

        await self.store.retire(session)
        logger.info("Session released session_id=%s status=%s", session.id, session.status)

    # Background work.

    def _arm_timer(self, session: ApplicationSession) -> None:
        if session.timer is not None:
            return

        async def fire() -> None:
            await self._on_timer_fire(session)

        session.timer = ApprovalTimer(
            self.settings.approval_window_sec,
            fire,
            name=f"approval-{session.id}",
        )
        session.timer.start()

    async def _on_timer_fire(self, session: ApplicationSession) -> None:
        async with session.lock:
            if session.released or session.status != "ready_for_submission":
                logger.info("Approval timer ignored session_id=%s status=%s", session.id, session.status)
                return
            logger.info("Approval window elapsed; submitting session_id=%s", session.id)
            try:
                await self._transition(session, "approved")
                await self._submit_locked(session)
            except Exception as exc:
                logger.exception("Auto-submit failed session_id=%s", session.id)
                await self._terminate_locked(session, "failed", error=f"Auto-submit failed: {exc}")

    def _arm_deadline(self, session: ApplicationSession) -> None:
        if session.deadline is not None:
            return

        async def expire() -> None:
            async with session.lock:
                if session.released or session.terminal:
                    return
                logger.info("Session deadline reached session_id=%s status=%s", session.id, session.status)
                await self._terminate_locked(session, "expired", error="Session expired")

        remaining = (session.expires_at - utc_now()).total_seconds()
        session.deadline = ApprovalTimer(max(remaining, 0.0), expire, name=f"deadline-{session.id}")
        session.deadline.start()

    def _start_poller(self, session: ApplicationSession) -> None:
        if session.poller is not None:
            return

        async def probe() -> bool:
            async with session.lock:
                if session.released or session.status != "pending_login":
                    return False
                return await self.login.is_authenticated(session.page, session.login_url)

        def is_waiting() -> bool:
            return not session.released and session.status == "pending_login"

        async def on_authenticated() -> None:
            async with session.lock:
                if session.released or session.status != "pending_login":
                    return
                try:
                    await self._authenticated_locked(session)
                except Exception as exc:
                    logger.exception("Post-login stage failed session_id=%s", session.id)
                    await self._terminate_locked(session, "failed", error=f"Post-login stage failed: {exc}")

        async def on_exhausted() -> None:
            async with session.lock:
                if session.released or session.status != "pending_login":
                    return
                timeout = LoginTimeout(self.settings.login_poll_max_attempts, self.settings.login_poll_interval_sec)
                await self._terminate_locked(session, "expired", error=str(timeout))

        session.poller = LoginPoller(
            interval_sec=self.settings.login_poll_interval_sec,
            max_attempts=self.settings.login_poll_max_attempts,
            probe=probe,
            is_waiting=is_waiting,
            on_authenticated=on_authenticated,
            on_exhausted=on_exhausted,
            name=f"login-{session.id}",
        )
        session.poller.start()

    async def _generate_cover_letter(self, session: ApplicationSession) -> str:
        try:
            letter = await asyncio.to_thread(self.writer.write, session.profile, session.job)
        except Exception as exc:
            logger.warning("Cover letter generation failed session_id=%s: %s", session.id, exc)
            return ""
        if not letter:
            logger.info("No cover letter generated session_id=%s", session.id)
        return letter

    # Helpers.

    def approval_url(self, token: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/api/approve/{token}"

    def rejection_url(self, token: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/api/reject/{token}"

    async def _resolve_token(self, token: str) -> ApplicationSession:
        session = await self.store.get_by_token(token) if token else None
        if session is not None:
            return session

        status = await self.store.retired_status(token) if token else None
        if status is None and token:
            record = self._persist("load_token", lambda repo: repo.get_session_record_by_token(token))
            if record is not None and record.status in TERMINAL_STATUSES:
                status = record.status
        if status is not None:
            raise TokenInvalidOrExpired(f"Application already processed ({status})")
        raise TokenInvalidOrExpired(INVALID_TOKEN_MESSAGE)

    async def _decision_refusal(self, session: ApplicationSession) -> DecisionResult | None:
        if session.released or session.terminal or session.status == "approved":
            return DecisionResult(
                success=False,
                message=f"Application already processed ({session.status})",
                session_id=session.id,
                status=session.status,
            )
        if session.is_expired():
            await self._terminate_locked(session, "expired", error=EXPIRED_LINK_MESSAGE)
            return DecisionResult(
                success=False,
                message=EXPIRED_LINK_MESSAGE,
                session_id=session.id,
                status=session.status,
            )
        return None

    async def _transition(self, session: ApplicationSession, target: SessionStatus) -> None:
        previous = session.status
        session.tracker.advance(target)
        logger.info("Session %s: %s -> %s", session.id, previous, target)
        await self.event_bus.publish(
            session.id,
            {"session_id": session.id, "from": previous, "status": target, "error": session.error},
        )
        self._persist_state(session)

    async def _capture(self, session: ApplicationSession, label: str) -> None:
        if session.page is None:
            return
        ref = await self.evidence.capture(session.page, session.id, label)
        if ref is not None:
            session.evidence.append(ref)

    def _notify(self, session: ApplicationSession, message: messages.Message) -> None:
        try:
            self.dispatcher.dispatch(session.profile, message)
        except Exception:
            logger.exception("Notification dispatch failed session_id=%s purpose=%s", session.id, message.purpose)

    # Persistence. Failures are logged and never change session progress.

    def _persist(self, action: str, fn: Callable[[Repository], T]) -> T | None:
        try:
            with self.session_factory() as db:
                return fn(Repository(db))
        except Exception as exc:
            logger.warning("Persistence %s failed: %s", action, exc)
            return None

    def _persist_new(self, session: ApplicationSession) -> None:
        profile = session.profile

        def create(repo: Repository) -> None:
            user = repo.get_or_create_user(email=profile.email, name=profile.name, phone=profile.phone)
            session.user_id = user.id
            repo.create_session_record(
                id=session.id,
                approval_token=session.approval_token,
                user_id=user.id,
                job_url=session.job_url,
                status=session.status,
                expires_at=session.expires_at,
            )

        self._persist("create_session", create)

    def _persist_state(self, session: ApplicationSession) -> None:
        values = {
            "status": session.status,
            "platform": session.platform.name,
            "job_title": session.job.title,
            "company": session.job.company,
            "requires_login": session.requires_login,
            "is_logged_in": session.is_logged_in,
            "filled_count": session.filled_count,
            "fill_summary_json": session.fill_report.summary() if session.fill_report else {},
            "submit_attempted": session.submit_attempted,
            "submission_result": session.submission_result,
            "error": session.error,
            "submitted_at": session.submitted_at,
        }
        self._persist("update_session", lambda repo: repo.update_session_record(session.id, **values))

    def _log_application(self, session: ApplicationSession) -> None:
        details = {
            "history": session.history,
            "fill": session.fill_report.summary() if session.fill_report else None,
            "evidence": [item.path for item in session.evidence],
            "submit_attempted": session.submit_attempted,
            "cover_letter_generated": bool(session.cover_letter),
        }
        self._persist(
            "append_log",
            lambda repo: repo.append_application_log(
                session_id=session.id,
                user_id=session.user_id,
                job_url=session.job_url,
                job_title=session.job.title,
                company=session.job.company,
                platform=session.platform.name,
                status=session.status,
                submission_result=session.submission_result,
                error=session.error,
                details_json=details,
            ),
        )

    def _start_result(self, session: ApplicationSession, *, success: bool, message: str, **extra: Any) -> StartResult:
        return StartResult(
            success=success,
            message=message,
            session_id=session.id,
            status=session.status,
            requires_login=session.requires_login,
            platform=session.platform.name,
            **extra,
        )

    def _login_result(
        self,
        session: ApplicationSession,
        *,
        success: bool,
        message: str,
        can_proceed: bool = False,
    ) -> LoginCheckResult:
        return LoginCheckResult(
            success=success,
            message=message,
            session_id=session.id,
            status=session.status,
            is_logged_in=session.is_logged_in,
            can_proceed=can_proceed,
        )

    def _fill_result(self, session: ApplicationSession, *, success: bool, message: str) -> FillResult:
        report = session.fill_report
        return FillResult(
            success=success,
            message=message,
            session_id=session.id,
            status=session.status,
            filled=success and session.filled_count > 0,
            ready_to_submit=session.status == "ready_for_submission",
            filled_count=session.filled_count,
            matched_fields=sorted(report.matched_fields) if report else [],
            unmatched_fields=list(report.unmatched_fields) if report else [],
        )


def serialize_record(record: Any) -> dict[str, Any]:
    return {
        "id": record.id,
        "status": record.status,
        "job_url": record.job_url,
        "platform": record.platform,
        "job": {"title": record.job_title, "company": record.company},
        "requires_login": record.requires_login,
        "is_logged_in": record.is_logged_in,
        "fill": record.fill_summary_json or None,
        "error": record.error,
        "submit_attempted": record.submit_attempted,
        "submission_result": record.submission_result,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "expires_at": record.expires_at.isoformat() if record.expires_at else None,
        "submitted_at": record.submitted_at.isoformat() if record.submitted_at else None,
        "released": True,
    }
