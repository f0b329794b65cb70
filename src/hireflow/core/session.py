from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from hireflow.browser.driver import BrowserPage
from hireflow.browser.platforms import UNKNOWN_PLATFORM, Platform
from hireflow.core.statuses import StatusTracker
from hireflow.core.timers import ApprovalTimer, LoginPoller
from hireflow.db.base import utc_now
from hireflow.types import (
    ApplicantProfile,
    DocumentRefs,
    EvidenceRef,
    FillReport,
    JobDetails,
    LoginCredentials,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(slots=True, eq=False)
class ApplicationSession:
    job_url: str
    profile: ApplicantProfile
    expires_at: datetime
    documents: DocumentRefs = field(default_factory=DocumentRefs)
    credentials: LoginCredentials | None = field(default=None, repr=False)
    auto_proceed: bool = True

    id: str = field(default_factory=lambda: str(uuid4()))
    approval_token: str = field(default_factory=lambda: uuid4().hex)
    tracker: StatusTracker = field(default_factory=StatusTracker)

    platform: Platform = UNKNOWN_PLATFORM
    job: JobDetails = field(default_factory=JobDetails)
    login_url: str = ""
    requires_login: bool = False
    is_logged_in: bool = False
    fill_report: FillReport | None = None
    cover_letter: str = ""
    form_present: bool = False
    evidence: list[EvidenceRef] = field(default_factory=list)
    error: str = ""
    submit_attempted: bool = False
    submission_result: str = ""
    user_id: int | None = None

    created_at: datetime = field(default_factory=utc_now)
    submitted_at: datetime | None = None

    page: BrowserPage | None = field(default=None, repr=False)
    timer: ApprovalTimer | None = field(default=None, repr=False)
    poller: LoginPoller | None = field(default=None, repr=False)
    deadline: ApprovalTimer | None = field(default=None, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    released: bool = False

    @property
    def status(self) -> str:
        return self.tracker.status

    @property
    def history(self) -> list[str]:
        return list(self.tracker.history)

    @property
    def terminal(self) -> bool:
        return self.tracker.terminal

    @property
    def filled_count(self) -> int:
        return self.fill_report.confirmed_count if self.fill_report else 0

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    def snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "history": self.history,
            "job_url": self.job_url,
            "platform": self.platform.name,
            "job": self.job.model_dump(),
            "requires_login": self.requires_login,
            "is_logged_in": self.is_logged_in,
            "fill": self.fill_report.summary() if self.fill_report else None,
            "cover_letter_generated": bool(self.cover_letter),
            "evidence": [item.model_dump(mode="json") for item in self.evidence],
            "error": self.error,
            "submit_attempted": self.submit_attempted,
            "submission_result": self.submission_result,
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
            "submitted_at": _iso(self.submitted_at),
            "released": self.released,
        }
