from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DATA = Path(tempfile.mkdtemp(prefix="hireflow-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA / 'hireflow.db'}")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATA_DIR", str(_TEST_DATA))
os.environ.setdefault("UPLOAD_DIR", str(_TEST_DATA / "uploads"))
os.environ.setdefault("SCREENSHOT_DIR", str(_TEST_DATA / "screenshots"))

import pytest  # noqa: E402

from fakes import FakeBrowserFactory, FakeEmail, FakeMessaging, FakeWriter  # noqa: E402
from hireflow.config import Settings  # noqa: E402
from hireflow.core.events import EventBus  # noqa: E402
from hireflow.core.orchestrator import ApplicationOrchestrator  # noqa: E402
from hireflow.core.runtime import reset_event_bus  # noqa: E402
from hireflow.db import models  # noqa: E402,F401
from hireflow.db.base import Base  # noqa: E402
from hireflow.db.session import engine  # noqa: E402
from hireflow.notify.dispatcher import NotificationDispatcher  # noqa: E402
from hireflow.types import ApplicantProfile  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_event_bus()
    yield


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        app_env="test",
        public_base_url="https://hireflow.test",
        upload_dir=tmp_path / "uploads",
        screenshot_dir=tmp_path / "screenshots",
        login_poll_interval_sec=0.01,
        login_poll_max_attempts=5,
        login_settle_sec=0,
        apply_settle_sec=0,
        submit_settle_sec=0,
        approval_window_sec=30,
        openai_api_key="",
        local_llm_enabled=False,
    )


@pytest.fixture
def profile() -> ApplicantProfile:
    return ApplicantProfile(
        name="Jane Doe",
        email="jane@example.com",
        phone="+15551234567",
        messaging_number="+15557654321",
        enable_messaging_notifications=True,
    )


@pytest.fixture
def build_orchestrator(settings: Settings):
    """Orchestrator wired to fakes; returns (orchestrator, factory, email, messaging)."""

    def build(*pages, unavailable: bool = False, writer=None, email=None, messaging=None, **overrides):
        effective = settings.model_copy(update=overrides) if overrides else settings
        factory = FakeBrowserFactory(*pages, unavailable=unavailable)
        email = email or FakeEmail()
        messaging = messaging or FakeMessaging()
        orchestrator = ApplicationOrchestrator(
            effective,
            browser_factory=factory,
            dispatcher=NotificationDispatcher(effective, email=email, messaging=messaging),
            writer=writer or FakeWriter(),
            event_bus=EventBus(),
        )
        return orchestrator, factory, email, messaging

    return build
