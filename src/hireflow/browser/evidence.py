from __future__ import annotations

import logging
from datetime import UTC, datetime

from hireflow.browser.driver import BrowserPage
from hireflow.config import Settings
from hireflow.types import EvidenceRef

logger = logging.getLogger(__name__)


class EvidenceRecorder:
    def __init__(self, settings: Settings):
        self.settings = settings

    async def capture(self, page: BrowserPage, session_id: str, label: str) -> EvidenceRef | None:
        captured_at = datetime.now(UTC)
        directory = self.settings.screenshot_dir
        path = directory / f"{label}_{session_id}_{captured_at.strftime('%Y%m%dT%H%M%S%f')}.png"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            stored = await page.capture_screenshot(path)
        except Exception as exc:
            logger.warning("Screenshot %s failed session_id=%s: %s", label, session_id, exc)
            return None

        logger.debug("Captured %s session_id=%s path=%s", label, session_id, stored)
        return EvidenceRef(label=label, path=stored, captured_at=captured_at)
