from __future__ import annotations

import logging
from dataclasses import dataclass

from bs4 import BeautifulSoup

from hireflow.browser.driver import BrowserPage
from hireflow.browser.matching import is_present
from hireflow.browser.strategies import (
    SUCCESS_TEXT_PHRASES,
    SUCCESS_TITLE_MARKERS,
    SUCCESS_URL_MARKERS,
)
from hireflow.config import Settings

logger = logging.getLogger(__name__)

SIGNAL_CONFIDENCE: dict[str, float] = {
    "text": 0.9,
    "url": 0.8,
    "title": 0.7,
    "form_absent": 0.4,
}


@dataclass(frozen=True, slots=True)
class Verdict:
    verified: bool
    signal: str = ""
    confidence: float = 0.0
    detail: str = ""


def visible_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.extract()
    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        style = (tag.get("style") or "").replace(" ", "").lower()
        if tag.has_attr("hidden") or "display:none" in style or "visibility:hidden" in style:
            tag.decompose()

    text = soup.get_text(" ")
    return " ".join(text.split()).lower()


class SubmissionVerifier:
    def __init__(self, settings: Settings):
        self.min_confidence = settings.submission_min_confidence

    async def verify(self, page: BrowserPage, *, form_present_before: bool, platform: str = "") -> Verdict:
        signal, detail = await self._first_signal(page, form_present_before=form_present_before, platform=platform)
        if not signal:
            logger.info("No submission success signal found")
            return Verdict(verified=False)

        confidence = SIGNAL_CONFIDENCE[signal]
        verified = confidence >= self.min_confidence
        logger.info(
            "Submission signal=%s confidence=%.2f verified=%s (%s)",
            signal,
            confidence,
            verified,
            detail,
        )
        return Verdict(verified=verified, signal=signal, confidence=confidence, detail=detail)

    async def _first_signal(self, page: BrowserPage, *, form_present_before: bool, platform: str) -> tuple[str, str]:
        text = visible_text(await page.get_content())
        phrase = next((item for item in SUCCESS_TEXT_PHRASES if item in text), None)
        if phrase:
            return "text", phrase
        if await is_present(page, "success_element", platform=platform):
            return "text", "confirmation element"

        url = (await page.get_url()).lower()
        marker = next((item for item in SUCCESS_URL_MARKERS if item in url), None)
        if marker:
            return "url", marker

        title = (await page.get_title()).lower()
        marker = next((item for item in SUCCESS_TITLE_MARKERS if item in title), None)
        if marker:
            return "title", marker

        if form_present_before and not await is_present(page, "application_form", platform=platform):
            return "form_absent", "application form no longer present"
        return "", ""
