from __future__ import annotations

import logging

from hireflow.browser.driver import BrowserPage
from hireflow.browser.matching import first_confirmed
from hireflow.browser.strategies import concept
from hireflow.browser.verification import visible_text
from hireflow.types import JobDetails

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_CHARS = 50
MAX_DESCRIPTION_CHARS = 5000


async def _text_of(page: BrowserPage, name: str, *, min_chars: int = 1, exclude: str = "") -> str:
    found_text = ""

    async def accept(element) -> bool:
        nonlocal found_text
        value = " ".join((await element.text_content()).split())
        if len(value) < min_chars or (exclude and exclude in value):
            return False
        found_text = value
        return True

    await first_confirmed(page, name, concept(name), accept)
    return found_text


async def extract_job_details(page: BrowserPage) -> JobDetails:
    """Best-effort title, company and description from the job page."""
    details = JobDetails()
    try:
        title = await _text_of(page, "job_title")
        company = await _text_of(page, "company", exclude=title)
        description = await _text_of(page, "job_description", min_chars=MIN_DESCRIPTION_CHARS)
        if not description:
            description = visible_text(await page.get_content())
    except Exception as exc:
        logger.warning("Job detail extraction failed: %s", exc)
        return details

    return JobDetails(
        title=title or details.title,
        company=company or details.company,
        description=description[:MAX_DESCRIPTION_CHARS],
    )
