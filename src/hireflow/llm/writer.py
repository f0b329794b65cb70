from __future__ import annotations

import logging

from hireflow.config import Settings, get_settings
from hireflow.llm.prompts import COVER_LETTER_PROMPT
from hireflow.llm.providers import ProviderPool
from hireflow.types import ApplicantProfile, JobDetails

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_CHARS = 8000


def applicant_background(profile: ApplicantProfile) -> str:
    parts = []
    if profile.current_title or profile.current_company:
        parts.append(f"Currently {profile.current_title or 'working'} at {profile.current_company or 'a company'}.")
    if profile.years_experience:
        parts.append(f"{profile.years_experience} years of experience.")
    experience = profile.experience_summary()
    if experience:
        parts.append(f"Experience: {experience}.")
    for entry in profile.education:
        subject = " ".join(item for item in (entry.degree, entry.major) if item) or "Studies"
        parts.append(f"Education: {subject} at {entry.school or 'an institution'}.")
    return " ".join(parts) or "No background details provided."


class CoverLetterWriter:
    def __init__(self, settings: Settings | None = None, pool: ProviderPool | None = None):
        self.settings = settings or get_settings()
        self.pool = pool or ProviderPool(self.settings)

    def build_prompt(self, profile: ApplicantProfile, job: JobDetails) -> str:
        return COVER_LETTER_PROMPT.format(
            job_title=job.title,
            company=job.company,
            applicant_name=profile.name,
            job_description=job.description[:MAX_DESCRIPTION_CHARS],
            applicant_background=applicant_background(profile),
        )

    def generate(self, prompt: str) -> str:
        """Text from the first provider that answers, or "" when none does."""
        for provider in self.pool.available():
            try:
                text = provider.complete_text(prompt).content.strip()
            except Exception as exc:
                logger.warning("Cover letter generation failed provider=%s error=%s", provider.config.name, exc)
                continue
            if text:
                return text
        return ""

    def write(self, profile: ApplicantProfile, job: JobDetails) -> str:
        return self.generate(self.build_prompt(profile, job))
