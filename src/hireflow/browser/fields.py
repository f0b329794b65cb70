from __future__ import annotations

import logging
from pathlib import Path

from hireflow.browser.driver import BrowserPage, PageElement
from hireflow.browser.matching import Fault, Found, first_confirmed
from hireflow.browser.strategies import FIELD_STRATEGIES, FieldSpec, label
from hireflow.config import Settings
from hireflow.types import ApplicantProfile, DocumentRefs, FieldMapping, FillReport

logger = logging.getLogger(__name__)

FieldValue = str | bool | None

_NON_TEXT_INPUTS = {"checkbox", "radio", "file", "submit", "button", "hidden", "image", "reset"}
_YES = {"yes", "true", "1", "y"}
_NO = {"no", "false", "0", "n"}

WORK_AUTHORIZATION_TEXT = {
    "citizen": "citizen",
    "permanent_resident": "permanent resident",
    "visa_required": "visa",
    "other": "other",
}


def _normalize(value: str) -> str:
    return " ".join(value.replace("_", " ").replace("-", " ").lower().split())


def resolve_document(name: str, upload_dir: Path) -> Path | None:
    if not name:
        return None
    path = Path(name)
    if not path.is_absolute():
        path = upload_dir / path
    if not path.is_file():
        logger.warning("Document not found on disk: %s", path)
        return None
    return path


def profile_values(
    profile: ApplicantProfile,
    *,
    documents: DocumentRefs,
    upload_dir: Path,
    cover_letter: str = "",
) -> dict[str, FieldValue]:
    education = profile.education[0] if profile.education else None
    current_job = next((item for item in profile.experience if item.current), None)
    resume = resolve_document(documents.resume or profile.resume_file_name, upload_dir)
    cover_file = resolve_document(documents.cover_letter or profile.cover_letter_file_name, upload_dir)

    return {
        "first_name": profile.resolved_first_name,
        "last_name": profile.resolved_last_name,
        "full_name": profile.name,
        "email": profile.email,
        "phone": profile.phone,
        "address": profile.address,
        "city": profile.city,
        "state": profile.state,
        "zip_code": profile.zip_code,
        "country": profile.country,
        "linkedin": profile.linkedin_url,
        "website": profile.website,
        "current_title": profile.current_title or (current_job.title if current_job else ""),
        "current_company": profile.current_company or (current_job.company if current_job else ""),
        "years_experience": profile.years_experience,
        "desired_salary": profile.desired_salary,
        "start_date": profile.start_date,
        "degree": education.degree if education else "",
        "school": education.school if education else "",
        "major": education.major if education else "",
        "graduation_year": education.graduation_year if education else "",
        "gpa": education.gpa if education else "",
        "work_authorization": WORK_AUTHORIZATION_TEXT.get(profile.work_authorization or "", ""),
        "requires_sponsorship": profile.requires_sponsorship,
        "consent": profile.consent_to_terms,
        "cover_letter_text": cover_letter,
        "resume": str(resume) if resume else "",
        "cover_letter": str(cover_file) if cover_file else "",
    }


async def choose_option(element: PageElement, desired: str) -> bool:
    """Select by option label, then option value, then partial label text."""
    wanted = _normalize(desired)
    options = [(label_text, value) for label_text, value in await element.options() if value or label_text]

    choice = next((value for label_text, value in options if _normalize(label_text) == wanted), None)
    if choice is None:
        choice = next((value for _, value in options if value and _normalize(value) == wanted), None)
    if choice is None:
        choice = next(
            (value for label_text, value in options if value and wanted in _normalize(label_text)),
            None,
        )
    if choice is None:
        return False

    await element.select_option(choice)
    return await element.selected_value() == choice


class FieldMapper:
    def __init__(self, settings: Settings):
        self.settings = settings

    async def fill(
        self,
        page: BrowserPage,
        profile: ApplicantProfile,
        *,
        documents: DocumentRefs | None = None,
        cover_letter: str = "",
    ) -> FillReport:
        values = profile_values(
            profile,
            documents=documents or DocumentRefs(),
            upload_dir=self.settings.upload_dir,
            cover_letter=cover_letter,
        )
        specs = list(FIELD_STRATEGIES)
        for question, answer in profile.custom_responses.items():
            specs.append(FieldSpec(f"custom:{question}", "text", (label(question),)))
            values[f"custom:{question}"] = answer

        report = FillReport()
        claimed: set[str] = set()
        for spec in specs:
            value = values.get(spec.name)
            if value is None or value == "":
                report.skipped_fields.append(spec.name)
                continue

            mapping = await self._fill_field(page, spec, value, claimed)
            if mapping is None:
                report.unmatched_fields.append(spec.name)
                continue
            report.mappings.append(mapping)
            if not mapping.confirmed:
                report.unmatched_fields.append(spec.name)

        logger.info(
            "Filled %s fields (unmatched=%s skipped=%s)",
            report.confirmed_count,
            len(report.unmatched_fields),
            len(report.skipped_fields),
        )
        return report

    async def _fill_field(
        self,
        page: BrowserPage,
        spec: FieldSpec,
        value: str | bool,
        claimed: set[str],
    ) -> FieldMapping | None:
        attempted: list[str] = []

        async def attempt(element: PageElement) -> bool:
            try:
                key = await element.identity()
                if key in claimed:
                    return False
                if spec.kind != "file" and not await element.is_visible():
                    return False
                if not await element.is_enabled():
                    return False
                attempted.append(key)
                confirmed = await self._write(element, spec, value)
            except Exception as exc:
                logger.debug("Writing %s failed on one candidate: %s", spec.name, exc)
                return False
            if confirmed:
                claimed.add(key)
            return confirmed

        result = await first_confirmed(page, spec.name, spec.descriptors, attempt)
        written = value if isinstance(value, str) else str(value).lower()

        if isinstance(result, Found):
            return FieldMapping(
                canonical_field=spec.name,
                selector=result.descriptor.describe(),
                strategy=result.descriptor.strategy,
                value=written,
                confirmed=True,
            )
        if isinstance(result, Fault):
            logger.warning("Field %s could not be evaluated: %s", spec.name, result.error)
        if attempted:
            return FieldMapping(canonical_field=spec.name, value=written, confirmed=False)
        return None

    async def _write(self, element: PageElement, spec: FieldSpec, value: str | bool) -> bool:
        tag = (await element.tag_name()).lower()
        input_type = (await element.get_attribute("type") or "").lower()

        if spec.kind == "file":
            if tag != "input" or input_type != "file" or not isinstance(value, str):
                return False
            await element.set_input_files(value)
            return Path(value).name in await element.uploaded_files()

        if spec.kind == "boolean":
            if not isinstance(value, bool) or tag != "input":
                return False
            if input_type == "checkbox":
                if await element.is_checked() != value:
                    await element.set_checked(value)
                return await element.is_checked() == value
            if input_type == "radio":
                option = (await element.get_attribute("value") or "").strip().lower()
                if option not in (_YES if value else _NO):
                    return False
                if not await element.is_checked():
                    await element.set_checked(True)
                return await element.is_checked()
            return False

        text_value = value if isinstance(value, str) else str(value)
        if tag == "select":
            return await choose_option(element, text_value)
        if tag == "textarea" or (tag == "input" and input_type not in _NON_TEXT_INPUTS):
            await element.fill(text_value)
            return await element.input_value() == text_value
        return False
