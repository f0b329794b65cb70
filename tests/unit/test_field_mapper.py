from __future__ import annotations

import asyncio

from fakes import FakeElement, FakePage, application_form
from hireflow.browser.fields import FieldMapper, choose_option, profile_values, resolve_document
from hireflow.types import ApplicantProfile, DocumentRefs, EducationEntry


def _fill(settings, page, profile, **kwargs):
    return asyncio.run(FieldMapper(settings).fill(page, profile, **kwargs))


def test_fills_basic_contact_fields(settings, profile) -> None:
    page = FakePage([application_form()])

    report = _fill(settings, page, profile)

    assert page.by_name("first_name").value == "Jane"
    assert page.by_name("last_name").value == "Doe"
    assert page.by_name("email").value == "jane@example.com"
    assert page.by_name("phone").value == "+15551234567"
    assert report.confirmed_count == 4
    assert report.matched_fields == {"first_name", "last_name", "email", "phone"}
    assert "full_name" in report.unmatched_fields
    assert "city" in report.skipped_fields


def test_hidden_and_disabled_inputs_are_not_counted(settings, profile) -> None:
    page = FakePage(
        [
            FakeElement("input", name="first_name", visible=False),
            FakeElement("input", name="last_name", enabled=False),
            FakeElement("input", name="email", type="email"),
        ]
    )

    report = _fill(settings, page, profile)

    assert page.by_name("first_name").fill_calls == []
    assert page.by_name("last_name").fill_calls == []
    assert report.matched_fields == {"email"}
    assert {"first_name", "last_name"} <= set(report.unmatched_fields)


def test_unconfirmed_write_is_reported_unmatched(settings, profile) -> None:
    page = FakePage([FakeElement("input", name="phone", type="tel", readback=lambda value: value[:5])])

    report = _fill(settings, page, profile)

    assert report.confirmed_count == 0
    assert "phone" in report.unmatched_fields
    mapping = next(item for item in report.mappings if item.canonical_field == "phone")
    assert mapping.confirmed is False


def test_one_element_is_never_claimed_twice(settings) -> None:
    profile = ApplicantProfile(name="Jane Doe", email="jane@example.com", city="Boston")
    page = FakePage([FakeElement("input", name="contact_email_city")])

    report = _fill(settings, page, profile)

    assert page.by_name("contact_email_city").fill_calls == ["jane@example.com"]
    assert report.matched_fields == {"email"}
    assert "city" in report.unmatched_fields


def test_select_radio_checkbox_and_custom_questions(settings) -> None:
    profile = ApplicantProfile(
        name="Jane Doe",
        email="jane@example.com",
        work_authorization="permanent_resident",
        requires_sponsorship=False,
        consent_to_terms=True,
        custom_responses={"Why do you want to work here?": "The mission."},
    )
    page = FakePage(
        [
            FakeElement(
                "select",
                name="work_authorization",
                options=[("Select...", ""), ("US Citizen", "citizen"), ("Permanent Resident", "pr")],
            ),
            FakeElement("input", type="radio", name="needs_sponsorship", value="yes"),
            FakeElement("input", type="radio", name="needs_sponsorship", value="no"),
            FakeElement("input", type="checkbox", name="privacy_consent"),
            FakeElement("label", "Why do you want to work here?", for_="q_why"),
            FakeElement("textarea", id="q_why", name="question_1"),
        ]
    )

    report = _fill(settings, page, profile)

    radios = [node for node in page.all_elements() if node.attrs.get("type") == "radio"]
    assert page.by_name("work_authorization").value == "pr"
    assert [radio.checked for radio in radios] == [False, True]
    assert page.by_name("privacy_consent").checked is True
    assert page.by_name("question_1").value == "The mission."
    assert {
        "work_authorization",
        "requires_sponsorship",
        "consent",
        "custom:Why do you want to work here?",
    } <= report.matched_fields


def test_file_upload_confirmed_by_readback(settings, profile, tmp_path) -> None:
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    (settings.upload_dir / "jane_resume.pdf").write_bytes(b"%PDF")
    page = FakePage([FakeElement("input", type="file", name="resume", visible=False)])

    report = _fill(settings, page, profile, documents=DocumentRefs(resume="jane_resume.pdf"))

    assert page.by_name("resume").files == ["jane_resume.pdf"]
    assert "resume" in report.matched_fields


def test_missing_document_is_skipped(settings, profile) -> None:
    page = FakePage([FakeElement("input", type="file", name="resume")])

    report = _fill(settings, page, profile, documents=DocumentRefs(resume="missing.pdf"))

    assert "resume" in report.skipped_fields
    assert page.by_name("resume").files == []


def test_cover_letter_text_written_to_textarea(settings, profile) -> None:
    page = FakePage([FakeElement("textarea", name="cover_letter")])

    report = _fill(settings, page, profile, cover_letter="Dear Acme")

    assert page.by_name("cover_letter").value == "Dear Acme"
    assert "cover_letter_text" in report.matched_fields


def test_choose_option_prefers_exact_label_then_value_then_partial() -> None:
    element = FakeElement("select", options=[("Canada", "ca"), ("United States of America", "us"), ("USA", "usa")])

    assert asyncio.run(choose_option(element, "usa")) is True
    assert element.value == "usa"
    assert asyncio.run(choose_option(element, "ca")) is True
    assert element.value == "ca"
    assert asyncio.run(choose_option(element, "united states")) is True
    assert element.value == "us"
    assert asyncio.run(choose_option(element, "Mexico")) is False


def test_profile_values_derive_from_education_and_names(settings) -> None:
    profile = ApplicantProfile(
        name="Ada King Lovelace",
        email="ada@example.com",
        work_authorization="citizen",
        education=(EducationEntry(degree="BSc", school="London", graduation_year="1835"),),
    )

    values = profile_values(profile, documents=DocumentRefs(), upload_dir=settings.upload_dir)

    assert values["first_name"] == "Ada"
    assert values["last_name"] == "King Lovelace"
    assert values["school"] == "London"
    assert values["work_authorization"] == "citizen"
    assert values["requires_sponsorship"] is None


def test_resolve_document_accepts_absolute_paths(tmp_path) -> None:
    document = tmp_path / "cv.pdf"
    document.write_bytes(b"%PDF")

    assert resolve_document(str(document), tmp_path / "elsewhere") == document
    assert resolve_document("", tmp_path) is None
