from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SessionStatus = Literal[
    "created",
    "pending_login",
    "ready_to_fill",
    "form_filled",
    "ready_for_submission",
    "approved",
    "submitted",
    "failed",
    "expired",
    "rejected",
]
AuthMethod = Literal["email", "google", "linkedin", "manual"]
WorkAuthorization = Literal["citizen", "permanent_resident", "visa_required", "other"]
NotificationChannelName = Literal["email", "messaging"]
NotificationOutcome = Literal["pending", "sent", "failed", "skipped"]
SubmissionResult = Literal["verified", "unverified", "error"]


class EducationEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    degree: str = ""
    major: str = ""
    school: str = ""
    graduation_year: str = ""
    gpa: str = ""


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    company: str = ""
    start_date: str = ""
    end_date: str = ""
    current: bool = False
    description: str = ""


class ApplicantProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str = ""
    first_name: str = ""
    last_name: str = ""

    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""

    work_authorization: WorkAuthorization | None = None
    visa_status: str = ""
    requires_sponsorship: bool | None = None

    desired_salary: str = ""
    start_date: str = ""
    linkedin_url: str = ""
    website: str = ""
    current_title: str = ""
    current_company: str = ""
    years_experience: str = ""

    education: tuple[EducationEntry, ...] = ()
    experience: tuple[ExperienceEntry, ...] = ()

    consent_to_terms: bool | None = None

    notify_by_email: bool = True
    messaging_number: str = ""
    enable_messaging_notifications: bool = False
    enable_ai_cover_letter: bool = False

    resume_file_name: str = ""
    cover_letter_file_name: str = ""
    custom_responses: dict[str, str] = Field(default_factory=dict)

    @field_validator("name", "email")
    @classmethod
    def validate_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @property
    def resolved_first_name(self) -> str:
        if self.first_name:
            return self.first_name
        return self.name.split(" ")[0]

    @property
    def resolved_last_name(self) -> str:
        if self.last_name:
            return self.last_name
        return " ".join(self.name.split(" ")[1:])

    def experience_summary(self) -> str:
        if not self.experience:
            return ""
        return ", ".join(f"{item.title} at {item.company}" for item in self.experience)


class LoginCredentials(BaseModel):
    email: str = ""
    password: str = Field(default="", repr=False)
    method: AuthMethod = "email"

    @property
    def automatable(self) -> bool:
        return self.method != "manual" and bool(self.email and self.password)


class DocumentRefs(BaseModel):
    resume: str = ""
    cover_letter: str = ""


class StartRequest(BaseModel):
    job_url: str
    profile: ApplicantProfile
    credentials: LoginCredentials | None = None
    documents: DocumentRefs = Field(default_factory=DocumentRefs)
    auto_proceed: bool = True

    @field_validator("job_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("job_url must be an http(s) URL")
        return value


class JobDetails(BaseModel):
    title: str = "Unknown Position"
    company: str = "Unknown Company"
    description: str = ""


class FieldMapping(BaseModel):
    canonical_field: str
    selector: str = ""
    strategy: str = ""
    value: str = ""
    confirmed: bool = False


class FillReport(BaseModel):
    mappings: list[FieldMapping] = Field(default_factory=list)
    unmatched_fields: list[str] = Field(default_factory=list)
    skipped_fields: list[str] = Field(default_factory=list)

    @property
    def confirmed_count(self) -> int:
        return sum(1 for mapping in self.mappings if mapping.confirmed)

    @property
    def matched_fields(self) -> set[str]:
        return {mapping.canonical_field for mapping in self.mappings if mapping.confirmed}

    def summary(self) -> dict[str, Any]:
        return {
            "filled": self.confirmed_count,
            "matched": sorted(self.matched_fields),
            "unmatched": list(self.unmatched_fields),
            "skipped": list(self.skipped_fields),
        }


class EvidenceRef(BaseModel):
    label: str
    path: str
    captured_at: datetime


class NotificationRequest(BaseModel):
    channel: NotificationChannelName
    recipient: str
    purpose: str
    subject: str = ""
    body: str = ""
    outcome: NotificationOutcome = "pending"
    error: str = ""


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)


class EngineResult(BaseModel):
    success: bool
    message: str
    session_id: str = ""
    status: str = ""


class StartResult(EngineResult):
    requires_login: bool = False
    platform: str = ""
    browser_unavailable: bool = False


class LoginCheckResult(EngineResult):
    is_logged_in: bool = False
    can_proceed: bool = False


class FillResult(EngineResult):
    filled: bool = False
    ready_to_submit: bool = False
    filled_count: int = 0
    matched_fields: list[str] = Field(default_factory=list)
    unmatched_fields: list[str] = Field(default_factory=list)


class SubmitResult(EngineResult):
    submitted: bool = False
    verified: bool = False


class DecisionResult(EngineResult):
    pass


class CloseResult(EngineResult):
    released: bool = False
