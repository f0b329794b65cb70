from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass(frozen=True, slots=True)
class Platform:
    name: str
    tag: str
    instructions: str

    @property
    def known(self) -> bool:
        return self.tag != "unknown"


# Order matters: the first matching marker wins. Dotted markers match the host
# or one of its parent domains; bare markers match a single host label.
_PLATFORMS: tuple[tuple[tuple[str, ...], Platform], ...] = (
    (
        ("greenhouse.io",),
        Platform(
            name="Greenhouse",
            tag="greenhouse",
            instructions=(
                "Personal information, resume upload and custom questions share one page. "
                "Required fields are marked with an asterisk."
            ),
        ),
    ),
    (
        ("lever.co",),
        Platform(
            name="Lever",
            tag="lever",
            instructions="Profile fields and resume upload render on one page; prefer input names over placeholders.",
        ),
    ),
    (
        ("myworkdayjobs.com", "myworkdaysite.com"),
        Platform(
            name="Workday",
            tag="workday",
            instructions="Workday usually requires an account; expect a sign-in step before the multi-page form.",
        ),
    ),
    (
        ("bamboohr.com",),
        Platform(name="BambooHR", tag="bamboohr", instructions="Single-page form with resume upload."),
    ),
    (
        ("smartrecruiters.com",),
        Platform(
            name="SmartRecruiters",
            tag="smartrecruiters",
            instructions="May include account creation and multi-step forms.",
        ),
    ),
    (
        ("jobvite.com",),
        Platform(name="Jobvite", tag="jobvite", instructions="Apply button opens the form in place."),
    ),
    (
        ("icims.com",),
        Platform(name="iCIMS", tag="icims", instructions="Forms are often embedded in an iframe behind a sign-in."),
    ),
    (
        ("taleo.net",),
        Platform(name="Taleo", tag="taleo", instructions="Account sign-in precedes a multi-step form."),
    ),
    (
        ("successfactors",),
        Platform(name="SuccessFactors", tag="successfactors", instructions="Account sign-in precedes the form."),
    ),
    (
        ("ashbyhq.com",),
        Platform(name="Ashby", tag="ashby", instructions="Single-page form with labelled inputs."),
    ),
    (
        ("workable.com",),
        Platform(
            name="Workable",
            tag="workable",
            instructions="Modular forms with optional screening questions; handle radio and select controls carefully.",
        ),
    ),
    (
        ("linkedin.com",),
        Platform(
            name="LinkedIn",
            tag="linkedin",
            instructions="Easy Apply runs in a modal after sign-in; external apply links leave the site.",
        ),
    ),
    (
        ("google.com",),
        Platform(name="Google Careers", tag="google", instructions="Google account sign-in is required."),
    ),
    (
        ("amazon.jobs", "amazon.com"),
        Platform(name="Amazon Jobs", tag="amazon", instructions="Amazon account sign-in is required."),
    ),
    (
        ("microsoft.com",),
        Platform(name="Microsoft Careers", tag="microsoft", instructions="Microsoft account sign-in is required."),
    ),
    (
        ("metacareers.com", "meta.com"),
        Platform(name="Meta Careers", tag="meta", instructions="Meta careers account sign-in is required."),
    ),
)

UNKNOWN_PLATFORM = Platform(
    name="Unknown",
    tag="unknown",
    instructions="Use generic form detection with semantic labels; make no assumptions about field order.",
)


def _host(url: str) -> str:
    value = url.strip().lower()
    parsed = urlparse(value if "://" in value else f"//{value}")
    return (parsed.hostname or "").removeprefix("www.")


def _matches(host: str, marker: str) -> bool:
    if "." in marker:
        return host == marker or host.endswith(f".{marker}")
    return marker in host.split(".")


def classify_platform(url: str) -> Platform:
    host = _host(url)
    if not host:
        return UNKNOWN_PLATFORM

    for markers, platform in _PLATFORMS:
        if any(_matches(host, marker) for marker in markers):
            return platform
    return UNKNOWN_PLATFORM
