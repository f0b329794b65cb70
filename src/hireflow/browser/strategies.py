from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MatchStrategy = Literal["css", "label", "text"]
FieldKind = Literal["text", "select", "boolean", "file"]

CLICKABLE = 'a, button, [role="button"], input[type="submit"]'
BUTTONS = 'button, [role="button"], input[type="submit"]'


@dataclass(frozen=True, slots=True)
class MatcherDescriptor:
    """One way of locating a concept on a page.

    ``css`` patterns are selectors, ``label`` patterns are matched against
    ``<label>`` text and resolved through ``for``/nesting, and ``text``
    patterns are matched against the text of elements selected by ``scope``.
    """

    strategy: MatchStrategy
    pattern: str
    scope: str = ""

    def describe(self) -> str:
        if self.strategy == "css":
            return self.pattern
        if self.strategy == "label":
            return f"label:{self.pattern}"
        return f"text:{self.pattern}@{self.scope}"


def css(pattern: str) -> MatcherDescriptor:
    return MatcherDescriptor(strategy="css", pattern=pattern)


def label(text: str) -> MatcherDescriptor:
    return MatcherDescriptor(strategy="label", pattern=text.lower())


def text(pattern: str, scope: str = CLICKABLE) -> MatcherDescriptor:
    return MatcherDescriptor(strategy="text", pattern=pattern.lower(), scope=scope)


def _input_for(*keys: str) -> tuple[MatcherDescriptor, ...]:
    descriptors: list[MatcherDescriptor] = []
    for key in keys:
        descriptors.append(css(f'input[name*="{key}" i]'))
        descriptors.append(css(f'input[id*="{key}" i]'))
    return tuple(descriptors)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    kind: FieldKind
    descriptors: tuple[MatcherDescriptor, ...]


FIELD_STRATEGIES: tuple[FieldSpec, ...] = (
    FieldSpec(
        "first_name",
        "text",
        (
            css('input[name*="first" i][name*="name" i]'),
            css('input[id*="first" i][id*="name" i]'),
            css('input[autocomplete="given-name"]'),
            css('input[placeholder*="first name" i]'),
            label("first name"),
        ),
    ),
    FieldSpec(
        "last_name",
        "text",
        (
            css('input[name*="last" i][name*="name" i]'),
            css('input[id*="last" i][id*="name" i]'),
            css('input[autocomplete="family-name"]'),
            css('input[placeholder*="last name" i]'),
            label("last name"),
        ),
    ),
    FieldSpec(
        "full_name",
        "text",
        (
            css('input[name="name"]'),
            css('input[id="name"]'),
            css('input[name*="full" i][name*="name" i]'),
            css('input[autocomplete="name"]'),
            css('input[placeholder*="full name" i]'),
            label("full name"),
        ),
    ),
    FieldSpec(
        "email",
        "text",
        (
            css('input[type="email"]'),
            css('input[name*="email" i]'),
            css('input[id*="email" i]'),
            css('input[autocomplete="email"]'),
            label("email"),
        ),
    ),
    FieldSpec(
        "phone",
        "text",
        (
            css('input[type="tel"]'),
            css('input[name*="phone" i]'),
            css('input[id*="phone" i]'),
            css('input[autocomplete="tel"]'),
            label("phone"),
        ),
    ),
    FieldSpec(
        "address",
        "text",
        (
            css('input[autocomplete="street-address"]'),
            css('input[autocomplete="address-line1"]'),
            *_input_for("address"),
            label("address"),
        ),
    ),
    FieldSpec(
        "city",
        "text",
        (css('input[autocomplete="address-level2"]'), *_input_for("city"), label("city")),
    ),
    FieldSpec(
        "state",
        "text",
        (
            css('select[name*="state" i]'),
            css('input[autocomplete="address-level1"]'),
            *_input_for("state", "province"),
            label("state"),
        ),
    ),
    FieldSpec(
        "zip_code",
        "text",
        (
            css('input[autocomplete="postal-code"]'),
            *_input_for("zip", "postal"),
            label("zip"),
            label("postal code"),
        ),
    ),
    FieldSpec(
        "country",
        "text",
        (
            css('select[name*="country" i]'),
            css('select[id*="country" i]'),
            *_input_for("country"),
            label("country"),
        ),
    ),
    FieldSpec("linkedin", "text", (*_input_for("linkedin"), label("linkedin"))),
    FieldSpec(
        "website",
        "text",
        (*_input_for("website", "portfolio"), css('input[type="url"]'), label("website")),
    ),
    FieldSpec(
        "current_title",
        "text",
        (*_input_for("current_title", "job_title", "jobtitle"), label("current title")),
    ),
    FieldSpec(
        "current_company",
        "text",
        (*_input_for("current_company", "employer"), css('input[name="company"]'), label("current company")),
    ),
    FieldSpec(
        "years_experience",
        "text",
        (*_input_for("years", "experience"), label("years of experience")),
    ),
    FieldSpec(
        "desired_salary",
        "text",
        (*_input_for("salary", "compensation"), label("salary")),
    ),
    FieldSpec(
        "start_date",
        "text",
        (*_input_for("start_date", "startdate", "available"), label("start date")),
    ),
    FieldSpec(
        "degree",
        "text",
        (css('select[name*="degree" i]'), *_input_for("degree"), label("degree")),
    ),
    FieldSpec("school", "text", (*_input_for("school", "university"), label("school"))),
    FieldSpec("major", "text", (*_input_for("major", "discipline"), label("major"))),
    FieldSpec(
        "graduation_year",
        "text",
        (*_input_for("graduation"), label("graduation")),
    ),
    FieldSpec("gpa", "text", (*_input_for("gpa"), label("gpa"))),
    FieldSpec(
        "work_authorization",
        "select",
        (
            css('select[name*="authoriz" i]'),
            css('select[id*="authoriz" i]'),
            css('select[name*="eligib" i]'),
            label("authorized to work"),
            label("work authorization"),
        ),
    ),
    FieldSpec(
        "requires_sponsorship",
        "boolean",
        (
            css('input[type="radio"][name*="sponsor" i]'),
            css('input[type="checkbox"][name*="sponsor" i]'),
            label("sponsorship"),
        ),
    ),
    FieldSpec(
        "consent",
        "boolean",
        (
            css('input[type="checkbox"][name*="consent" i]'),
            css('input[type="checkbox"][name*="terms" i]'),
            css('input[type="checkbox"][name*="agree" i]'),
            css('input[type="checkbox"][name*="privacy" i]'),
            label("i agree"),
        ),
    ),
    FieldSpec(
        "cover_letter_text",
        "text",
        (
            css('textarea[name*="cover" i]'),
            css('textarea[id*="cover" i]'),
            label("cover letter"),
        ),
    ),
    FieldSpec(
        "resume",
        "file",
        (
            css('input[type="file"][name*="resume" i]'),
            css('input[type="file"][name*="cv" i]'),
            css('input[type="file"][id*="resume" i]'),
            css('input[type="file"][aria-label*="resume" i]'),
            label("resume"),
            label("cv"),
        ),
    ),
    FieldSpec(
        "cover_letter",
        "file",
        (
            css('input[type="file"][name*="cover" i]'),
            css('input[type="file"][name*="letter" i]'),
            css('input[type="file"][id*="cover" i]'),
            css('input[type="file"][aria-label*="cover" i]'),
            label("cover letter"),
        ),
    ),
)

FIELD_NAMES: tuple[str, ...] = tuple(spec.name for spec in FIELD_STRATEGIES)

_LOGIN_INDICATORS = (
    css('input[type="password"]'),
    text("sign in", BUTTONS),
    text("log in", BUTTONS),
    text("login", BUTTONS),
    css(".login-form"),
    css('form[action*="login" i]'),
    css('[data-testid*="login" i]'),
)

CONCEPTS: dict[str, tuple[MatcherDescriptor, ...]] = {
    "login_required": _LOGIN_INDICATORS,
    "logged_in": (
        css('[data-testid*="user-menu" i]'),
        css('[data-testid*="profile" i]'),
        css('[data-testid*="account" i]'),
        css('[data-testid*="logout" i]'),
        css(".user-avatar"),
        css(".user-profile"),
        css(".user-name"),
        css(".profile-dropdown"),
        css(".account-menu"),
        css('[aria-label*="account" i]'),
        text("logout"),
        text("log out"),
        text("sign out"),
    ),
    "login_entry": (
        text("sign in"),
        text("log in"),
        css('a[href*="login" i]'),
        css('a[href*="signin" i]'),
    ),
    "email_input": (
        css('input[type="email"]'),
        css('input[name*="email" i]'),
        css('input[id*="email" i]'),
        css('input[name*="username" i]'),
        css('input[autocomplete="username"]'),
    ),
    "password_input": (css('input[type="password"]'),),
    "login_submit": (
        css('button[type="submit"]'),
        css('input[type="submit"]'),
        text("sign in", BUTTONS),
        text("log in", BUTTONS),
        text("continue", BUTTONS),
    ),
    "oauth_google": (
        css('[data-provider="google"]'),
        css('a[href*="accounts.google.com"]'),
        text("google"),
    ),
    "oauth_linkedin": (
        css('[data-provider="linkedin"]'),
        css('a[href*="linkedin.com/oauth"]'),
        text("linkedin"),
    ),
    "oauth_next": (
        css("#identifierNext"),
        css("#passwordNext"),
        text("next", BUTTONS),
    ),
    "apply_entry": (
        css('[data-testid*="apply" i]'),
        css(".apply-button"),
        text("apply now"),
        text("apply for this job"),
        text("easy apply"),
        text("apply"),
    ),
    "application_form": (css("form"), css('[role="form"]')),
    "submit_button": (
        css('button[type="submit"]'),
        css('input[type="submit"]'),
        css('[data-testid*="submit" i]'),
        css(".submit-button"),
        text("submit application", BUTTONS),
        text("send application", BUTTONS),
        text("submit", BUTTONS),
        text("apply", BUTTONS),
    ),
    "job_title": (
        css('[data-testid*="job-title" i]'),
        css(".job-title"),
        css("#job-title"),
        css(".position-title"),
        css("h1"),
    ),
    "company": (
        css('[data-testid*="company" i]'),
        css(".company-name"),
        css("#company-name"),
        css(".employer-name"),
        css(".company"),
        css("h2"),
    ),
    "job_description": (
        css('[data-testid*="description" i]'),
        css(".job-description"),
        css("#job-description"),
        css(".job-details"),
        css(".description"),
    ),
    "success_element": (
        css(".success-message"),
        css(".confirmation-message"),
        css(".confirmation"),
        css('[data-testid*="success" i]'),
        css('[data-testid*="confirmation" i]'),
    ),
}

SUCCESS_TEXT_PHRASES: tuple[str, ...] = (
    "thank you for applying",
    "thank you for your application",
    "application submitted",
    "application received",
    "successfully submitted",
    "we have received your application",
    "thank you",
)
SUCCESS_URL_MARKERS: tuple[str, ...] = ("success", "thank", "confirm", "submitted")
SUCCESS_TITLE_MARKERS: tuple[str, ...] = ("thank", "success", "confirm", "submitted", "received")
AUTH_URL_MARKERS: tuple[str, ...] = ("login", "signin", "sign-in", "sign_in", "auth", "accounts.google.com")


# Checked ahead of the generic descriptors when the session's platform is known.
PLATFORM_OVERLAYS: dict[str, dict[str, tuple[MatcherDescriptor, ...]]] = {
    "greenhouse": {
        "application_form": (css('form[data-qa="application-form"]'), css(".application-form")),
        "submit_button": (css('button[data-qa="submit-application"]'), css(".btn-submit")),
        "success_element": (css('[data-qa="application-success"]'),),
    },
    "lever": {
        "application_form": (css("form.application"), css(".application-form")),
        "apply_entry": (css(".postings-btn"), css('a[href$="/apply"]')),
        "submit_button": (css(".submit-btn"), css("#btn-submit")),
    },
    "workday": {
        "apply_entry": (css('[data-automation-id="adventureButton"]'),),
    },
}


def concept(name: str, platform: str = "") -> tuple[MatcherDescriptor, ...]:
    try:
        generic = CONCEPTS[name]
    except KeyError:
        raise KeyError(f"unknown concept '{name}'") from None
    return PLATFORM_OVERLAYS.get(platform, {}).get(name, ()) + generic
