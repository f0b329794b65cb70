from __future__ import annotations

import html
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Message:
    purpose: str
    subject: str
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def html(self) -> str:
        return "\n".join(f"<p>{html.escape(line)}</p>" for line in self.lines)


def login_instructions(
    *,
    title: str,
    company: str,
    platform: str,
    job_url: str,
    session_id: str,
    poll_interval_sec: float,
    max_attempts: int,
    platform_hint: str = "",
) -> Message:
    minutes = max(1, round(poll_interval_sec * max_attempts / 60))
    return Message(
        purpose="login_instructions",
        subject=f"Login required: {title} at {company}",
        lines=(
            f"The application for {title} at {company} on {platform} needs you to sign in.",
            f"Open {job_url} and log in to continue.",
            *((f"Tip: {platform_hint}",) if platform_hint else ()),
            f"We check for a completed login every {poll_interval_sec:g}s for about {minutes} minutes; "
            "after that the session expires.",
            f"Session: {session_id}",
        ),
    )


def review_request(
    *,
    title: str,
    company: str,
    filled_count: int,
    approve_url: str,
    reject_url: str,
    window_sec: float,
    session_id: str,
) -> Message:
    return Message(
        purpose="review_request",
        subject=f"Review your application: {title} at {company}",
        lines=(
            f"{filled_count} fields were filled on the application for {title} at {company}.",
            f"Approve and submit now: {approve_url}",
            f"Reject and cancel: {reject_url}",
            f"Without a response the application is submitted automatically in {window_sec:g} seconds.",
            f"Session: {session_id}",
        ),
    )


def confirmation(
    *,
    title: str,
    company: str,
    submitted: bool,
    status: str,
    session_id: str,
    error: str = "",
) -> Message:
    if submitted:
        return Message(
            purpose="confirmation",
            subject=f"Application submitted: {title} at {company}",
            lines=(
                f"Your application for {title} at {company} was submitted.",
                f"Session: {session_id}",
            ),
        )
    return Message(
        purpose="confirmation",
        subject=f"Application not submitted: {title} at {company}",
        lines=(
            f"Your application for {title} at {company} ended with status '{status}'.",
            f"Reason: {error or 'unknown'}",
            f"Session: {session_id}",
        ),
    )
