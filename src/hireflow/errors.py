from __future__ import annotations


class HireflowError(Exception):
    """Base class for engine errors."""


class BrowserUnavailable(HireflowError):
    """The environment cannot host browser automation for this attempt."""


class SelectorNotFound(HireflowError):
    def __init__(self, concept: str):
        super().__init__(f"no element matched '{concept}'")
        self.concept = concept


class LoginTimeout(HireflowError):
    def __init__(self, attempts: int, interval_sec: float):
        super().__init__(
            f"Login was not detected after {attempts} checks "
            f"({attempts * interval_sec:.0f}s); session expired"
        )
        self.attempts = attempts
        self.interval_sec = interval_sec


class SubmissionUnverified(HireflowError):
    def __init__(self, confidence: float = 0.0, signal: str = ""):
        message = "Application submission could not be verified"
        if signal:
            message = f"{message} (weak signal '{signal}', confidence {confidence:.2f})"
        super().__init__(message)
        self.confidence = confidence
        self.signal = signal


class NotificationSendFailure(HireflowError):
    def __init__(self, channel: str, recipient: str, reason: str):
        super().__init__(f"{channel} notification to {recipient} failed: {reason}")
        self.channel = channel
        self.recipient = recipient
        self.reason = reason


class TokenInvalidOrExpired(HireflowError):
    pass
