from __future__ import annotations

import asyncio
import html
import itertools
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from hireflow.errors import BrowserUnavailable, NotificationSendFailure

_KEYS = itertools.count(1)

_TAG = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*")
_TOKEN = re.compile(
    r"""
    \#(?P<id>[\w-]+)
    | \.(?P<cls>[\w-]+)
    | \[\s*(?P<attr>[\w-]+)\s*
        (?:(?P<op>[*^$]?=)\s*"(?P<value>(?:[^"\\]|\\.)*)"\s*(?P<flag>i)?\s*)?
      \]
    """,
    re.VERBOSE,
)


def _split_selector_list(selector: str) -> list[str]:
    parts, current, quoted = [], [], False
    for char in selector:
        if char == '"':
            quoted = not quoted
        if char == "," and not quoted:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [part for part in parts if part]


def _parse_compound(selector: str) -> tuple[str | None, list[re.Match[str]]]:
    tag_match = _TAG.match(selector)
    tag = tag_match.group(0).lower() if tag_match else None
    rest = selector[tag_match.end():] if tag_match else selector
    tokens, position = [], 0
    while position < len(rest):
        match = _TOKEN.match(rest, position)
        if match is None:
            raise ValueError(f"unsupported selector in fake DOM: {selector!r}")
        tokens.append(match)
        position = match.end()
    return tag, tokens


class FakeElement:
    def __init__(
        self,
        tag: str,
        text: str = "",
        *,
        children: list[FakeElement] | None = None,
        visible: bool = True,
        enabled: bool = True,
        value: str = "",
        checked: bool = False,
        options: list[tuple[str, str]] | None = None,
        on_click: Callable[[FakePage], None] | None = None,
        readback: Callable[[str], str] | None = None,
        **attrs: str,
    ):
        self.tag = tag.lower()
        self.text = text
        self.children = children or []
        self.visible = visible
        self.enabled = enabled
        self.value = value
        self.checked = checked
        self.option_list = options or []
        self.on_click = on_click
        self.readback = readback
        self.attrs = {key.rstrip("_").replace("_", "-"): str(val) for key, val in attrs.items()}
        self.files: list[str] = []
        self.key = f"el-{next(_KEYS)}"
        self.page: FakePage | None = None
        self.fill_calls: list[str] = []
        self.clicks = 0

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    def matches(self, selector: str) -> bool:
        return any(self._matches_compound(part) for part in _split_selector_list(selector))

    def _matches_compound(self, selector: str) -> bool:
        tag, tokens = _parse_compound(selector)
        if tag and tag != self.tag:
            return False
        for token in tokens:
            if token.group("id") is not None:
                if self.attrs.get("id") != token.group("id"):
                    return False
            elif token.group("cls") is not None:
                if token.group("cls") not in self.attrs.get("class", "").split():
                    return False
            else:
                actual = self.attrs.get(token.group("attr"))
                if actual is None:
                    return False
                op = token.group("op")
                if op is None:
                    continue
                expected = token.group("value").replace('\\"', '"')
                if token.group("flag"):
                    actual, expected = actual.lower(), expected.lower()
                if op == "=" and actual != expected:
                    return False
                if op == "*=" and expected not in actual:
                    return False
                if op == "^=" and not actual.startswith(expected):
                    return False
                if op == "$=" and not actual.endswith(expected):
                    return False
        return True

    def render(self) -> str:
        attrs = "".join(f' {name}="{html.escape(val)}"' for name, val in self.attrs.items())
        if not self.visible:
            attrs += " hidden"
        inner = html.escape(self.text) + "".join(child.render() for child in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"

    async def fill(self, value: str) -> None:
        if not self.enabled:
            raise RuntimeError("element is disabled")
        self.fill_calls.append(value)
        self.value = self.readback(value) if self.readback else value

    async def click(self) -> None:
        self.clicks += 1
        if self.on_click and self.page is not None:
            self.on_click(self.page)

    async def is_visible(self) -> bool:
        return self.visible

    async def is_enabled(self) -> bool:
        return self.enabled

    async def input_value(self) -> str:
        return self.value

    async def is_checked(self) -> bool:
        return self.checked

    async def set_checked(self, checked: bool) -> None:
        if checked and self.attrs.get("type") == "radio" and self.page is not None:
            for other in self.page.all_elements():
                if other is not self and other.attrs.get("name") == self.attrs.get("name"):
                    other.checked = False
        self.checked = checked

    async def options(self) -> list[tuple[str, str]]:
        return list(self.option_list)

    async def select_option(self, value: str) -> None:
        if value not in {option_value for _, option_value in self.option_list}:
            raise ValueError(f"no option with value {value!r}")
        self.value = value

    async def selected_value(self) -> str:
        return self.value

    async def set_input_files(self, path: str) -> None:
        self.files = [Path(path).name]

    async def uploaded_files(self) -> list[str]:
        return list(self.files)

    async def get_attribute(self, name: str) -> str | None:
        if name == "value" and name not in self.attrs and self.tag in {"input", "option", "button"}:
            return self.value
        return self.attrs.get(name)

    async def text_content(self) -> str:
        parts = [self.text] + [await child.text_content() for child in self.children]
        return " ".join(part for part in parts if part).strip()

    async def tag_name(self) -> str:
        return self.tag

    async def identity(self) -> str:
        return self.key

    async def find_element(self, selector: str) -> FakeElement | None:
        for node in self.walk():
            if node is not self and node.matches(selector):
                return node
        return None


class FakePage:
    def __init__(
        self,
        elements: list[FakeElement] | None = None,
        *,
        url: str = "https://boards.greenhouse.io/acme/jobs/1",
        title: str = "Job posting",
    ):
        self.elements: list[FakeElement] = []
        self.url = url
        self.title = title
        self.closed = False
        self.close_calls = 0
        self.navigations: list[str] = []
        self.screenshots: list[str] = []
        self.waits: list[float] = []
        self.fail_screenshots = False
        for element in elements or []:
            self.add(element)

    def add(self, element: FakeElement) -> FakeElement:
        self.elements.append(element)
        for node in element.walk():
            node.page = self
        return element

    def remove(self, element: FakeElement) -> None:
        self.elements = [item for item in self.elements if item is not element]

    def all_elements(self) -> list[FakeElement]:
        return [node for element in self.elements for node in element.walk()]

    def by_name(self, name: str) -> FakeElement:
        for node in self.all_elements():
            if node.attrs.get("name") == name:
                return node
        raise KeyError(name)

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)

    async def find_element(self, selector: str) -> FakeElement | None:
        for node in self.all_elements():
            if node.matches(selector):
                return node
        return None

    async def find_all(self, selector: str) -> list[FakeElement]:
        return [node for node in self.all_elements() if node.matches(selector)]

    async def get_content(self) -> str:
        body = "".join(element.render() for element in self.elements)
        return f"<html><head><title>{html.escape(self.title)}</title></head><body>{body}</body></html>"

    async def get_url(self) -> str:
        return self.url

    async def get_title(self) -> str:
        return self.title

    async def capture_screenshot(self, path: Path) -> str:
        if self.fail_screenshots:
            raise RuntimeError("screenshot failed")
        path.write_bytes(b"\x89PNG fake")
        self.screenshots.append(path.name)
        return str(path)

    async def wait(self, seconds: float) -> None:
        self.waits.append(seconds)
        await asyncio.sleep(0)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeBrowserFactory:
    def __init__(self, *pages: FakePage, unavailable: bool = False):
        self.pages = list(pages)
        self.unavailable = unavailable
        self.opened: list[FakePage] = []
        self.shutdown_called = False

    async def open_page(self) -> FakePage:
        if self.unavailable:
            raise BrowserUnavailable("browser automation unavailable: no display")
        page = self.pages.pop(0) if self.pages else FakePage()
        self.opened.append(page)
        return page

    async def shutdown(self) -> None:
        self.shutdown_called = True


class FakeEmail:
    def __init__(self, *, configured: bool = True, fail: bool = False):
        self.configured = configured
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    def send(self, to: str, subject: str, html_body: str, text_body: str = "") -> None:
        if self.fail:
            raise NotificationSendFailure("email", to, "smtp unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})


class FakeMessaging:
    def __init__(self, *, configured: bool = True, fail: bool = False):
        self.configured = configured
        self.fail = fail
        self.sent: list[dict[str, str]] = []

    def send(self, to: str, body: str) -> None:
        if self.fail:
            raise NotificationSendFailure("messaging", to, "twilio unavailable")
        self.sent.append({"to": to, "body": body})


class FakeWriter:
    def __init__(self, letter: str = "Dear hiring team, I am excited to apply.", *, fail: bool = False):
        self.letter = letter
        self.fail = fail
        self.calls = 0

    def write(self, profile: Any, job: Any) -> str:
        self.calls += 1
        if self.fail:
            raise RuntimeError("model unavailable")
        return self.letter


# Page builders


def submit_succeeds(page: FakePage) -> None:
    for element in list(page.elements):
        if element.tag == "form":
            page.remove(element)
    page.url = "https://boards.greenhouse.io/acme/jobs/1/confirmation"
    page.title = "Application received"
    page.add(FakeElement("div", "Thank you for applying! We will be in touch.", class_="success-message"))


def submit_does_nothing(page: FakePage) -> None:
    return None


def application_form(on_submit: Callable[[FakePage], None] = submit_succeeds) -> FakeElement:
    return FakeElement(
        "form",
        id="application",
        children=[
            FakeElement("label", "First Name", for_="first_name"),
            FakeElement("input", id="first_name", name="first_name", type="text"),
            FakeElement("label", "Last Name", for_="last_name"),
            FakeElement("input", id="last_name", name="last_name", type="text"),
            FakeElement("label", "Email", for_="email"),
            FakeElement("input", id="email", name="email", type="email"),
            FakeElement("label", "Phone", for_="phone"),
            FakeElement("input", id="phone", name="phone", type="tel"),
            FakeElement("button", "Submit Application", type="submit", on_click=on_submit),
        ],
    )


def job_header() -> list[FakeElement]:
    return [
        FakeElement("h1", "Backend Engineer"),
        FakeElement("div", "Acme Corp", class_="company-name"),
        FakeElement(
            "div",
            "Build and operate Python services that process millions of events every day.",
            class_="job-description",
        ),
    ]


def job_page(on_submit: Callable[[FakePage], None] = submit_succeeds, **kwargs: Any) -> FakePage:
    return FakePage([*job_header(), application_form(on_submit)], **kwargs)


def login_page(**kwargs: Any) -> FakePage:
    return FakePage(
        [
            *job_header(),
            FakeElement(
                "form",
                class_="login-form",
                children=[
                    FakeElement("input", name="username", type="email"),
                    FakeElement("input", name="password", type="password"),
                    FakeElement("button", "Sign in", type="submit"),
                ],
            ),
        ],
        **kwargs,
    )


def complete_login(page: FakePage, on_submit: Callable[[FakePage], None] = submit_succeeds) -> None:
    """Simulate the applicant finishing a manual login in the shared page."""
    for element in list(page.elements):
        if element.tag == "form":
            page.remove(element)
    page.add(FakeElement("div", "Jane", class_="user-avatar"))
    page.add(application_form(on_submit))


async def wait_until(predicate: Callable[[], Any], timeout: float = 2.0, step: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if asyncio.iscoroutine(result):
            result = await result
        if result:
            return
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(step)
