from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from hireflow.browser.driver import BrowserPage, PageElement
from hireflow.browser.strategies import MatcherDescriptor, concept
from hireflow.errors import SelectorNotFound

logger = logging.getLogger(__name__)

Confirm = Callable[[PageElement], Awaitable[bool]]


@dataclass(frozen=True, slots=True)
class Found:
    concept: str
    element: PageElement
    descriptor: MatcherDescriptor

    def unwrap(self) -> PageElement:
        return self.element


@dataclass(frozen=True, slots=True)
class NotFound:
    concept: str

    def unwrap(self) -> PageElement:
        raise SelectorNotFound(self.concept)


@dataclass(frozen=True, slots=True)
class Fault:
    concept: str
    error: Exception

    def unwrap(self) -> PageElement:
        raise self.error


MatchResult = Found | NotFound | Fault


async def _is_visible(element: PageElement) -> bool:
    return await element.is_visible()


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


async def resolve(page: BrowserPage, descriptor: MatcherDescriptor) -> list[PageElement]:
    """Return the elements a descriptor points at, in document order."""
    if descriptor.strategy == "css":
        return await page.find_all(descriptor.pattern)

    if descriptor.strategy == "label":
        elements: list[PageElement] = []
        for candidate in await page.find_all("label"):
            if descriptor.pattern not in (await candidate.text_content()).lower():
                continue
            target_id = await candidate.get_attribute("for")
            if target_id:
                target = await page.find_element(f'[id="{_quote(target_id)}"]')
            else:
                target = await candidate.find_element("input, select, textarea")
            if target is not None:
                elements.append(target)
        return elements

    if descriptor.strategy == "text":
        elements = []
        for candidate in await page.find_all(descriptor.scope):
            content = (await candidate.text_content()).lower()
            if not content:
                content = (await candidate.get_attribute("value") or "").lower()
            if descriptor.pattern in content:
                elements.append(candidate)
        return elements

    raise ValueError(f"unsupported match strategy '{descriptor.strategy}'")


async def first_confirmed(
    page: BrowserPage,
    name: str,
    descriptors: Sequence[MatcherDescriptor],
    confirm: Confirm,
) -> MatchResult:
    """Walk descriptors in order and return the first element ``confirm`` accepts.

    A descriptor that faults is skipped so later descriptors still get a
    chance; the last fault is reported only when nothing matched.
    """
    fault: Exception | None = None
    for descriptor in descriptors:
        try:
            for element in await resolve(page, descriptor):
                if await confirm(element):
                    return Found(concept=name, element=element, descriptor=descriptor)
        except Exception as exc:
            logger.debug("Matcher %s for %s faulted: %s", descriptor.describe(), name, exc)
            fault = exc

    if fault is not None:
        return Fault(concept=name, error=fault)
    return NotFound(concept=name)


async def first_match(
    page: BrowserPage,
    name: str,
    descriptors: Sequence[MatcherDescriptor] | None = None,
    *,
    platform: str = "",
) -> MatchResult:
    """First visible element for a named concept from the strategy table.

    ``platform`` is a platform tag; its overlay descriptors are tried before
    the generic ones.
    """
    return await first_confirmed(
        page,
        name,
        descriptors if descriptors is not None else concept(name, platform),
        _is_visible,
    )


async def is_present(page: BrowserPage, name: str, *, platform: str = "") -> bool:
    result = await first_match(page, name, platform=platform)
    if isinstance(result, Fault):
        logger.warning("Could not evaluate '%s': %s", name, result.error)
    return isinstance(result, Found)
