from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

from hireflow.config import Settings
from hireflow.errors import BrowserUnavailable

logger = logging.getLogger(__name__)

_IDENTITY_SCRIPT = """
(el) => {
  if (!el.dataset.hireflowKey) {
    el.dataset.hireflowKey = Math.random().toString(36).slice(2) + Date.now().toString(36);
  }
  return el.dataset.hireflowKey;
}
"""


class PageElement(Protocol):
    async def fill(self, value: str) -> None: ...

    async def click(self) -> None: ...

    async def is_visible(self) -> bool: ...

    async def is_enabled(self) -> bool: ...

    async def input_value(self) -> str: ...

    async def is_checked(self) -> bool: ...

    async def set_checked(self, checked: bool) -> None: ...

    async def options(self) -> list[tuple[str, str]]: ...

    async def select_option(self, value: str) -> None: ...

    async def selected_value(self) -> str: ...

    async def set_input_files(self, path: str) -> None: ...

    async def uploaded_files(self) -> list[str]: ...

    async def get_attribute(self, name: str) -> str | None: ...

    async def text_content(self) -> str: ...

    async def tag_name(self) -> str: ...

    async def identity(self) -> str: ...

    async def find_element(self, selector: str) -> PageElement | None: ...


class BrowserPage(Protocol):
    async def navigate(self, url: str) -> None: ...

    async def find_element(self, selector: str) -> PageElement | None: ...

    async def find_all(self, selector: str) -> list[PageElement]: ...

    async def get_content(self) -> str: ...

    async def get_url(self) -> str: ...

    async def get_title(self) -> str: ...

    async def capture_screenshot(self, path: Path) -> str: ...

    async def wait(self, seconds: float) -> None: ...

    async def close(self) -> None: ...


class BrowserFactory(Protocol):
    async def open_page(self) -> BrowserPage: ...

    async def shutdown(self) -> None: ...


class PlaywrightElement:
    def __init__(self, handle: Any):
        self.handle = handle

    async def fill(self, value: str) -> None:
        await self.handle.fill("")
        await self.handle.fill(value)

    async def click(self) -> None:
        await self.handle.click()

    async def is_visible(self) -> bool:
        return await self.handle.is_visible()

    async def is_enabled(self) -> bool:
        return await self.handle.is_enabled()

    async def input_value(self) -> str:
        return await self.handle.input_value()

    async def is_checked(self) -> bool:
        return await self.handle.is_checked()

    async def set_checked(self, checked: bool) -> None:
        await self.handle.set_checked(checked)

    async def options(self) -> list[tuple[str, str]]:
        rows = await self.handle.eval_on_selector_all(
            "option",
            "(els) => els.map((e) => [(e.textContent || '').trim(), e.value])",
        )
        return [(str(label), str(value)) for label, value in rows]

    async def select_option(self, value: str) -> None:
        await self.handle.select_option(value=value)

    async def selected_value(self) -> str:
        return str(await self.handle.evaluate("(el) => el.value") or "")

    async def set_input_files(self, path: str) -> None:
        await self.handle.set_input_files(path)

    async def uploaded_files(self) -> list[str]:
        names = await self.handle.evaluate("(el) => Array.from(el.files || []).map((f) => f.name)")
        return [str(name) for name in names or []]

    async def get_attribute(self, name: str) -> str | None:
        return await self.handle.get_attribute(name)

    async def text_content(self) -> str:
        return (await self.handle.text_content() or "").strip()

    async def tag_name(self) -> str:
        return str(await self.handle.evaluate("(el) => el.tagName.toLowerCase()"))

    async def identity(self) -> str:
        return str(await self.handle.evaluate(_IDENTITY_SCRIPT))

    async def find_element(self, selector: str) -> PlaywrightElement | None:
        handle = await self.handle.query_selector(selector)
        return PlaywrightElement(handle) if handle else None


class PlaywrightPage:
    def __init__(self, context: Any, page: Any, settings: Settings):
        self.context = context
        self.page = page
        self.settings = settings
        self._closed = False

    async def navigate(self, url: str) -> None:
        await self.page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.settings.browser_nav_timeout_sec * 1000,
        )

    async def find_element(self, selector: str) -> PlaywrightElement | None:
        handle = await self.page.query_selector(selector)
        return PlaywrightElement(handle) if handle else None

    async def find_all(self, selector: str) -> list[PlaywrightElement]:
        return [PlaywrightElement(handle) for handle in await self.page.query_selector_all(selector)]

    async def get_content(self) -> str:
        return await self.page.content()

    async def get_url(self) -> str:
        return self.page.url

    async def get_title(self) -> str:
        return await self.page.title()

    async def capture_screenshot(self, path: Path) -> str:
        await self.page.screenshot(path=str(path), full_page=True)
        return str(path)

    async def wait(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.context.close()


class PlaywrightBrowserFactory:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._playwright: Any = None
        self._browser: Any = None
        self._lock = asyncio.Lock()

    async def _ensure_browser(self) -> Any:
        async with self._lock:
            if self._browser is not None:
                return self._browser

            try:
                from playwright.async_api import async_playwright

                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.settings.browser_headless,
                    args=self.settings.launch_arg_list,
                )
            except Exception as exc:
                logger.warning("Browser launch failed: %s", exc)
                await self._stop_playwright()
                raise BrowserUnavailable(f"browser automation unavailable: {exc}") from exc

            logger.info("Launched chromium headless=%s", self.settings.browser_headless)
            return self._browser

    async def open_page(self) -> PlaywrightPage:
        browser = await self._ensure_browser()
        try:
            context = await browser.new_context(
                viewport={
                    "width": self.settings.browser_viewport_width,
                    "height": self.settings.browser_viewport_height,
                },
                user_agent=self.settings.browser_user_agent,
            )
            page = await context.new_page()
        except Exception as exc:
            raise BrowserUnavailable(f"could not open a browser page: {exc}") from exc
        return PlaywrightPage(context, page, self.settings)

    async def shutdown(self) -> None:
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except Exception as exc:
                    logger.warning("Browser close failed: %s", exc)
                self._browser = None
            await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as exc:
            logger.warning("Playwright stop failed: %s", exc)
        self._playwright = None
