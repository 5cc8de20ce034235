"""Desmos calculator hosted in a Chromium page driven by Playwright."""

import itertools
import logging
import math
from typing import Any

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..config import AppConfig
from ..constants import BROWSER_VIEWPORT, CHROME_SETTINGS
from ..errors import CaptureError
from ..observer import HelperExpression
from .base import Calculator, CalculatorState, Expression

logger = logging.getLogger(__name__)

_NOTIFY_BINDING = "__desmosAnimatorNotify"

_PAGE_TEMPLATE = """
<!DOCTYPE html>
<html>
    <head>
        <script src="https://www.desmos.com/api/{version}/calculator.js?apiKey={api_key}"></script>
        <style>html, body, #calc {{ margin: 0; width: 100%; height: 100%; }}</style>
    </head>
    <body>
        <div id="calc"></div>
        <script>
            window.Calc = Desmos.GraphingCalculator(document.getElementById("calc"));
            window.__desmosAnimatorHelpers = {{}};
        </script>
    </body>
</html>
"""

_CREATE_HELPER_JS = """
([id, latex]) => {
    const helper = Calc.HelperExpression({ latex });
    window.__desmosAnimatorHelpers[id] = helper;
    helper.observe("numericValue", () => window.__desmosAnimatorNotify(id, helper.numericValue));
}
"""

_RELEASE_HELPER_JS = """
(id) => {
    const helper = window.__desmosAnimatorHelpers[id];
    if (helper) {
        helper.unobserve("numericValue");
        delete window.__desmosAnimatorHelpers[id];
    }
}
"""

_SCREENSHOT_JS = """
(opts) => new Promise((resolve) => Calc.asyncScreenshot(opts, resolve))
"""


class PlaywrightCalculator(Calculator):
    """Calculator backed by the Desmos API loaded into a browser page."""

    def __init__(self, playwright: Playwright, browser: Browser, page: Page):
        self.playwright = playwright
        self.browser = browser
        self.page = page
        self._helpers: dict[str, HelperExpression] = {}
        self._helper_ids = itertools.count()

    @classmethod
    async def launch(
        cls,
        config: AppConfig,
        state: CalculatorState | None = None,
    ) -> "PlaywrightCalculator":
        """
        Start Chromium, load the Desmos API and create ``window.Calc``.

        Args:
            config: API key, version, timeout and headless mode
            state: Saved graph state to load into the calculator
        """
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=config.headless)
            page = await browser.new_page(viewport=BROWSER_VIEWPORT)
        except BaseException:
            await playwright.stop()
            raise

        calculator = cls(playwright, browser, page)
        try:
            await page.expose_function(_NOTIFY_BINDING, calculator._on_notify)
            await page.set_content(
                _PAGE_TEMPLATE.format(version=config.api_version, api_key=config.api_key),
                wait_until="load",
            )
            await page.wait_for_function(
                "typeof window.Calc !== 'undefined'", timeout=config.timeout * 1000
            )
            if state is not None:
                await calculator.set_state(state)
        except BaseException:
            await calculator.close()
            raise

        logger.info("Desmos %s calculator ready", config.api_version)
        return calculator

    async def get_expressions(self) -> list[Expression]:
        return await self.page.evaluate("() => Calc.getExpressions()")

    async def set_expression(self, expression: Expression) -> None:
        await self.page.evaluate("(expression) => Calc.setExpression(expression)", expression)

    async def set_expressions(self, expressions: list[Expression]) -> None:
        await self.page.evaluate("(expressions) => Calc.setExpressions(expressions)", expressions)

    async def get_state(self) -> CalculatorState:
        return await self.page.evaluate("() => Calc.getState()")

    async def set_state(self, state: CalculatorState) -> None:
        await self.page.evaluate("(state) => Calc.setState(state)", state)

    async def get_settings(self) -> dict[str, Any]:
        return await self.page.evaluate(
            "(keys) => Object.fromEntries(keys.map((key) => [key, Calc.settings[key]]))",
            list(CHROME_SETTINGS),
        )

    async def update_settings(self, settings: dict[str, Any]) -> None:
        await self.page.evaluate("(settings) => Calc.updateSettings(settings)", settings)

    async def helper_expression(self, latex: str) -> HelperExpression:
        helper_id = f"helper-{next(self._helper_ids)}"
        helper = HelperExpression(
            helper_id, latex, release=lambda: self._release_helper(helper_id)
        )
        self._helpers[helper_id] = helper
        await self.page.evaluate(_CREATE_HELPER_JS, [helper_id, latex])
        return helper

    async def async_screenshot(self, options: dict[str, Any]) -> str:
        try:
            data_url = await self.page.evaluate(_SCREENSHOT_JS, options)
        except PlaywrightError as e:
            raise CaptureError(f"Screenshot failed: {e}") from e
        if not isinstance(data_url, str) or not data_url.startswith("data:image/"):
            raise CaptureError(f"Screenshot returned no image data: {str(data_url)[:40]!r}")
        return data_url

    async def wait_closed(self) -> None:
        """Block until the user closes the browser page."""
        await self.page.wait_for_event("close", timeout=0)

    async def close(self) -> None:
        self._helpers.clear()
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()

    async def _release_helper(self, helper_id: str) -> None:
        self._helpers.pop(helper_id, None)
        if self.page.is_closed():
            return
        await self.page.evaluate(_RELEASE_HELPER_JS, helper_id)

    def _on_notify(self, helper_id: str, value: Any) -> None:
        helper = self._helpers.get(helper_id)
        if helper is None:
            return
        helper.publish(float(value) if value is not None else math.nan)
