"""Headless browser rendering used when plain fetches fail.

Each call launches its own Chromium instance so a crashed or hung page never
leaks state into the next render.
"""

from dataclasses import dataclass

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

logger = structlog.get_logger(__name__)


@dataclass
class RendererConfig:
    """Configuration for the renderer."""

    timeout: int = 15000  # ms for navigation
    user_agent: str | None = None
    viewport_width: int = 1280
    viewport_height: int = 720
    launch_args: tuple[str, ...] = ("--no-sandbox", "--disable-setuid-sandbox")


class PageRenderer:
    """Renders pages using a Playwright headless browser."""

    def __init__(self, config: RendererConfig | None = None):
        self.config = config or RendererConfig()

    async def render_page(self, url: str) -> tuple[str, str | None]:
        """
        Render a page and return HTML content.

        Args:
            url: URL to render

        Returns:
            Tuple of (html_content, error_message)
        """
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(
                    headless=True,
                    args=list(self.config.launch_args),
                )
                try:
                    page = await browser.new_page(
                        user_agent=self.config.user_agent,
                        viewport={
                            "width": self.config.viewport_width,
                            "height": self.config.viewport_height,
                        },
                    )
                    await page.goto(
                        url,
                        timeout=self.config.timeout,
                        wait_until="networkidle",
                    )
                    html = await page.content()
                finally:
                    await browser.close()

        except PlaywrightTimeout:
            logger.warning("render_timeout", url=url, timeout_ms=self.config.timeout)
            return "", f"Timeout rendering {url}"
        except PlaywrightError as e:
            logger.warning("render_failed", url=url, error=str(e))
            return "", f"Error rendering {url}: {e}"

        logger.debug("page_rendered", url=url, length=len(html))
        return html, None
