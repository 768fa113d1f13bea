"""
Browser Automation Module
Playwright wrapper that renders quiz pages with JavaScript executed.
"""

import asyncio
import logging
from typing import Optional
from playwright.async_api import async_playwright, Browser, Page, TimeoutError as PlaywrightTimeout

from .models import LoadedPage

logger = logging.getLogger(__name__)


class BrowserManager:
    """
    Scoped headless browser. Use as an async context manager so the browser
    is closed on every exit path.
    """

    def __init__(self, headless: bool = True, timeout: int = 60000, max_retries: int = 2):
        """
        Initialize browser manager.

        Args:
            headless: Run browser in headless mode
            timeout: Navigation timeout in milliseconds
            max_retries: Page load attempts before giving up
        """
        self.headless = headless
        self.timeout = timeout
        self.max_retries = max_retries
        self.browser: Optional[Browser] = None
        self.playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Start the browser instance."""
        self.playwright = await async_playwright().start()
        try:
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=['--no-sandbox', '--disable-setuid-sandbox', '--disable-dev-shm-usage']
            )
        except Exception:
            await self.playwright.stop()
            self.playwright = None
            raise
        logger.info("Browser started successfully")

    async def close(self):
        """Close the browser instance."""
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
        logger.info("Browser closed")

    async def load(self, url: str) -> LoadedPage:
        """
        Load a URL and return its rendered markup and visible text.

        Args:
            url: Quiz page URL

        Returns:
            LoadedPage with markup and visible body text
        """
        if not self.browser:
            await self.start()

        for attempt in range(1, self.max_retries + 1):
            page: Page = await self.browser.new_page()
            try:
                logger.info(f"Loading page: {url} (attempt {attempt})")
                await page.goto(url, wait_until='networkidle', timeout=self.timeout)
                markup = await page.content()
                visible_text = await page.text_content('body') or ''
                logger.info(f"Page loaded successfully: {url}")
                return LoadedPage(url=url, markup=markup, visible_text=visible_text)
            except PlaywrightTimeout:
                logger.warning(f"Timeout loading page (attempt {attempt})")
                if attempt == self.max_retries:
                    raise
                await asyncio.sleep(2)
            finally:
                await page.close()
