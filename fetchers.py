#!/usr/bin/env python3
"""
Page and script fetchers for the Firebase scanner.

Two backends implement the same two-call interface used by the scanner:

- HttpFetcher: plain httpx requests, script tags parsed with BeautifulSoup
- BrowserFetcher: headless Chromium via Playwright for page loads, httpx for scripts

Author: Firebase Scanner Contributors
License: MIT
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Protocol, Tuple
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from playwright.async_api import Browser, BrowserContext
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; FirebaseScanner/1.0)'

# document.scripts gives absolute URLs; inline scripts have an empty src
SCRIPT_SOURCES_JS = "() => Array.from(document.scripts, script => script.src)"


class FetchError(Exception):
    """A page load or script fetch did not complete (timeout, DNS, connection, TLS)."""


@dataclass(frozen=True)
class PageLoad:
    """Final status of a page load and the script URLs the page references."""
    status_code: int
    script_urls: Tuple[str, ...] = ()


class ResourceFetcher(Protocol):
    """Interface the scanner uses to talk to the network."""

    async def load_page(self, url: str, timeout_ms: int) -> PageLoad:
        """
        Load a page and list the script URLs it references.

        Args:
            url: Page URL
            timeout_ms: Timeout for the load in milliseconds

        Returns:
            PageLoad with the final HTTP status

        Raises:
            FetchError: if the load times out or the connection fails
        """
        ...

    async def fetch_resource(self, url: str, timeout_ms: int) -> str:
        """
        Fetch a script body.

        Raises:
            FetchError: if the fetch times out or the connection fails
        """
        ...


def extract_script_urls(html: str, base_url: str) -> List[str]:
    """Return absolute URLs of all <script src> tags in document order"""
    soup = BeautifulSoup(html, 'html.parser')
    urls = []
    for script in soup.find_all('script', src=True):
        src = script['src'].strip()
        if not src:
            continue
        try:
            urls.append(urljoin(base_url, src))
        except ValueError as e:
            logger.debug(f"Ignoring malformed script src {src!r} on {base_url}: {e}")
    return urls


class HttpFetcher:
    """
    Static fetcher built on a shared httpx client.

    The page is not rendered, so scripts injected at runtime are not seen.

    Args:
        client (httpx.AsyncClient): Client used for every request
    """
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _get(self, url: str, timeout_ms: int) -> httpx.Response:
        try:
            return await self.client.get(
                url,
                follow_redirects=True,
                timeout=timeout_ms / 1000.0,
                headers={'User-Agent': USER_AGENT},
            )
        except httpx.HTTPError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

    async def load_page(self, url: str, timeout_ms: int) -> PageLoad:
        response = await self._get(url, timeout_ms)
        if response.status_code != 200:
            return PageLoad(status_code=response.status_code)
        script_urls = extract_script_urls(response.text, str(response.url))
        return PageLoad(status_code=200, script_urls=tuple(script_urls))

    async def fetch_resource(self, url: str, timeout_ms: int) -> str:
        response = await self._get(url, timeout_ms)
        return response.text


class BrowserFetcher(HttpFetcher):
    """
    Renders pages in headless Chromium so runtime-inserted scripts are listed.

    Every page load gets its own browser context, closed on every exit path.
    Script bodies are fetched with httpx.

    Args:
        browser (Browser): Running Playwright browser
        client (httpx.AsyncClient): Client used for script fetches
    """
    def __init__(self, browser: Browser, client: httpx.AsyncClient):
        super().__init__(client)
        self.browser = browser

    async def load_page(self, url: str, timeout_ms: int) -> PageLoad:
        try:
            context = await self.browser.new_context(
                ignore_https_errors=True,
                user_agent=USER_AGENT,
            )
        except PlaywrightError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

        try:
            page = await context.new_page()
            response = await page.goto(url, wait_until='domcontentloaded', timeout=timeout_ms)
            status_code = response.status if response else 0
            if status_code != 200:
                return PageLoad(status_code=status_code)

            sources = await page.evaluate(SCRIPT_SOURCES_JS)
            return PageLoad(status_code=200, script_urls=tuple(src for src in sources if src))
        except PlaywrightError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e
        finally:
            await self._close_context(context, url)

    async def _close_context(self, context: BrowserContext, url: str):
        try:
            await context.close()
        except PlaywrightError as e:
            logger.warning(f"Failed to close browser context for {url}: {e}")


@asynccontextmanager
async def open_fetcher(use_browser: bool = True, max_connections: int = 100) -> AsyncIterator[ResourceFetcher]:
    """
    Build a fetcher and release everything it holds on exit.

    Args:
        use_browser: Render pages with Chromium instead of parsing static HTML
        max_connections: Connection pool size for the httpx client
    """
    limits = httpx.Limits(max_keepalive_connections=max_connections, max_connections=max_connections)
    # Target sites often have broken certificates; the browser ignores them too
    async with httpx.AsyncClient(limits=limits, verify=False) as client:
        if not use_browser:
            yield HttpFetcher(client)
            return

        async with async_playwright() as playwright:
            browser: Optional[Browser] = None
            try:
                browser = await playwright.chromium.launch(headless=True)
                logger.info("Launched headless Chromium")
                yield BrowserFetcher(browser, client)
            finally:
                if browser is not None:
                    await browser.close()
