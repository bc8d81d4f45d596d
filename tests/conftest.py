"""Shared fixtures and a scripted fetcher for scanner tests."""

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from fetchers import FetchError, PageLoad

Scripted = Union[PageLoad, str, BaseException]


class ScriptedFetcher:
    """Fetcher returning canned pages and scripts, counting calls in flight."""

    def __init__(
        self,
        pages: Optional[Dict[str, Scripted]] = None,
        resources: Optional[Dict[str, Scripted]] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.pages = pages or {}
        self.resources = resources or {}
        self.delays = delays or {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.page_calls: List[str] = []
        self.resource_calls: List[str] = []

    async def _respond(self, url: str, table: Dict[str, Scripted]) -> Scripted:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0.01))
            if url not in table:
                raise FetchError(f"ConnectError: no route to {url}")
            response = table[url]
            if isinstance(response, BaseException):
                raise response
            return response
        finally:
            self.in_flight -= 1

    async def load_page(self, url: str, timeout_ms: int) -> PageLoad:
        self.page_calls.append(url)
        return await self._respond(url, self.pages)

    async def fetch_resource(self, url: str, timeout_ms: int) -> str:
        self.resource_calls.append(url)
        return await self._respond(url, self.resources)


FIREBASE_BUNDLE = 'var config = {apiKey: "x", databaseURL: "https://demo.firebaseio.com"}; FIREBASE.init(config);'
PLAIN_BUNDLE = 'console.log("hello");'


@pytest.fixture
def fetcher() -> ScriptedFetcher:
    """Empty scripted fetcher; every host is unreachable until scripted."""
    return ScriptedFetcher()
