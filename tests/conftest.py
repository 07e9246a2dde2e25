"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
import json
import os
import tempfile
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from gene_msa_collector.config import (
    SystemConfig,
    BrowserConfig,
    CaptureConfig,
    RetryConfig,
    RunConfig,
    set_config
)
from gene_msa_collector.errors import set_error_handler
from gene_msa_collector.collector.capture import READ_CLIPBOARD_SCRIPT, SCAN_DOM_SCRIPT
from gene_msa_collector.storage import ArtifactStorage


def make_fasta(length: int, header: str = ">TauD") -> str:
    """FASTA text of exactly ``length`` characters."""
    body_length = length - len(header) - 1
    body = ("ATCGATCGNN-" * (body_length // 11 + 1))[:body_length]
    return f"{header}\n{body}"


class FakeResponse:
    """Stand-in for a Playwright response."""

    def __init__(self, url: str, body: str, content_type: str = "text/plain"):
        self.url = url
        self.headers = {"content-type": content_type}
        self._body = body

    async def text(self) -> str:
        return self._body


class FakeRequest:
    def __init__(self, url: str):
        self.url = url


class FakeElement:
    """Stand-in for an element handle; clicks are reported to the page."""

    def __init__(self, page: "FakePage", selector: str, text: str = "",
                 attributes: Optional[Dict[str, str]] = None,
                 on_click: Optional[Callable[["FakePage"], None]] = None):
        self.page = page
        self.selector = selector
        self.text = text
        self.attributes = attributes or {}
        self.on_click = on_click

    async def text_content(self) -> str:
        return self.text

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    async def click(self) -> None:
        self.page.clicked.append(self.selector)

    async def evaluate(self, script: str, arg=None):
        self.page.activated.append(self.selector)
        if self.on_click is not None:
            self.on_click(self.page)


class FakePage:
    """
    Scripted stand-in for a Playwright page.

    Responses listed in ``responses_on_submit`` are delivered to the
    registered listeners when the search form is submitted; those in
    ``delayed_responses_on_submit`` arrive after their delay in seconds.
    """

    def __init__(self, url: str = "about:blank"):
        self.url = url
        self.listeners: Dict[str, List[Callable]] = {}
        self.elements: Dict[str, FakeElement] = {}
        self.visible_selectors: set = {"#searchInput"}
        self.responses_on_submit: List[FakeResponse] = []
        self.delayed_responses_on_submit: List[Tuple[float, FakeResponse]] = []
        self.pending: List[asyncio.Task] = []
        self.requests_on_submit: List[str] = []
        self.clipboard: Optional[str] = None
        self.dom_text: Optional[str] = None
        self.goto_error: Optional[Exception] = None

        self.visits: List[str] = []
        self.typed: List[str] = []
        self.clicked: List[str] = []
        self.activated: List[str] = []

    def add_element(self, selector: str, text: str = "", **kwargs) -> FakeElement:
        element = FakeElement(self, selector, text, **kwargs)
        self.elements[selector] = element
        return element

    def on(self, event: str, handler: Callable) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        self.listeners.get(event, []).remove(handler)

    async def _emit(self, event: str, payload) -> None:
        for handler in list(self.listeners.get(event, [])):
            result = handler(payload)
            if asyncio.iscoroutine(result):
                await result

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[float] = None):
        self.visits.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: Optional[float] = None):
        if selector in self.visible_selectors or selector in self.elements:
            return self.elements.get(selector) or FakeElement(self, selector)
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def fill(self, selector: str, value: str) -> None:
        self.typed.append(value)

    async def type(self, selector: str, text: str, delay: float = 0) -> None:
        self.typed.append(text)

    async def click(self, selector: str) -> None:
        self.clicked.append(selector)
        if selector == 'button[type="submit"]':
            for url in self.requests_on_submit:
                await self._emit("request", FakeRequest(url))
            for response in self.responses_on_submit:
                await self._emit("response", response)
            for delay, response in self.delayed_responses_on_submit:
                self.pending.append(asyncio.ensure_future(self._emit_later(delay, response)))

    async def _emit_later(self, delay: float, response: FakeResponse) -> None:
        await asyncio.sleep(delay)
        await self._emit("response", response)

    async def query_selector(self, selector: str):
        return self.elements.get(selector)

    async def query_selector_all(self, selector: str):
        element = self.elements.get(selector)
        return [element] if element is not None else []

    async def evaluate(self, script: str, arg=None):
        if script == READ_CLIPBOARD_SCRIPT:
            return self.clipboard
        if script == SCAN_DOM_SCRIPT:
            return self.dom_text
        return None


@pytest.fixture
def fake_page():
    """A fresh scripted page."""
    return FakePage()


@pytest.fixture
def temp_config_file():
    """Create a temporary configuration file for testing."""
    config_data = {
        "browser": {
            "base_url": "https://example.org/orthobrowser/index.html",
            "headless": True
        },
        "capture": {
            "settle_timeout_ms": 20,
            "network_short_circuit_length": 800
        },
        "retry": {
            "max_attempts": 2,
            "initial_delay": 0.1,
            "backoff_multiplier": 1.5,
            "max_delay": 5.0
        },
        "run": {
            "delay_between_genes": 0.5,
            "progress_interval": 5
        },
        "logging": {
            "level": "DEBUG",
            "format": "json"
        }
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(config_data, f)
        temp_file = f.name

    yield temp_file

    os.unlink(temp_file)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "MSA_BASE_URL": "https://example.org/msa/index.html",
        "HEADLESS": "true",
        "MAX_ATTEMPTS": "5",
        "RETRY_DELAY": "0.5",
        "DELAY_BETWEEN_GENES": "1.5",
        "OUTPUT_DIR": "/tmp/msa-output",
        "LOG_LEVEL": "DEBUG"
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture(autouse=True)
def setup_test_config(tmp_path):
    """Automatically set up a fast test configuration for all tests."""
    output_dir = tmp_path / "output"
    test_config = SystemConfig(
        browser=BrowserConfig(
            base_url="https://example.org/orthobrowser/index.html",
            headless=True,
            typing_delay_ms=0
        ),
        capture=CaptureConfig(
            autocomplete_timeout_ms=10,
            settle_timeout_ms=20,
            dropdown_timeout_ms=10,
            export_wait_ms=10
        ),
        retry=RetryConfig(
            max_attempts=3,
            initial_delay=0.0,
            backoff_multiplier=1.0,
            max_delay=0.0
        ),
        run=RunConfig(
            output_dir=str(output_dir),
            failed_dir=str(output_dir / "failed"),
            delay_between_genes=0.0
        )
    )

    set_config(test_config)
    set_error_handler(None)

    yield test_config

    set_config(None)
    set_error_handler(None)


@pytest.fixture
def storage(setup_test_config):
    """Artifact storage rooted in the test's temporary directory."""
    artifact_storage = ArtifactStorage.from_config(setup_test_config.run)
    artifact_storage.ensure_directories()
    return artifact_storage
