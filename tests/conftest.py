from typing import Any, Dict, List, Optional

import pytest

from crane.domain.models import Tile, TileConnections
from crane.providers.credentials import StaticCredentialResolver
from crane.providers.interface import ActionProvider, ActResult, ResolvedCredential


class FakeActionProvider(ActionProvider):
    """
    Records every call. Behaviour is scripted per instruction:
    - act_results: instruction -> ActResult (default: success)
    - failures: method or instruction -> exception to raise
    """

    def __init__(
        self,
        url: str = "https://portal.example.com/login",
        act_results: Optional[Dict[str, ActResult]] = None,
        extracted: Any = None,
        screenshot_bytes: bytes = b"\x89PNG",
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.url = url
        self.act_results = act_results or {}
        self.extracted = extracted
        self.screenshot_bytes = screenshot_bytes
        self.failures = failures or {}
        self.calls: List[tuple] = []
        self.close_count = 0

    def _maybe_fail(self, *keys: str):
        for key in keys:
            if key in self.failures:
                raise self.failures[key]

    async def navigate(self, url, wait_until="load", timeout=30000):
        self.calls.append(("navigate", url, wait_until, timeout))
        self._maybe_fail("navigate", url)
        self.url = url

    async def act(self, instruction):
        self.calls.append(("act", instruction))
        self._maybe_fail("act", instruction)
        return self.act_results.get(instruction, ActResult(success=True))

    async def extract(self, instruction, schema=None):
        self.calls.append(("extract", instruction, schema))
        self._maybe_fail("extract", instruction)
        return self.extracted

    async def screenshot(self, full_page=False):
        self.calls.append(("screenshot", full_page))
        self._maybe_fail("screenshot")
        return self.screenshot_bytes

    async def current_url(self):
        self.calls.append(("current_url",))
        return self.url

    async def close(self):
        self.close_count += 1
        self._maybe_fail("close")

    @property
    def instructions(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "act"]


def make_tile(tile_id: str, type: str, parameters: Optional[dict] = None, input=None, output=None, label=""):
    return Tile(
        id=tile_id,
        type=type,
        label=label,
        parameters=parameters or {},
        connections=TileConnections(input=input, output=output),
    )


def chain(*specs) -> List[Tile]:
    """Links (type, parameters) pairs into a chain with ids t1, t2, ..."""
    ids = [f"t{i + 1}" for i in range(len(specs))]
    tiles = []
    for i, (type, parameters) in enumerate(specs):
        tiles.append(
            make_tile(
                ids[i],
                type,
                parameters,
                input=ids[i - 1] if i > 0 else None,
                output=ids[i + 1] if i + 1 < len(ids) else None,
            )
        )
    return tiles


@pytest.fixture
def provider():
    return FakeActionProvider()


@pytest.fixture
def credentials():
    return StaticCredentialResolver(
        {
            "example.com": ResolvedCredential(
                username="ann@example.com", password="s3cret", fields={"memberId": "M-42"}
            )
        }
    )
