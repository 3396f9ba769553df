"""Shared fakes and fixtures."""

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from wager_wizard.clients.odds_api import OddsApiClient, OddsApiConfig
from wager_wizard.config import Settings
from wager_wizard.container import AppContainer
from wager_wizard.models.llm import LLMMessageComplete, LLMTextDelta, LLMUsage, TextBlock, ToolUseBlock
from wager_wizard.models.messages import Message
from wager_wizard.services.exchange_store import InMemoryExchangeStore
from wager_wizard.services.history import HistoryHydrator
from wager_wizard.services.orchestrator import OrchestratorConfig, StreamOrchestrator
from wager_wizard.services.persistence import PersistenceSink
from wager_wizard.tools import ToolsRegistry, create_football_odds_tool


def text_round(*chunks: str) -> list:
    """A model round that streams text and ends the turn."""
    return [
        *(LLMTextDelta(text=chunk) for chunk in chunks),
        LLMMessageComplete(
            content=[TextBlock(text="".join(chunks))],
            stop_reason="end_turn",
            usage=LLMUsage(input_tokens=10, output_tokens=5),
            model="fake-model",
        ),
    ]


def tool_round(
    tool_input: dict[str, Any], tool_id: str = "toolu_1", name: str = "getUpcomingFootballOdds", text: str = ""
) -> list:
    """A model round that (optionally) says something, then requests a tool."""
    content: list = [TextBlock(text=text)] if text else []
    content.append(ToolUseBlock(id=tool_id, name=name, input=tool_input))
    events: list = [LLMTextDelta(text=text)] if text else []
    events.append(
        LLMMessageComplete(content=content, stop_reason="tool_use", usage=LLMUsage(), model="fake-model")
    )
    return events


class ScriptedLLMClient:
    """Plays back one scripted round per stream_message call."""

    def __init__(self, rounds: list[list], delay: float = 0.0):
        self.rounds = rounds
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def stream_message(self, messages, system_prompt, tools=None, **kwargs):
        self.calls.append({"messages": list(messages), "system_prompt": system_prompt, "tools": tools})
        for event in self.rounds[len(self.calls) - 1]:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield event


class FailingStore(InMemoryExchangeStore):
    async def insert(self, owner_id: str, prompt: str, response: str):
        raise ConnectionError("database unavailable")


def make_match(index: int, bookmakers: int = 2, with_draw: bool = True) -> dict[str, Any]:
    home, away = f"Home FC {index}", f"Away United {index}"
    outcomes = [{"name": home, "price": 2.1}, {"name": away, "price": 3.4}]
    if with_draw:
        outcomes.append({"name": "Draw", "price": 3.25})
    return {
        "id": f"match-{index}",
        "sport_key": "soccer_epl",
        "sport_title": "EPL",
        "commence_time": "2026-10-24T14:00:00Z",
        "home_team": home,
        "away_team": away,
        "bookmakers": [
            {
                "key": f"book{b}",
                "title": f"Bookmaker {b}",
                "last_update": "2026-10-18T10:00:00Z",
                "markets": [{"key": "h2h", "outcomes": outcomes}],
            }
            for b in range(bookmakers)
        ],
    }


def user_message(text: str) -> Message:
    return Message.from_text("user", text)


class OddsStub:
    """httpx MockTransport handler that records requests."""

    def __init__(self, handler: Callable[[httpx.Request], Any]):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response


def build_odds_client(stub: OddsStub, api_key: str | None = "test-odds-key", timeout: float = 1.0) -> OddsApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    return OddsApiClient(OddsApiConfig(api_key=api_key, timeout=timeout), http_client=http_client)


def build_orchestrator(
    llm: ScriptedLLMClient,
    odds_client: OddsApiClient,
    store: InMemoryExchangeStore,
    request_timeout: float = 5.0,
    tool_timeout: float = 1.0,
) -> StreamOrchestrator:
    registry = ToolsRegistry([create_football_odds_tool(odds_client, default_sport="soccer_epl")])
    return StreamOrchestrator(
        llm,
        registry,
        PersistenceSink(store),
        OrchestratorConfig(request_timeout=request_timeout, tool_timeout=tool_timeout),
    )


def build_container(orchestrator: StreamOrchestrator, store: InMemoryExchangeStore) -> AppContainer:
    return AppContainer(
        settings=Settings(),
        orchestrator=orchestrator,
        history=HistoryHydrator(store),
        persistence_sink=orchestrator.persistence_sink,
    )


@pytest.fixture
def store() -> InMemoryExchangeStore:
    return InMemoryExchangeStore()


@pytest.fixture
def two_match_stub() -> OddsStub:
    return OddsStub(lambda request: httpx.Response(200, json=[make_match(1), make_match(2)]))
