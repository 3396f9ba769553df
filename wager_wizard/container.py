"""Explicit construction of process-wide clients and services."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from wager_wizard.clients.anthropic import AnthropicClient, AnthropicConfig
from wager_wizard.clients.odds_api import OddsApiClient, OddsApiConfig
from wager_wizard.config import Settings
from wager_wizard.services.exchange_store import ExchangeStore, InMemoryExchangeStore, SupabaseExchangeStore
from wager_wizard.services.history import HistoryHydrator
from wager_wizard.services.orchestrator import OrchestratorConfig, StreamOrchestrator
from wager_wizard.services.persistence import PersistenceSink
from wager_wizard.tools import ToolsRegistry, create_football_odds_tool
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AppContainer:
    """Everything a request needs, built once per process and injected."""

    settings: Settings
    orchestrator: StreamOrchestrator
    history: HistoryHydrator
    persistence_sink: PersistenceSink
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        """Flush pending writes, then release network clients."""
        await self.persistence_sink.drain()
        for close in self.closers:
            await close()


def build_container(settings: Settings | None = None) -> AppContainer:
    """Wire the production object graph from settings."""
    settings = settings or Settings.from_env()

    llm_client = AnthropicClient(
        api_key=settings.anthropic_api_key,
        config=AnthropicConfig(model=settings.anthropic_model),
    )
    odds_client = OddsApiClient(
        OddsApiConfig(
            api_key=settings.odds_api_key,
            base_url=settings.odds_api_base_url,
            timeout=settings.tool_timeout,
        )
    )
    if not settings.odds_api_key:
        logger.warning("ODDS_API_KEY is not set; odds lookups will report a configuration error")

    closers: list[Callable[[], Awaitable[None]]] = [llm_client.aclose, odds_client.aclose]

    store: ExchangeStore
    if settings.uses_supabase:
        supabase_store = SupabaseExchangeStore(
            url=settings.supabase_url or "",
            api_key=settings.supabase_key or "",
            table=settings.supabase_table,
        )
        closers.append(supabase_store.aclose)
        store = supabase_store
    else:
        logger.warning("Supabase is not configured; exchanges are kept in memory only")
        store = InMemoryExchangeStore()

    registry = ToolsRegistry(
        [create_football_odds_tool(odds_client, settings.default_sport, settings.default_region)]
    )
    sink = PersistenceSink(store, owner_id=settings.owner_id)
    orchestrator = StreamOrchestrator(
        llm_client,
        registry,
        sink,
        OrchestratorConfig(request_timeout=settings.request_timeout, tool_timeout=settings.tool_timeout),
    )

    return AppContainer(
        settings=settings,
        orchestrator=orchestrator,
        history=HistoryHydrator(store, owner_id=settings.owner_id),
        persistence_sink=sink,
        closers=closers,
    )
