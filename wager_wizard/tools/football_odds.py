"""Upcoming football odds tool."""

from typing import Any, get_args

from pydantic import BaseModel, Field, field_validator

from wager_wizard.clients.odds_api import OddsApiClient
from wager_wizard.errors import ErrorKind, OddsProviderError
from wager_wizard.models.odds import Region, ToolFailure, ToolInput, ToolResult, ToolSuccess
from wager_wizard.services.odds_normalizer import normalize_odds
from wager_wizard.tools.base import ToolDefinition
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

TOOL_NAME = "getUpcomingFootballOdds"

# The Odds API league keys the assistant may ask for
SUPPORTED_LEAGUES: dict[str, str] = {
    "soccer_epl": "English Premier League",
    "soccer_efl_champ": "English Championship",
    "soccer_fa_cup": "FA Cup",
    "soccer_spain_la_liga": "La Liga",
    "soccer_germany_bundesliga": "Bundesliga",
    "soccer_germany_bundesliga2": "2. Bundesliga",
    "soccer_italy_serie_a": "Serie A",
    "soccer_france_ligue_one": "Ligue 1",
    "soccer_netherlands_eredivisie": "Eredivisie",
    "soccer_portugal_primeira_liga": "Primeira Liga",
    "soccer_uefa_champs_league": "UEFA Champions League",
    "soccer_uefa_europa_league": "UEFA Europa League",
    "soccer_usa_mls": "Major League Soccer",
    "soccer_brazil_campeonato": "Brasileirão Série A",
}

SUPPORTED_REGIONS = get_args(Region)

TOOL_DESCRIPTION = """Get upcoming football (soccer) matches with head-to-head betting odds.

Purpose: Look up real bookmaker prices (home win, draw, away win) for the next fixtures of a league.

Parameters:
- sport: League key, e.g. soccer_epl (Premier League), soccer_spain_la_liga, soccer_uefa_champs_league.
  Defaults to the Premier League when omitted.
- region: Bookmaker region, one of us, uk, eu. Defaults to us.

Example Usage:
- User says: "What's on in the Premier League today?"
- Call: getUpcomingFootballOdds(sport="soccer_epl", region="uk")
- User asks about a specific match: fetch the league, then pick that match from the result.

Success Response: JSON with up to 5 matches, each with up to 3 bookmaker quotes. Decimal prices, "N/A" when a
bookmaker does not price an outcome.
Failure Response: A short sentence explaining why odds are unavailable; relay it to the user.
"""

_FAILURE_MESSAGES = {
    ErrorKind.NO_DATA: "No upcoming {league} matches with odds were found right now.",
    ErrorKind.TOOL_TIMEOUT: "The odds service took too long to respond, so live {league} odds are unavailable.",
    ErrorKind.PROVIDER_ERROR: "The odds service returned an error, so live {league} odds are unavailable.",
    ErrorKind.CONFIG_ERROR: "Live odds are not configured on this server.",
}


class OddsToolInput(BaseModel):
    """Input schema for the odds tool. Every field is optional."""

    sport: str = Field(
        default="",
        description="League key such as soccer_epl or soccer_spain_la_liga",
        examples=["soccer_epl", "soccer_uefa_champs_league"],
    )
    region: str = Field(
        default="",
        description="Bookmaker region: us, uk or eu",
        examples=["us", "uk", "eu"],
    )

    @field_validator("sport", "region", mode="before")
    @classmethod
    def coerce_key(cls, v: Any) -> str:
        """Normalize to a lowercase key; anything non-textual becomes empty."""
        if not isinstance(v, str):
            return ""
        return v.strip().lower()


def resolve_tool_input(params: OddsToolInput, default_sport: str, default_region: str = "us") -> ToolInput:
    """Substitute defaults for missing or unrecognized parameters."""
    sport = params.sport if params.sport in SUPPORTED_LEAGUES else default_sport
    region = params.region if params.region in SUPPORTED_REGIONS else default_region
    if (sport, region) != (params.sport, params.region):
        logger.info(f"Odds tool input defaulted: {params.sport!r}/{params.region!r} -> {sport}/{region}")
    return ToolInput(sport=sport, region=region)


def substitution_note(params: OddsToolInput, tool_input: ToolInput) -> str | None:
    """Tell the model when its requested league or region was replaced by a default."""
    replaced = [
        f"{label} {requested!r} is not supported, showing {used!r} instead"
        for label, requested, used in (
            ("league", params.sport, tool_input.sport),
            ("region", params.region, tool_input.region),
        )
        if requested and requested != used
    ]
    return "; ".join(replaced) or None


def failure_message(kind: ErrorKind, sport: str) -> str:
    template = _FAILURE_MESSAGES.get(kind, _FAILURE_MESSAGES[ErrorKind.PROVIDER_ERROR])
    return template.format(league=SUPPORTED_LEAGUES.get(sport, sport))


def create_football_odds_tool(
    odds_client: OddsApiClient, default_sport: str = "soccer_epl", default_region: str = "us"
) -> ToolDefinition:
    """Build the odds tool.

    Raises:
        ValueError: If the defaults are not a supported league and region
    """
    if default_sport not in SUPPORTED_LEAGUES:
        raise ValueError(f"DEFAULT_SPORT must be one of {sorted(SUPPORTED_LEAGUES)}, got {default_sport!r}")
    if default_region not in SUPPORTED_REGIONS:
        raise ValueError(f"DEFAULT_REGION must be one of {list(SUPPORTED_REGIONS)}, got {default_region!r}")

    async def get_upcoming_football_odds(params: OddsToolInput) -> ToolResult:
        tool_input = resolve_tool_input(params, default_sport, default_region)

        try:
            raw_matches = await odds_client.get_odds(tool_input.sport, tool_input.region)
        except OddsProviderError as e:
            logger.warning(f"Odds lookup failed ({e.kind}): {e.message}")
            return ToolFailure(error=e.kind, message=failure_message(e.kind, tool_input.sport))

        matches = normalize_odds(raw_matches)
        if not matches:
            return ToolFailure(error=ErrorKind.NO_DATA, message=failure_message(ErrorKind.NO_DATA, tool_input.sport))

        return ToolSuccess(
            sport=tool_input.sport,
            league=SUPPORTED_LEAGUES[tool_input.sport],
            region=tool_input.region,
            note=substitution_note(params, tool_input),
            matches=matches,
        )

    return ToolDefinition(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema_class=OddsToolInput,
        handler=get_upcoming_football_odds,
    )
