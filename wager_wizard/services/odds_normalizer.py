"""Shape raw provider matches into bounded, fixed-shape odds snapshots.

Every function here is pure. Output is capped at ``MAX_MATCHES`` matches and
``MAX_QUOTES`` bookmaker quotes per match, in provider order. Missing values
become ``"N/A"`` rather than disappearing, so the payload shape never varies.
Snapshots (or their camelCase dict dumps) pass through unchanged, which makes
``normalize_odds`` stable under re-application.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from wager_wizard.models.odds import MAX_MATCHES, MAX_QUOTES, NOT_AVAILABLE, BookmakerQuote, OddsSnapshot
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

H2H_MARKET = "h2h"
DRAW_OUTCOME = "Draw"


def normalize_odds(
    matches: Iterable[Any], max_matches: int = MAX_MATCHES, max_quotes: int = MAX_QUOTES
) -> list[OddsSnapshot]:
    """Normalize provider matches into at most ``max_matches`` snapshots."""
    snapshots: list[OddsSnapshot] = []
    for match in matches:
        if len(snapshots) >= max_matches:
            break
        snapshot = _normalize_match(match, max_quotes)
        if snapshot is not None:
            snapshots.append(snapshot)
    return snapshots


def _normalize_match(match: Any, max_quotes: int) -> OddsSnapshot | None:
    if isinstance(match, OddsSnapshot):
        if len(match.bookmaker_quotes) <= max_quotes:
            return match
        return match.model_copy(update={"bookmaker_quotes": match.bookmaker_quotes[:max_quotes]})

    if not isinstance(match, dict):
        logger.debug(f"Skipping non-object match entry: {type(match).__name__}")
        return None

    if "bookmakerQuotes" in match or "bookmaker_quotes" in match:
        return _revalidate_snapshot(match, max_quotes)

    home_team = _text(match.get("home_team"))
    away_team = _text(match.get("away_team"))
    bookmakers = [b for b in match.get("bookmakers") or [] if isinstance(b, dict)]

    return OddsSnapshot(
        match_id=_text(match.get("id")),
        home_team=home_team,
        away_team=away_team,
        commence_time=_timestamp(match.get("commence_time")),
        bookmaker_quotes=[_normalize_bookmaker(b, home_team, away_team) for b in bookmakers[:max_quotes]],
    )


def _revalidate_snapshot(match: dict[str, Any], max_quotes: int) -> OddsSnapshot | None:
    key = "bookmakerQuotes" if "bookmakerQuotes" in match else "bookmaker_quotes"
    quotes = match.get(key) or []
    try:
        return OddsSnapshot.model_validate({**match, key: list(quotes)[:max_quotes]})
    except ValidationError as e:
        logger.debug(f"Skipping malformed snapshot: {e}")
        return None


def _normalize_bookmaker(bookmaker: dict[str, Any], home_team: str, away_team: str) -> BookmakerQuote:
    outcomes = _h2h_outcomes(bookmaker)
    return BookmakerQuote(
        bookmaker_name=_text(bookmaker.get("title") or bookmaker.get("key")),
        home_price=outcomes.get(home_team, NOT_AVAILABLE),
        draw_price=outcomes.get(DRAW_OUTCOME, NOT_AVAILABLE),
        away_price=outcomes.get(away_team, NOT_AVAILABLE),
    )


def _h2h_outcomes(bookmaker: dict[str, Any]) -> dict[str, Any]:
    """Map outcome name to price for the bookmaker's head-to-head market."""
    for market in bookmaker.get("markets") or []:
        if not isinstance(market, dict) or market.get("key") != H2H_MARKET:
            continue
        return {
            outcome["name"]: outcome.get("price")
            for outcome in market.get("outcomes") or []
            if isinstance(outcome, dict) and isinstance(outcome.get("name"), str)
        }
    return {}


def _text(value: Any) -> str:
    if value is None:
        return NOT_AVAILABLE
    text = str(value).strip()
    return text or NOT_AVAILABLE


def _timestamp(value: Any) -> datetime | str:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return NOT_AVAILABLE
