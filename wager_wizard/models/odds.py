"""Odds snapshot and tool result models."""

import json
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from wager_wizard.errors import ErrorKind

NOT_AVAILABLE = "N/A"
MAX_MATCHES = 5
MAX_QUOTES = 3

Price = float | Literal["N/A"]
Region = Literal["us", "uk", "eu"]


class ToolInput(BaseModel):
    """Resolved odds lookup parameters; always complete."""

    model_config = ConfigDict(frozen=True)

    sport: str
    region: Region


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class BookmakerQuote(_CamelModel):
    """Head-to-head prices from one bookmaker."""

    bookmaker_name: str
    home_price: Price = NOT_AVAILABLE
    draw_price: Price = NOT_AVAILABLE
    away_price: Price = NOT_AVAILABLE

    @field_validator("home_price", "draw_price", "away_price", mode="before")
    @classmethod
    def missing_price(cls, v: Any) -> Any:
        if v is None or isinstance(v, bool):
            return NOT_AVAILABLE
        if isinstance(v, int | float) or v == NOT_AVAILABLE:
            return v
        try:
            return float(v)
        except (TypeError, ValueError):
            return NOT_AVAILABLE


class OddsSnapshot(_CamelModel):
    """Compact view of one upcoming match and its leading bookmaker quotes."""

    match_id: str
    home_team: str
    away_team: str
    commence_time: datetime | Literal["N/A"]
    bookmaker_quotes: list[BookmakerQuote] = Field(default_factory=list, max_length=MAX_QUOTES)


class ToolSuccess(BaseModel):
    """Structured odds payload handed to the model."""

    status: Literal["ok"] = "ok"
    sport: str
    league: str
    region: Region
    note: str | None = None
    matches: list[OddsSnapshot] = Field(..., min_length=1, max_length=MAX_MATCHES)

    @property
    def is_error(self) -> bool:
        return False

    def as_model_content(self) -> str:
        """Serialize as a single JSON document with exact numeric prices."""
        payload: dict[str, Any] = {"sport": self.sport, "league": self.league, "region": self.region}
        if self.note:
            payload["note"] = self.note
        payload["matches"] = [match.model_dump(mode="json", by_alias=True) for match in self.matches]
        return json.dumps(
            payload,
            separators=(",", ":"),
        )


class ToolFailure(BaseModel):
    """Classified tool failure, surfaced to the model as a short sentence."""

    status: Literal["error"] = "error"
    error: ErrorKind
    message: str

    @property
    def is_error(self) -> bool:
        return True

    def as_model_content(self) -> str:
        return self.message


ToolResult = Annotated[ToolSuccess | ToolFailure, Field(discriminator="status")]
