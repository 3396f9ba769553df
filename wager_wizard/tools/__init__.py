"""Tools for the conversational betting assistant."""

from wager_wizard.tools.football_odds import TOOL_NAME, create_football_odds_tool
from wager_wizard.tools.registry import ToolsRegistry

__all__ = ["TOOL_NAME", "ToolsRegistry", "create_football_odds_tool"]
