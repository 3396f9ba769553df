"""Registry of tools offered to the model."""

from collections.abc import Iterable
from typing import Any

from wager_wizard.models.llm import LLMTool
from wager_wizard.models.odds import ToolResult
from wager_wizard.tools.base import ToolDefinition


class ToolsRegistry:
    """Holds tool definitions and exposes them as provider-neutral LLM tools."""

    def __init__(self, tools: Iterable[ToolDefinition] = ()):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool, replacing any tool with the same name."""
        self._tools[tool.name] = tool

    def get_llm_tools(self) -> dict[str, LLMTool]:
        """LLM tools keyed by name, each with its schema and a callable taking raw model input."""
        return {name: _as_llm_tool(tool) for name, tool in self._tools.items()}

    def get_tool_names(self) -> list[str]:
        return list(self._tools)

    def has_tool(self, name: str) -> bool:
        return name in self._tools


def _as_llm_tool(tool: ToolDefinition) -> LLMTool:
    async def call(params: dict[str, Any]) -> ToolResult:
        return await tool.handler(tool.parse_input(params))

    return LLMTool(
        name=tool.name,
        description=tool.description,
        input_schema=tool.get_json_schema(),
        callable=call,
    )
