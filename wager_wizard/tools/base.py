"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from wager_wizard.models.odds import ToolResult
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

ToolHandler = Callable[[BaseModel], Awaitable[ToolResult]]


@dataclass
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: Any) -> BaseModel:
        """Parse tool input, falling back to schema defaults instead of failing.

        The model is never sent back with a validation error; handlers resolve
        defaults for anything missing or unusable.
        """
        try:
            return self.input_schema_class.model_validate(raw_input or {})
        except ValidationError as e:
            logger.warning(f"Invalid input for tool {self.name}, using defaults: {e.error_count()} errors")
            return self.input_schema_class()
