"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ToolHandler = Callable[[Any], Awaitable[str]]


class ToolInput(BaseModel):
    """Base input schema; the model sees and sends camelCase argument names."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="ignore")


class UserScopedInput(ToolInput):
    """Input for tools acting on one user's data."""

    user_id: str = Field(..., min_length=1, description="The user's unique identifier")


@dataclass
class ToolDefinition:
    """Definition of a tool available to the AI coach."""

    name: str
    description: str
    input_schema_class: type[ToolInput]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema(by_alias=True)

    def get_model_schema(self) -> dict[str, Any]:
        """Get the tool schema in the shape chat models bind."""
        return {"name": self.name, "description": self.description, "input_schema": self.get_json_schema()}

    def parse_input(self, raw_input: dict[str, Any]) -> ToolInput:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)


@dataclass
class RegisteredTool:
    """A tool bound for invocation with raw model arguments."""

    definition: ToolDefinition

    @property
    def name(self) -> str:
        return self.definition.name

    async def call(self, args: dict[str, Any]) -> str:
        """Validate the raw arguments and run the handler.

        Raises:
            pydantic.ValidationError: If the arguments do not match the input schema
        """
        parsed = self.definition.parse_input(args)
        return await self.definition.handler(parsed)
