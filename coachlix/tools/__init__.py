"""Tools for the AI fitness coach."""

from coachlix.tools.base import RegisteredTool, ToolDefinition
from coachlix.tools.registry import ToolsRegistry, get_tools_registry

__all__ = ["RegisteredTool", "ToolDefinition", "ToolsRegistry", "get_tools_registry"]
