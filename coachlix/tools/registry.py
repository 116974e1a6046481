"""Tools registry for managing AI coach tools."""

from typing import Any

from coachlix.services.fitness import FitnessDataService
from coachlix.services.nutrition import NutritionService
from coachlix.tools.base import RegisteredTool, ToolDefinition
from coachlix.tools.details import create_fetch_details_tool
from coachlix.tools.diet import create_create_diet_plan_tool
from coachlix.tools.health_metrics import create_health_metrics_tool
from coachlix.tools.nutrition import create_nutrition_lookup_tool
from coachlix.tools.workout import create_get_workout_plan_tool, create_update_workout_plan_tool


class ToolsRegistry:
    """Registry for managing AI coach tools."""

    def __init__(self, fitness_service: FitnessDataService, nutrition_service: NutritionService):
        """Initialize tools registry with service dependencies."""
        self.fitness_service = fitness_service
        self.nutrition_service = nutrition_service
        self._tools: dict[str, ToolDefinition] = {}
        self._register_default_tools()

    def _register_default_tools(self) -> None:
        """Register the default set of fitness coaching tools."""
        tools = [
            create_get_workout_plan_tool(self.fitness_service),
            create_fetch_details_tool(self.fitness_service),
            create_update_workout_plan_tool(self.fitness_service),
            create_create_diet_plan_tool(self.fitness_service),
            create_health_metrics_tool(self.fitness_service),
            create_nutrition_lookup_tool(self.nutrition_service, self.fitness_service),
        ]

        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry, replacing any with the same name."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> RegisteredTool | None:
        """Get a callable tool by name."""
        tool = self._tools.get(name)
        return RegisteredTool(tool) if tool else None

    def tool_schemas(self) -> list[dict[str, Any]]:
        """Get model-facing schemas for every registered tool."""
        return [tool.get_model_schema() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools


_tools_registry: ToolsRegistry | None = None


def get_tools_registry(
    fitness_service: FitnessDataService | None = None,
    nutrition_service: NutritionService | None = None,
) -> ToolsRegistry:
    """Get or create tools registry instance."""
    global _tools_registry

    if _tools_registry is None:
        if not fitness_service or not nutrition_service:
            raise ValueError("Must provide services for initial registry creation")

        _tools_registry = ToolsRegistry(fitness_service, nutrition_service)

    return _tools_registry
