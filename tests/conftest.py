"""Shared fixtures: fresh in-memory services and a delta recorder."""

import pytest
from fakes import DeltaRecorder

from coachlix.services.fitness import InMemoryFitnessDataService
from coachlix.services.nutrition import LocalNutritionTable
from coachlix.tools.registry import ToolsRegistry
from coachlix.utils.metrics import fallback_metrics


@pytest.fixture(autouse=True)
def reset_fallback_metrics():
    """Start each test with zeroed fallback counters."""
    fallback_metrics.reset()
    yield
    fallback_metrics.reset()


@pytest.fixture
def fitness_service():
    """Fresh in-memory fitness data with the mock users."""
    return InMemoryFitnessDataService()


@pytest.fixture
def nutrition_service():
    """Offline nutrition lookup."""
    return LocalNutritionTable()


@pytest.fixture
def registry(fitness_service, nutrition_service):
    """Tools registry over the in-memory services."""
    return ToolsRegistry(fitness_service, nutrition_service)


@pytest.fixture
def recorder():
    """Delta recorder for streaming callbacks."""
    return DeltaRecorder()
