"""In-process counters for silent fallback paths.

Parse failures, coerced tool intents and router fallbacks are all recovered
locally and never surface as user-visible errors. Counting them here keeps the
fallback rate observable (see ``GET /metrics/fallbacks``).
"""

import threading
from collections import Counter
from datetime import UTC, datetime
from typing import Any, Literal

from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

FallbackKind = Literal[
    "json_parse_failed",
    "json_regex_extracted",
    "tool_intent_missing_name",
    "tool_intent_missing_response",
    "tool_args_invalid",
    "tool_duplicate_ignored",
    "router_malformed_output",
    "router_transport_error",
    "empty_turn",
]


class FallbackMetrics:
    """Thread-safe counter of fallback invocations by kind."""

    def __init__(self):
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()
        self._since = datetime.now(UTC)

    def record(self, kind: FallbackKind) -> None:
        """Count one fallback of the given kind."""
        with self._lock:
            self._counts[kind] += 1
        logger.debug(f"Fallback recorded: {kind}")

    def count(self, kind: FallbackKind) -> int:
        with self._lock:
            return self._counts[kind]

    def snapshot(self) -> dict[str, Any]:
        """Return the current counters and the time they started accumulating."""
        with self._lock:
            return {
                "since": self._since.isoformat(),
                "total": sum(self._counts.values()),
                "counts": dict(self._counts),
            }

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._since = datetime.now(UTC)


fallback_metrics = FallbackMetrics()
