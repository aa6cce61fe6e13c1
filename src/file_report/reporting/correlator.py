"""Thread-safe registry of work-dir files and the destinations they were published to."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from file_report.paths import normalize_location

logger = logging.getLogger(__name__)


class PublishCorrelator:
    """Run-scoped map from normalized source path to its published destinations.

    Keys and values are canonical strings produced by the path classifier, so
    two spellings of the same file always meet under one key. The table is
    append-only for the lifetime of a run; one lock guards all of it.
    """

    def __init__(self) -> None:
        # dict-as-ordered-set keeps destinations in first-seen order.
        self._published: dict[str, dict[str, None]] = {}
        self._lock = threading.Lock()

    def record(self, source_path: object, destination_path: object) -> bool:
        """Add one publish event. Returns False when the pair was already known."""
        source_key = normalize_location(source_path)
        destination = normalize_location(destination_path)
        with self._lock:
            destinations = self._published.setdefault(source_key, {})
            if destination in destinations:
                return False
            destinations[destination] = None
            known_sources = len(self._published)
        logger.debug(
            "file_report event=publish_recorded source=%s destination=%s sources=%s",
            source_key,
            destination,
            known_sources,
        )
        return True

    def is_published(self, source_path: object) -> bool:
        source_key = normalize_location(source_path)
        with self._lock:
            return bool(self._published.get(source_key))

    def published_destinations(self, source_path: object) -> set[str]:
        return set(self.destinations_in_order(source_path))

    def destinations_in_order(self, source_path: object) -> list[str]:
        source_key = normalize_location(source_path)
        with self._lock:
            return list(self._published.get(source_key, ()))

    def lookup_many(self, source_paths: Iterable[object]) -> list[str]:
        """Destinations of all given sources, in source order then first-seen order.

        One lock acquisition covers the whole batch so a report group is
        resolved against a single consistent state.
        """
        keys = [normalize_location(path) for path in source_paths]
        with self._lock:
            resolved: dict[str, None] = {}
            for key in keys:
                for destination in self._published.get(key, ()):
                    resolved[destination] = None
        return list(resolved)

    def all_published(self, source_paths: Iterable[object]) -> bool:
        keys = [normalize_location(path) for path in source_paths]
        with self._lock:
            return all(self._published.get(key) for key in keys)

    def any_published(self, source_paths: Iterable[object]) -> bool:
        keys = [normalize_location(path) for path in source_paths]
        with self._lock:
            return any(self._published.get(key) for key in keys)

    def snapshot(self) -> dict[str, list[str]]:
        with self._lock:
            return {source: list(destinations) for source, destinations in self._published.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._published)
