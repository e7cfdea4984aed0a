"""Helpers for loading and caching rule definitions from JSON documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple

from .errors import MalformedRuleError, RuleNotFoundError
from .schema import RuleDefinition


class RuleRepository:
    """In-memory registry of :class:`RuleDefinition` objects keyed by name."""

    def __init__(self) -> None:
        self._definitions: Dict[str, RuleDefinition] = {}
        self._json_cache: Dict[Path, int] = {}

    # ------------------------------------------------------------------ loading
    def load_from_json(self, path: Path, *, force: bool = False) -> Tuple[RuleDefinition, ...]:
        """Load one definition, or a list of them, from a JSON file on disk.

        Files are only re-read when their modification time changed, unless
        ``force`` is set.
        """

        path = Path(path)
        current_timestamp = path.stat().st_mtime_ns
        if not force and path in self._json_cache and self._json_cache[path] >= current_timestamp:
            return ()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise MalformedRuleError(f"{path} is not valid JSON: {exc}") from exc
        loaded = self._store(payload)
        self._json_cache[path] = current_timestamp
        return loaded

    def load_from_mapping(self, payload: Mapping[str, Any]) -> RuleDefinition:
        """Validate and store a single definition given as a mapping."""

        definition = RuleDefinition.from_mapping(payload)
        self._definitions[definition.name] = definition
        return definition

    def add(self, definition: RuleDefinition) -> None:
        self._definitions[definition.name] = definition

    # ------------------------------------------------------------------- access
    def get(self, name: str) -> RuleDefinition:
        try:
            return self._definitions[name]
        except KeyError as exc:
            raise RuleNotFoundError(name) from exc

    def names(self) -> Tuple[str, ...]:
        return tuple(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def _store(self, payload: Any) -> Tuple[RuleDefinition, ...]:
        if isinstance(payload, Mapping) and "definitions" in payload:
            payload = payload["definitions"]
        records: Iterable[Any] = payload if isinstance(payload, list) else [payload]
        return tuple(self.load_from_mapping(record) for record in records)


def load_rule_definition(path: Path) -> RuleDefinition:
    """Read a JSON file holding exactly one rule definition."""

    repository = RuleRepository()
    loaded = repository.load_from_json(path)
    if len(loaded) != 1:
        raise MalformedRuleError(f"{path} holds {len(loaded)} definitions, expected exactly one")
    return loaded[0]


__all__ = ["RuleRepository", "load_rule_definition"]
