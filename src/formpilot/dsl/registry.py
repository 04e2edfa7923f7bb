"""Catalog of named, platform-scoped selectors."""

from __future__ import annotations

from typing import Iterator

from formpilot.models import DomainConfig, SelectorDefinition


class SelectorRegistry:
    """Maps symbolic selector keys to their definitions.

    A pure catalog: selector syntax is never validated here.
    """

    def __init__(self, selectors: dict[str, SelectorDefinition] | None = None) -> None:
        self._selectors: dict[str, SelectorDefinition] = dict(selectors or {})

    @classmethod
    def from_config(cls, config: DomainConfig) -> "SelectorRegistry":
        return cls(config.selectors)

    def register(self, key: str, definition: SelectorDefinition) -> None:
        self._selectors[key] = definition

    def get(self, key: str) -> SelectorDefinition | None:
        return self._selectors.get(key)

    def has(self, key: str) -> bool:
        return key in self._selectors

    def remove(self, key: str) -> bool:
        return self._selectors.pop(key, None) is not None

    def update(self, key: str, **fields) -> bool:
        """Shallow-merge ``fields`` into an existing definition.

        Returns False (and changes nothing) when ``key`` is not registered.
        """
        existing = self._selectors.get(key)
        if existing is None:
            return False
        self._selectors[key] = existing.model_copy(update=fields)
        return True

    def platform_selectors(self, platform: str) -> dict[str, SelectorDefinition]:
        return {key: d for key, d in self._selectors.items() if d.platform == platform}

    def clear(self) -> None:
        self._selectors.clear()

    def keys(self) -> list[str]:
        return list(self._selectors)

    def __contains__(self, key: object) -> bool:
        return key in self._selectors

    def __len__(self) -> int:
        return len(self._selectors)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._selectors))
