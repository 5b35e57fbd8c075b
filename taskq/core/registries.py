from collections.abc import Iterable, Iterator
from typing import Any

from taskq.queue.job import JobDefinition


class JobRegistry:
    """
    Job definitions known to one running queue.

    Registration is additive: registering a name twice keeps both entries
    and lookups return the first one. Each queue service owns its own
    registry, so nothing leaks between services or tests.
    """

    def __init__(self, name: str = "Job"):
        self.name = name
        self._definitions: list[JobDefinition[Any]] = []
        self._frozen = False

    def register(self, definitions: Iterable[JobDefinition[Any]]) -> None:
        """Append definitions to the registry."""
        definitions = list(definitions)
        if self._frozen:
            names = ", ".join(d.name for d in definitions)
            raise RuntimeError(
                f"Cannot register '{names}' in {self.name.lower()} registry: "
                "registry is frozen"
            )
        self._definitions.extend(definitions)

    def find(self, name: str) -> JobDefinition[Any] | None:
        """Return the first definition registered under ``name``."""
        for definition in self._definitions:
            if definition.name == name:
                return definition
        return None

    def names(self) -> list[str]:
        """List all registered definition names, in registration order."""
        return [definition.name for definition in self._definitions]

    def clear(self) -> None:
        self._definitions = []

    def is_empty(self) -> bool:
        return not self._definitions

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[JobDefinition[Any]]:
        return iter(list(self._definitions))
