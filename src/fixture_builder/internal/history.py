from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from fixture_builder.actions import BuildCapability
from fixture_builder.contracts import BuildChain


@dataclass(slots=True)
class BuildHistoryItem:
    value: Any
    capabilities: dict[Any, BuildCapability] = field(default_factory=dict)


class BuildHistory(BuildChain):
    """
    Stack of the instances currently under construction.

    Each entry also carries a small cache of build capabilities resolved while it was
    the top of the stack; the cache goes away when the entry is popped.
    """

    def __init__(self) -> None:
        self._items: list[BuildHistoryItem] = []

    @property
    def first(self) -> Any | None:
        return self._items[-1].value if self._items else None

    @property
    def last(self) -> Any | None:
        return self._items[0].value if self._items else None

    @property
    def count(self) -> int:
        return len(self._items)

    def push(self, instance: Any) -> None:
        if instance is None:
            raise ValueError("instance must not be None")
        self._items.append(BuildHistoryItem(instance))

    def pop(self) -> None:
        if not self._items:
            raise RuntimeError("Cannot pop from an empty build history")
        self._items.pop()

    def add_capability(self, target_type: Any, capability: BuildCapability) -> None:
        if target_type is None:
            raise ValueError("target_type must not be None")
        if capability is None:
            raise ValueError("capability must not be None")
        if not self._items:
            # no current build context to hold the cache
            return
        self._items[-1].capabilities[target_type] = capability

    def get_capability(self, target_type: Any) -> BuildCapability | None:
        if target_type is None:
            raise ValueError("target_type must not be None")
        if not self._items:
            return None
        return self._items[-1].capabilities.get(target_type)

    def __iter__(self) -> Iterator[Any]:
        return (item.value for item in reversed(self._items))


class ParameterValues:
    """
    Build context pushed while constructor parameters are being created.

    Parameter values are exposed as attributes as soon as they are built so context
    sensitive generators can read earlier siblings the same way they read properties
    of a partially populated instance.
    """

    def __init__(self, target_type: type) -> None:
        self._target_type = target_type

    def __repr__(self) -> str:
        values = {k: v for k, v in self.__dict__.items() if not k.startswith("_")}
        return f"ParameterValues({self._target_type.__name__}, {values!r})"
