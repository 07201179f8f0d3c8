from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fixture_builder.configuration import BuildConfiguration
    from fixture_builder.contracts import BuildChain, ExecuteStrategy


class BuildRequirement(str, Enum):
    """
    Which half of the build lifecycle a capability is being resolved for.

    CREATE: construct a new value.
    POPULATE: fill the attributes of an existing instance.
    """

    CREATE = "create"
    POPULATE = "populate"


@dataclass(frozen=True, slots=True, kw_only=True)
class BuildCapability:
    """
    What a build action can do for one target.

    A capability with neither ``supports_create`` nor ``supports_populate`` set is the
    same as no capability at all. ``implementation`` is the rule, generator or
    creator that will do the work and ``action`` is the build action that owns it.
    """

    supports_create: bool
    supports_populate: bool
    auto_detect_constructor: bool = False
    auto_populate: bool = False
    implemented_by_type: type
    action: BuildAction = field(compare=False, repr=False)
    implementation: Any = field(default=None, compare=False, repr=False)

    def satisfies(self, requirement: BuildRequirement) -> bool:
        match requirement:
            case BuildRequirement.CREATE:
                return self.supports_create
            case BuildRequirement.POPULATE:
                return self.supports_populate
            case _:
                raise ValueError(f"Unknown build requirement: {requirement!r}")


class BuildAction(ABC):
    """
    A strategy for building targets: creation rules, value generators, type creators.

    ``priority`` decides between actions that can all satisfy the same requirement.
    """

    priority: int = 0

    @abstractmethod
    def get_build_capability(
        self,
        configuration: BuildConfiguration,
        build_chain: BuildChain,
        target: Any,
    ) -> BuildCapability | None:
        raise NotImplementedError

    @abstractmethod
    def build(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        target: Any,
        *args: Any,
    ) -> Any:
        raise NotImplementedError

    def populate(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        instance: Any,
    ) -> Any:
        raise TypeError(f"{type(self).__name__} does not support populate")
