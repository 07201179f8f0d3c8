from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from fixture_builder.model.members import Constructor, ParameterTarget, PropertyTarget

if TYPE_CHECKING:
    from fixture_builder.actions import BuildCapability
    from fixture_builder.configuration import BuildConfiguration


class CacheLevel(str, Enum):
    """
    Memoization scope for resolver lookups.

    NONE: recompute on every call.
    PER_INSTANCE: memoize for the lifetime of the resolver instance.
    GLOBAL: memoize for the lifetime of the process.
    """

    NONE = "none"
    PER_INSTANCE = "per_instance"
    GLOBAL = "global"


class BuildChain(ABC):
    """
    The instances currently under construction, newest first, plus a cache of build
    capabilities scoped to the newest instance.
    """

    @property
    @abstractmethod
    def first(self) -> Any | None:
        raise NotImplementedError

    @property
    @abstractmethod
    def last(self) -> Any | None:
        raise NotImplementedError

    @property
    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def __iter__(self) -> Iterator[Any]:
        raise NotImplementedError

    @abstractmethod
    def add_capability(self, target_type: Any, capability: BuildCapability) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_capability(self, target_type: Any) -> BuildCapability | None:
        raise NotImplementedError

    def __len__(self) -> int:
        return self.count


class BuildLog(ABC):
    """
    Append-only diagnostic trace of a build. Indentation follows tree depth.
    """

    @property
    @abstractmethod
    def output(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def build_failure(self, error: BaseException) -> None:
        raise NotImplementedError

    @abstractmethod
    def circular_reference_detected(self, target_type: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def creating_type(self, target_type: Any, creator_type: type, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def created_type(self, target_type: Any, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def creating_value(self, target_type: Any, generator_type: type, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def creating_parameter(self, parameter: ParameterTarget, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def created_parameter(self, parameter: ParameterTarget, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def creating_property(self, prop: PropertyTarget, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def created_property(self, prop: PropertyTarget, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def ignoring_property(self, prop: PropertyTarget, context: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def mapped_type(self, source_type: Any, target_type: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def populating_instance(self, instance: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def populated_instance(self, instance: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def post_build_action(self, target_type: Any, action_type: type, context: Any) -> None:
        raise NotImplementedError


class ExecuteStrategy(ABC):
    """
    Drives the recursive create/populate algorithm for one root build at a time.

    Instances are not safe to share between threads; the configuration they hold is
    read-only during a build and may be shared freely.
    """

    @property
    @abstractmethod
    def configuration(self) -> BuildConfiguration:
        raise NotImplementedError

    @property
    @abstractmethod
    def build_chain(self) -> BuildChain:
        raise NotImplementedError

    @property
    @abstractmethod
    def log(self) -> BuildLog:
        raise NotImplementedError

    @abstractmethod
    def initialize(self, configuration: BuildConfiguration) -> None:
        raise NotImplementedError

    @abstractmethod
    def create(self, target_type: Any, *args: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def create_with(self, target_type: Any, *args: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def populate(self, instance: Any) -> Any:
        raise NotImplementedError


class ValueGenerator(ABC):
    """
    Produces leaf values (strings, numbers, names, emails) for types and members.
    """

    priority: int = 0

    @abstractmethod
    def is_match(self, build_chain: BuildChain, target: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        raise NotImplementedError


class TypeCreator(ABC):
    """
    Creates (and optionally populates) instances of composite types.
    """

    priority: int = 0
    auto_detect_constructor: bool = True
    auto_populate: bool = True

    @abstractmethod
    def can_create(self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def can_populate(self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create(self, execute_strategy: ExecuteStrategy, target: Any, *args: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def populate(self, execute_strategy: ExecuteStrategy, instance: Any) -> Any:
        raise NotImplementedError


class ConstructorResolver(ABC):
    @abstractmethod
    def resolve(self, target_type: type, *args: Any) -> Constructor:
        """
        Pick the constructor to use for ``target_type``.

        Without arguments: the public constructor with the fewest parameters that
        does not take an instance of ``target_type`` itself.
        With arguments: a constructor whose parameters accept them.

        Raises MissingMemberError when no constructor qualifies.
        """
        raise NotImplementedError


class ParameterResolver(ABC):
    @abstractmethod
    def get_ordered_parameters(
        self, configuration: BuildConfiguration, constructor: Constructor
    ) -> Sequence[ParameterTarget]:
        raise NotImplementedError


class PropertyResolver(ABC):
    @abstractmethod
    def get_ordered_properties(
        self, configuration: BuildConfiguration, target_type: type
    ) -> Sequence[PropertyTarget]:
        raise NotImplementedError

    @abstractmethod
    def is_ignored(
        self,
        configuration: BuildConfiguration,
        instance: Any,
        prop: PropertyTarget,
        args: Sequence[Any],
    ) -> bool:
        raise NotImplementedError

    @abstractmethod
    def should_populate_property(
        self,
        configuration: BuildConfiguration,
        instance: Any,
        prop: PropertyTarget,
        args: Sequence[Any],
    ) -> bool:
        raise NotImplementedError


class TypeResolver(ABC):
    @abstractmethod
    def get_build_type(self, configuration: BuildConfiguration, requested_type: Any) -> Any:
        raise NotImplementedError
