from __future__ import annotations

import collections.abc as cabc
from typing import TYPE_CHECKING, Any, get_args

from fixture_builder.contracts import BuildChain, ExecuteStrategy, TypeCreator
from fixture_builder.internal.reflection import (
    is_abstract,
    is_value_type,
    runtime_class,
    type_name,
    unwrap_optional,
)
from fixture_builder.model.members import target_type

if TYPE_CHECKING:
    from fixture_builder.configuration import BuildConfiguration


class TypeCreatorBase(TypeCreator):
    """
    Shared request checks for type creators.

    Subclasses decide which build types they support and how to create them; by
    default an instance is created through an auto-detected constructor and then
    auto-populated.
    """

    priority = 0
    auto_detect_constructor = True
    auto_populate = True

    def _build_type(self, configuration: BuildConfiguration, target: Any) -> Any:
        return configuration.type_resolver.get_build_type(configuration, target_type(target))

    def _is_supported(self, build_type: Any) -> bool:
        return True

    def can_create(self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any) -> bool:
        if configuration is None:
            raise ValueError("configuration must not be None")
        if target is None:
            raise ValueError("target must not be None")
        build_type = self._build_type(configuration, target)
        cls = runtime_class(build_type)
        if cls is None or is_abstract(cls):
            return False
        return self._is_supported(build_type)

    def can_populate(self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any) -> bool:
        return self.can_create(configuration, build_chain, target)

    def create(self, execute_strategy: ExecuteStrategy, target: Any, *args: Any) -> Any:
        if execute_strategy is None:
            raise ValueError("execute_strategy must not be None")
        if target is None:
            raise ValueError("target must not be None")
        configuration = execute_strategy.configuration
        if not self.can_create(configuration, execute_strategy.build_chain, target):
            raise TypeError(
                f"{type(self).__name__} does not support creating {type_name(target_type(target))}"
            )
        return self._create_instance(execute_strategy, self._build_type(configuration, target), args)

    def populate(self, execute_strategy: ExecuteStrategy, instance: Any) -> Any:
        if execute_strategy is None:
            raise ValueError("execute_strategy must not be None")
        if instance is None:
            raise ValueError("instance must not be None")
        return self._populate_instance(execute_strategy, instance)

    def _create_instance(self, execute_strategy: ExecuteStrategy, build_type: Any, args: tuple[Any, ...]) -> Any:
        raise NotImplementedError

    def _populate_instance(self, execute_strategy: ExecuteStrategy, instance: Any) -> Any:
        return instance


class DefaultTypeCreator(TypeCreatorBase):
    """
    Creates any concrete, non-value class through its constructor.
    """

    def _is_supported(self, build_type: Any) -> bool:
        return isinstance(build_type, type) and not is_value_type(build_type)

    def _create_instance(self, execute_strategy: ExecuteStrategy, build_type: Any, args: tuple[Any, ...]) -> Any:
        resolver = execute_strategy.configuration.constructor_resolver
        constructor = resolver.resolve(build_type, *args) if args else resolver.resolve(build_type)
        return constructor.invoke(args)


_CONCRETE_CONTAINERS: dict[type, type] = {
    list: list,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    dict: dict,
    cabc.Iterable: list,
    cabc.Collection: list,
    cabc.Sequence: list,
    cabc.MutableSequence: list,
    cabc.Set: frozenset,
    cabc.MutableSet: set,
    cabc.Mapping: dict,
    cabc.MutableMapping: dict,
}


class EnumerableTypeCreator(TypeCreatorBase):
    """
    Creates lists, tuples, sets and dicts (and their ``collections.abc``
    abstractions) filled with built items.

    The number of items is drawn from ``[min_count, max_count]``. Containers whose
    item type is unknown are created empty.
    """

    priority = 100
    auto_detect_constructor = False
    auto_populate = False

    def __init__(self, min_count: int = 1, max_count: int = 5) -> None:
        if min_count < 0 or max_count < min_count:
            raise ValueError(f"invalid item count range: [{min_count}, {max_count}]")
        self.min_count = min_count
        self.max_count = max_count

    @staticmethod
    def _container_type(requested: Any) -> type | None:
        cls = runtime_class(requested)
        if cls is None:
            return None
        if cls in _CONCRETE_CONTAINERS:
            return _CONCRETE_CONTAINERS[cls]
        if issubclass(cls, (list, set, frozenset, dict)) and not is_abstract(cls):
            return cls
        return None

    def can_create(self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any) -> bool:
        if configuration is None:
            raise ValueError("configuration must not be None")
        if target is None:
            raise ValueError("target must not be None")
        return self._container_type(unwrap_optional(target_type(target))) is not None

    def can_populate(self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any) -> bool:
        return False

    def _build_type(self, configuration: BuildConfiguration, target: Any) -> Any:
        return unwrap_optional(target_type(target))

    def _create_instance(self, execute_strategy: ExecuteStrategy, build_type: Any, args: tuple[Any, ...]) -> Any:
        container = self._container_type(build_type)
        item_types = get_args(build_type)
        rng = execute_strategy.configuration.random

        if issubclass(container, tuple):
            if len(item_types) == 2 and item_types[1] is Ellipsis:
                count = rng.randint(self.min_count, self.max_count)
                return tuple(execute_strategy.create(item_types[0]) for _ in range(count))
            return tuple(execute_strategy.create(t) for t in item_types if t != ())

        if not item_types or item_types[0] is Any:
            return container()
        count = rng.randint(self.min_count, self.max_count)

        if issubclass(container, dict):
            key_type, value_type = item_types if len(item_types) == 2 else (item_types[0], Any)
            items: dict[Any, Any] = {}
            for _ in range(count):
                key = execute_strategy.create(key_type)
                items[key] = None if value_type is Any else execute_strategy.create(value_type)
            return container(items)

        return container(execute_strategy.create(item_types[0]) for _ in range(count))
