from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Hashable, Sequence
from dataclasses import MISSING
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from fixture_builder.contracts import (
    CacheLevel,
    ConstructorResolver,
    ParameterResolver,
    PropertyResolver,
    TypeResolver,
)
from fixture_builder.internal.reflection import (
    is_abstract,
    is_instance_of,
    is_value_type,
    public_constructors,
    public_properties,
    runtime_class,
    type_name,
    unwrap_optional,
)
from fixture_builder.model.errors import MissingMemberError
from fixture_builder.model.members import Constructor, ParameterTarget, PropertyTarget

if TYPE_CHECKING:
    from fixture_builder.configuration import BuildConfiguration

T = TypeVar("T")

_GLOBAL_CACHE: dict[tuple[str, Hashable], Any] = {}
_MISSING: Any = object()
_ZERO_VALUES: dict[type, Any] = {
    datetime: datetime.min,
    date: date.min,
    time: time(),
    timedelta: timedelta(),
    uuid.UUID: uuid.UUID(int=0),
}


def clear_global_cache() -> None:
    _GLOBAL_CACHE.clear()


class _ResolverCache:
    """
    Keyed memoization whose lifetime follows a CacheLevel.
    """

    def __init__(self, name: str, level: CacheLevel) -> None:
        self._name = name
        self._level = CacheLevel(level)
        self._local: dict[Hashable, Any] = {}

    @property
    def level(self) -> CacheLevel:
        return self._level

    def get_or_add(self, key: Hashable, factory: Callable[[], T]) -> T:
        match self._level:
            case CacheLevel.NONE:
                return factory()
            case CacheLevel.PER_INSTANCE:
                store, store_key = self._local, key
            case CacheLevel.GLOBAL:
                store, store_key = _GLOBAL_CACHE, (self._name, key)
            case _:
                raise ValueError(f"Unknown cache level: {self._level!r}")

        hit = store.get(store_key, _MISSING)
        if hit is not _MISSING:
            logging.debug(f"{self._name} cache hit: key={key!r}")
            return hit
        value = factory()
        store[store_key] = value
        return value


def _order_members(rules: Sequence[Any], members: Sequence[T]) -> tuple[T, ...]:
    """
    Sort members by the highest matching execute order rule priority, descending.

    Members matched by no rule have priority 0; ties keep declaration order.
    """

    def _priority(member: T) -> int:
        priorities = [rule.priority for rule in rules if rule.is_match(member)]
        return max(priorities) if priorities else 0

    return tuple(sorted(members, key=lambda m: -_priority(m)))


def _is_self_reference(target_type: type, parameter: ParameterTarget) -> bool:
    annotation = parameter.parameter_type
    if isinstance(annotation, str):
        return annotation.strip("'\"").split("|")[0].strip() == target_type.__name__
    return runtime_class(annotation) is target_type


def _admits_none(annotation: Any) -> bool:
    """
    Strings and bytes take None like any class; other value types only when optional.
    """
    if not is_value_type(annotation) or is_instance_of(None, annotation):
        return True
    cls = runtime_class(annotation)
    return issubclass(cls, (str, bytes)) and not issubclass(cls, Enum)


def _accepts(constructor: Constructor, args: Sequence[Any]) -> bool:
    parameters = constructor.parameters
    if len(args) > len(parameters):
        return False
    if any(not p.has_default for p in parameters[len(args):]):
        return False
    for parameter, arg in zip(parameters, args):
        annotation = parameter.parameter_type
        if isinstance(annotation, str):
            continue
        if arg is None:
            if not _admits_none(annotation):
                return False
            continue
        if not is_instance_of(arg, annotation):
            return False
    return True


class DefaultConstructorResolver(ConstructorResolver):
    """
    Picks constructors by reflection.

    Without arguments the constructor with the fewest parameters wins, after
    discarding every constructor that takes an instance of the type being built.
    Resolution without arguments is memoized according to ``cache_level``.
    """

    def __init__(self, cache_level: CacheLevel = CacheLevel.PER_INSTANCE) -> None:
        self._cache = _ResolverCache("constructor", cache_level)

    @property
    def cache_level(self) -> CacheLevel:
        return self._cache.level

    def resolve(self, target_type: type, *args: Any) -> Constructor:
        if target_type is None:
            raise ValueError("target_type must not be None")

        if args:
            return self._resolve_matching(target_type, args)

        constructor = self._cache.get_or_add(
            target_type, lambda: self._resolve_default(target_type)
        )
        if constructor is None:
            raise MissingMemberError(
                f"No public constructor found for type {type_name(target_type)}"
                " that does not take an instance of the same type.",
                declaring_type=target_type,
            )
        return constructor

    @staticmethod
    def _resolve_default(target_type: type) -> Constructor | None:
        candidates = [
            c
            for c in public_constructors(target_type)
            if not any(_is_self_reference(target_type, p) for p in c.parameters)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda c: len(c.parameters))

    @staticmethod
    def _resolve_matching(target_type: type, args: Sequence[Any]) -> Constructor:
        candidates = sorted(
            public_constructors(target_type),
            key=lambda c: len(c.parameters) != len(args),
        )
        for candidate in candidates:
            if _accepts(candidate, args):
                return candidate

        argument_types = tuple(type(a) for a in args)
        names = ", ".join(type_name(t) for t in argument_types)
        raise MissingMemberError(
            f"No constructor found matching type {type_name(target_type)} with parameters [{names}].",
            declaring_type=target_type,
            argument_types=argument_types,
        )


class DefaultParameterResolver(ParameterResolver):
    def __init__(self, cache_level: CacheLevel = CacheLevel.PER_INSTANCE) -> None:
        self._cache = _ResolverCache("parameter", cache_level)

    @property
    def cache_level(self) -> CacheLevel:
        return self._cache.level

    def get_ordered_parameters(
        self, configuration: BuildConfiguration, constructor: Constructor
    ) -> tuple[ParameterTarget, ...]:
        if configuration is None:
            raise ValueError("configuration must not be None")
        if constructor is None:
            raise ValueError("constructor must not be None")

        return self._cache.get_or_add(
            (constructor.declaring_type, constructor.name),
            lambda: _order_members(configuration.execute_order_rules, constructor.parameters),
        )


class DefaultPropertyResolver(PropertyResolver):
    """
    Finds the properties to populate and decides which of them to skip.

    A property is skipped when an ignore rule matches it, when it refers back to the
    instance that owns it, or when it already holds the value that was passed to the
    constructor parameter of the same name.
    """

    def __init__(self, cache_level: CacheLevel = CacheLevel.PER_INSTANCE) -> None:
        self._cache = _ResolverCache("property", cache_level)

    @property
    def cache_level(self) -> CacheLevel:
        return self._cache.level

    def get_ordered_properties(
        self, configuration: BuildConfiguration, target_type: type
    ) -> tuple[PropertyTarget, ...]:
        if configuration is None:
            raise ValueError("configuration must not be None")
        if target_type is None:
            raise ValueError("target_type must not be None")

        def _compute() -> tuple[PropertyTarget, ...]:
            properties = [p for p in public_properties(target_type) if self._can_populate(p)]
            return _order_members(configuration.execute_order_rules, properties)

        return self._cache.get_or_add(target_type, _compute)

    @staticmethod
    def _can_populate(prop: PropertyTarget) -> bool:
        return prop.settable or not is_value_type(prop.property_type)

    def should_populate_property(
        self,
        configuration: BuildConfiguration,
        instance: Any,
        prop: PropertyTarget,
        args: Sequence[Any],
    ) -> bool:
        return self._can_populate(prop) and not self.is_ignored(configuration, instance, prop, args)

    def is_ignored(
        self,
        configuration: BuildConfiguration,
        instance: Any,
        prop: PropertyTarget,
        args: Sequence[Any],
    ) -> bool:
        if configuration is None:
            raise ValueError("configuration must not be None")
        if instance is None:
            raise ValueError("instance must not be None")
        if prop is None:
            raise ValueError("prop must not be None")

        if any(rule.is_match(prop) for rule in configuration.ignore_rules):
            return True

        value = prop.get_value(instance)
        if value is instance:
            return True

        try:
            default = self._default_value(prop)
        except (TypeError, ValueError) as e:
            logging.debug(
                f"no default value for {prop!r} ({type(e).__name__}: {e}); property not ignored"
            )
            return False
        if value == default:
            return False

        if not args:
            return False

        matching = [a for a in args if is_instance_of(a, prop.property_type)]
        if not matching:
            return False

        if not is_value_type(prop.property_type):
            return any(a is value for a in matching)

        constructor = configuration.constructor_resolver.resolve(type(instance), *args)
        name = prop.name.lower()
        for parameter, arg in zip(constructor.parameters, args):
            if parameter.name.lower() != name:
                continue
            if is_instance_of(arg, prop.property_type) and arg == value:
                return True
        return False

    @staticmethod
    def _default_value(prop: PropertyTarget) -> Any:
        declared = _declared_default(prop)
        if declared is not _MISSING:
            return declared

        if not is_value_type(prop.property_type):
            return None
        cls = runtime_class(prop.property_type)
        if unwrap_optional(prop.property_type) is not prop.property_type:
            return None
        if issubclass(cls, Enum):
            return next(iter(cls), None)
        for zero_type, zero in _ZERO_VALUES.items():
            if issubclass(cls, zero_type):
                return zero
        return cls()


def _declared_default(prop: PropertyTarget) -> Any:
    fields = getattr(prop.declaring_type, "__dataclass_fields__", None)
    if fields and prop.name in fields:
        f = fields[prop.name]
        if f.default is not MISSING:
            return f.default
        if f.default_factory is not MISSING:
            return f.default_factory()
        return _MISSING

    declared = prop.declaring_type.__dict__.get(prop.name, _MISSING)
    if declared is _MISSING or hasattr(declared, "__get__"):
        return _MISSING
    return declared


class DefaultTypeResolver(TypeResolver):
    """
    Decides the concrete type to build for a requested type.

    A matching type mapping rule wins. Otherwise ``Optional`` is unwrapped and an
    abstract class is replaced by a concrete subclass, preferring one named like the
    abstract class without its ``Base``/``Abstract`` affix.
    """

    def get_build_type(self, configuration: BuildConfiguration, requested_type: Any) -> Any:
        if configuration is None:
            raise ValueError("configuration must not be None")
        if requested_type is None:
            raise ValueError("requested_type must not be None")

        for candidate in (requested_type, unwrap_optional(requested_type)):
            for rule in configuration.type_mapping_rules:
                if rule.source_type == candidate:
                    return rule.target_type

        build_type = unwrap_optional(requested_type)
        if is_abstract(build_type):
            return _find_concrete_subclass(build_type) or build_type
        return build_type


def _all_subclasses(cls: type) -> list[type]:
    found: list[type] = []
    pending = list(cls.__subclasses__())
    while pending:
        sub = pending.pop(0)
        if sub in found:
            continue
        found.append(sub)
        pending.extend(sub.__subclasses__())
    return found


def _find_concrete_subclass(abstract: type) -> type | None:
    concrete = [c for c in _all_subclasses(abstract) if not is_abstract(c)]
    if not concrete:
        return None

    name = abstract.__name__
    preferred = {
        name.removeprefix(affix).removesuffix(affix)
        for affix in ("Base", "Abstract")
    } - {name}
    for candidate in concrete:
        if candidate.__name__ in preferred:
            return candidate
    return concrete[0]
