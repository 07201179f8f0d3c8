from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable
from enum import Enum
from importlib.metadata import EntryPoint, entry_points
from random import Random
from typing import Any

from fixture_builder.configuration import BuildConfiguration
from fixture_builder.contracts import TypeCreator, ValueGenerator
from fixture_builder.internal.creators import DefaultTypeCreator, EnumerableTypeCreator
from fixture_builder.internal.generators import default_value_generators
from fixture_builder.internal.reflection import is_value_type, runtime_class
from fixture_builder.internal.resolvers import (
    DefaultConstructorResolver,
    DefaultParameterResolver,
    DefaultPropertyResolver,
    DefaultTypeResolver,
)
from fixture_builder.model.members import target_type
from fixture_builder.model.rules import (
    BaseExecuteOrderRule,
    PredicateExecuteOrderRule,
    RegexExecuteOrderRule,
)
from fixture_builder.model.settings import BuildSettings

VALUE_GENERATOR_ENTRYPOINT_GROUP = "fixture_builder.value_generators"
TYPE_CREATOR_ENTRYPOINT_GROUP = "fixture_builder.type_creators"

# name expression -> priority; related values are built before the values derived from them
_NAME_ORDER: tuple[tuple[str, int], ...] = (
    ("Gender|Sex", 9600),
    ("(Given|First)[_]?Name", 9580),
    ("Middle[_]?Name", 9570),
    ("Surname|(Last[_]?Name)", 9560),
    ("Domain", 9550),
    ("Email", 9540),
    ("Country", 9400),
    ("State|Region|Province", 9390),
    ("City", 9380),
    ("Post[_]?Code|Zip[_]?(Code)?", 9370),
    ("dob|date[_]?of[_]?birth|born", 9340),
    ("^Age$", 9320),
)


class PluginLoadError(RuntimeError):
    pass


def _member_class(member: Any) -> type | None:
    return runtime_class(target_type(member))


def _is_enum_member(member: Any) -> bool:
    cls = _member_class(member)
    return cls is not None and issubclass(cls, Enum)


def _is_str_member(member: Any) -> bool:
    cls = _member_class(member)
    return cls is not None and issubclass(cls, str) and not issubclass(cls, Enum)


def _is_other_value_member(member: Any) -> bool:
    return is_value_type(target_type(member)) and not (_is_enum_member(member) or _is_str_member(member))


def _is_class_member(member: Any) -> bool:
    return _member_class(member) is not None and not is_value_type(target_type(member))


def default_execute_order_rules() -> list[BaseExecuteOrderRule]:
    """
    Build value types before strings, strings before other classes, and well known
    person and address fields before everything else.
    """
    rules: list[BaseExecuteOrderRule] = [
        RegexExecuteOrderRule(expression, priority) for expression, priority in _NAME_ORDER
    ]
    rules.extend(
        [
            PredicateExecuteOrderRule(_is_enum_member, 4000),
            PredicateExecuteOrderRule(_is_other_value_member, 3000),
            PredicateExecuteOrderRule(_is_str_member, 2000),
            PredicateExecuteOrderRule(_is_class_member, 1000),
        ]
    )
    return rules


def default_type_creators(settings: BuildSettings | None = None) -> list[TypeCreator]:
    settings = settings or BuildSettings()
    return [
        EnumerableTypeCreator(settings.enumerable_min_count, settings.enumerable_max_count),
        DefaultTypeCreator(),
    ]


def _iter_entrypoint_objects(group: str) -> Iterable[tuple[str, Any]]:
    if not group:
        return
    ep: EntryPoint
    for ep in entry_points().select(group=group):
        yield ep.name, ep.load()


def load_plugins(group: str, base: type) -> list[Any]:
    """
    Instantiate every class published under an entry point group.

    Entry points must load a class deriving from ``base`` that can be constructed
    without arguments. Publishing the same class twice is an error.
    """
    plugins: list[Any] = []
    seen: dict[type, str] = {}
    for name, obj in _iter_entrypoint_objects(group):
        if not inspect.isclass(obj) or not issubclass(obj, base):
            raise PluginLoadError(
                f"entry point '{name}' in group '{group}' must load a {base.__name__} subclass;"
                f" got {obj!r}"
            )
        if obj in seen:
            raise PluginLoadError(
                f"entry points '{seen[obj]}' and '{name}' in group '{group}' load the same class"
                f" {obj.__name__}"
            )
        seen[obj] = name
        plugins.append(obj())
        logging.debug(f"loaded plugin: group={group} name={name} class={obj.__name__}")
    return plugins


# :: FeatureFlow | type=feature_start | name=configuration_loading
def build_configuration(settings: BuildSettings | None = None) -> BuildConfiguration:
    """
    Compose a fresh BuildConfiguration.

    Every call returns a new, independent configuration, so tests never share rules
    or resolver caches unless they ask for global caching.
    """
    settings = settings or BuildSettings()
    configuration = BuildConfiguration(
        constructor_resolver=DefaultConstructorResolver(settings.constructor_cache_level),
        parameter_resolver=DefaultParameterResolver(settings.parameter_cache_level),
        property_resolver=DefaultPropertyResolver(settings.property_cache_level),
        type_resolver=DefaultTypeResolver(),
        random=Random(settings.seed),
        max_depth=settings.max_depth,
    )

    if settings.default_rules:
        configuration.execute_order_rules.extend(default_execute_order_rules())
        configuration.type_creators.extend(default_type_creators(settings))
        configuration.value_generators.extend(default_value_generators())

    if settings.discover_plugins:
        configuration.value_generators.extend(
            load_plugins(VALUE_GENERATOR_ENTRYPOINT_GROUP, ValueGenerator)
        )
        configuration.type_creators.extend(
            load_plugins(TYPE_CREATOR_ENTRYPOINT_GROUP, TypeCreator)
        )

    return configuration
