from __future__ import annotations

# ==============================================================================
# BRANCH LEDGER: services.py
# ==============================================================================
#
# M001 default_execute_order_rules: well known names > enums > other value types > str > classes
# M002 default_type_creators: enumerable counts from settings
# M003 _iter_entrypoint_objects: empty group -> nothing
# M004 load_plugins: non-class / wrong base -> PluginLoadError; duplicate class -> PluginLoadError
# M005 build_configuration: cache levels, seed, max_depth; default_rules and discover_plugins switches
# ==============================================================================

from dataclasses import dataclass
from typing import Any

import pytest

import fixture_builder.services as services
from fixture_builder.contracts import CacheLevel, ValueGenerator
from fixture_builder.internal.creators import DefaultTypeCreator, EnumerableTypeCreator
from fixture_builder.internal.generators import EmailValueGenerator
from fixture_builder.model.members import ParameterTarget, PropertyTarget
from fixture_builder.model.settings import BuildSettings
from unit.helpers.models_helper import Address, Gender, Person


class _PluginGenerator(ValueGenerator):
    def is_match(self, build_chain, target):
        return False

    def generate(self, execute_strategy, target):
        return None


class _OtherPluginGenerator(_PluginGenerator):
    pass


@dataclass
class _Members:
    gender: Gender
    count: int
    label: str
    address: Address
    anything: Any


def _priority(rules, member) -> int:
    return max((r.priority for r in rules if r.is_match(member)), default=0)


# -------------------------
# execute order
# -------------------------


@pytest.mark.parametrize(
    "member, expected",
    [
        pytest.param(ParameterTarget("gender", Gender, _Members, 0), 9600, id="gender_name"),
        pytest.param(ParameterTarget("first_name", str, Person, 0), 9580, id="first_name"),
        pytest.param(ParameterTarget("email", str, Person, 2), 9540, id="email"),
        pytest.param(ParameterTarget("post_code", str, Address, 2), 9370, id="post_code"),
        pytest.param(ParameterTarget("kind", Gender, _Members, 0), 4000, id="enum"),
        pytest.param(PropertyTarget("count", int, _Members, _Members), 3000, id="value_type"),
        pytest.param(PropertyTarget("label", str | None, _Members, _Members), 2000, id="optional_str"),
        pytest.param(PropertyTarget("address", Address, _Members, _Members), 1000, id="class"),
        pytest.param(PropertyTarget("anything", Any, _Members, _Members), 0, id="unknown"),
        pytest.param(PropertyTarget("either", int | str, _Members, _Members), 0, id="multi_union"),
    ],
)
def test_default_execute_order(member, expected):
    assert _priority(services.default_execute_order_rules(), member) == expected


def test_default_type_creators_follow_settings():
    enumerable, default = services.default_type_creators(
        BuildSettings(enumerable_min_count=2, enumerable_max_count=3)
    )

    assert isinstance(enumerable, EnumerableTypeCreator)
    assert (enumerable.min_count, enumerable.max_count) == (2, 3)
    assert isinstance(default, DefaultTypeCreator)


# -------------------------
# plugins
# -------------------------


def test_empty_group_yields_nothing():
    assert list(services._iter_entrypoint_objects("")) == []


def test_load_plugins_instantiates_classes(monkeypatch):
    monkeypatch.setattr(
        services,
        "_iter_entrypoint_objects",
        lambda group: iter([("one", _PluginGenerator), ("two", _OtherPluginGenerator)]),
    )

    plugins = services.load_plugins("any.group", ValueGenerator)

    assert [type(p) for p in plugins] == [_PluginGenerator, _OtherPluginGenerator]


@pytest.mark.parametrize(
    "published",
    [
        pytest.param([("bad", object())], id="not_a_class"),
        pytest.param([("bad", Address)], id="wrong_base"),
        pytest.param([("one", _PluginGenerator), ("again", _PluginGenerator)], id="duplicate"),
    ],
)
def test_load_plugins_rejects_bad_entry_points(monkeypatch, published):
    monkeypatch.setattr(services, "_iter_entrypoint_objects", lambda group: iter(published))

    with pytest.raises(services.PluginLoadError):
        services.load_plugins("any.group", ValueGenerator)


# -------------------------
# configuration
# -------------------------


def test_build_configuration_defaults(monkeypatch):
    monkeypatch.setattr(services, "_iter_entrypoint_objects", lambda group: iter(()))

    configuration = services.build_configuration()

    assert configuration.max_depth == 64
    assert configuration.execute_order_rules
    assert [type(c) for c in configuration.type_creators] == [EnumerableTypeCreator, DefaultTypeCreator]
    assert any(isinstance(g, EmailValueGenerator) for g in configuration.value_generators)
    assert configuration.creation_rules == []


def test_build_configuration_applies_settings():
    settings = BuildSettings(
        constructor_cache_level=CacheLevel.GLOBAL,
        property_cache_level=CacheLevel.NONE,
        max_depth=None,
        seed=3,
        default_rules=False,
        discover_plugins=False,
    )

    first = services.build_configuration(settings)
    second = services.build_configuration(settings)

    assert first.constructor_resolver.cache_level is CacheLevel.GLOBAL
    assert first.parameter_resolver.cache_level is CacheLevel.PER_INSTANCE
    assert first.property_resolver.cache_level is CacheLevel.NONE
    assert first.max_depth is None
    assert (first.value_generators, first.type_creators, first.execute_order_rules) == ([], [], [])
    assert first.random.random() == second.random.random()
    assert first.constructor_resolver is not second.constructor_resolver


def test_build_configuration_appends_discovered_plugins(monkeypatch):
    published = {
        services.VALUE_GENERATOR_ENTRYPOINT_GROUP: [("custom", _PluginGenerator)],
        services.TYPE_CREATOR_ENTRYPOINT_GROUP: [],
    }
    monkeypatch.setattr(services, "_iter_entrypoint_objects", lambda group: iter(published[group]))

    configuration = services.build_configuration(BuildSettings(seed=1))

    assert isinstance(configuration.value_generators[-1], _PluginGenerator)
