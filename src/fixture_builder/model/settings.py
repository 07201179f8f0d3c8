from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypedDict

from typing_extensions import Self

from fixture_builder.contracts import CacheLevel
from fixture_builder.internal.util.multiformat import MultiformatModelMixin


class BuildSettingsMapping(TypedDict, total=False):
    """
    Keys accepted in a settings document (JSON, TOML or YAML).
    """

    constructor_cache_level: str
    parameter_cache_level: str
    property_cache_level: str
    max_depth: int | None
    seed: int | None
    enumerable_min_count: int
    enumerable_max_count: int
    default_rules: bool
    discover_plugins: bool


_CACHE_LEVEL_KEYS = ("constructor_cache_level", "parameter_cache_level", "property_cache_level")
_OPTIONAL_INT_KEYS = ("max_depth", "seed")
_INT_KEYS = ("enumerable_min_count", "enumerable_max_count")
_BOOL_KEYS = ("default_rules", "discover_plugins")


def _expect_int(key: str, value: Any, *, optional: bool) -> int | None:
    if value is None and optional:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Invalid build setting {key}: expected int, got {type(value).__name__}")
    return value


@dataclass(frozen=True, slots=True, kw_only=True)
class BuildSettings(MultiformatModelMixin):
    """
    Tunables for a default build configuration.

    max_depth: maximum depth of the build tree; None disables the guard.
    seed: seed for the random source; None seeds from the OS.
    default_rules: install the default execute order rules, creators and generators.
    discover_plugins: add generators and creators published through entry points.
    """

    constructor_cache_level: CacheLevel = CacheLevel.PER_INSTANCE
    parameter_cache_level: CacheLevel = CacheLevel.PER_INSTANCE
    property_cache_level: CacheLevel = CacheLevel.PER_INSTANCE
    max_depth: int | None = 64
    seed: int | None = None
    enumerable_min_count: int = 1
    enumerable_max_count: int = 5
    default_rules: bool = True
    discover_plugins: bool = True

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.enumerable_min_count < 0 or self.enumerable_max_count < self.enumerable_min_count:
            raise ValueError(
                "enumerable counts must satisfy 0 <= enumerable_min_count <= enumerable_max_count"
            )

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "constructor_cache_level": self.constructor_cache_level.value,
            "parameter_cache_level": self.parameter_cache_level.value,
            "property_cache_level": self.property_cache_level.value,
            "max_depth": self.max_depth,
            "seed": self.seed,
            "enumerable_min_count": self.enumerable_min_count,
            "enumerable_max_count": self.enumerable_max_count,
            "default_rules": self.default_rules,
            "discover_plugins": self.discover_plugins,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        bad_keys = set(mapping) - set(BuildSettingsMapping.__annotations__)
        if bad_keys:
            raise ValueError(f"Invalid build settings keys: {sorted(bad_keys)}")

        kwargs: dict[str, Any] = {}
        for key in _CACHE_LEVEL_KEYS:
            if key in mapping:
                kwargs[key] = CacheLevel(mapping[key])
        for key in _OPTIONAL_INT_KEYS:
            if key in mapping:
                kwargs[key] = _expect_int(key, mapping[key], optional=True)
        for key in _INT_KEYS:
            if key in mapping:
                kwargs[key] = _expect_int(key, mapping[key], optional=False)
        for key in _BOOL_KEYS:
            if key in mapping:
                if not isinstance(mapping[key], bool):
                    raise ValueError(
                        f"Invalid build setting {key}: expected bool, got {type(mapping[key]).__name__}"
                    )
                kwargs[key] = mapping[key]
        return cls(**kwargs)
