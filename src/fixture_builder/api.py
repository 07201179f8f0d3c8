from __future__ import annotations

from typing import Any, TypeVar

from fixture_builder.configuration import BuildConfiguration
from fixture_builder.internal.execution import DefaultExecuteStrategy, TypedExecuteStrategy
from fixture_builder.internal.reflection import constructor
from fixture_builder.services import build_configuration

T = TypeVar("T")

__all__ = ["constructor", "create", "create_with", "for_type", "populate"]


def _strategy(configuration: BuildConfiguration | None) -> DefaultExecuteStrategy:
    """
    A fresh execute strategy, so no build history or log is shared between calls.

    Without a configuration a default one is composed by ``build_configuration``.
    """
    return DefaultExecuteStrategy(configuration if configuration is not None else build_configuration())


# :: FeatureFlow | type=feature_start | name=create
def create(target_type: type[T], *args: Any, configuration: BuildConfiguration | None = None) -> T:
    """
    Build a populated instance of ``target_type``.

    Args:
        target_type: The type to build.
        *args: Constructor arguments. When omitted the constructor is detected and its
            parameters are built as well.
        configuration: Rules, generators and creators to use. Defaults to
            ``build_configuration()``.

    Raises:
        BuildError: If any part of the object graph cannot be built.
        ValueError: If ``target_type`` is None.
    """
    return _strategy(configuration).create(target_type, *args)


def create_with(target_type: type[T], *args: Any, configuration: BuildConfiguration | None = None) -> T:
    """
    Build ``target_type`` from the given constructor arguments, then populate it.
    """
    return _strategy(configuration).create_with(target_type, *args)


def populate(instance: T, *, configuration: BuildConfiguration | None = None) -> T:
    """
    Populate the properties of an existing instance and return it.
    """
    return _strategy(configuration).populate(instance)


def for_type(target_type: type[T], *, configuration: BuildConfiguration | None = None) -> TypedExecuteStrategy[T]:
    return TypedExecuteStrategy(
        target_type,
        configuration if configuration is not None else build_configuration(),
    )
