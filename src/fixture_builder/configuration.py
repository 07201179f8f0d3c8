from __future__ import annotations

from dataclasses import dataclass, field
from random import Random

from fixture_builder.contracts import (
    ConstructorResolver,
    ParameterResolver,
    PropertyResolver,
    TypeCreator,
    TypeResolver,
    ValueGenerator,
)
from fixture_builder.internal.resolvers import (
    DefaultConstructorResolver,
    DefaultParameterResolver,
    DefaultPropertyResolver,
    DefaultTypeResolver,
)
from fixture_builder.model.rules import (
    BaseCreationRule,
    BaseExecuteOrderRule,
    BaseIgnoreRule,
    PostBuildAction,
    TypeMappingRule,
)

DEFAULT_MAX_DEPTH = 64


@dataclass(slots=True)
class BuildConfiguration:
    """
    Everything an execute strategy consults while building: resolvers, rules,
    type creators, value generators and the random source.

    A configuration is read-only while a build runs and can be shared by any number
    of execute strategies. ``max_depth`` bounds the depth of the build tree; ``None``
    removes the bound.
    """

    constructor_resolver: ConstructorResolver = field(default_factory=DefaultConstructorResolver)
    parameter_resolver: ParameterResolver = field(default_factory=DefaultParameterResolver)
    property_resolver: PropertyResolver = field(default_factory=DefaultPropertyResolver)
    type_resolver: TypeResolver = field(default_factory=DefaultTypeResolver)
    creation_rules: list[BaseCreationRule] = field(default_factory=list)
    ignore_rules: list[BaseIgnoreRule] = field(default_factory=list)
    execute_order_rules: list[BaseExecuteOrderRule] = field(default_factory=list)
    type_mapping_rules: list[TypeMappingRule] = field(default_factory=list)
    post_build_actions: list[PostBuildAction] = field(default_factory=list)
    type_creators: list[TypeCreator] = field(default_factory=list)
    value_generators: list[ValueGenerator] = field(default_factory=list)
    random: Random = field(default_factory=Random)
    max_depth: int | None = DEFAULT_MAX_DEPTH
