from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from fixture_builder.actions import BuildAction, BuildCapability
from fixture_builder.contracts import BuildChain, ExecuteStrategy
from fixture_builder.internal.reflection import type_name, unwrap_optional
from fixture_builder.model.errors import BuildError
from fixture_builder.model.members import reference_name, target_type

if TYPE_CHECKING:
    from fixture_builder.configuration import BuildConfiguration


def _by_priority(items: Sequence[Any]) -> list[Any]:
    # stable: equal priorities keep registration order
    return sorted(items, key=lambda i: -i.priority)


def _wrap_failure(
    execute_strategy: ExecuteStrategy,
    error: Exception,
    target: Any,
    kind: str,
    implementation: Any,
) -> BuildError:
    build_log = execute_strategy.log
    build_log.build_failure(error)
    output = build_log.output
    message = (
        f"Failed to create value for type {type_name(target_type(target))} using {kind} "
        f"{type(implementation).__name__}, {type(error).__name__}: {error}"
        f"\n\nAt the time of the failure, the build log was:\n\n{output}"
    )
    return BuildError(
        message,
        target_type=target_type(target),
        reference_name=reference_name(target),
        context=execute_strategy.build_chain.first,
        build_log=output,
    )


class CircularReferenceBuildAction(BuildAction):
    """
    Reuses an instance of exactly the requested type that is already being built
    further up the build chain.
    """

    priority = sys.maxsize

    @staticmethod
    def _find(build_chain: BuildChain, target: Any) -> Any | None:
        wanted = unwrap_optional(target_type(target))
        for item in build_chain:
            if type(item) is wanted:
                return item
        return None

    def get_build_capability(
        self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any
    ) -> BuildCapability | None:
        if self._find(build_chain, target) is None:
            return None
        return BuildCapability(
            supports_create=True,
            supports_populate=False,
            implemented_by_type=type(self),
            action=self,
        )

    def build(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        target: Any,
        *args: Any,
    ) -> Any:
        existing = self._find(execute_strategy.build_chain, target)
        if existing is not None:
            execute_strategy.log.circular_reference_detected(target_type(target))
        return existing


class CreationRuleBuildAction(BuildAction):
    priority = 5000

    def get_build_capability(
        self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any
    ) -> BuildCapability | None:
        for rule in _by_priority(configuration.creation_rules):
            if rule.is_match(target):
                return BuildCapability(
                    supports_create=True,
                    supports_populate=False,
                    implemented_by_type=type(rule),
                    action=self,
                    implementation=rule,
                )
        return None

    def build(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        target: Any,
        *args: Any,
    ) -> Any:
        rule = capability.implementation
        try:
            return rule.create(execute_strategy, target)
        except BuildError:
            raise
        except Exception as e:
            raise _wrap_failure(execute_strategy, e, target, "creation rule", rule) from e


class ValueGeneratorBuildAction(BuildAction):
    priority = 3000

    def get_build_capability(
        self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any
    ) -> BuildCapability | None:
        for generator in _by_priority(configuration.value_generators):
            if generator.is_match(build_chain, target):
                return BuildCapability(
                    supports_create=True,
                    supports_populate=False,
                    implemented_by_type=type(generator),
                    action=self,
                    implementation=generator,
                )
        return None

    def build(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        target: Any,
        *args: Any,
    ) -> Any:
        generator = capability.implementation
        execute_strategy.log.creating_value(
            target_type(target), type(generator), execute_strategy.build_chain.first
        )
        try:
            return generator.generate(execute_strategy, target)
        except BuildError:
            raise
        except Exception as e:
            raise _wrap_failure(execute_strategy, e, target, "value generator", generator) from e


class TypeCreatorBuildAction(BuildAction):
    priority = 1000

    def get_build_capability(
        self, configuration: BuildConfiguration, build_chain: BuildChain, target: Any
    ) -> BuildCapability | None:
        for creator in _by_priority(configuration.type_creators):
            can_create = creator.can_create(configuration, build_chain, target)
            can_populate = creator.can_populate(configuration, build_chain, target)
            if not (can_create or can_populate):
                continue
            return BuildCapability(
                supports_create=can_create,
                supports_populate=can_populate,
                auto_detect_constructor=creator.auto_detect_constructor,
                auto_populate=creator.auto_populate,
                implemented_by_type=type(creator),
                action=self,
                implementation=creator,
            )
        return None

    def build(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        target: Any,
        *args: Any,
    ) -> Any:
        creator = capability.implementation
        try:
            return creator.create(execute_strategy, target, *args)
        except BuildError:
            raise
        except Exception as e:
            raise _wrap_failure(execute_strategy, e, target, "type creator", creator) from e

    def populate(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        instance: Any,
    ) -> Any:
        creator = capability.implementation
        try:
            return creator.populate(execute_strategy, instance)
        except BuildError:
            raise
        except Exception as e:
            raise _wrap_failure(execute_strategy, e, type(instance), "type creator", creator) from e


def default_build_actions() -> list[BuildAction]:
    actions: list[BuildAction] = [
        CircularReferenceBuildAction(),
        CreationRuleBuildAction(),
        ValueGeneratorBuildAction(),
        TypeCreatorBuildAction(),
    ]
    logging.debug(f"default build actions: {[type(a).__name__ for a in actions]}")
    return actions
