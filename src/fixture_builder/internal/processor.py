from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fixture_builder.actions import BuildAction, BuildCapability, BuildRequirement
from fixture_builder.contracts import ExecuteStrategy
from fixture_builder.internal.build_actions import default_build_actions
from fixture_builder.internal.reflection import type_name
from fixture_builder.model.errors import BuildError, UnsupportedTargetError
from fixture_builder.model.members import reference_name, target_type


def _describe(target: Any) -> str:
    name = reference_name(target)
    if name is None:
        return f"type {type_name(target_type(target))}"
    return f"type {type_name(target_type(target))} ({name})"


class BuildProcessor:
    """
    Selects the build action that should create or populate a target.

    Every action is asked for a capability; among those satisfying the requirement
    the action with the highest priority wins, and the first registered wins a tie.
    """

    def __init__(self, actions: Sequence[BuildAction] | None = None) -> None:
        self._actions: tuple[BuildAction, ...] = (
            tuple(actions) if actions is not None else tuple(default_build_actions())
        )

    @property
    def actions(self) -> tuple[BuildAction, ...]:
        return self._actions

    def find_build_capability(
        self,
        execute_strategy: ExecuteStrategy,
        requirement: BuildRequirement,
        target: Any,
    ) -> BuildCapability | None:
        if execute_strategy is None:
            raise ValueError("execute_strategy must not be None")
        if target is None:
            raise ValueError("target must not be None")

        build_chain = execute_strategy.build_chain
        cacheable = requirement is BuildRequirement.CREATE and reference_name(target) is None
        if cacheable:
            cached = build_chain.get_capability(target)
            if cached is not None:
                logging.debug(f"capability cache hit: {_describe(target)}")
                return cached

        configuration = execute_strategy.configuration
        best: BuildCapability | None = None
        for action in self._actions:
            capability = action.get_build_capability(configuration, build_chain, target)
            if capability is None or not capability.satisfies(requirement):
                logging.debug(
                    f"build action skipped: {type(action).__name__} "
                    f"requirement={requirement.value} target={_describe(target)}"
                )
                continue
            if best is None or action.priority > best.action.priority:
                best = capability

        if best is not None:
            logging.debug(
                f"build action selected: {type(best.action).__name__} "
                f"({best.implemented_by_type.__name__}) for {_describe(target)}"
            )
            if cacheable:
                build_chain.add_capability(target, best)
        return best

    def get_build_capability(
        self,
        execute_strategy: ExecuteStrategy,
        requirement: BuildRequirement,
        target: Any,
    ) -> BuildCapability:
        capability = self.find_build_capability(execute_strategy, requirement, target)
        if capability is not None:
            return capability

        unsupported = UnsupportedTargetError(
            f"No build action supports {requirement.value} for {_describe(target)}",
            target_type=target_type(target),
            reference_name=reference_name(target),
        )
        build_log = execute_strategy.log
        build_log.build_failure(unsupported)
        output = build_log.output
        raise BuildError(
            f"Failed to create instance of {_describe(target)}, "
            f"{type(unsupported).__name__}: {unsupported}"
            f"\n\nAt the time of the failure, the build log was:\n\n{output}",
            target_type=target_type(target),
            reference_name=reference_name(target),
            context=execute_strategy.build_chain.first,
            build_log=output,
        ) from unsupported

    def build(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        target: Any,
        *args: Any,
    ) -> Any:
        if capability is None:
            raise ValueError("capability must not be None")
        return capability.action.build(execute_strategy, capability, target, *args)

    def populate(
        self,
        execute_strategy: ExecuteStrategy,
        capability: BuildCapability,
        instance: Any,
    ) -> Any:
        if capability is None:
            raise ValueError("capability must not be None")
        return capability.action.populate(execute_strategy, capability, instance)
