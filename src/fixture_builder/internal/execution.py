from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from fixture_builder.actions import BuildCapability, BuildRequirement
from fixture_builder.contracts import BuildChain, BuildLog, ExecuteStrategy
from fixture_builder.internal.build_log import DefaultBuildLog
from fixture_builder.internal.history import BuildHistory, ParameterValues
from fixture_builder.internal.processor import BuildProcessor
from fixture_builder.internal.reflection import (
    default_value,
    is_value_type,
    runtime_class,
    type_name,
    unwrap_optional,
)
from fixture_builder.model.errors import BuildError
from fixture_builder.model.members import (
    PropertyTarget,
    reference_name,
    target_type,
)

if TYPE_CHECKING:
    from fixture_builder.configuration import BuildConfiguration

T = TypeVar("T")


class DefaultExecuteStrategy(ExecuteStrategy):
    """
    Recursive, depth-first builder of object graphs.

    ``create`` resolves a capability for the requested type, builds the value
    (through explicit arguments, an auto-detected constructor whose parameters are
    built first, or the capability's own creation routine), pushes reference-type
    instances onto the build history and populates their properties in execute
    order, then runs post-build actions.

    Any failure aborts the whole root call with a BuildError that carries the build
    log up to the point of failure.
    """

    def __init__(
        self,
        configuration: BuildConfiguration | None = None,
        *,
        build_history: BuildHistory | None = None,
        build_log: BuildLog | None = None,
        build_processor: BuildProcessor | None = None,
    ) -> None:
        self._configuration = configuration
        self._history = build_history if build_history is not None else BuildHistory()
        self._log = build_log if build_log is not None else DefaultBuildLog()
        self._processor = build_processor if build_processor is not None else BuildProcessor()
        self._active_calls = 0

    @property
    def configuration(self) -> BuildConfiguration:
        if self._configuration is None:
            raise RuntimeError("The execute strategy has not been initialized with a configuration")
        return self._configuration

    @property
    def build_chain(self) -> BuildChain:
        return self._history

    @property
    def log(self) -> BuildLog:
        return self._log

    def initialize(self, configuration: BuildConfiguration) -> None:
        if configuration is None:
            raise ValueError("configuration must not be None")
        self._configuration = configuration

    # -------------------------
    # public entry points
    # -------------------------

    def create(self, target_type: Any, *args: Any) -> Any:
        if target_type is None:
            raise ValueError("target_type must not be None")
        return self._call(lambda: self._build_target(target_type, args))

    def create_with(self, target_type: Any, *args: Any) -> Any:
        if target_type is None:
            raise ValueError("target_type must not be None")
        if not args:
            raise ValueError("create_with requires at least one constructor argument")
        return self._call(lambda: self._build_target(target_type, args))

    def populate(self, instance: Any) -> Any:
        if instance is None:
            raise ValueError("instance must not be None")
        return self._call(lambda: self._populate_root(instance))

    def _call(self, fn: Callable[[], T]) -> T:
        if self._active_calls == 0:
            # a new root build starts with a fresh log
            self._log.clear()
        self._active_calls += 1
        try:
            return fn()
        finally:
            self._active_calls -= 1

    # -------------------------
    # create
    # -------------------------

    def _build_target(
        self,
        target: Any,
        args: Sequence[Any] = (),
        capability: BuildCapability | None = None,
    ) -> Any:
        value = self._build(target, args, capability)
        if value is None:
            return None
        return self._run_post_build_actions(target, value)

    def _build(
        self,
        target: Any,
        args: Sequence[Any],
        capability: BuildCapability | None = None,
    ) -> Any:
        requested = target_type(target)
        self._check_depth(target)
        if capability is None:
            capability = self._processor.get_build_capability(self, BuildRequirement.CREATE, target)

        context = self._history.first
        self._log.creating_type(requested, capability.implemented_by_type, context)
        try:
            instance, used_args = self._create_instance(capability, target, args)
            if instance is None:
                return default_value(requested)

            if not capability.supports_populate and type(instance) is not runtime_class(requested):
                capability = (
                    self._processor.find_build_capability(self, BuildRequirement.POPULATE, type(instance))
                    or capability
                )
            return self._populate_with(capability, instance, used_args)
        except BuildError:
            raise
        except Exception as e:
            raise self._failure(e, requested, reference_name(target)) from e
        finally:
            self._log.created_type(requested, context)

    def _check_depth(self, target: Any) -> None:
        max_depth = self.configuration.max_depth
        if max_depth is None or self._history.count < max_depth:
            return
        output = self._log.output
        raise BuildError(
            f"Failed to create instance of type {type_name(target_type(target))}: the build "
            f"exceeded the maximum depth of {max_depth}."
            f"\n\nAt the time of the failure, the build log was:\n\n{output}",
            target_type=target_type(target),
            reference_name=reference_name(target),
            context=self._history.first,
            build_log=output,
        )

    def _create_instance(
        self, capability: BuildCapability, target: Any, args: Sequence[Any]
    ) -> tuple[Any, Sequence[Any]]:
        if args:
            return self._processor.build(self, capability, target, *args), args
        if capability.auto_detect_constructor:
            values = self._create_parameter_values(target)
            return self._processor.build(self, capability, target, *values), values
        return self._processor.build(self, capability, target), ()

    def _create_parameter_values(self, target: Any) -> tuple[Any, ...]:
        configuration = self.configuration
        requested = target_type(target)
        build_type = configuration.type_resolver.get_build_type(configuration, requested)
        if build_type != unwrap_optional(requested):
            self._log.mapped_type(requested, build_type)

        constructor = configuration.constructor_resolver.resolve(build_type)
        parameters = configuration.parameter_resolver.get_ordered_parameters(configuration, constructor)
        if not parameters:
            return ()

        values: dict[int, Any] = {}
        context = ParameterValues(constructor.declaring_type)
        self._history.push(context)
        try:
            for parameter in parameters:
                self._log.creating_parameter(parameter, context)
                try:
                    value = self._build_target(parameter)
                finally:
                    self._log.created_parameter(parameter, context)
                values[parameter.position] = value
                setattr(context, parameter.name, value)
        finally:
            self._history.pop()

        return tuple(values[p.position] for p in constructor.parameters)

    # -------------------------
    # populate
    # -------------------------

    def _populate_root(self, instance: Any) -> Any:
        capability = self._processor.get_build_capability(self, BuildRequirement.POPULATE, type(instance))
        try:
            return self._populate_with(capability, instance, ())
        except BuildError:
            raise
        except Exception as e:
            raise self._failure(e, type(instance), None) from e

    def _populate_with(self, capability: BuildCapability, instance: Any, args: Sequence[Any]) -> Any:
        if not capability.supports_populate or is_value_type(type(instance)):
            return instance

        self._history.push(instance)
        self._log.populating_instance(instance)
        try:
            if capability.auto_populate:
                self._auto_populate_instance(instance, args)
            result = self._processor.populate(self, capability, instance)
            return instance if result is None else result
        finally:
            self._log.populated_instance(instance)
            self._history.pop()

    def _auto_populate_instance(self, instance: Any, args: Sequence[Any]) -> None:
        configuration = self.configuration
        resolver = configuration.property_resolver
        for prop in resolver.get_ordered_properties(configuration, type(instance)):
            if resolver.is_ignored(configuration, instance, prop, args):
                self._log.ignoring_property(prop, instance)
                continue
            self._populate_property(instance, prop)

    def _populate_property(self, instance: Any, prop: PropertyTarget) -> None:
        if prop.settable:
            capability = self._processor.find_build_capability(self, BuildRequirement.CREATE, prop)
            if capability is None:
                logging.debug(f"no build action supports {prop!r}; left unchanged")
                return
            self._log.creating_property(prop, instance)
            try:
                value = self._build_target(prop, (), capability)
            finally:
                self._log.created_property(prop, instance)
            prop.set_value(instance, value)
            return

        existing = prop.get_value(instance)
        if existing is None or is_value_type(type(existing)):
            return
        capability = self._processor.find_build_capability(self, BuildRequirement.POPULATE, type(existing))
        if capability is None:
            logging.debug(f"no build action can populate read-only {prop!r}; left unchanged")
        else:
            self._populate_with(capability, existing, ())
        self._run_post_build_actions(prop, existing)

    # -------------------------
    # shared
    # -------------------------

    def _run_post_build_actions(self, target: Any, instance: Any) -> Any:
        configuration = self.configuration
        matching = [
            action
            for action in configuration.post_build_actions
            if action.is_match(self._history, target)
        ]
        for action in sorted(matching, key=lambda a: -a.priority):
            self._log.post_build_action(target_type(target), type(action), instance)
            result = action.execute(self._history, instance, target)
            if result is not None:
                instance = result
        return instance

    def _failure(self, error: Exception, failed_type: Any, name: str | None) -> BuildError:
        self._log.build_failure(error)
        output = self._log.output
        where = type_name(failed_type) if name is None else f"{type_name(failed_type)} ({name})"
        return BuildError(
            f"Failed to create instance of type {where}, {type(error).__name__}: {error}"
            f"\n\nAt the time of the failure, the build log was:\n\n{output}",
            target_type=failed_type,
            reference_name=name,
            context=self._history.first,
            build_log=output,
        )


class TypedExecuteStrategy(Generic[T]):
    """
    Execute strategy bound to a single root type.
    """

    def __init__(
        self,
        target_type: type[T],
        configuration: BuildConfiguration | None = None,
        *,
        execute_strategy: ExecuteStrategy | None = None,
    ) -> None:
        if target_type is None:
            raise ValueError("target_type must not be None")
        self._target_type = target_type
        self._strategy = (
            execute_strategy
            if execute_strategy is not None
            else DefaultExecuteStrategy(configuration)
        )

    @property
    def target_type(self) -> type[T]:
        return self._target_type

    @property
    def configuration(self) -> BuildConfiguration:
        return self._strategy.configuration

    @property
    def build_chain(self) -> BuildChain:
        return self._strategy.build_chain

    @property
    def log(self) -> BuildLog:
        return self._strategy.log

    def initialize(self, configuration: BuildConfiguration) -> None:
        self._strategy.initialize(configuration)

    def create(self, *args: Any) -> T:
        return self._strategy.create(self._target_type, *args)

    def populate(self, instance: T) -> T:
        return self._strategy.populate(instance)
