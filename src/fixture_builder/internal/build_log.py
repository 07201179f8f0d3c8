from __future__ import annotations

import logging
from typing import Any

from fixture_builder.contracts import BuildLog
from fixture_builder.internal.reflection import type_name
from fixture_builder.model.members import ParameterTarget, PropertyTarget

INDENT = "    "


class DefaultBuildLog(BuildLog):
    """
    Plain-text build trace, indented four spaces per level of the build tree.

    Every line is also sent to ``logging`` at DEBUG level.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent = 0

    @property
    def output(self) -> str:
        return "\n".join(self._lines)

    def clear(self) -> None:
        self._lines.clear()
        self._indent = 0

    def _write(self, message: str) -> None:
        line = f"{INDENT * self._indent}{message}"
        self._lines.append(line)
        logging.debug(f"build: {line}")

    def build_failure(self, error: BaseException) -> None:
        self._write(f"Build failure: {type(error).__name__}: {error}")

    def circular_reference_detected(self, target_type: Any) -> None:
        self._write(f"Circular reference detected creating {type_name(target_type)}")

    def creating_type(self, target_type: Any, creator_type: type, context: Any) -> None:
        self._write(f"Start creating type {type_name(target_type)} using {creator_type.__name__}")
        self._indent += 1

    def created_type(self, target_type: Any, context: Any) -> None:
        self._indent = max(self._indent - 1, 0)
        self._write(f"End creating type {type_name(target_type)}")

    def creating_value(self, target_type: Any, generator_type: type, context: Any) -> None:
        self._write(f"Creating {type_name(target_type)} value using {generator_type.__name__}")

    def creating_parameter(self, parameter: ParameterTarget, context: Any) -> None:
        self._write(
            f"Start creating parameter {parameter.name} ({type_name(parameter.parameter_type)}) "
            f"for {type_name(parameter.declaring_type)}"
        )
        self._indent += 1

    def created_parameter(self, parameter: ParameterTarget, context: Any) -> None:
        self._indent = max(self._indent - 1, 0)
        self._write(f"End creating parameter {parameter.name} for {type_name(parameter.declaring_type)}")

    def creating_property(self, prop: PropertyTarget, context: Any) -> None:
        self._write(
            f"Start creating property {prop.name} ({type_name(prop.property_type)}) "
            f"on {type_name(prop.reflected_type)}"
        )
        self._indent += 1

    def created_property(self, prop: PropertyTarget, context: Any) -> None:
        self._indent = max(self._indent - 1, 0)
        self._write(f"End creating property {prop.name} on {type_name(prop.reflected_type)}")

    def ignoring_property(self, prop: PropertyTarget, context: Any) -> None:
        self._write(f"Ignoring property {prop.name} on {type_name(prop.reflected_type)}")

    def mapped_type(self, source_type: Any, target_type: Any) -> None:
        self._write(f"{type_name(source_type)} mapped to {type_name(target_type)}")

    def populating_instance(self, instance: Any) -> None:
        self._write(f"Start populating instance {type_name(type(instance))}")
        self._indent += 1

    def populated_instance(self, instance: Any) -> None:
        self._indent = max(self._indent - 1, 0)
        self._write(f"End populating instance {type_name(type(instance))}")

    def post_build_action(self, target_type: Any, action_type: type, context: Any) -> None:
        self._write(f"Running post-build action {action_type.__name__} for {type_name(target_type)}")
