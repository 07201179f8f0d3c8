from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True, eq=False)
class ParameterTarget:
    """
    One parameter of a constructor, as seen by the build engine.

    ``position`` is the zero based declaration index. ``default`` is
    ``inspect.Parameter.empty`` when the parameter declares no default.
    """

    name: str
    parameter_type: Any
    declaring_type: type
    position: int
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    def __repr__(self) -> str:
        return f"ParameterTarget({self.declaring_type.__name__}.{self.name}: {self.parameter_type!r})"


@dataclass(frozen=True, slots=True, eq=False)
class PropertyTarget:
    """
    One public attribute of a class: a dataclass field, an annotated class attribute
    or a ``property``.

    ``declaring_type`` is the class in the MRO that declares the attribute and
    ``reflected_type`` is the class it was discovered on.
    """

    name: str
    property_type: Any
    declaring_type: type
    reflected_type: type
    settable: bool = True

    def get_value(self, instance: Any) -> Any:
        return getattr(instance, self.name, None)

    def set_value(self, instance: Any, value: Any) -> None:
        setattr(instance, self.name, value)

    def __repr__(self) -> str:
        return f"PropertyTarget({self.reflected_type.__name__}.{self.name}: {self.property_type!r})"


@dataclass(frozen=True, slots=True, eq=False)
class Constructor:
    """
    A way of creating an instance of ``declaring_type``: its ``__init__`` (invoked by
    calling the class) or a classmethod marked with ``@constructor``.
    """

    declaring_type: type
    name: str
    factory: Callable[..., Any]
    parameters: tuple[ParameterTarget, ...]

    def invoke(self, values: Sequence[Any]) -> Any:
        positional: list[Any] = []
        keywords: dict[str, Any] = {}
        for parameter, value in zip(self.parameters, values):
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                keywords[parameter.name] = value
            else:
                positional.append(value)
        return self.factory(*positional, **keywords)

    def __repr__(self) -> str:
        args = ", ".join(p.name for p in self.parameters)
        return f"Constructor({self.declaring_type.__name__}.{self.name}({args}))"


BuildTarget: TypeAlias = "type | PropertyTarget | ParameterTarget | Any"


def target_type(target: Any) -> Any:
    """
    Return the type that must be built for a target.
    """
    if isinstance(target, PropertyTarget):
        return target.property_type
    if isinstance(target, ParameterTarget):
        return target.parameter_type
    return target


def reference_name(target: Any) -> str | None:
    if isinstance(target, (PropertyTarget, ParameterTarget)):
        return target.name
    return None
