from __future__ import annotations

import dataclasses
import inspect
import ipaddress
import types
import typing
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, TypeVar, Union, get_args, get_origin

from fixture_builder.model.members import Constructor, ParameterTarget, PropertyTarget

F = TypeVar("F", bound=Callable[..., Any])

CONSTRUCTOR_FLAG = "__fixture_builder_constructor__"

_VALUE_TYPES: tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    Decimal,
    str,
    bytes,
    date,
    time,
    timedelta,
    uuid.UUID,
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
    Enum,
    tuple,
    frozenset,
)
_NUMERIC_TYPES: tuple[type, ...] = (bool, int, float, complex, Decimal)
_SKIPPED_PARAMETER_KINDS = (
    inspect.Parameter.VAR_POSITIONAL,
    inspect.Parameter.VAR_KEYWORD,
)


def constructor(fn: F) -> F:
    """
    Mark a public classmethod as an additional constructor the engine may choose.

    Works above or below ``@classmethod``.
    """
    target = fn.__func__ if isinstance(fn, classmethod) else fn
    setattr(target, CONSTRUCTOR_FLAG, True)
    return fn


def type_hints(obj: Any) -> dict[str, Any]:
    """
    Resolved annotations for a class or callable.

    Falls back to the raw (possibly string) annotations when forward references
    cannot be resolved.
    """
    try:
        return typing.get_type_hints(obj)
    except Exception:
        raw: dict[str, Any] = {}
        if isinstance(obj, type):
            for klass in reversed(obj.__mro__):
                raw.update(inspect.get_annotations(klass))
        else:
            raw.update(getattr(obj, "__annotations__", {}) or {})
        return raw


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def unwrap_optional(tp: Any) -> Any:
    if _is_union(tp):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def runtime_class(tp: Any) -> type | None:
    """
    The runtime class behind a type expression, or None if there is not exactly one.
    """
    tp = unwrap_optional(tp)
    if tp is Any or _is_union(tp):
        return None
    origin = get_origin(tp)
    if origin is not None:
        tp = origin
    return tp if isinstance(tp, type) else None


def is_value_type(tp: Any) -> bool:
    cls = runtime_class(tp)
    return cls is not None and issubclass(cls, _VALUE_TYPES)


def default_value(tp: Any) -> Any:
    """
    The zero value for numeric value types, ``None`` for everything else.
    """
    if _is_union(tp):
        return None
    cls = runtime_class(tp)
    if cls is not None and issubclass(cls, _NUMERIC_TYPES) and not issubclass(cls, Enum):
        return cls()
    return None


def is_instance_of(value: Any, tp: Any) -> bool:
    if tp is Any or tp is object:
        return True
    if _is_union(tp):
        return any(is_instance_of(value, a) for a in get_args(tp))
    if value is None:
        return tp is None or tp is type(None)
    origin = get_origin(tp)
    if origin is not None:
        tp = origin
    return isinstance(tp, type) and isinstance(value, tp)


def is_abstract(tp: Any) -> bool:
    return isinstance(tp, type) and (
        inspect.isabstract(tp) or bool(getattr(tp, "_is_protocol", False))
    )


def is_classvar(hint: Any) -> bool:
    if isinstance(hint, str):
        return hint.startswith(("ClassVar", "typing.ClassVar"))
    return hint is ClassVar or get_origin(hint) is ClassVar


def type_name(tp: Any) -> str:
    if isinstance(tp, type) and get_origin(tp) is None:
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp)


def _parameter_hints(cls: type, func: Any) -> dict[str, Any]:
    hints = type_hints(cls)
    for name, hint in type_hints(func).items():
        if not isinstance(hint, str) or name not in hints:
            hints[name] = hint
    return hints


def _parameters(cls: type, signature: inspect.Signature, func: Any) -> tuple[ParameterTarget, ...]:
    hints = _parameter_hints(cls, func) if func is not None else {}
    result: list[ParameterTarget] = []
    for parameter in signature.parameters.values():
        if parameter.kind in _SKIPPED_PARAMETER_KINDS:
            continue
        annotation = hints.get(parameter.name, parameter.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = Any
        result.append(
            ParameterTarget(
                name=parameter.name,
                parameter_type=annotation,
                declaring_type=cls,
                position=len(result),
                kind=parameter.kind,
                default=parameter.default,
            )
        )
    return tuple(result)


def _init_constructor(cls: type) -> Constructor:
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        # builtins without introspectable signatures
        signature = inspect.Signature()
    init = cls.__init__ if cls.__init__ is not object.__init__ else None
    return Constructor(
        declaring_type=cls,
        name="__init__",
        factory=cls,
        parameters=_parameters(cls, signature, init),
    )


def public_constructors(cls: type) -> list[Constructor]:
    """
    Every public way of constructing ``cls``: ``__init__`` first, then marked
    classmethods in declaration order. Abstract classes and protocols have none.
    """
    if not isinstance(cls, type) or is_abstract(cls):
        return []

    names: dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        for name, member in vars(klass).items():
            if name.startswith("_") or not isinstance(member, classmethod):
                continue
            if getattr(member.__func__, CONSTRUCTOR_FLAG, False):
                names[name] = None

    constructors = [_init_constructor(cls)]
    for name in names:
        bound = getattr(cls, name)
        constructors.append(
            Constructor(
                declaring_type=cls,
                name=name,
                factory=bound,
                parameters=_parameters(cls, inspect.signature(bound), bound),
            )
        )
    return constructors


def public_properties(cls: type) -> list[PropertyTarget]:
    """
    Public attributes of ``cls`` in declaration order, base classes first.
    """
    if not isinstance(cls, type):
        return []

    hints = type_hints(cls)
    frozen = dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen
    found: dict[str, PropertyTarget] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in inspect.get_annotations(klass):
            hint = hints.get(name, Any)
            if name.startswith("_") or is_classvar(hint):
                continue
            if isinstance(hint, dataclasses.InitVar) or hint is dataclasses.InitVar:
                continue
            found[name] = PropertyTarget(
                name=name,
                property_type=hint,
                declaring_type=klass,
                reflected_type=cls,
                settable=not frozen,
            )
        for name, member in vars(klass).items():
            if name.startswith("_") or not isinstance(member, property):
                continue
            found[name] = PropertyTarget(
                name=name,
                property_type=type_hints(member.fget).get("return", Any),
                declaring_type=klass,
                reflected_type=cls,
                settable=member.fset is not None,
            )
    return list(found.values())
