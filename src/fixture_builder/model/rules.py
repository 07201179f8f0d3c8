from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import KW_ONLY, dataclass, field
from typing import TYPE_CHECKING, Any

from fixture_builder.internal.reflection import unwrap_optional
from fixture_builder.model.members import (
    ParameterTarget,
    PropertyTarget,
    reference_name,
    target_type,
)

if TYPE_CHECKING:
    from fixture_builder.contracts import BuildChain, ExecuteStrategy

_UNSET: Any = object()

Member = PropertyTarget | ParameterTarget


def _require(value: Any, name: str) -> None:
    if value is None:
        raise ValueError(f"{name} must not be None")


def _compile(expression: str | re.Pattern[str], flags: int) -> re.Pattern[str]:
    if isinstance(expression, re.Pattern):
        return expression
    return re.compile(expression, flags)


def _member_types(member: Member) -> tuple[type, ...]:
    if isinstance(member, PropertyTarget):
        return member.declaring_type, member.reflected_type
    return (member.declaring_type,)


# -------------------------
# ignore rules
# -------------------------


class BaseIgnoreRule(ABC):
    @abstractmethod
    def is_match(self, prop: PropertyTarget) -> bool:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class IgnoreRule(BaseIgnoreRule):
    """
    Suppress population of one property of one type.

    The name comparison is exact and case-sensitive. The rule matches when
    ``target_type`` is the class that declares the property or the class it was
    discovered on.
    """

    target_type: type
    name: str

    def __post_init__(self) -> None:
        _require(self.target_type, "target_type")
        _require(self.name, "name")

    def is_match(self, prop: PropertyTarget) -> bool:
        if prop.name != self.name:
            return False
        return self.target_type in (prop.declaring_type, prop.reflected_type)


@dataclass(frozen=True, slots=True)
class PredicateIgnoreRule(BaseIgnoreRule):
    predicate: Callable[[PropertyTarget], bool]

    def __post_init__(self) -> None:
        _require(self.predicate, "predicate")

    def is_match(self, prop: PropertyTarget) -> bool:
        return bool(self.predicate(prop))


@dataclass(frozen=True, slots=True)
class RegexIgnoreRule(BaseIgnoreRule):
    expression: str | re.Pattern[str]
    _: KW_ONLY
    flags: int = 0
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _require(self.expression, "expression")
        object.__setattr__(self, "pattern", _compile(self.expression, self.flags))

    def is_match(self, prop: PropertyTarget) -> bool:
        return self.pattern.search(prop.name) is not None


# -------------------------
# execute order rules
# -------------------------


class BaseExecuteOrderRule(ABC):
    priority: int

    @abstractmethod
    def is_match(self, member: Member) -> bool:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ExecuteOrderRule(BaseExecuteOrderRule):
    """
    Give one named property or parameter a build priority. Higher runs earlier.

    ``target_type`` may be None to match the name on any type.
    """

    target_type: type | None
    name: str
    priority: int

    def __post_init__(self) -> None:
        _require(self.name, "name")

    def is_match(self, member: Member) -> bool:
        if member.name != self.name:
            return False
        return self.target_type is None or self.target_type in _member_types(member)


@dataclass(frozen=True, slots=True)
class PredicateExecuteOrderRule(BaseExecuteOrderRule):
    predicate: Callable[[Member], bool]
    priority: int

    def __post_init__(self) -> None:
        _require(self.predicate, "predicate")

    def is_match(self, member: Member) -> bool:
        return bool(self.predicate(member))


@dataclass(frozen=True, slots=True)
class RegexExecuteOrderRule(BaseExecuteOrderRule):
    expression: str | re.Pattern[str]
    priority: int
    _: KW_ONLY
    flags: int = re.IGNORECASE
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _require(self.expression, "expression")
        object.__setattr__(self, "pattern", _compile(self.expression, self.flags))

    def is_match(self, member: Member) -> bool:
        return self.pattern.search(member.name) is not None


# -------------------------
# creation rules
# -------------------------


class BaseCreationRule(ABC):
    """
    Supplies a literal value, or the result of a factory, instead of generating one.

    ``None`` is a valid literal value.
    """

    priority: int
    value: Any
    factory: Callable[[], Any] | None

    def _check_value(self) -> None:
        has_value = self.value is not _UNSET
        if has_value == (self.factory is not None):
            raise ValueError("exactly one of value or factory must be provided")

    @abstractmethod
    def is_match(self, target: Any) -> bool:
        raise NotImplementedError

    def create(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        if self.factory is not None:
            return self.factory()
        return self.value


@dataclass(frozen=True, slots=True)
class TypeCreationRule(BaseCreationRule):
    """
    Match a type, or a member of that type. With ``name`` set, only members with
    exactly that reference name match.
    """

    target_type: Any
    value: Any = _UNSET
    _: KW_ONLY
    name: str | None = None
    factory: Callable[[], Any] | None = None
    priority: int = 0

    def __post_init__(self) -> None:
        _require(self.target_type, "target_type")
        self._check_value()

    def is_match(self, target: Any) -> bool:
        if unwrap_optional(target_type(target)) != unwrap_optional(self.target_type):
            return False
        return self.name is None or reference_name(target) == self.name


@dataclass(frozen=True, slots=True)
class RegexCreationRule(BaseCreationRule):
    """
    Match properties and parameters of ``target_type`` whose name matches ``expression``.
    """

    target_type: Any
    expression: str | re.Pattern[str]
    value: Any = _UNSET
    _: KW_ONLY
    factory: Callable[[], Any] | None = None
    priority: int = 0
    flags: int = 0
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _require(self.target_type, "target_type")
        _require(self.expression, "expression")
        self._check_value()
        object.__setattr__(self, "pattern", _compile(self.expression, self.flags))

    def is_match(self, target: Any) -> bool:
        name = reference_name(target)
        if name is None:
            return False
        if unwrap_optional(target_type(target)) != unwrap_optional(self.target_type):
            return False
        return self.pattern.search(name) is not None


@dataclass(frozen=True, slots=True)
class PredicateCreationRule(BaseCreationRule):
    predicate: Callable[[Any], bool]
    value: Any = _UNSET
    _: KW_ONLY
    factory: Callable[[], Any] | None = None
    priority: int = 0

    def __post_init__(self) -> None:
        _require(self.predicate, "predicate")
        self._check_value()

    def is_match(self, target: Any) -> bool:
        return bool(self.predicate(target))


# -------------------------
# type mapping
# -------------------------


@dataclass(frozen=True, slots=True)
class TypeMappingRule:
    """
    Build ``target_type`` whenever ``source_type`` is requested.
    """

    source_type: Any
    target_type: type

    def __post_init__(self) -> None:
        _require(self.source_type, "source_type")
        _require(self.target_type, "target_type")


# -------------------------
# post-build actions
# -------------------------


class PostBuildAction(ABC):
    """
    Side effect run against a value after it has been built and populated.
    """

    priority: int = 0

    @abstractmethod
    def is_match(self, build_chain: BuildChain, target: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def execute(self, build_chain: BuildChain, instance: Any, target: Any) -> Any:
        """
        Return the (possibly replaced) instance.
        """
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class CallbackPostBuildAction(PostBuildAction):
    callback: Callable[[Any, Any], Any]
    predicate: Callable[[Any], bool] = lambda _target: True
    _: KW_ONLY
    priority: int = 0

    def __post_init__(self) -> None:
        _require(self.callback, "callback")

    def is_match(self, build_chain: BuildChain, target: Any) -> bool:
        return bool(self.predicate(target))

    def execute(self, build_chain: BuildChain, instance: Any, target: Any) -> Any:
        result = self.callback(instance, target)
        return instance if result is None else result
