from __future__ import annotations

from typing import Any


class BuildError(Exception):
    """
    Raised when an object graph cannot be built.

    Carries the type and reference name that were being built, the instance that was
    under construction at the time (``context``), and the rendered build log up to the
    point of failure. The original failure, if any, is chained as ``__cause__``.

    ``context`` is a live build-time object and is not carried across pickling; it is
    ``None`` on an unpickled copy.
    """

    def __init__(
        self,
        message: str,
        *,
        target_type: type | None = None,
        reference_name: str | None = None,
        context: Any = None,
        build_log: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.target_type = target_type
        self.reference_name = reference_name
        self.context = context
        self.build_log = build_log

    def __reduce__(self):
        return (
            _restore_build_error,
            (type(self), self.message, self.target_type, self.reference_name, self.build_log),
        )


def _restore_build_error(
    cls: type[BuildError],
    message: str,
    target_type: type | None,
    reference_name: str | None,
    build_log: str | None,
) -> BuildError:
    return cls(
        message,
        target_type=target_type,
        reference_name=reference_name,
        build_log=build_log,
    )


class UnsupportedTargetError(TypeError):
    """
    No build action can satisfy the requested build requirement for a target.
    """

    def __init__(self, message: str, *, target_type: Any = None, reference_name: str | None = None):
        super().__init__(message)
        self.target_type = target_type
        self.reference_name = reference_name


class MissingMemberError(LookupError):
    """
    A constructor or property matching the request could not be found.
    """

    def __init__(self, message: str, *, declaring_type: type | None = None, argument_types: tuple[type, ...] = ()):
        super().__init__(message)
        self.declaring_type = declaring_type
        self.argument_types = argument_types
