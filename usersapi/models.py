"""Declarative description of the user record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class FieldSpec:
    """Constraints for a single user field.

    ``kind`` is one of ``string``, ``number``, ``email``, ``string_list`` or
    ``boolean``. ``minimum``/``maximum`` bound string lengths for strings and
    values for numbers.
    """

    name: str
    kind: str
    required: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    default: Any = None

    @property
    def has_default(self) -> bool:
        return self.default is not None


USER_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("firstName", "string", required=True, minimum=2, maximum=50),
    FieldSpec("lastName", "string", required=True, minimum=2, maximum=50),
    FieldSpec("age", "number", required=True, minimum=1, maximum=120),
    FieldSpec("email", "email", required=True),
    FieldSpec("city", "string", minimum=2, maximum=50),
    FieldSpec("hobbies", "string_list", default=()),
    FieldSpec("isActive", "boolean", default=True),
)

# Assigned by the service, never taken from request bodies.
SYSTEM_FIELDS: Tuple[str, ...] = ("id", "createdAt", "updatedAt")


__all__ = ["FieldSpec", "SYSTEM_FIELDS", "USER_FIELDS"]
