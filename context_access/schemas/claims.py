"""Authenticated principal and the claims parser that produces it."""

from __future__ import annotations

import re
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

_DIGITS = re.compile(r"[0-9]+")


class ClaimsError(ValueError):
    """Raised when claims are missing or have an unexpected shape."""


class Principal(BaseModel):
    """The caller on whose behalf access is decided."""

    model_config = ConfigDict(frozen=True)

    user_id: StrictInt = Field(gt=0)
    tenant_id: StrictInt = Field(gt=0)
    is_super_admin: StrictBool = False


def _parse_id(claims: Mapping[str, Any], key: str) -> int:
    if key not in claims or claims[key] is None:
        raise ClaimsError(f"{key} not found in claims")
    value = claims[key]
    # bool is an int subclass; a flag is never an identifier.
    if isinstance(value, bool):
        raise ClaimsError(f"{key} has unexpected type bool")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value):
        parsed = int(value)
    else:
        raise ClaimsError(f"{key} has unexpected type {type(value).__name__}")
    if parsed <= 0:
        raise ClaimsError(f"{key} must be a positive identifier")
    return parsed


def _parse_flag(claims: Mapping[str, Any], key: str) -> bool:
    value = claims.get(key)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    raise ClaimsError(f"{key} has unexpected value {value!r}")


def parse_claims(claims: Mapping[str, Any]) -> Principal:
    """Build a principal from authorizer claims, failing closed on any odd shape.

    Identifiers may arrive as JSON integers or as strings of decimal digits;
    the super-admin flag as a JSON boolean or the exact strings "true"/"false".
    Anything else (floats, empty strings, nested objects) is rejected.
    """

    return Principal(
        user_id=_parse_id(claims, "user_id"),
        tenant_id=_parse_id(claims, "org_id"),
        is_super_admin=_parse_flag(claims, "isSuperAdmin"),
    )
