"""Declarative validation of flat string-keyed request records.

A request is an untyped mapping (query string, form post or JSON body).
Each record kind declares an ordered tuple of :class:`FieldSpec` plus the
:class:`RangeCheck` pairs that must be ordered; :func:`check_flat_req`
interprets those declarations and returns either ``Ok`` holding the coerced
values or ``Err`` holding every error it detected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from models.errors import AppError, Err, ErrorCode, Ok, Result

NUMBER_RE = re.compile(r"^[-+]?\d+(\.\d*)?$", re.ASCII)
INTEGER_RE = re.compile(r"^\d+$", re.ASCII)


@dataclass(frozen=True)
class Check:
    """Predicate over the raw text of one field; ``message`` takes ``{label}``."""

    predicate: Callable[[str], bool]
    message: str

    def __call__(self, text: str) -> bool:
        return self.predicate(text)


NUMBER_CHK = Check(
    lambda text: NUMBER_RE.fullmatch(text) is not None,
    '"{label}" must be a number',
)
INTEGER_CHK = Check(
    lambda text: INTEGER_RE.fullmatch(text) is not None,
    '"{label}" must be a non-negative integer',
)
POSITIVE_INTEGER_CHK = Check(
    lambda text: INTEGER_RE.fullmatch(text) is not None and int(text) > 0,
    '"{label}" must be a positive integer',
)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: Optional[str] = None
    required: bool = True
    default: Any = None
    check: Optional[Check] = None
    coerce: Optional[Callable[[str], Any]] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name


def required(
    name: str,
    check: Optional[Check] = None,
    coerce: Optional[Callable[[str], Any]] = None,
    label: Optional[str] = None,
) -> FieldSpec:
    return FieldSpec(name=name, label=label, check=check, coerce=coerce)


def optional(
    name: str,
    check: Optional[Check] = None,
    coerce: Optional[Callable[[str], Any]] = None,
    default: Any = None,
    label: Optional[str] = None,
) -> FieldSpec:
    return FieldSpec(
        name=name,
        label=label,
        required=False,
        default=default,
        check=check,
        coerce=coerce,
    )


@dataclass(frozen=True)
class RangeCheck:
    """Cross-field constraint ``req[min_field] <= req[max_field]``."""

    min_field: str
    max_field: str

    def message(self) -> str:
        return (
            f'value of "{self.min_field}" must not be greater than '
            f'that of "{self.max_field}"'
        )


@dataclass(frozen=True)
class FlatReqChecks:
    fields: Tuple[FieldSpec, ...]
    range_checks: Tuple[RangeCheck, ...] = ()


def _normalize(value: Any) -> Optional[str]:
    """Return the text of a request value, ``None`` when it counts as absent."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value
    elif isinstance(value, float):
        # positional notation: str(1e-05) would fail the number check
        text = format(Decimal(repr(value)), "f")
    else:
        text = str(value)
    if not text.strip():
        return None
    return text


def check_flat_req(
    req: Mapping[str, Any], checks: FlatReqChecks
) -> Result[Dict[str, Any]]:
    """Validate ``req`` against ``checks``.

    Field errors are reported in declaration order, followed by range
    errors. A range check only runs when both of its fields resolved to a
    value that passed its own field check.
    """
    if not isinstance(req, Mapping):
        message = "request must be a mapping of field names to values"
        return Err([AppError(code=ErrorCode.BAD_REQ, message=message)])

    errors: List[AppError] = []
    failed: set[str] = set()
    resolved: Dict[str, Any] = {}

    for spec in checks.fields:
        text = _normalize(req.get(spec.name))
        if text is None:
            if spec.required:
                errors.append(
                    AppError(
                        code=ErrorCode.REQUIRED,
                        message=f'missing value for required field "{spec.display_name}"',
                        field=spec.name,
                    )
                )
                failed.add(spec.name)
            else:
                resolved[spec.name] = spec.default
            continue

        if spec.check is not None and not spec.check(text):
            errors.append(
                AppError(
                    code=ErrorCode.BAD_VAL,
                    message=spec.check.message.format(label=spec.display_name),
                    field=spec.name,
                )
            )
            failed.add(spec.name)
            continue

        resolved[spec.name] = spec.coerce(text) if spec.coerce else text

    for range_check in checks.range_checks:
        lo_name, hi_name = range_check.min_field, range_check.max_field
        if lo_name in failed or hi_name in failed:
            continue
        lo, hi = resolved.get(lo_name), resolved.get(hi_name)
        if lo is None or hi is None:
            continue
        if not lo <= hi:
            errors.append(
                AppError(
                    code=ErrorCode.BAD_RANGE,
                    message=range_check.message(),
                    field=lo_name,
                )
            )

    if errors:
        return Err(errors)
    return Ok(resolved)
