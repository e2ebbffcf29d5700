"""Label predicates used to pick targets for a resource set.

A :class:`LabelSelector` is the declarative form stored on a resource set; a
:class:`Selector` is its validated, matchable form. ``as_selector`` converts
between the two and is the only place selector syntax is checked.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from .errors import SelectorInvalidError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_NAME_MAX_LENGTH: Final[int] = 63
_PREFIX_MAX_LENGTH: Final[int] = 253
_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
_PREFIX_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)


class Operator(StrEnum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True, slots=True)
class LabelSelectorRequirement:
    key: str
    operator: str
    values: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LabelSelector:
    match_labels: Mapping[str, str] = field(default_factory=dict)
    match_expressions: tuple[LabelSelectorRequirement, ...] = ()


@dataclass(frozen=True, slots=True)
class Requirement:
    key: str
    operator: Operator
    values: frozenset[str] = frozenset()

    def matches(self, labels: Mapping[str, str]) -> bool:
        match self.operator:
            case Operator.IN:
                return self.key in labels and labels[self.key] in self.values
            case Operator.NOT_IN:
                return self.key not in labels or labels[self.key] not in self.values
            case Operator.EXISTS:
                return self.key in labels
            case Operator.DOES_NOT_EXIST:
                return self.key not in labels


@dataclass(frozen=True, slots=True)
class Selector:
    """Conjunction of requirements; an empty selector has no requirements."""

    requirements: tuple[Requirement, ...] = ()

    def empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str]) -> bool:
        return all(requirement.matches(labels) for requirement in self.requirements)

    def __str__(self) -> str:
        parts: list[str] = []
        for requirement in self.requirements:
            values = ",".join(sorted(requirement.values))
            match requirement.operator:
                case Operator.IN:
                    parts.append(f"{requirement.key} in ({values})")
                case Operator.NOT_IN:
                    parts.append(f"{requirement.key} notin ({values})")
                case Operator.EXISTS:
                    parts.append(requirement.key)
                case Operator.DOES_NOT_EXIST:
                    parts.append(f"!{requirement.key}")
        return ",".join(parts)


def as_selector(label_selector: LabelSelector | None) -> Selector:
    """Validate ``label_selector`` and return its matchable form.

    ``None`` converts to an empty selector. Callers decide what an empty
    selector means; for target selection it matches nothing.
    """

    if label_selector is None:
        return Selector()

    requirements: list[Requirement] = []
    for key, value in sorted(label_selector.match_labels.items()):
        _validate_key(key)
        _validate_values((value,))
        requirements.append(Requirement(key=key, operator=Operator.IN, values=frozenset({value})))

    for expression in label_selector.match_expressions:
        requirements.append(_requirement_from_expression(expression))

    requirements.sort(key=lambda requirement: (requirement.key, requirement.operator))
    return Selector(requirements=tuple(requirements))


def _requirement_from_expression(expression: LabelSelectorRequirement) -> Requirement:
    _validate_key(expression.key)
    try:
        operator = Operator(expression.operator)
    except ValueError:
        raise SelectorInvalidError(
            f"{expression.operator!r} is not a valid label selector operator"
        ) from None

    if operator in {Operator.IN, Operator.NOT_IN}:
        if not expression.values:
            raise SelectorInvalidError(
                f"values: must be non-empty for operator {operator} on key {expression.key!r}"
            )
        _validate_values(expression.values)
    elif expression.values:
        raise SelectorInvalidError(
            f"values: must be empty for operator {operator} on key {expression.key!r}"
        )

    return Requirement(key=expression.key, operator=operator, values=frozenset(expression.values))


def _validate_key(key: str) -> None:
    prefix, sep, name = key.rpartition("/")
    if sep:
        if not prefix or len(prefix) > _PREFIX_MAX_LENGTH or not _PREFIX_PATTERN.match(prefix):
            raise SelectorInvalidError(f"invalid label key {key!r}: prefix must be a DNS subdomain")
    if not name or len(name) > _NAME_MAX_LENGTH or not _NAME_PATTERN.match(name):
        raise SelectorInvalidError(f"invalid label key {key!r}: name part is not a qualified name")


def _validate_values(values: Iterable[str]) -> None:
    for value in values:
        if not value:
            continue
        if len(value) > _NAME_MAX_LENGTH or not _NAME_PATTERN.match(value):
            raise SelectorInvalidError(f"invalid label value {value!r}")
