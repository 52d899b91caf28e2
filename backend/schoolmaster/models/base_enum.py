# backend/schoolmaster/models/base_enum.py
"""
Status enum helpers shared by the lifecycle models.

Every lifecycle status is a ``(str, Enum)`` stored as its VALUE in a
String column. Each model module declares a transition table mapping a
status to the set of statuses it may move to; terminal statuses map to an
empty set. All status changes go through ``validate_transition``.

Usage:
    from schoolmaster.models.base_enum import validate_transition

    validate_transition(INVITATION_TRANSITIONS, invitation.status, InvitationStatus.ACCEPTED)
"""

from enum import Enum
from typing import Mapping, Set, Type, TypeVar, Union

from ..core.exceptions import BusinessRuleException

E = TypeVar("E", bound=Enum)

TransitionTable = Mapping[E, Set[E]]


def coerce_status(enum_class: Type[E], value: Union[str, E]) -> E:
    """Turn a raw column value into its enum member."""
    if isinstance(value, enum_class):
        return value
    return enum_class(value)


def can_transition(table: TransitionTable, current: Union[str, E], target: E) -> bool:
    enum_class = type(target)
    return target in table.get(coerce_status(enum_class, current), set())


def validate_transition(table: TransitionTable, current: Union[str, E], target: E) -> None:
    """
    Raise when ``current -> target`` is not an allowed transition.

    Raises:
        BusinessRuleException: with code INVALID_STATUS_TRANSITION
    """
    if not can_transition(table, current, target):
        current_value = getattr(current, "value", current)
        raise BusinessRuleException(
            f"Niedozwolona zmiana statusu: {current_value} -> {target.value}",
            code="INVALID_STATUS_TRANSITION",
            details={"from": current_value, "to": target.value},
        )


def status_values(enum_class: Type[Enum]) -> str:
    """Render enum values for a CHECK constraint: 'a', 'b', 'c'."""
    return ", ".join(f"'{member.value}'" for member in enum_class)
