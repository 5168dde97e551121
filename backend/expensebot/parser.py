"""Turn free-text chat messages into structured commands.

Messages are matched against a fixed, ordered table of patterns; the first
pattern whose regex matches decides the command. Several expense patterns
overlap syntactically (``lunch 15`` vs ``lunch 15 food`` vs ``food lunch 15``),
so the order in ``PATTERNS`` is part of the behaviour and is covered by tests.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional, Union

from .categories import is_category

AMOUNT = r"(\d+(?:\.\d{1,2})?)"
DESCRIPTION = r"([a-z][a-z\s]*?)"


class ShortcutKind(str, PyEnum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    DASHBOARD = "dashboard"
    DELETE_LAST = "delete_last"
    HELP = "help"
    RECENT = "recent"
    BREAKDOWN = "breakdown"


@dataclass(frozen=True, slots=True)
class Shortcut:
    kind: ShortcutKind


@dataclass(frozen=True, slots=True)
class AddExpense:
    description: str
    amount: Decimal
    category: str | None = None


@dataclass(frozen=True, slots=True)
class SetPin:
    pin: str


@dataclass(frozen=True, slots=True)
class ResetPin:
    pass


@dataclass(frozen=True, slots=True)
class SetBudget:
    amount: Decimal


@dataclass(frozen=True, slots=True)
class BudgetStatus:
    pass


@dataclass(frozen=True, slots=True)
class AddRecurring:
    description: str
    amount: Decimal
    category: str
    day_of_month: int


@dataclass(frozen=True, slots=True)
class ListRecurring:
    pass


@dataclass(frozen=True, slots=True)
class StopRecurring:
    id: int


@dataclass(frozen=True, slots=True)
class Edit:
    id: int
    description: str
    amount: Decimal
    category: str


@dataclass(frozen=True, slots=True)
class Export:
    pass


@dataclass(frozen=True, slots=True)
class SetCurrency:
    code: str


@dataclass(frozen=True, slots=True)
class Invalid:
    """A recognised command carrying a value we refuse to store."""

    reason: str


@dataclass(frozen=True, slots=True)
class Unknown:
    pass


Command = Union[
    Shortcut,
    AddExpense,
    SetPin,
    ResetPin,
    SetBudget,
    BudgetStatus,
    AddRecurring,
    ListRecurring,
    StopRecurring,
    Edit,
    Export,
    SetCurrency,
    Invalid,
    Unknown,
]

NON_POSITIVE_AMOUNT = "Amount must be greater than zero."
AMOUNT_TOO_LARGE = "Amount is too large."
UNKNOWN_ID = "No such id."

# Largest values the Numeric(10, 2) and INTEGER columns hold.
MAX_AMOUNT = Decimal("99999999.99")
MAX_RECORD_ID = 2**31 - 1

EXACT_COMMANDS: dict[str, Command] = {
    "?": Shortcut(ShortcutKind.TODAY),
    "today": Shortcut(ShortcutKind.TODAY),
    "??": Shortcut(ShortcutKind.WEEK),
    "week": Shortcut(ShortcutKind.WEEK),
    "weekly": Shortcut(ShortcutKind.WEEK),
    "???": Shortcut(ShortcutKind.MONTH),
    "month": Shortcut(ShortcutKind.MONTH),
    "monthly": Shortcut(ShortcutKind.MONTH),
    "total": Shortcut(ShortcutKind.MONTH),
    "$": Shortcut(ShortcutKind.DASHBOARD),
    "dashboard": Shortcut(ShortcutKind.DASHBOARD),
    "link": Shortcut(ShortcutKind.DASHBOARD),
    "!": Shortcut(ShortcutKind.DELETE_LAST),
    "delete": Shortcut(ShortcutKind.DELETE_LAST),
    "undo": Shortcut(ShortcutKind.DELETE_LAST),
    "remove": Shortcut(ShortcutKind.DELETE_LAST),
    "help": Shortcut(ShortcutKind.HELP),
    "/help": Shortcut(ShortcutKind.HELP),
    "/start": Shortcut(ShortcutKind.HELP),
    "recent": Shortcut(ShortcutKind.RECENT),
    "last": Shortcut(ShortcutKind.RECENT),
    "history": Shortcut(ShortcutKind.RECENT),
    "categories": Shortcut(ShortcutKind.BREAKDOWN),
    "breakdown": Shortcut(ShortcutKind.BREAKDOWN),
    "budget": BudgetStatus(),
    "budget status": BudgetStatus(),
    "recurring": ListRecurring(),
    "recurring list": ListRecurring(),
    "export": Export(),
    "export csv": Export(),
    "reset pin": ResetPin(),
    "forgot pin": ResetPin(),
}


def _amount(raw: str) -> Decimal:
    return Decimal(raw)


def _amount_problem(value: Decimal, non_positive: str = NON_POSITIVE_AMOUNT) -> Invalid | None:
    if value <= 0:
        return Invalid(non_positive)
    if value > MAX_AMOUNT:
        return Invalid(AMOUNT_TOO_LARGE)
    return None


def _record_id(raw: str) -> int | None:
    value = int(raw)
    return value if 1 <= value <= MAX_RECORD_ID else None


def _expense(description: str, amount: str, category: str | None) -> Command:
    value = _amount(amount)
    problem = _amount_problem(value)
    if problem is not None:
        return problem
    return AddExpense(description=description.strip(), amount=value, category=category)


def _set_budget(match: re.Match[str]) -> Command:
    value = _amount(match.group(1))
    problem = _amount_problem(value, "Budget must be greater than zero.")
    if problem is not None:
        return problem
    return SetBudget(amount=value)


def _add_recurring(match: re.Match[str]) -> Command:
    value = _amount(match.group(2))
    day = int(match.group(4))
    problem = _amount_problem(value)
    if problem is not None:
        return problem
    if not 1 <= day <= 31:
        return Invalid("Day of month must be between 1 and 31.")
    return AddRecurring(
        description=match.group(1).strip(),
        amount=value,
        category=match.group(3),
        day_of_month=day,
    )


def _stop_recurring(match: re.Match[str]) -> Command:
    record_id = _record_id(match.group(1))
    if record_id is None:
        return Invalid(UNKNOWN_ID)
    return StopRecurring(id=record_id)


def _edit(match: re.Match[str]) -> Command:
    record_id = _record_id(match.group(1))
    if record_id is None:
        return Invalid(UNKNOWN_ID)
    value = _amount(match.group(3))
    problem = _amount_problem(value)
    if problem is not None:
        return problem
    return Edit(
        id=record_id,
        description=match.group(2).strip(),
        amount=value,
        category=match.group(4),
    )


def _category_first(match: re.Match[str]) -> Command | None:
    if not is_category(match.group(1)):
        return None
    return _expense(match.group(2), match.group(3), match.group(1))


Builder = Callable[[re.Match[str]], Optional[Command]]

# Evaluated top to bottom. A builder returning None means "not this pattern".
PATTERNS: list[tuple[re.Pattern[str], Builder]] = [
    # Keyword commands come first so "budget 500" or "stop recurring 2"
    # never fall through to the generic "<desc> <amount>" expense pattern.
    (re.compile(r"^(?:set\s+)?pin\s+(\d{4})$"), lambda m: SetPin(pin=m.group(1))),
    (re.compile(r"^(?:set\s+)?pin\s+\S+$"), lambda m: Invalid("PIN must be exactly 4 digits.")),
    (re.compile(rf"^budget\s+{AMOUNT}$"), _set_budget),
    (
        re.compile(rf"^recurring\s+(.+?)\s+{AMOUNT}\s+([a-z]+)\s+(\d{{1,2}})$"),
        _add_recurring,
    ),
    (re.compile(r"^stop\s+recurring\s+(\d+)$"), _stop_recurring),
    (re.compile(rf"^edit\s+(\d+)\s+(.+?)\s+{AMOUNT}\s+([a-z]+)$"), _edit),
    (re.compile(r"^currency\s+(\S{1,5})$"), lambda m: SetCurrency(code=m.group(1))),
    # add <desc> <amount> <category>
    (
        re.compile(rf"^add\s+(.+?)\s+{AMOUNT}\s+([a-z]+)$"),
        lambda m: _expense(m.group(1), m.group(2), m.group(3)),
    ),
    # add <desc> <amount>
    (
        re.compile(rf"^add\s+(.+?)\s+{AMOUNT}$"),
        lambda m: _expense(m.group(1), m.group(2), None),
    ),
    # <category> <desc> <amount>, only when the first word is a category
    (re.compile(rf"^([a-z]+)\s+{DESCRIPTION}\s+{AMOUNT}$"), _category_first),
    # <desc> <amount> <category>
    (
        re.compile(rf"^{DESCRIPTION}\s+{AMOUNT}\s+([a-z]+)$"),
        lambda m: _expense(m.group(1), m.group(2), m.group(3)),
    ),
    # <desc> $<amount>
    (
        re.compile(rf"^{DESCRIPTION}\s*\${AMOUNT}$"),
        lambda m: _expense(m.group(1), m.group(2), None),
    ),
    # <amount> <category> <desc>
    (
        re.compile(rf"^{AMOUNT}\s+([a-z]+)\s+(.+)$"),
        lambda m: _expense(m.group(3), m.group(1), m.group(2)),
    ),
    # <desc> <amount>
    (
        re.compile(rf"^{DESCRIPTION}\s+{AMOUNT}$"),
        lambda m: _expense(m.group(1), m.group(2), None),
    ),
]


def parse(raw_text: str) -> Command:
    """Parse one chat message. Unrecognised input yields ``Unknown()``."""
    text = " ".join((raw_text or "").strip().lower().split())
    if not text:
        return Unknown()

    exact = EXACT_COMMANDS.get(text)
    if exact is not None:
        return exact

    for pattern, build in PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        command = build(match)
        if command is not None:
            return command

    return Unknown()
