"""Command grammar for free-text factory replies.

Factories answer in their chat group with short commands such as
``SHIPPED PO-2024-001 SF1234567890``. Each command is an ``ActionRule``; rules are
tried in ``ACTION_RULES`` order and the first match wins. Matching is
case-insensitive but the captured order number keeps the factory's casing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class FactoryAction(str, Enum):
    CONFIRMED = "CONFIRMED"
    PRODUCTION_START = "PRODUCTION_START"
    PRODUCTION_COMPLETE = "PRODUCTION_COMPLETE"
    QC_PASS = "QC_PASS"
    QC_FAIL = "QC_FAIL"
    SHIPPED = "SHIPPED"
    DELAY = "DELAY"


PO_REF_PATTERN = r"(PO-[A-Za-z0-9-]+)"


@dataclass(frozen=True)
class ParsedEvent:
    """A recognized factory event."""

    action: FactoryAction
    po_number: str
    argument: str | None = None
    days: int | None = None
    reason: str | None = None
    tracking_number: str | None = None

    def as_parsed_data(self) -> dict[str, object]:
        return {
            "po_number": self.po_number,
            "argument": self.argument,
            "days": self.days,
            "reason": self.reason,
            "tracking_number": self.tracking_number,
        }


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _no_argument(action: FactoryAction, match: re.Match[str]) -> ParsedEvent:
    return ParsedEvent(action=action, po_number=match.group(1))


def _reason_argument(action: FactoryAction, match: re.Match[str]) -> ParsedEvent:
    reason = _clean(match.group(2))
    return ParsedEvent(action=action, po_number=match.group(1), argument=reason, reason=reason)


def _tracking_argument(action: FactoryAction, match: re.Match[str]) -> ParsedEvent:
    tracking = _clean(match.group(2))
    return ParsedEvent(
        action=action,
        po_number=match.group(1),
        argument=tracking,
        tracking_number=tracking,
    )


def _delay_argument(action: FactoryAction, match: re.Match[str]) -> ParsedEvent:
    days = match.group(2)
    return ParsedEvent(
        action=action,
        po_number=match.group(1),
        argument=days,
        days=int(days),
        reason=_clean(match.group(3)),
    )


@dataclass(frozen=True)
class ActionRule:
    """Pattern + extractor for one factory command."""

    action: FactoryAction
    pattern: re.Pattern[str]
    extract: Callable[[FactoryAction, re.Match[str]], ParsedEvent] = _no_argument

    def match(self, content: str) -> ParsedEvent | None:
        found = self.pattern.match(content)
        if not found:
            return None
        return self.extract(self.action, found)


def _rule(
    action: FactoryAction,
    tail: str = "",
    extract: Callable[[FactoryAction, re.Match[str]], ParsedEvent] = _no_argument,
) -> ActionRule:
    pattern = re.compile(rf"^{action.value}\s+{PO_REF_PATTERN}{tail}", re.IGNORECASE | re.DOTALL)
    return ActionRule(action=action, pattern=pattern, extract=extract)


ACTION_RULES: tuple[ActionRule, ...] = (
    _rule(FactoryAction.CONFIRMED),
    _rule(FactoryAction.PRODUCTION_START),
    _rule(FactoryAction.PRODUCTION_COMPLETE),
    _rule(FactoryAction.QC_PASS),
    _rule(FactoryAction.QC_FAIL, r"(?:\s+(.+))?", _reason_argument),
    _rule(FactoryAction.SHIPPED, r"(?:\s+(.+))?", _tracking_argument),
    _rule(FactoryAction.DELAY, r"\s+(\d{1,9})(?=\s|$)(?:\s+(.+))?", _delay_argument),
)


def parse_factory_message(
    content: str | None,
    rules: tuple[ActionRule, ...] = ACTION_RULES,
) -> ParsedEvent | None:
    """Return the first matching event, or None when the reply is not a known command."""
    text = (content or "").strip()
    if not text:
        return None
    for rule in rules:
        event = rule.match(text)
        if event is not None:
            return event
    return None
