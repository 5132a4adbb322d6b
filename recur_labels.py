"""
Recurrence label codec.

A label named ``recur_<ISO-8601 period>`` (for example ``recur_P1M`` or
``recur_P1Y2W``) marks its task as the root of a recurring subtree.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from dateutil.relativedelta import relativedelta

from recurdo_errors import RecurrenceConfigError
from task_models import Label

LABEL_PREFIX = "recur_"

# Calendar periods only: years, months, weeks, days. No time part.
PERIOD_PATTERN = re.compile(
    r'^([-+]?)P'
    r'(?:([-+]?\d+)Y)?'
    r'(?:([-+]?\d+)M)?'
    r'(?:([-+]?\d+)W)?'
    r'(?:([-+]?\d+)D)?$',
    re.IGNORECASE,
)


def parse_period(text: str) -> relativedelta:
    """
    Parse an ISO-8601 calendar period such as P4M, P1Y2M10D or P2W.

    Weeks fold into days. A leading sign negates every component.
    Raises ValueError when the text is not a calendar period.
    """
    match = PERIOD_PATTERN.match(text.strip()) if text else None
    if not match or not any(match.group(i) for i in range(2, 6)):
        raise ValueError(f"Text cannot be parsed to a Period: {text!r}")

    sign, years, months, weeks, days = match.groups()
    factor = -1 if sign == '-' else 1
    years = int(years or 0) * factor
    months = int(months or 0) * factor
    days = (int(weeks or 0) * 7 + int(days or 0)) * factor
    return relativedelta(years=years, months=months, days=days)


def format_period(period: relativedelta) -> str:
    """Render a period back to ISO-8601 for log lines"""
    parts = []
    if period.years:
        parts.append(f"{period.years}Y")
    if period.months:
        parts.append(f"{period.months}M")
    if period.days or not parts:
        parts.append(f"{period.days}D")
    return "P" + "".join(parts)


def is_forward(period: relativedelta) -> bool:
    """True when adding the period always moves a date later"""
    components = (period.years, period.months, period.days)
    return any(components) and all(c >= 0 for c in components)


@dataclass(frozen=True)
class RecurrenceRule:
    """A period declared by one recur_ label, keyed by that label's identity"""
    label: str
    period: relativedelta
    period_text: str

    def __str__(self):
        return f"{LABEL_PREFIX}{self.period_text}"


def rule_from_label(label: Label) -> Optional[RecurrenceRule]:
    """Decode a label into a RecurrenceRule, or None when it is not a recur_ label"""
    if not label.name.startswith(LABEL_PREFIX):
        return None

    period_text = label.name[len(LABEL_PREFIX):]
    try:
        period = parse_period(period_text)
    except ValueError as e:
        raise RecurrenceConfigError(label.name, str(e)) from e

    if not is_forward(period):
        raise RecurrenceConfigError(label.name, "period must move dates forward")

    return RecurrenceRule(label=label.identity, period=period, period_text=period_text.upper())


def load_recurrence_rules(labels: Iterable[Label]) -> Dict[str, RecurrenceRule]:
    """Map label identity -> RecurrenceRule for every recur_ label"""
    rules = {}
    for label in labels:
        rule = rule_from_label(label)
        if rule is not None:
            rules[rule.label] = rule
    return rules
