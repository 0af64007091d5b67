"""
Frequency classification.

Decides whether a frequency string describes ongoing monitoring or a one-off
diagnostic test, and assigns the display tag used to colour it.
"""

import typing
from enum import Enum

# Any of these (case-insensitive substring) marks a diagnostic/one-off frequency
IS_MONITORING_EXCLUSIONS_INCLUDE = (
    "diagnosis",
    "to check cvd risk",
    "make diagnosis",
    "no monitoring",
    "after starting treatment",
)


def is_monitoring_frequency(text: str) -> bool:
    """
    True if `text` is a recurring surveillance schedule.

    Hybrid phrases such as "At diagnosis & every 3-5 years" are an ongoing
    schedule anchored at diagnosis, so they count as monitoring.
    """
    lowered = text.strip().lower()
    if "diagnosis" in lowered and "every" in lowered:
        return True
    return not any(term in lowered for term in IS_MONITORING_EXCLUSIONS_INCLUDE)


class FrequencyTag(Enum):
    """
    Display categories for a frequency string.
    The value is the CSS class used by the web form.
    """
    RED = "tag-red"
    GRAY = "tag-gray"
    GREEN = "tag-green"
    PURPLE = "tag-purple"
    INDIGO = "tag-indigo"
    PINK = "tag-pink"
    TEAL = "tag-teal"

    @property
    def terminal_color(self) -> str:
        return _TERMINAL_COLORS[self]


_TERMINAL_COLORS = {
    FrequencyTag.RED: "red",
    FrequencyTag.GRAY: "bright_black",
    FrequencyTag.GREEN: "green",
    FrequencyTag.PURPLE: "magenta",
    FrequencyTag.INDIGO: "blue",
    FrequencyTag.PINK: "bright_magenta",
    FrequencyTag.TEAL: "cyan",
}

# Checked in order, first match wins. "6 monthly" must precede "monthly".
_MONITORING_TAG_RULES: tuple[tuple[tuple[str, ...], FrequencyTag], ...] = (
    (("annually",), FrequencyTag.GREEN),
    (("6 monthly", "every 4-6 months"), FrequencyTag.PURPLE),
    (("3 monthly",), FrequencyTag.INDIGO),
    (("monthly",), FrequencyTag.PINK),
    (("yearly", "years"), FrequencyTag.TEAL),
)


def frequency_tag(text: str) -> FrequencyTag:
    lowered = text.lower()
    if "5 yearly" in lowered:
        return FrequencyTag.RED
    if not is_monitoring_frequency(text):
        return FrequencyTag.GRAY
    for needles, tag in _MONITORING_TAG_RULES:
        if any(needle in lowered for needle in needles):
            return tag
    return FrequencyTag.GRAY


T = typing.TypeVar("T")


def split_frequency_groups(
    groups: typing.Iterable[T],
) -> tuple[list[T], list[T]]:
    """
    Partition a test's frequency groups into (monitoring, diagnostic/other),
    keeping their original order. Each group needs a `frequency` attribute.
    """
    monitoring: list[T] = []
    diagnostic: list[T] = []
    for group in groups:
        if is_monitoring_frequency(group.frequency):
            monitoring.append(group)
        else:
            diagnostic.append(group)
    return monitoring, diagnostic
