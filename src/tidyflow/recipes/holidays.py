"""
Named holiday calendar for holiday indicator steps.

Holidays are pandas Holiday rules, so moveable feasts follow the Easter
offset and US federal holidays follow their weekday rules.
"""

import pandas as pd
from pandas.tseries.holiday import (
    Holiday,
    USColumbusDay,
    USLaborDay,
    USMartinLutherKingJr,
    USMemorialDay,
    USPresidentsDay,
    USThanksgivingDay,
)
from pandas.tseries.offsets import Day, Easter

HOLIDAYS: dict[str, Holiday] = {
    # Christian and civil calendar
    "NewYearsDay": Holiday("NewYearsDay", month=1, day=1),
    "ChristmasEve": Holiday("ChristmasEve", month=12, day=24),
    "ChristmasDay": Holiday("ChristmasDay", month=12, day=25),
    "AllSaints": Holiday("AllSaints", month=11, day=1),
    "AllSouls": Holiday("AllSouls", month=11, day=2),
    "Easter": Holiday("Easter", month=1, day=1, offset=[Easter()]),
    "EasterMonday": Holiday("EasterMonday", month=1, day=1, offset=[Easter(), Day(1)]),
    "GoodFriday": Holiday("GoodFriday", month=1, day=1, offset=[Easter(), Day(-2)]),
    "PalmSunday": Holiday("PalmSunday", month=1, day=1, offset=[Easter(), Day(-7)]),
    "AshWednesday": Holiday(
        "AshWednesday", month=1, day=1, offset=[Easter(), Day(-46)]
    ),
    # US federal calendar, without weekend observance shifts
    "USNewYearsDay": Holiday("USNewYearsDay", month=1, day=1),
    "USMLKingsBirthday": USMartinLutherKingJr,
    "USPresidentsDay": USPresidentsDay,
    "USGoodFriday": Holiday(
        "USGoodFriday", month=1, day=1, offset=[Easter(), Day(-2)]
    ),
    "USMemorialDay": USMemorialDay,
    "USIndependenceDay": Holiday("USIndependenceDay", month=7, day=4),
    "USLaborDay": USLaborDay,
    "USColumbusDay": USColumbusDay,
    "USVeteransDay": Holiday("USVeteransDay", month=11, day=11),
    "USThanksgivingDay": USThanksgivingDay,
    "USChristmasDay": Holiday("USChristmasDay", month=12, day=25),
}

US_HOLIDAYS: tuple[str, ...] = tuple(name for name in HOLIDAYS if name.startswith("US"))

# Default holiday set of the indicator step
DEFAULT_HOLIDAYS: tuple[str, ...] = ("LaborDay", "NewYearsDay", "ChristmasDay")

_ALIASES: dict[str, str] = {"LaborDay": "USLaborDay"}


def list_holidays(prefix: str = "") -> list[str]:
    """List known holiday names, optionally filtered by prefix."""
    names = [*HOLIDAYS, *_ALIASES]
    return [name for name in names if name.startswith(prefix)]


def get_holiday(name: str) -> Holiday:
    """
    Look up a holiday rule by name.

    Raises:
        KeyError: If the holiday is unknown.
    """
    key = _ALIASES.get(name, name)
    if key not in HOLIDAYS:
        available = ", ".join(list_holidays())
        msg = f"Unknown holiday '{name}'. Available: {available}"
        raise KeyError(msg)
    return HOLIDAYS[key]


def holiday_dates(name: str, start: pd.Timestamp, end: pd.Timestamp) -> pd.DatetimeIndex:
    """All dates of a holiday between start and end (inclusive)."""
    return get_holiday(name).dates(start, end)
