# informes/periods.py
"""
Month arithmetic shared by every report view.

Months are carried as Spanish month names ("Enero" … "Diciembre") because that
is how ServiceReport.mes is stored. A service year labeled Y runs from
September of Y-1 through August of Y.
"""
from __future__ import annotations

import datetime
from typing import NamedTuple

MONTHS = [
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
]

MONTH_CHOICES = [(m, m) for m in MONTHS]

# September is index 8; the service year starts there.
SERVICE_YEAR_START_INDEX = 8
SERVICE_YEAR_MONTHS = MONTHS[SERVICE_YEAR_START_INDEX:] + MONTHS[:SERVICE_YEAR_START_INDEX]


class MonthRef(NamedTuple):
    month: str
    year: int

    @property
    def index(self) -> int:
        return MONTHS.index(self.month)


def month_index(month: str) -> int:
    return MONTHS.index(month)


def month_abbr(month: str) -> str:
    return month[:3]


def month_label(ref: MonthRef) -> str:
    """'Marzo', 2024 -> 'Mar-24' (chart axis labels)."""
    return f"{month_abbr(ref.month)}-{str(ref.year)[-2:]}"


def rolling_window(end_month: str, end_year: int, size: int) -> list[MonthRef]:
    """
    Most recent first: [(end_month, end_year), one month earlier, ...].
    Wraps January back to December of the previous year.
    """
    idx = month_index(end_month)
    year = end_year
    window: list[MonthRef] = []
    for _ in range(size):
        window.append(MonthRef(MONTHS[idx], year))
        idx -= 1
        if idx < 0:
            idx = 11
            year -= 1
    return window


def next_month(ref: MonthRef) -> MonthRef:
    idx = ref.index + 1
    if idx > 11:
        return MonthRef(MONTHS[0], ref.year + 1)
    return MonthRef(MONTHS[idx], ref.year)


def calendar_year_for(month: str, service_year: int) -> int:
    if month_index(month) >= SERVICE_YEAR_START_INDEX:
        return service_year - 1
    return service_year


def service_year_months(service_year: int) -> list[MonthRef]:
    return [MonthRef(m, calendar_year_for(m, service_year)) for m in SERVICE_YEAR_MONTHS]


def chart_window(service_year: int, month: str, size: int = 12) -> list[MonthRef]:
    """Oldest first, ending at the selected month of the selected service year."""
    cursor = MonthRef(month, calendar_year_for(month, service_year))
    return list(reversed(rolling_window(cursor.month, cursor.year, size)))


def current_service_year(today: datetime.date | None = None) -> int:
    today = today or datetime.date.today()
    if today.month - 1 >= SERVICE_YEAR_START_INDEX:
        return today.year + 1
    return today.year


def current_month(today: datetime.date | None = None) -> MonthRef:
    today = today or datetime.date.today()
    return MonthRef(MONTHS[today.month - 1], today.year)
