# informes/aggregation.py
"""
Count / hour / course roll-ups for the consolidated report and the dashboards.

Everything is recomputed from scratch over a Snapshot. Hours only mean
something for pioneers, so the "publicadores" bucket never carries hours and
the grand hour total is auxiliaries + regulars.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .classification import (
    BUCKET_AUXILIARES,
    BUCKET_PUBLICADORES,
    BUCKET_REGULARES,
    NO_GROUP,
    distinct_auxiliaries,
    partition_reports,
)
from .models import PioneerApplication, Publisher
from .periods import MonthRef, chart_window, month_label, next_month, rolling_window, service_year_months
from .snapshot import PublisherRecord, ReportRecord, Snapshot


@dataclass(frozen=True)
class BucketTotals:
    cantidad: int = 0
    horas: Optional[float] = None
    cursos: int = 0


@dataclass(frozen=True)
class ConsolidatedReport:
    ref: MonthRef
    publicadores: BucketTotals
    auxiliares: BucketTotals
    regulares: BucketTotals
    totales: BucketTotals

    def rows(self) -> list[tuple[str, BucketTotals]]:
        return [
            ("Publicadores que informaron", self.publicadores),
            ("Precursores Auxiliares", self.auxiliares),
            ("Precursores Regulares", self.regulares),
        ]


@dataclass(frozen=True)
class WindowSummary:
    window: tuple[MonthRef, ...]
    regular_pioneers: int
    active_publishers: int
    auxiliary_pioneers: int


def _hours(reports: Iterable[ReportRecord]) -> float:
    return sum(r.hours for r in reports)


def _courses(reports: Iterable[ReportRecord]) -> int:
    return sum(r.courses for r in reports)


def monthly_totals(snapshot: Snapshot, ref: MonthRef) -> ConsolidatedReport:
    participating = [r for r in snapshot.reports_for(ref) if r.participacion]
    buckets = partition_reports(snapshot, participating)

    pub = buckets[BUCKET_PUBLICADORES]
    aux = buckets[BUCKET_AUXILIARES]
    reg = buckets[BUCKET_REGULARES]

    publicadores = BucketTotals(cantidad=len(pub), horas=None, cursos=_courses(pub))
    auxiliares = BucketTotals(cantidad=len(aux), horas=_hours(aux), cursos=_courses(aux))
    regulares = BucketTotals(cantidad=len(reg), horas=_hours(reg), cursos=_courses(reg))

    totales = BucketTotals(
        cantidad=publicadores.cantidad + auxiliares.cantidad + regulares.cantidad,
        horas=auxiliares.horas + regulares.horas,
        cursos=publicadores.cursos + auxiliares.cursos + regulares.cursos,
    )
    return ConsolidatedReport(
        ref=ref,
        publicadores=publicadores,
        auxiliares=auxiliares,
        regulares=regulares,
        totales=totales,
    )


def active_regular_pioneers(snapshot: Snapshot) -> list[PublisherRecord]:
    return [p for p in snapshot.active_publishers() if p.is_regular_pioneer]


def window_summary(snapshot: Snapshot, end: MonthRef, size: int = 6) -> WindowSummary:
    window = rolling_window(end.month, end.year, size)
    in_window = snapshot.reports_in(window)
    return WindowSummary(
        window=tuple(window),
        regular_pioneers=len(active_regular_pioneers(snapshot)),
        active_publishers=len({r.publicador_id for r in in_window if r.participacion}),
        auxiliary_pioneers=len(distinct_auxiliaries(snapshot, window)),
    )


# ----------------------------
# Bible courses dashboard
# ----------------------------
@dataclass(frozen=True)
class CourseStats:
    total_courses: int
    aux_pioneer_courses: int
    reg_pioneer_courses: int
    publisher_courses: int
    publishers_with_courses: int
    total_active_publishers: int
    aux_pioneers_last_6_months: int
    regular_pioneers_without_courses: int
    publishers_without_courses: int


def course_stats(snapshot: Snapshot, ref: MonthRef) -> CourseStats:
    monthly = [r for r in snapshot.reports_for(ref) if r.participacion]
    with_courses = [r for r in monthly if r.courses > 0]

    active = snapshot.active_publishers()
    regulars = active_regular_pioneers(snapshot)
    regular_ids = {p.id for p in regulars}

    aux = [r for r in with_courses if r.is_auxiliary]
    reg = [r for r in with_courses if not r.is_auxiliary and r.publicador_id in regular_ids]
    pub = [r for r in with_courses if not r.is_auxiliary and r.publicador_id not in regular_ids]

    publishers_with_courses = {r.publicador_id for r in with_courses}
    regulars_with_courses = {r.publicador_id for r in reg}

    return CourseStats(
        total_courses=_courses(with_courses),
        aux_pioneer_courses=_courses(aux),
        reg_pioneer_courses=_courses(reg),
        publisher_courses=_courses(pub),
        publishers_with_courses=len(publishers_with_courses),
        total_active_publishers=len(active),
        aux_pioneers_last_6_months=len(distinct_auxiliaries(snapshot, rolling_window(ref.month, ref.year, 6))),
        regular_pioneers_without_courses=len(regulars) - len(regulars_with_courses),
        publishers_without_courses=len(active) - len(publishers_with_courses),
    )


# ----------------------------
# Pioneers dashboard
# ----------------------------
@dataclass(frozen=True)
class PioneerStats:
    regular_pioneers: int
    auxiliary_this_month: int
    auxiliary_names: list[str] = field(default_factory=list)


def pioneer_stats(snapshot: Snapshot, ref: MonthRef) -> PioneerStats:
    aux_reports = [r for r in snapshot.reports_for(ref) if r.is_auxiliary]
    names = []
    for report in aux_reports:
        pub = snapshot.publisher(report.publicador_id)
        names.append(pub.display_name if pub else "Nombre Desconocido")
    return PioneerStats(
        regular_pioneers=len(active_regular_pioneers(snapshot)),
        auxiliary_this_month=len(aux_reports),
        auxiliary_names=sorted(names),
    )


@dataclass(frozen=True)
class ApprovedPioneers:
    current_month: str
    next_month: str
    names: list[str]

    @property
    def count(self) -> int:
        return len(self.names)


def approved_pioneers(applications: Iterable[PioneerApplication], ref: MonthRef) -> ApprovedPioneers:
    """Approved applications that cover the selected month or the next one."""
    following = next_month(ref)
    names = set()
    for app in applications:
        if app.status != PioneerApplication.STATUS_APROBADO:
            continue
        if app.covers_month(ref.month) or app.covers_month(following.month):
            names.add(app.nombre)
    return ApprovedPioneers(current_month=ref.month, next_month=following.month, names=sorted(names))


# ----------------------------
# Charts
# ----------------------------
METRIC_COURSES = "courses"
METRIC_AUXILIARIES = "auxiliaries"


@dataclass(frozen=True)
class ChartBar:
    label: str
    value: float
    highlighted: bool = False


def _metric_value(snapshot: Snapshot, ref: MonthRef, metric: str) -> float:
    reports = snapshot.reports_for(ref)
    if metric == METRIC_COURSES:
        return _courses(r for r in reports if r.participacion)
    if metric == METRIC_AUXILIARIES:
        return sum(1 for r in reports if r.is_auxiliary)
    raise ValueError(f"Unknown chart metric: {metric}")


def chart_series(snapshot: Snapshot, service_year: int, month: str, metric: str) -> list[ChartBar]:
    window = chart_window(service_year, month)
    cursor = window[-1]
    return [
        ChartBar(label=month_label(ref), value=_metric_value(snapshot, ref, metric), highlighted=ref == cursor)
        for ref in window
    ]


# ----------------------------
# Service-year reports
# ----------------------------
@dataclass(frozen=True)
class MonthTotals:
    ref: MonthRef
    publicadores: BucketTotals
    auxiliares: BucketTotals
    regulares: BucketTotals


@dataclass(frozen=True)
class ServiceYearTotals:
    service_year: int
    months: list[MonthTotals]
    regular_hours: float


def service_year_totals(snapshot: Snapshot, service_year: int) -> ServiceYearTotals:
    # Regular pioneers here are everyone currently holding the privilege,
    # whatever their status.
    regular_ids = {p.id for p in snapshot.publishers if p.is_regular_pioneer}
    months = []
    for ref in service_year_months(service_year):
        reports = snapshot.reports_for(ref)
        informed = [r for r in reports if r.participacion]
        aux = [r for r in reports if r.is_auxiliary]
        reg = [r for r in informed if r.publicador_id in regular_ids]
        months.append(
            MonthTotals(
                ref=ref,
                publicadores=BucketTotals(cantidad=len(informed), cursos=_courses(informed)),
                auxiliares=BucketTotals(cantidad=len(aux), cursos=_courses(aux)),
                regulares=BucketTotals(cantidad=len(reg), horas=_hours(reg), cursos=_courses(reg)),
            )
        )
    return ServiceYearTotals(
        service_year=service_year,
        months=months,
        regular_hours=sum(m.regulares.horas for m in months),
    )


@dataclass(frozen=True)
class PublisherCard:
    publisher: PublisherRecord
    service_year: int
    rows: list[tuple[MonthRef, Optional[ReportRecord]]]

    @property
    def total_hours(self) -> float:
        return sum(r.hours for _, r in self.rows if r is not None)


def publisher_card(snapshot: Snapshot, publisher_id, service_year: int) -> Optional[PublisherCard]:
    pub = snapshot.publisher(publisher_id)
    if pub is None:
        return None
    rows = [(ref, snapshot.report(publisher_id, ref)) for ref in service_year_months(service_year)]
    return PublisherCard(publisher=pub, service_year=service_year, rows=rows)


# ----------------------------
# Groups
# ----------------------------
@dataclass
class GroupMembers:
    members: list[PublisherRecord] = field(default_factory=list)
    pr_count: int = 0


@dataclass(frozen=True)
class GroupSummary:
    active: dict[str, GroupMembers]
    inactive: dict[str, list[PublisherRecord]]
    other_statuses: dict[str, list[PublisherRecord]]


OTHER_STATUSES = (
    Publisher.ESTATUS_TRASLADADO,
    Publisher.ESTATUS_FALLECIO,
    Publisher.ESTATUS_SACADO,
)


def group_names(snapshot: Snapshot) -> list[str]:
    return sorted({p.grupo for p in snapshot.publishers if p.grupo})


def _by_first_name(pubs: Iterable[PublisherRecord]) -> list[PublisherRecord]:
    return sorted(pubs, key=lambda p: (p.nombre or "").lower())


def group_summary(snapshot: Snapshot) -> GroupSummary:
    active: dict[str, GroupMembers] = {}
    for pub in _by_first_name(snapshot.active_publishers()):
        group = active.setdefault(pub.grupo or NO_GROUP, GroupMembers())
        group.members.append(pub)
        if pub.is_regular_pioneer:
            group.pr_count += 1

    inactive: dict[str, list[PublisherRecord]] = {}
    for pub in _by_first_name(p for p in snapshot.publishers if p.estatus == Publisher.ESTATUS_INACTIVO and p.grupo):
        inactive.setdefault(pub.grupo, []).append(pub)

    other = {}
    for status in OTHER_STATUSES:
        pubs = _by_first_name(p for p in snapshot.publishers if p.estatus == status)
        if pubs:
            other[status] = pubs

    return GroupSummary(
        active=dict(sorted(active.items())),
        inactive=dict(sorted(inactive.items())),
        other_statuses=other,
    )


ROW_PENDIENTE = "pendiente"
ROW_AUXILIAR = "auxiliar"
ROW_REGULAR = "regular"
ROW_PUBLICADOR = "publicador"


@dataclass(frozen=True)
class GroupMonthRow:
    publisher: PublisherRecord
    report: Optional[ReportRecord]

    @property
    def state(self) -> str:
        if self.report is None or not self.report.participacion:
            return ROW_PENDIENTE
        if self.report.is_auxiliary:
            return ROW_AUXILIAR
        if self.publisher.is_regular_pioneer:
            return ROW_REGULAR
        return ROW_PUBLICADOR


@dataclass(frozen=True)
class GroupMonthReport:
    grupo: str
    ref: MonthRef
    rows: list[GroupMonthRow]

    @property
    def informed(self) -> int:
        return sum(1 for row in self.rows if row.state != ROW_PENDIENTE)

    @property
    def pending(self) -> int:
        return len(self.rows) - self.informed

    @property
    def total(self) -> int:
        return len(self.rows)


def group_month_rows(snapshot: Snapshot, grupo: str, ref: MonthRef) -> GroupMonthReport:
    pubs = _by_first_name(p for p in snapshot.publishers if grupo and p.grupo == grupo)
    rows = [GroupMonthRow(publisher=p, report=snapshot.report(p.id, ref)) for p in pubs]
    return GroupMonthReport(grupo=grupo, ref=ref, rows=rows)
