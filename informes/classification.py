# informes/classification.py
"""
Who reported, who is pending, who is irregular, who just became inactive.

All functions are pure over a Snapshot. Only publishers with estatus "Activo"
take part in the pending / irregular / newly-inactive lists.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .periods import MonthRef, month_abbr, rolling_window
from .snapshot import PublisherRecord, ReportRecord, Snapshot

BUCKET_PUBLICADORES = "publicadores"
BUCKET_AUXILIARES = "auxiliares"
BUCKET_REGULARES = "regulares"

BUCKETS = (BUCKET_PUBLICADORES, BUCKET_AUXILIARES, BUCKET_REGULARES)

NO_GROUP = "Sin Grupo"

# Six misses in a row, preceded by a month with a report.
INACTIVITY_MONTHS = 6


@dataclass(frozen=True)
class IrregularPublisher:
    publisher: PublisherRecord
    missed: tuple[str, ...]  # oldest first, 3-letter month names

    @property
    def grupo(self) -> str:
        return self.publisher.grupo


def has_reported(snapshot: Snapshot, publisher_id, ref: MonthRef) -> bool:
    return snapshot.has_reported(publisher_id, ref)


def pending_publishers(snapshot: Snapshot, ref: MonthRef) -> list[PublisherRecord]:
    return [p for p in snapshot.active_publishers() if not snapshot.has_reported(p.id, ref)]


def irregular_publishers(snapshot: Snapshot, end: MonthRef, size: int = 6) -> list[IrregularPublisher]:
    window = rolling_window(end.month, end.year, size)
    out: list[IrregularPublisher] = []
    for pub in snapshot.active_publishers():
        missed = [month_abbr(ref.month) for ref in window if not snapshot.has_reported(pub.id, ref)]
        if missed:
            missed.reverse()
            out.append(IrregularPublisher(publisher=pub, missed=tuple(missed)))
    return out


def newly_inactive_publishers(snapshot: Snapshot, ref: MonthRef) -> list[PublisherRecord]:
    """
    Active publishers who missed the selected month and the five before it,
    and did report in the month just before that streak.
    """
    window = rolling_window(ref.month, ref.year, INACTIVITY_MONTHS + 1)
    streak, boundary = window[:INACTIVITY_MONTHS], window[INACTIVITY_MONTHS]

    out = []
    for pub in snapshot.active_publishers():
        if any(snapshot.has_reported(pub.id, m) for m in streak):
            continue
        if snapshot.has_reported(pub.id, boundary):
            out.append(pub)
    return out


def report_bucket(report: ReportRecord, publisher: Optional[PublisherRecord]) -> str:
    # NOTE: uses the publisher's *current* privilege, so a demoted regular
    # pioneer's past months move to "publicadores".
    if report.is_auxiliary:
        return BUCKET_AUXILIARES
    if publisher is not None and publisher.is_regular_pioneer:
        return BUCKET_REGULARES
    return BUCKET_PUBLICADORES


def partition_reports(snapshot: Snapshot, reports: Iterable[ReportRecord]) -> dict[str, list[ReportRecord]]:
    buckets: dict[str, list[ReportRecord]] = {b: [] for b in BUCKETS}
    for report in reports:
        buckets[report_bucket(report, snapshot.publisher(report.publicador_id))].append(report)
    return buckets


def distinct_auxiliaries(snapshot: Snapshot, window: Sequence[MonthRef]) -> set:
    return {r.publicador_id for r in snapshot.reports_in(window) if r.is_auxiliary}


def _sort_key(item) -> str:
    pub = item.publisher if isinstance(item, IrregularPublisher) else item
    return (pub.nombre or "").lower()


def group_by_name(items: Iterable) -> dict[str, list]:
    """
    {grupo: [items sorted by first name]} with "Sin Grupo" for publishers
    without a group. Groups come back in alphabetical order.
    """
    grouped: dict[str, list] = {}
    for item in sorted(items, key=_sort_key):
        pub = item.publisher if isinstance(item, IrregularPublisher) else item
        grouped.setdefault(pub.grupo or NO_GROUP, []).append(item)
    return dict(sorted(grouped.items()))
