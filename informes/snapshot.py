# informes/snapshot.py
"""
Immutable in-memory view of publishers and reports.

Every dashboard recomputes from a Snapshot; nothing here talks to the database
except load_snapshot().
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .models import Publisher, ServiceReport
from .periods import MonthRef


def _safe_int(value, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


def _safe_float(value, default: Optional[float] = None) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or number < 0:
        return default
    return number


@dataclass(frozen=True)
class PublisherRecord:
    id: int
    nombre: str
    apellido: str = ""
    grupo: str = ""
    estatus: str = Publisher.ESTATUS_ACTIVO
    priv_adicional: str = ""
    privilegio: str = ""
    full_name: str = ""

    @property
    def is_active(self) -> bool:
        return self.estatus == Publisher.ESTATUS_ACTIVO

    @property
    def is_regular_pioneer(self) -> bool:
        return self.priv_adicional == Publisher.PRECURSOR_REGULAR

    @property
    def display_name(self) -> str:
        return self.full_name or " ".join(p for p in (self.nombre, self.apellido) if p)

    @classmethod
    def from_model(cls, pub: Publisher) -> "PublisherRecord":
        return cls(
            id=pub.pk,
            nombre=pub.nombre or "",
            apellido=pub.apellido or "",
            grupo=pub.grupo or "",
            estatus=pub.estatus or "",
            priv_adicional=pub.priv_adicional or "",
            privilegio=pub.privilegio or "",
            full_name=pub.full_name,
        )


@dataclass(frozen=True)
class ReportRecord:
    publicador_id: int
    anio_calendario: int
    mes: str
    participacion: bool = False
    precursor_auxiliar: str = ""
    cursos_biblicos: Optional[int] = None
    horas: Optional[float] = None
    notas: str = ""
    id: Optional[int] = None

    def __post_init__(self):
        # Malformed numbers from old imports are treated as absent.
        object.__setattr__(self, "cursos_biblicos", _safe_int(self.cursos_biblicos))
        object.__setattr__(self, "horas", _safe_float(self.horas))
        object.__setattr__(self, "precursor_auxiliar", self.precursor_auxiliar or "")
        object.__setattr__(self, "notas", self.notas or "")
        object.__setattr__(self, "participacion", bool(self.participacion))

    @property
    def ref(self) -> MonthRef:
        return MonthRef(self.mes, self.anio_calendario)

    @property
    def is_auxiliary(self) -> bool:
        return self.precursor_auxiliar == ServiceReport.AUX_MARKER

    @property
    def courses(self) -> int:
        return self.cursos_biblicos or 0

    @property
    def hours(self) -> float:
        return self.horas or 0

    @classmethod
    def from_model(cls, report: ServiceReport) -> "ReportRecord":
        return cls(
            id=report.pk,
            publicador_id=report.publicador_id,
            anio_calendario=report.anio_calendario,
            mes=report.mes,
            participacion=report.participacion,
            precursor_auxiliar=report.precursor_auxiliar,
            cursos_biblicos=report.cursos_biblicos,
            horas=report.horas,
            notas=report.notas,
        )


@dataclass(frozen=True)
class Snapshot:
    publishers: tuple[PublisherRecord, ...] = ()
    reports: tuple[ReportRecord, ...] = ()
    _by_id: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _reported: frozenset = field(default=frozenset(), init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "publishers", tuple(self.publishers))
        object.__setattr__(self, "reports", tuple(self.reports))
        object.__setattr__(self, "_by_id", {p.id: p for p in self.publishers})
        object.__setattr__(
            self,
            "_reported",
            frozenset((r.publicador_id, r.anio_calendario, r.mes) for r in self.reports if r.participacion),
        )

    def publisher(self, publisher_id) -> Optional[PublisherRecord]:
        return self._by_id.get(publisher_id)

    def active_publishers(self) -> list[PublisherRecord]:
        return [p for p in self.publishers if p.is_active]

    def has_reported(self, publisher_id, ref: MonthRef) -> bool:
        return (publisher_id, ref.year, ref.month) in self._reported

    def reports_for(self, ref: MonthRef) -> list[ReportRecord]:
        return [r for r in self.reports if r.anio_calendario == ref.year and r.mes == ref.month]

    def reports_in(self, window: Iterable[MonthRef]) -> list[ReportRecord]:
        keys = {(ref.year, ref.month) for ref in window}
        return [r for r in self.reports if (r.anio_calendario, r.mes) in keys]

    def report(self, publisher_id, ref: MonthRef) -> Optional[ReportRecord]:
        for r in self.reports:
            if r.publicador_id == publisher_id and r.anio_calendario == ref.year and r.mes == ref.month:
                return r
        return None


def load_snapshot() -> Snapshot:
    publishers = [PublisherRecord.from_model(p) for p in Publisher.objects.all().order_by("nombre", "id")]
    reports = [ReportRecord.from_model(r) for r in ServiceReport.objects.all().order_by("anio_calendario", "id")]
    return Snapshot(publishers=publishers, reports=reports)
