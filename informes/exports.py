# informes/exports.py
import csv
from typing import TextIO

from .aggregation import service_year_totals
from .periods import month_index
from .snapshot import Snapshot

HEADERS = [
    "mes",
    "anio",
    "publicadores_informaron",
    "publicadores_cursos",
    "auxiliares",
    "auxiliares_cursos",
    "regulares",
    "regulares_horas",
    "regulares_cursos",
]


def _fmt_hours(value) -> str:
    if value is None:
        return ""
    return f"{value:g}"


def write_service_year_csv(snapshot: Snapshot, service_year: int, out: TextIO) -> int:
    """Writes one row per month (Sep..Aug) plus a total row. Returns data rows written."""
    totals = service_year_totals(snapshot, service_year)
    w = csv.writer(out)
    w.writerow(HEADERS)
    for m in totals.months:
        w.writerow(
            [
                m.ref.month,
                m.ref.year,
                m.publicadores.cantidad,
                m.publicadores.cursos,
                m.auxiliares.cantidad,
                m.auxiliares.cursos,
                m.regulares.cantidad,
                _fmt_hours(m.regulares.horas),
                m.regulares.cursos,
            ]
        )
    w.writerow(["Total", service_year, "", "", "", "", "", _fmt_hours(totals.regular_hours), ""])
    return len(totals.months)


ALL_REPORTS_HEADERS = [
    "Año",
    "Mes",
    "Publicador",
    "Participó",
    "Precursor Auxiliar",
    "Horas",
    "Cursos Bíblicos",
    "Notas",
]

ALL_REPORTS_FILENAME = "todos_los_informes_de_servicio.csv"


def _yes_no(flag: bool) -> str:
    return "Sí" if flag else "No"


def write_all_reports_csv(snapshot: Snapshot, out: TextIO) -> int:
    """Every saved report, oldest month first. Returns data rows written."""
    def sort_key(r):
        pub = snapshot.publisher(r.publicador_id)
        return (r.anio_calendario, month_index(r.mes), pub.display_name if pub else "")

    w = csv.writer(out)
    w.writerow(ALL_REPORTS_HEADERS)
    reports = sorted(snapshot.reports, key=sort_key)
    for r in reports:
        pub = snapshot.publisher(r.publicador_id)
        w.writerow(
            [
                r.anio_calendario,
                r.mes,
                (pub.display_name if pub else "") or "Desconocido",
                _yes_no(r.participacion),
                _yes_no(r.is_auxiliary),
                _fmt_hours(r.horas),
                "" if r.cursos_biblicos is None else r.cursos_biblicos,
                r.notas or "",
            ]
        )
    return len(reports)
