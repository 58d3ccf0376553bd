# informes/edit_session.py
"""
Inline editing of saved reports.

A session starts from the saved rows and keeps a draft per row that was
touched. EditSession edits one group for one month (keyed by publisher);
CardEditSession edits one publisher's service year (keyed by month).
Nothing is written until the view hands drafts_to_save() to
store.batch_upsert_reports().
"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

from .models import ServiceReport
from .periods import MonthRef
from .snapshot import PublisherRecord, ReportRecord

EDITABLE_FIELDS = ("participacion", "precursor_auxiliar", "cursos_biblicos", "horas", "notas")

TRUTHY = {"1", "on", "true", "yes", "si", "sí"}

# Column limits: PositiveIntegerField and DecimalField(max_digits=6, decimal_places=1).
MAX_CURSOS = 2147483647
MAX_HORAS = 99999.9


def _checked(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in TRUTHY


def coerce_field(field: str, value):
    """
    Normalise one raw editor value.

    Raises ValueError for unknown fields and for numbers that do not parse
    or do not fit the database column.
    """
    if field == "participacion":
        return _checked(value)
    if field == "precursor_auxiliar":
        if str(value or "").strip().upper() == ServiceReport.AUX_MARKER:
            return ServiceReport.AUX_MARKER
        return ServiceReport.AUX_MARKER if _checked(value) else ""
    if field in ("cursos_biblicos", "horas"):
        if value is None or str(value).strip() == "":
            return None
        raw = str(value).strip().replace(",", ".")
        try:
            number = float(raw)
        except ValueError:
            raise ValueError(f"Valor numérico inválido: {value!r}") from None
        if number != number:  # NaN
            raise ValueError(f"Valor numérico inválido: {value!r}")
        if number < 0:
            raise ValueError(f"El valor no puede ser negativo: {value!r}")
        limit = MAX_CURSOS if field == "cursos_biblicos" else MAX_HORAS
        if number > limit:
            raise ValueError(f"El valor es demasiado grande: {value!r}")
        return int(number) if field == "cursos_biblicos" else number
    if field == "notas":
        text = str(value or "").strip()
        return text or None
    raise ValueError(f"Campo no editable: {field}")


def _from_original(report: ReportRecord) -> dict:
    return {
        "publicador_id": report.publicador_id,
        "anio_calendario": report.anio_calendario,
        "mes": report.mes,
        "participacion": report.participacion,
        "precursor_auxiliar": report.precursor_auxiliar,
        "cursos_biblicos": report.cursos_biblicos,
        "horas": report.horas,
        "notas": report.notas or None,
    }


def _blank(publisher_id, ref: MonthRef) -> dict:
    return {
        "publicador_id": publisher_id,
        "anio_calendario": ref.year,
        "mes": ref.month,
        "participacion": False,
        "precursor_auxiliar": "",
        "cursos_biblicos": None,
        "horas": None,
        "notas": None,
    }


class _DraftSession:
    """Originals and drafts keyed by whatever identifies a row on screen."""

    def __init__(self):
        self.originals: dict = {}
        self.drafts: dict = {}

    def _blank(self, key) -> dict:
        raise NotImplementedError

    def current(self, key) -> dict:
        if key in self.drafts:
            return self.drafts[key]
        original = self.originals.get(key)
        if original is not None:
            return _from_original(original)
        return self._blank(key)

    def set_field(self, key, field: str, value) -> None:
        coerced = coerce_field(field, value)
        draft = dict(self.current(key))
        draft[field] = coerced
        self.drafts[key] = draft

    def apply(self, key, values: Mapping[str, object]) -> None:
        """
        Record only the fields whose coerced value differs from what is shown.
        A row with any invalid value leaves the drafts untouched.
        """
        shown = self.current(key)
        coerced = {field: coerce_field(field, values[field]) for field in EDITABLE_FIELDS if field in values}
        changed = {field: value for field, value in coerced.items() if value != shown[field]}
        if changed:
            self.drafts[key] = {**shown, **changed}


class EditSession(_DraftSession):
    def __init__(self, publishers: Iterable[PublisherRecord], reports: Iterable[ReportRecord], ref: MonthRef):
        super().__init__()
        self.ref = ref
        self.publishers = list(publishers)
        self._known_ids = {p.id for p in self.publishers}
        self.originals = {
            r.publicador_id: r
            for r in reports
            if r.anio_calendario == ref.year and r.mes == ref.month
        }

    def _blank(self, publisher_id) -> dict:
        return _blank(publisher_id, self.ref)

    def drafts_to_save(self) -> list[ReportRecord]:
        out = []
        for publisher_id, draft in self.drafts.items():
            if not publisher_id or publisher_id not in self._known_ids:
                continue
            out.append(ReportRecord(**draft))
        return out

    def rows(self) -> list[tuple[PublisherRecord, dict, Optional[ReportRecord]]]:
        return [(p, self.current(p.id), self.originals.get(p.id)) for p in self.publishers]


class CardEditSession(_DraftSession):
    """One publisher's record card: twelve months of one service year."""

    def __init__(self, publisher_id, reports: Iterable[ReportRecord], months: Iterable[MonthRef]):
        super().__init__()
        self.publisher_id = publisher_id
        self.months = list(months)
        wanted = set(self.months)
        self.originals = {
            r.ref: r
            for r in reports
            if r.publicador_id == publisher_id and r.ref in wanted
        }

    def _blank(self, ref: MonthRef) -> dict:
        return _blank(self.publisher_id, ref)

    def drafts_to_save(self) -> list[ReportRecord]:
        return [ReportRecord(**self.drafts[ref]) for ref in self.months if ref in self.drafts]

    def rows(self) -> list[tuple[MonthRef, dict, Optional[ReportRecord]]]:
        return [(ref, self.current(ref), self.originals.get(ref)) for ref in self.months]
