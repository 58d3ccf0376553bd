# informes/management/commands/import_informes.py
from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

import pandas as pd
from django.core.management.base import BaseCommand, CommandError

from informes import store
from informes.edit_session import coerce_field
from informes.models import Publisher
from informes.periods import MONTHS
from informes.snapshot import ReportRecord


def norm(s) -> str:
    s = str(s or "").strip().lower()
    s = re.sub(r"\s+", "_", s)
    return s


# normalized header -> canonical column
ALIASES = {
    "publicador_id": "publicador_id",
    "id_publicador": "publicador_id",
    "idpublicador": "publicador_id",
    "nombre": "nombre",
    "apellido": "apellido",
    "anio": "anio_calendario",
    "año": "anio_calendario",
    "anio_calendario": "anio_calendario",
    "aniocalendario": "anio_calendario",
    "mes": "mes",
    "participacion": "participacion",
    "participación": "participacion",
    "precursor_auxiliar": "precursor_auxiliar",
    "precursorauxiliar": "precursor_auxiliar",
    "pa": "precursor_auxiliar",
    "cursos_biblicos": "cursos_biblicos",
    "cursosbiblicos": "cursos_biblicos",
    "cursos": "cursos_biblicos",
    "horas": "horas",
    "notas": "notas",
}

MONTH_LOOKUP = {m.lower(): m for m in MONTHS}


class Command(BaseCommand):
    help = "Import monthly service reports from a CSV export (upsert by publisher, year and month)."

    def add_arguments(self, parser):
        parser.add_argument("--csv", required=True, help="Path to the CSV file.")
        parser.add_argument("--dry-run", action="store_true", help="Parse and report only; do not write to DB.")
        parser.add_argument("--strict", action="store_true", help="Fail if any row cannot be imported.")

    def handle(self, *args, **opts):
        csv_path = Path(opts["csv"]).expanduser()
        dry = bool(opts["dry_run"])
        strict = bool(opts["strict"])

        if not csv_path.exists():
            raise CommandError(f"CSV not found: {csv_path}")

        try:
            df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            raise CommandError(f"Could not read {csv_path}: {exc}") from exc

        df = df.rename(columns={c: ALIASES.get(norm(c), norm(c)) for c in df.columns})
        missing = {"anio_calendario", "mes"} - set(df.columns)
        if missing:
            raise CommandError(f"Missing columns: {', '.join(sorted(missing))}")
        if "publicador_id" not in df.columns and "nombre" not in df.columns:
            raise CommandError("The CSV needs a publicador_id column or nombre/apellido columns.")

        publishers_by_name = {}
        for pub in Publisher.objects.all():
            publishers_by_name.setdefault((norm(pub.nombre), norm(pub.apellido)), pub.pk)
        known_ids = set(publishers_by_name.values())

        records: list[ReportRecord] = []
        problems: list[str] = []
        for i, row in enumerate(df.to_dict(orient="records"), start=2):
            try:
                records.append(self._to_record(row, known_ids, publishers_by_name))
            except ValueError as exc:
                problems.append(f"row {i}: {exc}")

        for p in problems:
            self.stderr.write(self.style.WARNING(p))
        if problems and strict:
            raise CommandError(f"{len(problems)} row(s) could not be imported.")

        if dry:
            self.stdout.write(self.style.SUCCESS(f"Dry run: {len(records)} report(s) parsed, {len(problems)} skipped."))
            return

        try:
            saved = store.batch_upsert_reports(records)
        except store.PersistenceError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"Imported {saved} report(s), {len(problems)} skipped."))

    def _to_record(self, row: dict, known_ids: set, publishers_by_name: dict) -> ReportRecord:
        publisher_id = self._publisher_id(row, known_ids, publishers_by_name)

        mes = MONTH_LOOKUP.get(str(row.get("mes", "")).strip().lower())
        if not mes:
            raise ValueError(f"unknown month {row.get('mes')!r}")
        try:
            anio = int(str(row.get("anio_calendario", "")).strip())
        except ValueError:
            raise ValueError(f"invalid year {row.get('anio_calendario')!r}") from None

        return ReportRecord(
            publicador_id=publisher_id,
            anio_calendario=anio,
            mes=mes,
            participacion=coerce_field("participacion", row.get("participacion", "")),
            precursor_auxiliar=coerce_field("precursor_auxiliar", row.get("precursor_auxiliar", "")),
            cursos_biblicos=coerce_field("cursos_biblicos", row.get("cursos_biblicos", "")),
            horas=coerce_field("horas", row.get("horas", "")),
            notas=coerce_field("notas", row.get("notas", "")) or "",
        )

    def _publisher_id(self, row: dict, known_ids: set, publishers_by_name: dict) -> int:
        raw_id = str(row.get("publicador_id", "") or "").strip()
        if raw_id:
            try:
                pid = int(raw_id)
            except ValueError:
                raise ValueError(f"invalid publisher id {raw_id!r}") from None
            if pid not in known_ids:
                raise ValueError(f"publisher {pid} does not exist")
            return pid

        key = (norm(row.get("nombre")), norm(row.get("apellido")))
        pid: Optional[int] = publishers_by_name.get(key)
        if pid is None:
            raise ValueError(f"publisher {row.get('nombre')!r} {row.get('apellido')!r} not found")
        return pid
