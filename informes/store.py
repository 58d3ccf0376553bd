# informes/store.py
import logging
from decimal import InvalidOperation
from typing import Iterable

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from .models import Publisher, ServiceReport
from .snapshot import ReportRecord

logger = logging.getLogger(__name__)

SAVE_ERROR_MESSAGE = "Error al guardar los cambios."


class PersistenceError(Exception):
    pass


def _defaults(record: ReportRecord) -> dict:
    return {
        "participacion": record.participacion,
        "precursor_auxiliar": record.precursor_auxiliar,
        "cursos_biblicos": record.cursos_biblicos,
        "horas": record.horas,
        "notas": record.notas,
    }


def _upsert(record: ReportRecord) -> ServiceReport:
    report, _ = ServiceReport.objects.update_or_create(
        publicador_id=record.publicador_id,
        anio_calendario=record.anio_calendario,
        mes=record.mes,
        defaults=_defaults(record),
    )
    return report


def batch_upsert_reports(drafts: Iterable[ReportRecord]) -> int:
    """
    Upsert every draft keyed by (publicador, anio_calendario, mes).
    All or nothing: any failure rolls back the whole batch.
    """
    drafts = list(drafts)
    if not drafts:
        return 0

    ids = {d.publicador_id for d in drafts}
    try:
        with transaction.atomic():
            if Publisher.objects.filter(pk__in=ids).count() != len(ids):
                raise ValidationError("Uno o más publicadores no existen.")
            for record in drafts:
                _upsert(record)
    except (DatabaseError, ValidationError, OverflowError, InvalidOperation) as exc:
        logger.exception("Batch upsert of %d reports failed.", len(drafts))
        raise PersistenceError(SAVE_ERROR_MESSAGE) from exc

    logger.info("Saved %d reports.", len(drafts))
    return len(drafts)


def save_report(record: ReportRecord) -> ServiceReport:
    try:
        with transaction.atomic():
            return _upsert(record)
    except (DatabaseError, OverflowError, InvalidOperation) as exc:
        logger.exception(
            "Saving report for publisher %s (%s %s) failed.",
            record.publicador_id,
            record.mes,
            record.anio_calendario,
        )
        raise PersistenceError(SAVE_ERROR_MESSAGE) from exc


def delete_report(report_id) -> bool:
    try:
        deleted, _ = ServiceReport.objects.filter(pk=report_id).delete()
    except DatabaseError as exc:
        logger.exception("Deleting report %s failed.", report_id)
        raise PersistenceError("Error al eliminar el informe.") from exc
    return deleted > 0


def update_group(publisher_id, grupo: str) -> bool:
    pub = Publisher.objects.filter(pk=publisher_id).first()
    if pub is None:
        return False
    pub.grupo = (grupo or "").strip()
    try:
        # save() rather than update() so post_save reaches the change feed
        pub.save(update_fields=["grupo", "updated_at"])
    except DatabaseError as exc:
        logger.exception("Moving publisher %s to group %r failed.", publisher_id, grupo)
        raise PersistenceError("Error al cambiar el grupo.") from exc
    return True
