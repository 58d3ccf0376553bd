import csv
import datetime
import io
import os
import tempfile
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import CommandError, call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from informes import store
from informes.aggregation import (
    METRIC_AUXILIARIES,
    METRIC_COURSES,
    ROW_AUXILIAR,
    ROW_PENDIENTE,
    ROW_PUBLICADOR,
    ROW_REGULAR,
    approved_pioneers,
    chart_series,
    course_stats,
    group_month_rows,
    group_summary,
    monthly_totals,
    pioneer_stats,
    publisher_card,
    service_year_totals,
    window_summary,
)
from informes.classification import (
    BUCKET_AUXILIARES,
    BUCKET_PUBLICADORES,
    BUCKET_REGULARES,
    NO_GROUP,
    distinct_auxiliaries,
    group_by_name,
    irregular_publishers,
    newly_inactive_publishers,
    partition_reports,
    pending_publishers,
)
from informes.edit_session import MAX_CURSOS, CardEditSession, EditSession, coerce_field
from informes.exports import write_all_reports_csv
from informes.feed import ChangeFeed, feed
from informes.forms import PeriodEndForm, PioneerApplicationForm, SelectionForm
from informes.models import PioneerApplication, Publisher, ServiceReport, WatchEvent, WatchSchedule
from informes.pdf import decode_signature, pdf_filename, render_application_pdf
from informes.periods import (
    MonthRef,
    calendar_year_for,
    chart_window,
    current_service_year,
    month_label,
    next_month,
    rolling_window,
    service_year_months,
)
from informes.snapshot import PublisherRecord, ReportRecord, Snapshot, load_snapshot

# 1x1 transparent PNG
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

PR = Publisher.PRECURSOR_REGULAR


def pub(pid, nombre="Pub", apellido="", grupo="1", estatus=Publisher.ESTATUS_ACTIVO, priv_adicional=""):
    return PublisherRecord(
        id=pid,
        nombre=nombre,
        apellido=apellido,
        grupo=grupo,
        estatus=estatus,
        priv_adicional=priv_adicional,
    )


def rep(pid, mes, anio, participacion=True, pa="", cursos=None, horas=None, rid=None):
    return ReportRecord(
        id=rid,
        publicador_id=pid,
        anio_calendario=anio,
        mes=mes,
        participacion=participacion,
        precursor_auxiliar=pa,
        cursos_biblicos=cursos,
        horas=horas,
    )


# ----------------------------
# Periods
# ----------------------------
class PeriodTests(SimpleTestCase):
    def test_rolling_window_starts_at_end_month_and_wraps_year(self):
        window = rolling_window("Marzo", 2024, 6)
        self.assertEqual(window[0], MonthRef("Marzo", 2024))
        self.assertEqual(
            window,
            [
                MonthRef("Marzo", 2024),
                MonthRef("Febrero", 2024),
                MonthRef("Enero", 2024),
                MonthRef("Diciembre", 2023),
                MonthRef("Noviembre", 2023),
                MonthRef("Octubre", 2023),
            ],
        )

    def test_rolling_window_each_entry_is_one_month_earlier(self):
        window = rolling_window("Febrero", 2025, 14)
        for newer, older in zip(window, window[1:]):
            self.assertEqual(next_month(older), newer)

    def test_next_month_wraps_december(self):
        self.assertEqual(next_month(MonthRef("Diciembre", 2023)), MonthRef("Enero", 2024))
        self.assertEqual(next_month(MonthRef("Marzo", 2024)), MonthRef("Abril", 2024))

    def test_service_year_runs_september_to_august(self):
        months = service_year_months(2024)
        self.assertEqual(len(months), 12)
        self.assertEqual(months[0], MonthRef("Septiembre", 2023))
        self.assertEqual(months[3], MonthRef("Diciembre", 2023))
        self.assertEqual(months[4], MonthRef("Enero", 2024))
        self.assertEqual(months[-1], MonthRef("Agosto", 2024))
        self.assertEqual(calendar_year_for("Octubre", 2024), 2023)
        self.assertEqual(calendar_year_for("Agosto", 2024), 2024)

    def test_chart_window_ends_at_selected_month(self):
        window = chart_window(2024, "Marzo")
        self.assertEqual(len(window), 12)
        self.assertEqual(window[0], MonthRef("Abril", 2023))
        self.assertEqual(window[-1], MonthRef("Marzo", 2024))

        window = chart_window(2024, "Octubre")
        self.assertEqual(window[-1], MonthRef("Octubre", 2023))

    def test_current_service_year(self):
        self.assertEqual(current_service_year(datetime.date(2023, 9, 1)), 2024)
        self.assertEqual(current_service_year(datetime.date(2024, 8, 31)), 2024)
        self.assertEqual(current_service_year(datetime.date(2024, 1, 15)), 2024)

    def test_month_label(self):
        self.assertEqual(month_label(MonthRef("Marzo", 2024)), "Mar-24")
        self.assertEqual(month_label(MonthRef("Septiembre", 2023)), "Sep-23")


# ----------------------------
# Snapshot records
# ----------------------------
class ReportRecordTests(SimpleTestCase):
    def test_malformed_numbers_are_treated_as_absent(self):
        r = rep(1, "Marzo", 2024, cursos="abc", horas="-3")
        self.assertIsNone(r.cursos_biblicos)
        self.assertIsNone(r.horas)
        self.assertEqual(r.courses, 0)
        self.assertEqual(r.hours, 0)

    def test_numeric_strings_are_parsed(self):
        r = rep(1, "Marzo", 2024, cursos="2", horas="12.5")
        self.assertEqual(r.cursos_biblicos, 2)
        self.assertEqual(r.horas, 12.5)


# ----------------------------
# Classification
# ----------------------------
class ClassificationTests(SimpleTestCase):
    def test_pending_iff_no_participating_report(self):
        snap = Snapshot(
            publishers=[pub(1), pub(2), pub(3), pub(4, estatus=Publisher.ESTATUS_INACTIVO)],
            reports=[
                rep(1, "Marzo", 2024),
                rep(2, "Marzo", 2024, participacion=False),
                rep(3, "Febrero", 2024),
            ],
        )
        pending = pending_publishers(snap, MonthRef("Marzo", 2024))
        self.assertEqual([p.id for p in pending], [2, 3])

    def test_march_gap_is_pending_and_irregular(self):
        snap = Snapshot(
            publishers=[pub(1, "Luis")],
            reports=[rep(1, m, 2024) for m in ("Enero", "Febrero", "Abril", "Mayo", "Junio")],
        )
        self.assertEqual([p.id for p in pending_publishers(snap, MonthRef("Marzo", 2024))], [1])

        irregular = irregular_publishers(snap, MonthRef("Junio", 2024), 6)
        self.assertEqual(len(irregular), 1)
        self.assertEqual(irregular[0].publisher.id, 1)
        self.assertEqual(irregular[0].missed, ("Mar",))

    def test_irregular_missed_months_are_oldest_first(self):
        snap = Snapshot(
            publishers=[pub(1)],
            reports=[rep(1, m, 2024) for m in ("Febrero", "Abril", "Mayo")],
        )
        irregular = irregular_publishers(snap, MonthRef("Junio", 2024), 6)
        self.assertEqual(irregular[0].missed, ("Ene", "Mar", "Jun"))

    def test_regular_reporter_is_not_irregular(self):
        snap = Snapshot(
            publishers=[pub(1)],
            reports=[rep(1, m.month, m.year) for m in rolling_window("Junio", 2024, 6)],
        )
        self.assertEqual(irregular_publishers(snap, MonthRef("Junio", 2024), 6), [])

    def test_newly_inactive_fires_once_per_transition(self):
        snap = Snapshot(
            publishers=[pub(1), pub(2)],
            reports=[
                rep(1, "Septiembre", 2023),
                # publisher 2 keeps reporting
                rep(2, "Septiembre", 2023),
                rep(2, "Marzo", 2024),
            ],
        )
        self.assertEqual([p.id for p in newly_inactive_publishers(snap, MonthRef("Marzo", 2024))], [1])
        self.assertEqual(newly_inactive_publishers(snap, MonthRef("Abril", 2024)), [])
        # One month earlier the streak is only five months long.
        self.assertEqual(newly_inactive_publishers(snap, MonthRef("Febrero", 2024)), [])

    def test_newly_inactive_needs_participating_boundary_report(self):
        snap = Snapshot(
            publishers=[pub(1)],
            reports=[rep(1, "Septiembre", 2023, participacion=False)],
        )
        self.assertEqual(newly_inactive_publishers(snap, MonthRef("Marzo", 2024)), [])

    def test_bucket_counts_sum_to_participating_reports(self):
        snap = Snapshot(
            publishers=[pub(1, priv_adicional=PR), pub(2), pub(3), pub(4, priv_adicional=PR)],
            reports=[
                rep(1, "Mayo", 2024),
                rep(2, "Mayo", 2024, pa="PA"),
                rep(3, "Mayo", 2024),
                rep(4, "Mayo", 2024, pa="PA"),
                rep(5, "Mayo", 2024),  # unknown publisher
                rep(3, "Abril", 2024),
            ],
        )
        participating = [r for r in snap.reports_for(MonthRef("Mayo", 2024)) if r.participacion]
        buckets = partition_reports(snap, participating)
        self.assertEqual(sum(len(v) for v in buckets.values()), len(participating))
        self.assertEqual(len(buckets[BUCKET_REGULARES]), 1)
        self.assertEqual(len(buckets[BUCKET_AUXILIARES]), 2)
        self.assertEqual(len(buckets[BUCKET_PUBLICADORES]), 2)

    def test_distinct_auxiliaries_deduplicates_by_publisher(self):
        snap = Snapshot(
            publishers=[pub(1), pub(2), pub(3)],
            reports=[
                rep(1, "Julio", 2024, pa="PA"),
                rep(1, "Septiembre", 2024, pa="PA"),
                rep(1, "Noviembre", 2024, pa="PA"),
                rep(2, "Diciembre", 2024, pa="PA"),
                rep(3, "Junio", 2024, pa="PA"),  # outside the window
            ],
        )
        window = rolling_window("Diciembre", 2024, 6)
        self.assertEqual(distinct_auxiliaries(snap, window), {1, 2})
        self.assertEqual(window_summary(snap, MonthRef("Diciembre", 2024), 6).auxiliary_pioneers, 2)

    def test_group_by_name_sorts_groups_and_members(self):
        pubs = [pub(1, "zoe", grupo="2"), pub(2, "Ana", grupo="2"), pub(3, "Bea", grupo=""), pub(4, "Carla", grupo="1")]
        grouped = group_by_name(pubs)
        self.assertEqual(list(grouped), ["1", "2", NO_GROUP])
        self.assertEqual([p.nombre for p in grouped["2"]], ["Ana", "zoe"])


# ----------------------------
# Aggregation
# ----------------------------
class MonthlyTotalsTests(SimpleTestCase):
    def test_regular_pioneer_counted_once_in_regulares(self):
        ana = pub(1, "Ana", "Gómez", priv_adicional=PR)
        snap = Snapshot(publishers=[ana], reports=[rep(1, "Mayo", 2024, horas=55, cursos=3)])

        totals = monthly_totals(snap, MonthRef("Mayo", 2024))

        self.assertEqual(totals.regulares.cantidad, 1)
        self.assertEqual(totals.regulares.horas, 55)
        self.assertEqual(totals.regulares.cursos, 3)
        self.assertEqual(totals.publicadores.cantidad, 0)
        self.assertEqual(totals.auxiliares.cantidad, 0)

    def test_grand_totals(self):
        snap = Snapshot(
            publishers=[pub(1, priv_adicional=PR), pub(2), pub(3)],
            reports=[
                rep(1, "Mayo", 2024, horas=50, cursos=2),
                rep(2, "Mayo", 2024, pa="PA", horas=30, cursos=1),
                rep(3, "Mayo", 2024, horas=8, cursos=4),
                rep(3, "Junio", 2024, horas=9, cursos=9),
                rep(2, "Mayo", 2023, horas=9, cursos=9),
            ],
        )
        totals = monthly_totals(snap, MonthRef("Mayo", 2024))

        self.assertIsNone(totals.publicadores.horas)
        self.assertEqual(totals.publicadores.cursos, 4)
        self.assertEqual(totals.totales.cantidad, 3)
        self.assertEqual(totals.totales.horas, 80)
        self.assertEqual(totals.totales.cursos, 7)
        self.assertEqual([label for label, _ in totals.rows()][0], "Publicadores que informaron")

    def test_non_participating_reports_are_excluded(self):
        snap = Snapshot(publishers=[pub(1)], reports=[rep(1, "Mayo", 2024, participacion=False, cursos=3)])
        totals = monthly_totals(snap, MonthRef("Mayo", 2024))
        self.assertEqual(totals.totales.cantidad, 0)
        self.assertEqual(totals.totales.cursos, 0)

    def test_window_summary(self):
        snap = Snapshot(
            publishers=[
                pub(1, priv_adicional=PR),
                pub(2, priv_adicional=PR, estatus=Publisher.ESTATUS_INACTIVO),
                pub(3),
            ],
            reports=[
                rep(1, "Mayo", 2024),
                rep(3, "Enero", 2024),
                rep(3, "Febrero", 2024),
                rep(2, "Noviembre", 2023),  # outside
            ],
        )
        summary = window_summary(snap, MonthRef("Mayo", 2024), 6)
        self.assertEqual(summary.regular_pioneers, 1)
        self.assertEqual(summary.active_publishers, 2)
        self.assertEqual(summary.auxiliary_pioneers, 0)
        self.assertEqual(summary.window[0], MonthRef("Mayo", 2024))


class DashboardTests(SimpleTestCase):
    def setUp(self):
        self.snap = Snapshot(
            publishers=[
                pub(1, "Raúl", priv_adicional=PR),
                pub(2, "Bruno"),
                pub(3, "Carmen"),
                pub(4, "Diana"),
                pub(5, "Elsa", priv_adicional=PR),
            ],
            reports=[
                rep(1, "Mayo", 2024, cursos=2, horas=50),
                rep(2, "Mayo", 2024, cursos=1),
                rep(3, "Mayo", 2024, pa="PA", cursos=4, horas=30),
                rep(5, "Mayo", 2024, horas=50),
                rep(4, "Enero", 2024, pa="PA"),
            ],
        )

    def test_course_stats(self):
        stats = course_stats(self.snap, MonthRef("Mayo", 2024))
        self.assertEqual(stats.total_courses, 7)
        self.assertEqual(stats.aux_pioneer_courses, 4)
        self.assertEqual(stats.reg_pioneer_courses, 2)
        self.assertEqual(stats.publisher_courses, 1)
        self.assertEqual(stats.publishers_with_courses, 3)
        self.assertEqual(stats.total_active_publishers, 5)
        self.assertEqual(stats.aux_pioneers_last_6_months, 2)
        self.assertEqual(stats.regular_pioneers_without_courses, 1)
        self.assertEqual(stats.publishers_without_courses, 2)

    def test_pioneer_stats(self):
        stats = pioneer_stats(self.snap, MonthRef("Mayo", 2024))
        self.assertEqual(stats.regular_pioneers, 2)
        self.assertEqual(stats.auxiliary_this_month, 1)
        self.assertEqual(stats.auxiliary_names, ["Carmen"])

    def test_chart_series_courses(self):
        bars = chart_series(self.snap, 2024, "Mayo", METRIC_COURSES)
        self.assertEqual(len(bars), 12)
        self.assertEqual(bars[-1].label, "May-24")
        self.assertEqual(bars[-1].value, 7)
        self.assertTrue(bars[-1].highlighted)
        self.assertEqual(sum(1 for b in bars if b.highlighted), 1)

    def test_chart_series_auxiliaries(self):
        bars = {b.label: b.value for b in chart_series(self.snap, 2024, "Mayo", METRIC_AUXILIARIES)}
        self.assertEqual(bars["Ene-24"], 1)
        self.assertEqual(bars["May-24"], 1)
        self.assertEqual(bars["Feb-24"], 0)

    def test_chart_series_rejects_unknown_metric(self):
        with self.assertRaises(ValueError):
            chart_series(self.snap, 2024, "Mayo", "visits")

    def test_approved_pioneers_current_and_next_month(self):
        apps = [
            PioneerApplication(nombre="Beto", mes="Marzo y Abril", status=PioneerApplication.STATUS_APROBADO),
            PioneerApplication(nombre="Alma", de_continuo=True, status=PioneerApplication.STATUS_APROBADO),
            PioneerApplication(nombre="Ciro", mes="Junio", status=PioneerApplication.STATUS_APROBADO),
            PioneerApplication(nombre="Dora", mes="Marzo", status=PioneerApplication.STATUS_PENDIENTE),
        ]
        approved = approved_pioneers(apps, MonthRef("Marzo", 2024))
        self.assertEqual(approved.names, ["Alma", "Beto"])
        self.assertEqual(approved.next_month, "Abril")
        self.assertEqual(approved.count, 2)

        approved = approved_pioneers(apps, MonthRef("Mayo", 2024))
        self.assertEqual(approved.names, ["Alma", "Ciro"])


class ServiceYearTests(SimpleTestCase):
    def setUp(self):
        self.snap = Snapshot(
            publishers=[pub(1, "Raúl", priv_adicional=PR), pub(2, "Bruno")],
            reports=[
                rep(1, "Septiembre", 2023, horas=50, cursos=1),
                rep(1, "Agosto", 2024, horas=45),
                rep(2, "Octubre", 2023, pa="PA", horas=30, cursos=2),
                rep(2, "Agosto", 2023, horas=99),  # previous service year
            ],
        )

    def test_service_year_totals(self):
        totals = service_year_totals(self.snap, 2024)
        self.assertEqual(totals.months[0].ref, MonthRef("Septiembre", 2023))
        self.assertEqual(totals.months[0].regulares.cantidad, 1)
        self.assertEqual(totals.months[0].regulares.horas, 50)
        self.assertEqual(totals.months[1].auxiliares.cantidad, 1)
        self.assertEqual(totals.months[1].auxiliares.cursos, 2)
        self.assertEqual(totals.months[1].publicadores.cantidad, 1)
        self.assertEqual(totals.regular_hours, 95)

    def test_publisher_card(self):
        card = publisher_card(self.snap, 1, 2024)
        self.assertEqual(len(card.rows), 12)
        self.assertEqual(card.rows[0][1].horas, 50)
        self.assertIsNone(card.rows[1][1])
        self.assertEqual(card.total_hours, 95)
        self.assertIsNone(publisher_card(self.snap, 99, 2024))

    def test_all_reports_csv_is_ordered_by_month(self):
        snap = Snapshot(publishers=self.snap.publishers, reports=self.snap.reports + (rep(99, "Mayo", 2024),))
        out = io.StringIO()
        self.assertEqual(write_all_reports_csv(snap, out), 5)

        rows = list(csv.reader(io.StringIO(out.getvalue())))
        self.assertEqual(rows[0][:3], ["Año", "Mes", "Publicador"])
        self.assertEqual(rows[1], ["2023", "Agosto", "Bruno", "Sí", "No", "99", "", ""])
        self.assertEqual(rows[3], ["2023", "Octubre", "Bruno", "Sí", "Sí", "30", "2", ""])
        self.assertEqual(rows[4][:3], ["2024", "Mayo", "Desconocido"])
        self.assertEqual(rows[5][:3], ["2024", "Agosto", "Raúl"])


class GroupTests(SimpleTestCase):
    def setUp(self):
        self.snap = Snapshot(
            publishers=[
                pub(1, "Raúl", grupo="1", priv_adicional=PR),
                pub(2, "Bruno", grupo="1"),
                pub(3, "Carmen", grupo="1"),
                pub(4, "Diana", grupo="1"),
                pub(5, "Elsa", grupo="2", estatus=Publisher.ESTATUS_INACTIVO),
                pub(6, "Fidel", grupo="", estatus=Publisher.ESTATUS_FALLECIO),
                pub(7, "Gala", grupo=""),
            ],
            reports=[
                rep(1, "Mayo", 2024, horas=50),
                rep(2, "Mayo", 2024),
                rep(3, "Mayo", 2024, pa="PA"),
                rep(4, "Mayo", 2024, participacion=False),
            ],
        )

    def test_group_summary(self):
        summary = group_summary(self.snap)
        self.assertEqual(list(summary.active), ["1", NO_GROUP])
        self.assertEqual(summary.active["1"].pr_count, 1)
        self.assertEqual([p.nombre for p in summary.active["1"].members], ["Bruno", "Carmen", "Diana", "Raúl"])
        self.assertEqual([p.id for p in summary.inactive["2"]], [5])
        self.assertEqual([p.id for p in summary.other_statuses[Publisher.ESTATUS_FALLECIO]], [6])

    def test_group_month_rows_states(self):
        report = group_month_rows(self.snap, "1", MonthRef("Mayo", 2024))
        states = {row.publisher.id: row.state for row in report.rows}
        self.assertEqual(states, {1: ROW_REGULAR, 2: ROW_PUBLICADOR, 3: ROW_AUXILIAR, 4: ROW_PENDIENTE})
        self.assertEqual(report.informed, 3)
        self.assertEqual(report.pending, 1)
        self.assertEqual(report.total, 4)


# ----------------------------
# Edit session
# ----------------------------
class EditSessionTests(SimpleTestCase):
    def setUp(self):
        self.ref = MonthRef("Mayo", 2024)
        self.session = EditSession(
            [pub(1), pub(2)],
            [rep(1, "Mayo", 2024, horas=10, cursos=1, rid=7), rep(1, "Abril", 2024)],
            self.ref,
        )

    def test_new_draft_starts_blank_for_the_session_month(self):
        self.session.set_field(2, "cursos_biblicos", "3")
        draft = self.session.drafts[2]
        self.assertFalse(draft["participacion"])
        self.assertEqual(draft["precursor_auxiliar"], "")
        self.assertEqual(draft["cursos_biblicos"], 3)
        self.assertEqual((draft["mes"], draft["anio_calendario"]), ("Mayo", 2024))

    def test_field_coercion(self):
        self.assertTrue(coerce_field("participacion", "on"))
        self.assertFalse(coerce_field("participacion", ""))
        self.assertEqual(coerce_field("precursor_auxiliar", True), "PA")
        self.assertEqual(coerce_field("precursor_auxiliar", ""), "")
        self.assertIsNone(coerce_field("horas", ""))
        self.assertEqual(coerce_field("horas", "12,5"), 12.5)
        self.assertIsNone(coerce_field("notas", "  "))
        with self.assertRaises(ValueError):
            coerce_field("horas", "doce")
        with self.assertRaises(ValueError):
            coerce_field("publicador", "1")

    def test_numbers_must_fit_their_columns(self):
        self.assertEqual(coerce_field("cursos_biblicos", str(MAX_CURSOS)), MAX_CURSOS)
        self.assertEqual(coerce_field("horas", "99999,9"), 99999.9)
        for field, value in (("cursos_biblicos", "1e30"), ("cursos_biblicos", "2147483648"), ("horas", "12345678")):
            with self.assertRaises(ValueError, msg=f"{field}={value}"):
                coerce_field(field, value)
        with self.assertRaises(ValueError):
            coerce_field("horas", "nan")

    def test_oversized_value_never_reaches_a_draft(self):
        with self.assertRaises(ValueError):
            self.session.apply(2, {"participacion": "on", "cursos_biblicos": "1e30"})
        self.assertEqual(self.session.drafts_to_save(), [])

    def test_apply_records_only_changes(self):
        self.session.apply(
            1,
            {"participacion": "on", "precursor_auxiliar": "", "cursos_biblicos": "1", "horas": "10", "notas": ""},
        )
        self.assertEqual(self.session.drafts, {})

        self.session.apply(1, {"participacion": "on", "horas": "12"})
        self.assertEqual(self.session.drafts[1]["horas"], 12.0)
        self.assertEqual(self.session.drafts[1]["cursos_biblicos"], 1)

    def test_drafts_to_save_skips_unknown_publishers(self):
        self.session.set_field(2, "participacion", True)
        self.session.set_field(99, "participacion", True)
        saved = self.session.drafts_to_save()
        self.assertEqual([r.publicador_id for r in saved], [2])
        self.assertTrue(saved[0].participacion)

    def test_rows_show_drafts_over_originals(self):
        self.session.set_field(1, "notas", "Enfermo")
        rows = {p.id: (current, original) for p, current, original in self.session.rows()}
        self.assertEqual(rows[1][0]["notas"], "Enfermo")
        self.assertEqual(rows[1][1].id, 7)
        self.assertIsNone(rows[2][1])


class CardEditSessionTests(SimpleTestCase):
    def setUp(self):
        self.months = service_year_months(2024)
        self.session = CardEditSession(
            1,
            [rep(1, "Septiembre", 2023, horas=50, rid=3), rep(2, "Octubre", 2023), rep(1, "Septiembre", 2022)],
            self.months,
        )

    def test_originals_are_keyed_by_month(self):
        self.assertEqual(list(self.session.originals), [MonthRef("Septiembre", 2023)])
        rows = self.session.rows()
        self.assertEqual(len(rows), 12)
        self.assertEqual(rows[0][2].id, 3)
        self.assertIsNone(rows[1][2])

    def test_drafts_carry_the_month_they_were_edited_for(self):
        octubre = MonthRef("Octubre", 2023)
        self.session.apply(octubre, {"participacion": "on", "horas": "4"})
        self.session.apply(self.months[0], {"participacion": "on", "horas": "50"})

        saved = self.session.drafts_to_save()
        self.assertEqual(len(saved), 1)
        self.assertEqual((saved[0].publicador_id, saved[0].mes, saved[0].anio_calendario), (1, "Octubre", 2023))
        self.assertEqual(saved[0].horas, 4)


# ----------------------------
# Models
# ----------------------------
class PublisherModelTests(TestCase):
    def test_full_name_skips_blank_and_na(self):
        p = Publisher.objects.create(nombre="Ana", apellido="Gómez", segundo_apellido="n/a", apellido_casada="")
        self.assertEqual(p.full_name, "Ana Gómez")
        self.assertEqual(str(p), "Ana Gómez")


class PioneerApplicationModelTests(TestCase):
    def setUp(self):
        self.app = PioneerApplication.objects.create(
            nombre="Ana Gómez",
            mes="Marzo",
            fecha=datetime.date(2024, 2, 20),
            horas="30",
            firma_solicitante=PNG_DATA_URL,
        )

    def test_third_signature_approves(self):
        self.assertTrue(self.app.add_committee_signature(PNG_DATA_URL))
        self.assertTrue(self.app.add_committee_signature(PNG_DATA_URL))
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, PioneerApplication.STATUS_PENDIENTE)
        self.assertEqual(self.app.signature_count, 2)

        self.assertTrue(self.app.add_committee_signature(PNG_DATA_URL))
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, PioneerApplication.STATUS_APROBADO)
        self.assertTrue(self.app.is_fully_signed)

    def test_signing_a_full_application_changes_nothing(self):
        for _ in range(3):
            self.app.add_committee_signature(PNG_DATA_URL)
        with self.assertLogs("informes.models", "WARNING"):
            self.assertFalse(self.app.add_committee_signature("data:image/png;base64,AAAA"))
        self.app.refresh_from_db()
        self.assertEqual(self.app.firma3, PNG_DATA_URL)

    def test_covers_month(self):
        self.app.mes = "Marzo, Abril and Mayo"
        self.assertEqual(self.app.month_names(), ["marzo", "abril", "mayo"])
        self.assertTrue(self.app.covers_month("Abril"))
        self.assertFalse(self.app.covers_month("Junio"))


class WatchScheduleTests(TestCase):
    def test_assign_and_clear_slot(self):
        schedule = WatchSchedule.objects.create(year=2024, day=WatchSchedule.DAY_TUESDAY)
        schedule.assign("Enero", "7:20-7:50pm", "Nacozari")
        schedule.save()
        schedule.refresh_from_db()
        self.assertEqual(schedule.assigned("Enero", "7:20-7:50pm"), "Nacozari")

        schedule.assign("Enero", "7:20-7:50pm", "")
        self.assertEqual(schedule.assigned("Enero", "7:20-7:50pm"), "")

    def test_assign_rejects_unknown_slot_or_month(self):
        schedule = WatchSchedule(year=2024, day=WatchSchedule.DAY_SATURDAY)
        with self.assertRaises(ValueError):
            schedule.assign("Enero", "7:20-7:50pm", "Nacozari")
        with self.assertRaises(ValueError):
            schedule.assign("January", "4:15-4:50pm", "Nacozari")


# ----------------------------
# Persistence
# ----------------------------
class StoreTests(TestCase):
    def setUp(self):
        self.ana = Publisher.objects.create(nombre="Ana", grupo="1")
        self.luis = Publisher.objects.create(nombre="Luis", grupo="1")

    def test_batch_upsert_creates_then_updates(self):
        n = store.batch_upsert_reports([rep(self.ana.pk, "Mayo", 2024, horas=5), rep(self.luis.pk, "Mayo", 2024)])
        self.assertEqual(n, 2)
        store.batch_upsert_reports([rep(self.ana.pk, "Mayo", 2024, horas=7, cursos=1)])

        self.assertEqual(ServiceReport.objects.count(), 2)
        report = ServiceReport.objects.get(publicador=self.ana, mes="Mayo", anio_calendario=2024)
        self.assertEqual(report.horas, 7)
        self.assertEqual(report.cursos_biblicos, 1)

    def test_batch_upsert_is_all_or_nothing(self):
        with self.assertLogs("informes.store", "ERROR"):
            with self.assertRaises(store.PersistenceError) as ctx:
                store.batch_upsert_reports([rep(self.ana.pk, "Mayo", 2024), rep(9999, "Mayo", 2024)])
        self.assertEqual(str(ctx.exception), "Error al guardar los cambios.")
        self.assertEqual(ServiceReport.objects.count(), 0)

    def test_empty_batch_is_a_no_op(self):
        self.assertEqual(store.batch_upsert_reports([]), 0)

    def test_value_too_large_for_the_column_is_a_persistence_error(self):
        with self.assertLogs("informes.store", "ERROR"):
            with self.assertRaises(store.PersistenceError):
                store.batch_upsert_reports([rep(self.ana.pk, "Mayo", 2024, cursos=10**30)])
        self.assertEqual(ServiceReport.objects.count(), 0)

        with mock.patch("informes.store._upsert", side_effect=OverflowError("too large")):
            with self.assertLogs("informes.store", "ERROR"):
                with self.assertRaises(store.PersistenceError):
                    store.save_report(rep(self.ana.pk, "Mayo", 2024))

    def test_single_save_and_delete(self):
        report = store.save_report(rep(self.ana.pk, "Junio", 2024, pa="PA", horas=30))
        self.assertTrue(report.is_auxiliary)
        self.assertTrue(store.delete_report(report.pk))
        self.assertFalse(store.delete_report(report.pk))

    def test_update_group(self):
        self.assertTrue(store.update_group(self.ana.pk, " 3 "))
        self.ana.refresh_from_db()
        self.assertEqual(self.ana.grupo, "3")
        self.assertFalse(store.update_group(9999, "3"))


# ----------------------------
# Change feed
# ----------------------------
class ChangeFeedTests(TestCase):
    def test_subscribe_publish_unsubscribe(self):
        local = ChangeFeed()
        received = []
        unsubscribe = local.subscribe(received.append)
        snap = Snapshot()
        local.publish(snap)
        unsubscribe()
        local.publish(snap)
        self.assertEqual(received, [snap])
        self.assertFalse(local.has_subscribers)

    def test_failing_subscriber_does_not_stop_others(self):
        local = ChangeFeed()
        received = []

        def broken(snapshot):
            raise RuntimeError("boom")

        local.subscribe(broken)
        local.subscribe(received.append)
        with self.assertLogs("informes.feed", "ERROR"):
            local.publish(Snapshot())
        self.assertEqual(len(received), 1)

    def test_saving_a_report_publishes_a_fresh_snapshot(self):
        received = []
        unsubscribe = feed.subscribe(received.append)
        self.addCleanup(unsubscribe)

        with self.captureOnCommitCallbacks(execute=True):
            ana = Publisher.objects.create(nombre="Ana")
            ServiceReport.objects.create(publicador=ana, anio_calendario=2024, mes="Mayo", participacion=True)

        self.assertTrue(received)
        latest = received[-1]
        self.assertEqual([p.nombre for p in latest.publishers], ["Ana"])
        self.assertTrue(latest.has_reported(ana.pk, MonthRef("Mayo", 2024)))

    def test_load_snapshot_reads_models(self):
        ana = Publisher.objects.create(nombre="Ana", priv_adicional=PR)
        ServiceReport.objects.create(publicador=ana, anio_calendario=2024, mes="Mayo", participacion=True, horas=55)
        snap = load_snapshot()
        self.assertTrue(snap.publisher(ana.pk).is_regular_pioneer)
        self.assertEqual(snap.report(ana.pk, MonthRef("Mayo", 2024)).horas, 55)


# ----------------------------
# PDF
# ----------------------------
class PdfTests(TestCase):
    def test_render_application_pdf(self):
        app = PioneerApplication.objects.create(
            nombre="Ana Gómez",
            mes="Marzo y Abril",
            de_continuo=True,
            fecha=datetime.date(2024, 2, 20),
            horas="30",
            firma_solicitante=PNG_DATA_URL,
            firma1=PNG_DATA_URL,
        )
        data = render_application_pdf(app)
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(pdf_filename(app), "Solicitud_PA_Ana_Gómez.pdf")

    def test_bad_signature_is_skipped(self):
        with self.assertLogs("informes.pdf", "WARNING"):
            self.assertIsNone(decode_signature("not-a-data-url"))
        self.assertIsNone(decode_signature(""))


# ----------------------------
# Forms
# ----------------------------
class PioneerApplicationFormTests(TestCase):
    def _data(self, **overrides):
        data = {
            "horas": "30",
            "mes": "Marzo",
            "fecha": "2024-02-20",
            "nombre": "Ana Gómez",
            "firma_solicitante": PNG_DATA_URL,
        }
        data.update(overrides)
        return data

    def test_valid_application(self):
        form = PioneerApplicationForm(data=self._data(), allow_15_hours=False)
        self.assertTrue(form.is_valid(), form.errors)

    def test_fifteen_hours_only_when_enabled(self):
        form = PioneerApplicationForm(data=self._data(horas="15"), allow_15_hours=False)
        self.assertFalse(form.is_valid())
        self.assertIn("horas", form.errors)

        form = PioneerApplicationForm(data=self._data(horas="15"), allow_15_hours=True)
        self.assertTrue(form.is_valid(), form.errors)

    def test_signature_and_hours_are_required(self):
        form = PioneerApplicationForm(data=self._data(firma_solicitante="", horas=""))
        self.assertFalse(form.is_valid())
        self.assertIn("firma_solicitante", form.errors)
        self.assertIn("horas", form.errors)

    def test_month_or_continuous_required(self):
        form = PioneerApplicationForm(data=self._data(mes=""))
        self.assertFalse(form.is_valid())
        self.assertIn("mes", form.errors)

        form = PioneerApplicationForm(data=self._data(mes="", de_continuo="on"))
        self.assertTrue(form.is_valid(), form.errors)


class SelectionFormTests(SimpleTestCase):
    def test_selection_from_query(self):
        selection = SelectionForm({"mes": "Octubre", "anio": "2023", "grupo": " 2 "}).selection()
        self.assertEqual(selection.ref, MonthRef("Octubre", 2023))
        self.assertEqual(selection.service_year, 2024)
        self.assertEqual(selection.grupo, "2")

    def test_invalid_selection_falls_back_to_current_month(self):
        selection = SelectionForm({"mes": "Smarch", "anio": "x"}).selection()
        today = datetime.date.today()
        self.assertEqual(selection.year, today.year)

    def test_period_end_defaults_to_the_selected_month(self):
        selected = MonthRef("Mayo", 2024)
        self.assertEqual(PeriodEndForm({}).end(default=selected), selected)
        self.assertEqual(PeriodEndForm({"fin_mes": "Enero"}).end(default=selected), MonthRef("Enero", 2024))
        self.assertEqual(
            PeriodEndForm({"fin_mes": "Diciembre", "fin_anio": "2023"}).end(default=selected),
            MonthRef("Diciembre", 2023),
        )
        self.assertEqual(PeriodEndForm({"fin_mes": "Smarch"}).end(default=selected), selected)


# ----------------------------
# Views
# ----------------------------
class ViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(
            email="secretario@example.com",
            password="x",
            is_staff=True,
            role=User.ROLE_SECRETARIO,
            is_committee_member=True,
        )
        self.client.force_login(self.user)
        self.ana = Publisher.objects.create(nombre="Ana", apellido="Gómez", grupo="1", priv_adicional=PR)
        self.luis = Publisher.objects.create(nombre="Luis", grupo="1")

    def test_anonymous_is_sent_to_login(self):
        self.client.logout()
        response = self.client.get(reverse("informes:consolidado"))
        self.assertEqual(response.status_code, 302)
        self.assertIn("/admin/login/", response["Location"])

    def test_consolidated_report(self):
        ServiceReport.objects.create(
            publicador=self.ana, anio_calendario=2024, mes="Mayo", participacion=True, horas=55, cursos_biblicos=3
        )
        response = self.client.get(reverse("informes:consolidado"), {"mes": "Mayo", "anio": "2024"})
        self.assertEqual(response.status_code, 200)
        totals = response.context["totals"]
        self.assertEqual(totals.regulares.cantidad, 1)
        self.assertEqual(totals.regulares.horas, 55)
        self.assertEqual([p.id for p in response.context["pending_by_group"]["1"]], [self.luis.pk])

    @override_settings(INFORMES_WINDOW_SIZE=6)
    def test_consolidated_period_end_can_differ_from_selected_month(self):
        for month in rolling_window("Enero", 2024, 6):
            ServiceReport.objects.create(publicador=self.ana, anio_calendario=month.year, mes=month.month, participacion=True)
        query = {"mes": "Mayo", "anio": "2024"}

        response = self.client.get(reverse("informes:consolidado"), query)
        self.assertEqual(response.context["period_end"], MonthRef("Mayo", 2024))
        irregular = {item.publisher.id for items in response.context["irregular_by_group"].values() for item in items}
        self.assertEqual(irregular, {self.ana.pk, self.luis.pk})

        response = self.client.get(reverse("informes:consolidado"), {**query, "fin_mes": "Enero", "fin_anio": "2024"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["period_end"], MonthRef("Enero", 2024))
        self.assertEqual(response.context["summary"].window[0], MonthRef("Enero", 2024))
        self.assertEqual(response.context["summary"].active_publishers, 1)
        irregular = {item.publisher.id for items in response.context["irregular_by_group"].values() for item in items}
        self.assertEqual(irregular, {self.luis.pk})
        # the selected month still drives totals and pending
        self.assertEqual(response.context["totals"].ref, MonthRef("Mayo", 2024))
        self.assertEqual({p.id for p in response.context["pending_by_group"]["1"]}, {self.ana.pk, self.luis.pk})
        self.assertContains(response, 'name="fin_mes"')

    def test_group_report_batch_save(self):
        url = reverse("informes:grupo")
        response = self.client.post(
            url,
            {
                "mes": "Mayo",
                "anio": "2024",
                "grupo": "1",
                f"r{self.ana.pk}-participacion": "on",
                f"r{self.ana.pk}-horas": "55",
                f"r{self.ana.pk}-cursos_biblicos": "3",
                f"r{self.luis.pk}-participacion": "on",
                f"r{self.luis.pk}-precursor_auxiliar": "on",
            },
        )
        self.assertEqual(response.status_code, 302)
        self.assertEqual(ServiceReport.objects.count(), 2)
        luis = ServiceReport.objects.get(publicador=self.luis)
        self.assertEqual(luis.precursor_auxiliar, "PA")

        response = self.client.get(url, {"mes": "Mayo", "anio": "2024", "grupo": "1"})
        self.assertEqual(response.context["report"].informed, 2)

    def test_group_report_invalid_number_keeps_database_untouched(self):
        response = self.client.post(
            reverse("informes:grupo"),
            {"mes": "Mayo", "anio": "2024", "grupo": "1", f"r{self.ana.pk}-horas": "abc"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Valor numérico inválido")
        self.assertEqual(ServiceReport.objects.count(), 0)

    def test_group_report_oversized_number_is_reported_not_saved(self):
        response = self.client.post(
            reverse("informes:grupo"),
            {
                "mes": "Mayo",
                "anio": "2024",
                "grupo": "1",
                f"r{self.ana.pk}-participacion": "on",
                f"r{self.ana.pk}-cursos_biblicos": "1e30",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "El valor es demasiado grande")
        self.assertEqual(ServiceReport.objects.count(), 0)

    def test_group_report_save_failure_keeps_drafts(self):
        with mock.patch(
            "informes.views.store.batch_upsert_reports",
            side_effect=store.PersistenceError("Error al guardar los cambios."),
        ):
            response = self.client.post(
                reverse("informes:grupo"),
                {"mes": "Mayo", "anio": "2024", "grupo": "1", f"r{self.ana.pk}-participacion": "on"},
            )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Error al guardar los cambios.")
        self.assertTrue(response.context["session"].drafts[self.ana.pk]["participacion"])

    def test_single_report_entry_and_delete(self):
        response = self.client.post(
            reverse("informes:informe"),
            {"publicador": self.luis.pk, "anio_calendario": "2024", "mes": "Mayo", "participacion": "on", "cursos_biblicos": "2"},
        )
        self.assertEqual(response.status_code, 302)
        report = ServiceReport.objects.get(publicador=self.luis)
        self.assertEqual(report.cursos_biblicos, 2)

        response = self.client.post(
            reverse("informes:informe_eliminar", args=[report.pk]),
            {"mes": "Mayo", "anio": "2024", "grupo": "1"},
        )
        self.assertEqual(response.status_code, 302)
        self.assertFalse(ServiceReport.objects.exists())

    def test_dashboards_render(self):
        ServiceReport.objects.create(publicador=self.luis, anio_calendario=2024, mes="Mayo", participacion=True, precursor_auxiliar="PA")
        for name in ("cursos", "precursores", "grupos", "anual", "vigilancia", "solicitudes"):
            response = self.client.get(reverse(f"informes:{name}"), {"mes": "Mayo", "anio": "2024"})
            self.assertEqual(response.status_code, 200, name)

        response = self.client.get(reverse("informes:precursores"), {"mes": "Mayo", "anio": "2024"})
        self.assertEqual(response.context["stats"].auxiliary_names, ["Luis"])
        self.assertEqual(len(response.context["chart"]), 12)

    def test_publisher_card(self):
        response = self.client.get(reverse("informes:tarjeta", args=[self.ana.pk]), {"anio_servicio": "2024"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context["card"].rows), 12)
        response = self.client.get(reverse("informes:tarjeta", args=[9999]))
        self.assertEqual(response.status_code, 404)

    def test_publisher_card_edit_saves_changed_months(self):
        ServiceReport.objects.create(publicador=self.ana, anio_calendario=2023, mes="Septiembre", participacion=True, horas=50)
        url = reverse("informes:tarjeta", args=[self.ana.pk])

        response = self.client.get(url, {"anio_servicio": "2024", "editar": "1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context["session"].rows()), 12)
        self.assertContains(response, 'name="m11-horas"')

        response = self.client.post(
            url,
            {
                "anio_servicio": "2024",
                "m0-participacion": "on",
                "m0-horas": "52",
                "m1-participacion": "on",
                "m1-horas": "48",
                "m1-cursos_biblicos": "2",
            },
        )
        self.assertRedirects(response, f"{url}?anio_servicio=2024", fetch_redirect_response=False)
        septiembre = ServiceReport.objects.get(publicador=self.ana, mes="Septiembre", anio_calendario=2023)
        self.assertEqual(septiembre.horas, 52)
        octubre = ServiceReport.objects.get(publicador=self.ana, mes="Octubre", anio_calendario=2023)
        self.assertEqual(octubre.cursos_biblicos, 2)
        self.assertEqual(ServiceReport.objects.count(), 2)

    def test_publisher_card_edit_rejects_oversized_hours(self):
        url = reverse("informes:tarjeta", args=[self.ana.pk])
        response = self.client.post(url, {"anio_servicio": "2024", "m0-participacion": "on", "m0-horas": "12345678"})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "El valor es demasiado grande")
        self.assertFalse(ServiceReport.objects.exists())

    def test_assign_group(self):
        response = self.client.post(reverse("informes:grupos_asignar"), {"publicador": self.luis.pk, "grupo": "4"})
        self.assertEqual(response.status_code, 302)
        self.luis.refresh_from_db()
        self.assertEqual(self.luis.grupo, "4")

    def test_service_year_csv(self):
        ServiceReport.objects.create(publicador=self.ana, anio_calendario=2023, mes="Septiembre", participacion=True, horas=50)
        response = self.client.get(reverse("informes:anual_csv"), {"anio_servicio": "2024"})
        self.assertEqual(response.status_code, 200)
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8"))))
        self.assertEqual(rows[0][0], "mes")
        self.assertEqual(rows[1][:2], ["Septiembre", "2023"])
        self.assertEqual(rows[1][7], "50")
        self.assertEqual(rows[-1][0], "Total")

    def test_all_reports_csv(self):
        ServiceReport.objects.create(publicador=self.ana, anio_calendario=2024, mes="Mayo", participacion=True, horas=55)
        ServiceReport.objects.create(publicador=self.luis, anio_calendario=2024, mes="Abril", participacion=False)
        response = self.client.get(reverse("informes:informes_csv"))
        self.assertEqual(response.status_code, 200)
        self.assertIn("todos_los_informes_de_servicio.csv", response["Content-Disposition"])

        text = response.content.decode("utf-8")
        self.assertTrue(text.startswith("\ufeff"))
        rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
        self.assertEqual(rows[0][0], "Año")
        self.assertEqual(rows[1][:4], ["2024", "Abril", "Luis", "No"])
        self.assertEqual(rows[2][:6], ["2024", "Mayo", "Ana Gómez", "Sí", "No", "55"])


class PioneerApplicationViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.committee = User.objects.create_user(
            email="anciano@example.com", password="x", is_staff=True, is_committee_member=True
        )
        self.overseer = User.objects.create_user(
            email="super@example.com", password="x", is_staff=True, role=User.ROLE_OVERSEER
        )

    @override_settings(AUX_PIONEER_15H_ENABLED=False)
    def test_public_submission(self):
        response = self.client.get(reverse("informes:solicitud_nueva"))
        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, "15 Horas")

        response = self.client.post(
            reverse("informes:solicitud_nueva"),
            {"horas": "30", "mes": "Marzo", "fecha": "2024-02-20", "nombre": "Ana", "firma_solicitante": PNG_DATA_URL},
        )
        self.assertRedirects(response, reverse("informes:solicitud_gracias"))
        app = PioneerApplication.objects.get()
        self.assertEqual(app.status, PioneerApplication.STATUS_PENDIENTE)

    def test_committee_signs_until_approved(self):
        app = PioneerApplication.objects.create(
            nombre="Ana", mes="Marzo", fecha=datetime.date(2024, 2, 20), horas="30", firma_solicitante=PNG_DATA_URL
        )
        self.client.force_login(self.committee)
        url = reverse("informes:solicitud_firmar", args=[app.pk])
        for _ in range(3):
            self.client.post(url, {"firma": PNG_DATA_URL})
        app.refresh_from_db()
        self.assertEqual(app.status, PioneerApplication.STATUS_APROBADO)

        with self.assertLogs("informes.models", "WARNING"):
            self.client.post(url, {"firma": PNG_DATA_URL})

    def test_only_committee_members_sign(self):
        app = PioneerApplication.objects.create(
            nombre="Ana", mes="Marzo", fecha=datetime.date(2024, 2, 20), horas="30", firma_solicitante=PNG_DATA_URL
        )
        self.client.force_login(self.overseer)
        self.client.post(reverse("informes:solicitud_firmar", args=[app.pk]), {"firma": PNG_DATA_URL})
        app.refresh_from_db()
        self.assertEqual(app.signature_count, 0)

        response = self.client.post(reverse("informes:solicitud_eliminar", args=[app.pk]))
        self.assertEqual(response.status_code, 302)
        self.assertTrue(PioneerApplication.objects.filter(pk=app.pk).exists())

    def test_pdf_download(self):
        app = PioneerApplication.objects.create(
            nombre="Ana", mes="Marzo", fecha=datetime.date(2024, 2, 20), horas="30", firma_solicitante=PNG_DATA_URL
        )
        self.client.force_login(self.overseer)
        response = self.client.get(reverse("informes:solicitud_pdf", args=[app.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertTrue(response.content.startswith(b"%PDF"))


class WatchViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(email="admin@example.com", password="x", is_staff=True)
        self.client.force_login(self.user)

    @override_settings(WATCH_CONGREGATIONS=["Nacozari", "Las Jacarandas"])
    def test_assign_slot_and_add_event(self):
        response = self.client.post(
            reverse("informes:vigilancia_asignar"),
            {"year": "2024", "day": "tuesday", "month": "Enero", "slot": "7:20-7:50pm", "congregation": "Nacozari"},
        )
        self.assertEqual(response.status_code, 302)
        schedule = WatchSchedule.objects.get(year=2024, day="tuesday")
        self.assertEqual(schedule.assigned("Enero", "7:20-7:50pm"), "Nacozari")

        response = self.client.post(
            reverse("informes:vigilancia_evento"),
            {"year": "2024", "day": "saturday", "date": "2024-04-13", "description": "Asamblea", "congregation": "Las Jacarandas"},
        )
        self.assertEqual(response.status_code, 302)
        event = WatchEvent.objects.get()
        self.assertEqual(event.schedule.day, "saturday")

        response = self.client.get(reverse("informes:vigilancia"), {"anio": "2024"})
        self.assertContains(response, "Asamblea")

    @override_settings(WATCH_CONGREGATIONS=["Nacozari"])
    def test_invalid_slot_is_rejected(self):
        self.client.post(
            reverse("informes:vigilancia_asignar"),
            {"year": "2024", "day": "saturday", "month": "Enero", "slot": "7:20-7:50pm", "congregation": "Nacozari"},
        )
        self.assertFalse(WatchSchedule.objects.exists())


# ----------------------------
# Management commands
# ----------------------------
class CommandTests(TestCase):
    def setUp(self):
        self.ana = Publisher.objects.create(nombre="Ana", apellido="Gómez", priv_adicional=PR)
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _csv(self, text):
        path = os.path.join(self.tmp.name, "informes.csv")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_import_by_id_and_by_name(self):
        path = self._csv(
            "publicador_id,nombre,apellido,anio,mes,participacion,precursor_auxiliar,cursos,horas,notas\n"
            f"{self.ana.pk},,,2024,Mayo,si,,3,55,\n"
            ",ana,gómez,2024,abril,true,PA,,30,Campaña\n"
        )
        call_command("import_informes", "--csv", path, stdout=io.StringIO())

        mayo = ServiceReport.objects.get(publicador=self.ana, mes="Mayo")
        self.assertEqual(mayo.horas, 55)
        self.assertEqual(mayo.cursos_biblicos, 3)
        abril = ServiceReport.objects.get(publicador=self.ana, mes="Abril")
        self.assertEqual(abril.precursor_auxiliar, "PA")
        self.assertEqual(abril.notas, "Campaña")

    def test_import_skips_bad_rows_unless_strict(self):
        path = self._csv(
            "publicador_id,anio,mes,participacion\n"
            f"{self.ana.pk},2024,Mayo,si\n"
            f"{self.ana.pk},2024,Smarch,si\n"
        )
        call_command("import_informes", "--csv", path, stdout=io.StringIO(), stderr=io.StringIO())
        self.assertEqual(ServiceReport.objects.count(), 1)

        with self.assertRaises(CommandError):
            call_command("import_informes", "--csv", path, "--strict", stdout=io.StringIO(), stderr=io.StringIO())

    def test_import_skips_values_too_large_for_the_database(self):
        path = self._csv(
            "publicador_id,anio,mes,participacion,cursos,horas\n"
            f"{self.ana.pk},2024,Mayo,si,1e30,\n"
            f"{self.ana.pk},2024,Abril,si,,12345678\n"
            f"{self.ana.pk},2024,Marzo,si,2,10\n"
        )
        err = io.StringIO()
        call_command("import_informes", "--csv", path, stdout=io.StringIO(), stderr=err)
        self.assertEqual(list(ServiceReport.objects.values_list("mes", flat=True)), ["Marzo"])
        self.assertIn("demasiado grande", err.getvalue())

        with self.assertRaises(CommandError):
            call_command("import_informes", "--csv", path, "--strict", stdout=io.StringIO(), stderr=io.StringIO())

    def test_import_dry_run_writes_nothing(self):
        path = self._csv(f"publicador_id,anio,mes,participacion\n{self.ana.pk},2024,Mayo,si\n")
        call_command("import_informes", "--csv", path, "--dry-run", stdout=io.StringIO())
        self.assertFalse(ServiceReport.objects.exists())

    def test_import_requires_existing_file_and_columns(self):
        with self.assertRaises(CommandError):
            call_command("import_informes", "--csv", os.path.join(self.tmp.name, "missing.csv"))
        path = self._csv("nombre,participacion\nAna,si\n")
        with self.assertRaises(CommandError):
            call_command("import_informes", "--csv", path)

    def test_export_service_year(self):
        ServiceReport.objects.create(publicador=self.ana, anio_calendario=2024, mes="Agosto", participacion=True, horas=40)
        out = os.path.join(self.tmp.name, "anual.csv")
        call_command("export_informe_anual", "--anio-servicio", "2024", "--out", out, stdout=io.StringIO())

        with open(out, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        self.assertEqual(len(rows), 14)
        self.assertEqual(rows[12][:2], ["Agosto", "2024"])
        self.assertEqual(rows[12][6], "1")
        self.assertEqual(rows[-1][7], "40")
