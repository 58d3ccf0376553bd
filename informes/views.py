# informes/views.py
import datetime
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.contrib import messages
from django.contrib.admin.views.decorators import staff_member_required
from django.db import transaction
from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.views.decorators.http import require_POST

from . import store
from .aggregation import (
    METRIC_AUXILIARIES,
    METRIC_COURSES,
    approved_pioneers,
    chart_series,
    course_stats,
    group_month_rows,
    group_names,
    group_summary,
    monthly_totals,
    pioneer_stats,
    publisher_card,
    service_year_totals,
    window_summary,
)
from .classification import (
    group_by_name,
    irregular_publishers,
    newly_inactive_publishers,
    pending_publishers,
)
from .edit_session import EDITABLE_FIELDS, CardEditSession, EditSession
from .exports import ALL_REPORTS_FILENAME, write_all_reports_csv, write_service_year_csv
from .forms import (
    CommitteeSignatureForm,
    GroupAssignForm,
    PeriodEndForm,
    PioneerApplicationForm,
    SelectionForm,
    ServiceReportForm,
    ServiceYearForm,
    WatchAssignmentForm,
    WatchEventForm,
)
from .models import PioneerApplication, WatchEvent, WatchSchedule
from .pdf import pdf_filename, render_application_pdf
from .periods import MONTHS
from .snapshot import load_snapshot

logger = logging.getLogger(__name__)


# ----------------------------
# Helpers
# ----------------------------
def _redirect_with(name: str, query: dict):
    return redirect(f"{reverse(name)}?{urlencode(query)}")


def _posted_values(data, key, prefix: str = "r") -> dict:
    """Editor fields posted as <prefix><key>-<field>."""
    return {field: data.get(f"{prefix}{key}-{field}", "") for field in EDITABLE_FIELDS}


def _chart_context(bars) -> dict:
    return {
        "chart": bars,
        "chart_max": max((bar.value for bar in bars), default=0),
    }


# ----------------------------
# Monthly reports
# ----------------------------
@staff_member_required
def group_report(request):
    """
    /informes/grupo/?mes=Marzo&anio=2024&grupo=1[&editar=1]

    GET shows the group's month; POST saves the inline editor in one batch.
    """
    source = request.POST if request.method == "POST" else request.GET
    form = SelectionForm(source)
    selection = form.selection()
    snapshot = load_snapshot()

    report = None
    session = None
    editing = request.method == "POST" or source.get("editar") == "1"
    if selection.grupo:
        report = group_month_rows(snapshot, selection.grupo, selection.ref)
        if editing:
            session = EditSession(
                [row.publisher for row in report.rows],
                snapshot.reports_for(selection.ref),
                selection.ref,
            )

    if request.method == "POST":
        if session is None:
            messages.error(request, "Seleccione un grupo.")
            return redirect("informes:grupo")
        try:
            for pub in session.publishers:
                session.apply(pub.id, _posted_values(request.POST, pub.id))
        except ValueError as exc:
            messages.error(request, str(exc))
        else:
            try:
                saved = store.batch_upsert_reports(session.drafts_to_save())
            except store.PersistenceError as exc:
                messages.error(request, str(exc))
            else:
                if saved:
                    messages.success(request, f"Cambios guardados ({saved}).")
                else:
                    messages.info(request, "No hubo cambios.")
                return _redirect_with("informes:grupo", selection.as_query())

    return render(
        request,
        "informes/grupo.html",
        {
            "form": form,
            "selection": selection,
            "groups": group_names(snapshot),
            "months": MONTHS,
            "report": report,
            "session": session,
        },
    )


@staff_member_required
def consolidated_report(request):
    """
    /informes/consolidado/?mes=Marzo&anio=2024[&fin_mes=Enero&fin_anio=2024]

    Totals, pending and newly inactive use the selected month. The activity
    summary and the irregular list look back from the period end, which
    defaults to the selected month.
    """
    form = SelectionForm(request.GET)
    selection = form.selection()
    ref = selection.ref
    end = PeriodEndForm(request.GET).end(default=ref)
    snapshot = load_snapshot()
    size = settings.INFORMES_WINDOW_SIZE

    return render(
        request,
        "informes/consolidado.html",
        {
            "form": form,
            "selection": selection,
            "period_end": end,
            "months": MONTHS,
            "totals": monthly_totals(snapshot, ref),
            "summary": window_summary(snapshot, end, size),
            "pending_by_group": group_by_name(pending_publishers(snapshot, ref)),
            "newly_inactive": newly_inactive_publishers(snapshot, ref),
            "irregular_by_group": group_by_name(irregular_publishers(snapshot, end, size)),
        },
    )


@staff_member_required
def courses_dashboard(request):
    form = SelectionForm(request.GET)
    selection = form.selection()
    snapshot = load_snapshot()
    bars = chart_series(snapshot, selection.service_year, selection.month, METRIC_COURSES)
    return render(
        request,
        "informes/cursos.html",
        {
            "form": form,
            "selection": selection,
            "months": MONTHS,
            "stats": course_stats(snapshot, selection.ref),
            **_chart_context(bars),
        },
    )


@staff_member_required
def pioneers_dashboard(request):
    form = SelectionForm(request.GET)
    selection = form.selection()
    snapshot = load_snapshot()
    bars = chart_series(snapshot, selection.service_year, selection.month, METRIC_AUXILIARIES)
    applications = PioneerApplication.objects.filter(status=PioneerApplication.STATUS_APROBADO)
    return render(
        request,
        "informes/precursores.html",
        {
            "form": form,
            "selection": selection,
            "months": MONTHS,
            "stats": pioneer_stats(snapshot, selection.ref),
            "approved": approved_pioneers(applications, selection.ref),
            **_chart_context(bars),
        },
    )


# ----------------------------
# Groups
# ----------------------------
@staff_member_required
def groups_summary(request):
    snapshot = load_snapshot()
    return render(
        request,
        "informes/grupos.html",
        {
            "summary": group_summary(snapshot),
            "groups": group_names(snapshot),
            "assign_form": GroupAssignForm(),
        },
    )


@staff_member_required
@require_POST
def assign_group(request):
    form = GroupAssignForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Datos inválidos para el cambio de grupo.")
        return redirect("informes:grupos")

    pub = form.cleaned_data["publicador"]
    grupo = form.cleaned_data["grupo"]
    try:
        store.update_group(pub.pk, grupo)
    except store.PersistenceError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, f"{pub} ahora está en el grupo {grupo or 'Sin Grupo'}.")
    return redirect("informes:grupos")


# ----------------------------
# Single report entry
# ----------------------------
@staff_member_required
def report_entry(request):
    if request.method == "POST":
        form = ServiceReportForm(request.POST)
        if form.is_valid():
            record = form.to_record()
            try:
                store.save_report(record)
            except store.PersistenceError as exc:
                messages.error(request, str(exc))
            else:
                messages.success(request, "Informe guardado.")
                query = {"mes": record.mes, "anio": record.anio_calendario}
                grupo = form.cleaned_data["publicador"].grupo
                if grupo:
                    query["grupo"] = grupo
                return _redirect_with("informes:grupo", query)
    else:
        selection = SelectionForm(request.GET).selection()
        form = ServiceReportForm(
            initial={
                "publicador": request.GET.get("publicador"),
                "anio_calendario": selection.year,
                "mes": selection.month,
            }
        )

    return render(request, "informes/informe_form.html", {"form": form})


@staff_member_required
@require_POST
def delete_report(request, report_id: int):
    selection = SelectionForm(request.POST).selection()
    try:
        deleted = store.delete_report(report_id)
    except store.PersistenceError as exc:
        messages.error(request, str(exc))
    else:
        if deleted:
            messages.success(request, "Informe eliminado.")
        else:
            messages.warning(request, "El informe ya no existe.")
    return _redirect_with("informes:grupo", selection.as_query())


# ----------------------------
# Service year
# ----------------------------
@staff_member_required
def publisher_card_view(request, publisher_id: int):
    """
    /informes/publicador/7/tarjeta/?anio_servicio=2024[&editar=1]

    GET shows the record card; POST saves the edited months in one batch.
    """
    source = request.POST if request.method == "POST" else request.GET
    form = ServiceYearForm(source)
    service_year = form.service_year()
    snapshot = load_snapshot()
    card = publisher_card(snapshot, publisher_id, service_year)
    if card is None:
        raise Http404("Publicador no encontrado")

    session = None
    if request.method == "POST" or source.get("editar") == "1":
        session = CardEditSession(
            publisher_id,
            [report for _, report in card.rows if report is not None],
            [ref for ref, _ in card.rows],
        )

    if request.method == "POST":
        try:
            for index, ref in enumerate(session.months):
                session.apply(ref, _posted_values(request.POST, index, prefix="m"))
        except ValueError as exc:
            messages.error(request, str(exc))
        else:
            try:
                saved = store.batch_upsert_reports(session.drafts_to_save())
            except store.PersistenceError as exc:
                messages.error(request, str(exc))
            else:
                if saved:
                    messages.success(request, f"Cambios guardados ({saved}).")
                else:
                    messages.info(request, "No hubo cambios.")
                return redirect(
                    f"{reverse('informes:tarjeta', args=[publisher_id])}?{urlencode({'anio_servicio': service_year})}"
                )

    return render(request, "informes/tarjeta.html", {"form": form, "card": card, "session": session})


@staff_member_required
def service_year_report(request):
    form = ServiceYearForm(request.GET)
    totals = service_year_totals(load_snapshot(), form.service_year())
    return render(request, "informes/anual.html", {"form": form, "totals": totals})


@staff_member_required
def service_year_csv(request):
    service_year = ServiceYearForm(request.GET).service_year()
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="informe_anual_{service_year}.csv"'
    write_service_year_csv(load_snapshot(), service_year, response)
    return response


@staff_member_required
def all_reports_csv(request):
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{ALL_REPORTS_FILENAME}"'
    # BOM so spreadsheet programs detect UTF-8
    response.write("\ufeff")
    write_all_reports_csv(load_snapshot(), response)
    return response


# ----------------------------
# Auxiliary pioneer applications
# ----------------------------
def application_form(request):
    """Public: anyone with the link can apply."""
    if request.method == "POST":
        form = PioneerApplicationForm(request.POST)
        if form.is_valid():
            app = form.save()
            logger.info("New auxiliary pioneer application %s from %s.", app.pk, app.nombre)
            return redirect("informes:solicitud_gracias")
    else:
        form = PioneerApplicationForm(initial={"fecha": datetime.date.today()})

    return render(request, "informes/solicitud_form.html", {"form": form})


def application_thanks(request):
    return render(request, "informes/solicitud_gracias.html")


@staff_member_required
def application_list(request):
    if not getattr(request.user, "can_review_applications", False):
        messages.error(request, "No tiene permiso para ver las solicitudes.")
        return redirect("informes:consolidado")

    apps = list(PioneerApplication.objects.all())
    return render(
        request,
        "informes/solicitudes.html",
        {
            "pendientes": [a for a in apps if a.status == a.STATUS_PENDIENTE and not a.de_continuo],
            "aprobadas": [a for a in apps if a.status == a.STATUS_APROBADO and not a.de_continuo],
            "continuos": [a for a in apps if a.de_continuo],
            "sign_form": CommitteeSignatureForm(),
            "can_sign": getattr(request.user, "is_committee_member", False),
        },
    )


@staff_member_required
@require_POST
def sign_application(request, application_id: int):
    if not getattr(request.user, "is_committee_member", False):
        messages.error(request, "Solo los miembros del comité de servicio pueden firmar.")
        return redirect("informes:solicitudes")

    form = CommitteeSignatureForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Por favor, proporcione una firma.")
        return redirect("informes:solicitudes")

    with transaction.atomic():
        app = get_object_or_404(PioneerApplication.objects.select_for_update(), pk=application_id)
        signed = app.add_committee_signature(form.cleaned_data["firma"])

    if not signed:
        messages.warning(request, "Esta solicitud ya tiene todas las firmas.")
    elif app.status == PioneerApplication.STATUS_APROBADO:
        messages.success(request, f"Solicitud de {app.nombre} aprobada.")
    else:
        messages.success(request, "Firma guardada.")
    return redirect("informes:solicitudes")


@staff_member_required
@require_POST
def delete_application(request, application_id: int):
    if not getattr(request.user, "can_manage", False):
        messages.error(request, "No tiene permiso para eliminar solicitudes.")
        return redirect("informes:solicitudes")

    app = get_object_or_404(PioneerApplication, pk=application_id)
    app.delete()
    messages.success(request, "Solicitud eliminada.")
    return redirect("informes:solicitudes")


@staff_member_required
def application_pdf(request, application_id: int):
    app = get_object_or_404(PioneerApplication, pk=application_id)
    response = HttpResponse(render_application_pdf(app), content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="{pdf_filename(app)}"'
    return response


# ----------------------------
# Watch (vigilancia)
# ----------------------------
def _schedule(year: int, day: str) -> WatchSchedule:
    return WatchSchedule.objects.filter(year=year, day=day).first() or WatchSchedule(year=year, day=day)


@staff_member_required
def watch_schedule(request):
    try:
        year = int(request.GET.get("anio") or datetime.date.today().year)
    except ValueError:
        year = datetime.date.today().year

    schedules = [_schedule(year, day) for day, _ in WatchSchedule.DAY_CHOICES]
    grids = []
    for schedule in schedules:
        rows = [(month, [(slot, schedule.assigned(month, slot)) for slot in schedule.slots]) for month in MONTHS]
        grids.append((schedule, rows))
    events = WatchEvent.objects.filter(schedule__year=year).select_related("schedule")

    return render(
        request,
        "informes/vigilancia.html",
        {
            "year": year,
            "grids": grids,
            "events": events,
            "assign_form": WatchAssignmentForm(initial={"year": year}),
            "event_form": WatchEventForm(initial={"year": year}),
        },
    )


@staff_member_required
@require_POST
def watch_assign(request):
    form = WatchAssignmentForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Asignación inválida.")
        return _redirect_with("informes:vigilancia", {"anio": request.POST.get("year", "")})

    data = form.cleaned_data
    schedule, _ = WatchSchedule.objects.get_or_create(year=data["year"], day=data["day"])
    try:
        schedule.assign(data["month"], data["slot"], data["congregation"])
    except ValueError as exc:
        messages.error(request, str(exc))
    else:
        schedule.save(update_fields=["assignments"])
        messages.success(request, "Asignación guardada.")
    return _redirect_with("informes:vigilancia", {"anio": data["year"]})


@staff_member_required
@require_POST
def watch_add_event(request):
    form = WatchEventForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Evento inválido.")
        return _redirect_with("informes:vigilancia", {"anio": request.POST.get("year", "")})

    schedule, _ = WatchSchedule.objects.get_or_create(year=form.cleaned_data["year"], day=form.cleaned_data["day"])
    event = form.save(commit=False)
    event.schedule = schedule
    event.save()
    messages.success(request, "Evento especial agregado.")
    return _redirect_with("informes:vigilancia", {"anio": schedule.year})


@staff_member_required
@require_POST
def watch_delete_event(request, event_id: int):
    event = get_object_or_404(WatchEvent.objects.select_related("schedule"), pk=event_id)
    year = event.schedule.year
    event.delete()
    messages.success(request, "Evento eliminado.")
    return _redirect_with("informes:vigilancia", {"anio": year})
