# informes/forms.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from django import forms
from django.conf import settings

from .models import PioneerApplication, Publisher, WatchEvent, WatchSchedule
from .periods import (
    MONTH_CHOICES,
    MONTHS,
    SERVICE_YEAR_START_INDEX,
    MonthRef,
    current_month,
    current_service_year,
)
from .snapshot import ReportRecord

SIGNATURE_RE = re.compile(r"^data:image/(png|jpe?g);base64,[A-Za-z0-9+/=\s]+$")


def validate_signature(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise forms.ValidationError("Por favor, proporcione su firma.")
    if not SIGNATURE_RE.match(value):
        raise forms.ValidationError("La firma no es una imagen válida.")
    return value


# ----------------------------
# Selection (month / year / group)
# ----------------------------
@dataclass(frozen=True)
class Selection:
    month: str
    year: int
    grupo: str = ""

    @property
    def ref(self) -> MonthRef:
        return MonthRef(self.month, self.year)

    @property
    def service_year(self) -> int:
        if MONTHS.index(self.month) >= SERVICE_YEAR_START_INDEX:
            return self.year + 1
        return self.year

    def as_query(self) -> dict:
        query = {"mes": self.month, "anio": self.year}
        if self.grupo:
            query["grupo"] = self.grupo
        return query


class SelectionForm(forms.Form):
    mes = forms.ChoiceField(choices=MONTH_CHOICES, required=False, label="Mes")
    anio = forms.IntegerField(min_value=2000, max_value=2100, required=False, label="Año")
    grupo = forms.CharField(max_length=50, required=False, label="Grupo")

    def selection(self) -> Selection:
        """Falls back to the current month for anything missing or invalid."""
        today = current_month()
        data = self.cleaned_data if self.is_valid() else {}
        return Selection(
            month=data.get("mes") or today.month,
            year=data.get("anio") or today.year,
            grupo=(data.get("grupo") or "").strip(),
        )


class PeriodEndForm(forms.Form):
    """Last month of the look-back window on the consolidated screen."""

    fin_mes = forms.ChoiceField(choices=MONTH_CHOICES, required=False, label="Hasta el mes")
    fin_anio = forms.IntegerField(min_value=2000, max_value=2100, required=False, label="Año")

    def end(self, default: MonthRef) -> MonthRef:
        data = self.cleaned_data if self.is_valid() else {}
        return MonthRef(data.get("fin_mes") or default.month, data.get("fin_anio") or default.year)


class ServiceYearForm(forms.Form):
    anio_servicio = forms.IntegerField(min_value=2000, max_value=2100, required=False, label="Año de servicio")

    def service_year(self) -> int:
        if self.is_valid() and self.cleaned_data.get("anio_servicio"):
            return self.cleaned_data["anio_servicio"]
        return current_service_year()


# ----------------------------
# Reports
# ----------------------------
class ServiceReportForm(forms.Form):
    publicador = forms.ModelChoiceField(queryset=Publisher.objects.all(), label="Publicador")
    anio_calendario = forms.IntegerField(min_value=2000, max_value=2100, label="Año")
    mes = forms.ChoiceField(choices=MONTH_CHOICES, label="Mes")
    participacion = forms.BooleanField(required=False, label="Participó en el ministerio")
    precursor_auxiliar = forms.BooleanField(required=False, label="Precursor auxiliar")
    cursos_biblicos = forms.IntegerField(min_value=0, required=False, label="Cursos bíblicos")
    horas = forms.DecimalField(min_value=0, max_digits=6, decimal_places=1, required=False, label="Horas")
    notas = forms.CharField(widget=forms.Textarea(attrs={"rows": 2}), required=False, label="Notas")

    def to_record(self) -> ReportRecord:
        data = self.cleaned_data
        return ReportRecord(
            publicador_id=data["publicador"].pk,
            anio_calendario=data["anio_calendario"],
            mes=data["mes"],
            participacion=data["participacion"],
            precursor_auxiliar="PA" if data["precursor_auxiliar"] else "",
            cursos_biblicos=data.get("cursos_biblicos"),
            horas=data.get("horas"),
            notas=(data.get("notas") or "").strip(),
        )


class GroupAssignForm(forms.Form):
    publicador = forms.ModelChoiceField(queryset=Publisher.objects.all(), label="Publicador")
    grupo = forms.CharField(max_length=50, required=False, label="Grupo")


# ----------------------------
# Auxiliary pioneer applications
# ----------------------------
class PioneerApplicationForm(forms.ModelForm):
    horas = forms.ChoiceField(
        choices=PioneerApplication.HORAS_CHOICES,
        widget=forms.RadioSelect,
        label="Requisito de horas",
        error_messages={"required": "Por favor, seleccione el número de horas."},
    )

    class Meta:
        model = PioneerApplication
        fields = ["horas", "mes", "de_continuo", "fecha", "nombre", "firma_solicitante"]
        labels = {
            "mes": "El (los) mes(es) de",
            "de_continuo": "Marque la casilla si desea ser precursor auxiliar continuo hasta nuevo aviso.",
            "fecha": "Fecha",
            "nombre": "Nombre (en imprenta)",
            "firma_solicitante": "Firma del solicitante",
        }
        widgets = {
            "fecha": forms.DateInput(attrs={"type": "date"}),
            "firma_solicitante": forms.HiddenInput(),
        }

    def __init__(self, *args, allow_15_hours: Optional[bool] = None, **kwargs):
        super().__init__(*args, **kwargs)
        if allow_15_hours is None:
            allow_15_hours = getattr(settings, "AUX_PIONEER_15H_ENABLED", False)
        self.allow_15_hours = allow_15_hours
        if not allow_15_hours:
            self.fields["horas"].choices = [c for c in PioneerApplication.HORAS_CHOICES if c[0] != "15"]
        # Signature pad leaves an empty hidden input when untouched.
        self.fields["firma_solicitante"].required = False

    def clean_nombre(self):
        nombre = (self.cleaned_data.get("nombre") or "").strip()
        if not nombre:
            raise forms.ValidationError("Escriba su nombre.")
        return nombre

    def clean_firma_solicitante(self):
        return validate_signature(self.cleaned_data.get("firma_solicitante"))

    def clean(self):
        cleaned = super().clean()
        mes = (cleaned.get("mes") or "").strip()
        cleaned["mes"] = mes
        if not mes and not cleaned.get("de_continuo"):
            self.add_error("mes", "Indique el mes o marque la casilla de continuo.")
        return cleaned


class CommitteeSignatureForm(forms.Form):
    firma = forms.CharField(widget=forms.HiddenInput, required=False)

    def clean_firma(self):
        return validate_signature(self.cleaned_data.get("firma"))


# ----------------------------
# Watch (vigilancia)
# ----------------------------
def _congregation_choices():
    return [("", "—")] + [(c, c) for c in getattr(settings, "WATCH_CONGREGATIONS", [])]


class WatchAssignmentForm(forms.Form):
    year = forms.IntegerField(min_value=2000, max_value=2100)
    day = forms.ChoiceField(choices=WatchSchedule.DAY_CHOICES)
    month = forms.ChoiceField(choices=MONTH_CHOICES)
    slot = forms.CharField(max_length=20)
    congregation = forms.ChoiceField(required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["congregation"].choices = _congregation_choices()

    def clean(self):
        cleaned = super().clean()
        day, slot = cleaned.get("day"), cleaned.get("slot")
        if day and slot and slot not in WatchSchedule.SLOTS[day]:
            self.add_error("slot", "Horario inválido para ese día.")
        return cleaned


class WatchEventForm(forms.ModelForm):
    year = forms.IntegerField(min_value=2000, max_value=2100, widget=forms.HiddenInput)
    day = forms.ChoiceField(choices=WatchSchedule.DAY_CHOICES, label="Día")
    congregation = forms.ChoiceField(label="Congregación")

    class Meta:
        model = WatchEvent
        fields = ["date", "description", "congregation"]
        labels = {"date": "Fecha", "description": "Descripción"}
        widgets = {"date": forms.DateInput(attrs={"type": "date"})}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["congregation"].choices = _congregation_choices()[1:]
