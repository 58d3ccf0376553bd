from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from .models import PioneerApplication, Publisher, ServiceReport, WatchEvent, WatchSchedule


def _button(url, label):
    return format_html(
        '<a href="{}" target="_blank" '
        'style="padding:4px 10px; background:#1e3a5f; color:white; '
        'border-radius:6px; text-decoration:none; font-size:12px; font-weight:600;">{}</a>',
        url,
        label,
    )


# ---------- Publishers and reports ----------

@admin.register(Publisher)
class PublisherAdmin(admin.ModelAdmin):
    list_display = ("__str__", "grupo", "estatus", "priv_adicional", "privilegio", "card_link")
    list_filter = ("estatus", "grupo", "priv_adicional", "privilegio")
    search_fields = ("nombre", "apellido", "segundo_apellido", "apellido_casada")
    ordering = ("nombre", "apellido")

    def card_link(self, obj):
        return _button(reverse("informes:tarjeta", args=[obj.pk]), "Tarjeta")

    card_link.short_description = "Registro"


@admin.register(ServiceReport)
class ServiceReportAdmin(admin.ModelAdmin):
    list_display = ("publicador", "mes", "anio_calendario", "participacion", "precursor_auxiliar", "cursos_biblicos", "horas")
    list_filter = ("anio_calendario", "mes", "participacion", "precursor_auxiliar")
    search_fields = ("publicador__nombre", "publicador__apellido")
    autocomplete_fields = ("publicador",)


# ---------- Auxiliary pioneer applications ----------

@admin.register(PioneerApplication)
class PioneerApplicationAdmin(admin.ModelAdmin):
    list_display = ("nombre", "mes", "de_continuo", "horas", "fecha", "status", "signature_count", "pdf_link")
    list_filter = ("status", "de_continuo", "horas")
    search_fields = ("nombre", "mes")
    readonly_fields = ("created_at", "pdf_link")

    def pdf_link(self, obj):
        if not obj.pk:
            return "-"
        return _button(reverse("informes:solicitud_pdf", args=[obj.pk]), "PDF")

    pdf_link.short_description = "PDF"


# ---------- Watch ----------

class WatchEventInline(admin.TabularInline):
    model = WatchEvent
    extra = 0


@admin.register(WatchSchedule)
class WatchScheduleAdmin(admin.ModelAdmin):
    list_display = ("__str__", "year", "day")
    list_filter = ("year", "day")
    inlines = [WatchEventInline]
