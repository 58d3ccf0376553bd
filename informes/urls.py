# informes/urls.py
from django.urls import path

from . import views

app_name = "informes"

urlpatterns = [
    # ---------- MONTHLY REPORTS ----------
    path("grupo/", views.group_report, name="grupo"),
    path("consolidado/", views.consolidated_report, name="consolidado"),
    path("informe/", views.report_entry, name="informe"),
    path("informe/<int:report_id>/eliminar/", views.delete_report, name="informe_eliminar"),

    # ---------- DASHBOARDS ----------
    path("cursos/", views.courses_dashboard, name="cursos"),
    path("precursores/", views.pioneers_dashboard, name="precursores"),

    # ---------- GROUPS ----------
    path("grupos/", views.groups_summary, name="grupos"),
    path("grupos/asignar/", views.assign_group, name="grupos_asignar"),

    # ---------- SERVICE YEAR ----------
    path("publicador/<int:publisher_id>/tarjeta/", views.publisher_card_view, name="tarjeta"),
    path("anual/", views.service_year_report, name="anual"),
    path("anual/csv/", views.service_year_csv, name="anual_csv"),
    path("informes/csv/", views.all_reports_csv, name="informes_csv"),

    # ---------- AUXILIARY PIONEER APPLICATIONS ----------
    path("solicitudes/nueva/", views.application_form, name="solicitud_nueva"),
    path("solicitudes/gracias/", views.application_thanks, name="solicitud_gracias"),
    path("solicitudes/", views.application_list, name="solicitudes"),
    path("solicitudes/<int:application_id>/firmar/", views.sign_application, name="solicitud_firmar"),
    path("solicitudes/<int:application_id>/eliminar/", views.delete_application, name="solicitud_eliminar"),
    path("solicitudes/<int:application_id>/pdf/", views.application_pdf, name="solicitud_pdf"),

    # ---------- WATCH ----------
    path("vigilancia/", views.watch_schedule, name="vigilancia"),
    path("vigilancia/asignar/", views.watch_assign, name="vigilancia_asignar"),
    path("vigilancia/evento/", views.watch_add_event, name="vigilancia_evento"),
    path("vigilancia/evento/<int:event_id>/eliminar/", views.watch_delete_event, name="vigilancia_evento_eliminar"),
]
