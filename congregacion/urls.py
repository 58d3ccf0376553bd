# congregacion/urls.py
from django.contrib import admin
from django.urls import path, include
from django.shortcuts import redirect

urlpatterns = [
    # Root -> consolidated report
    path("", lambda r: redirect("informes:consolidado")),

    # Django admin (this includes a greedy catch-all)
    path("admin/", admin.site.urls),

    path("informes/", include("informes.urls")),
]
