"""
URL configuration for the mrp_app project.

``/api/`` serves the inventory REST API and ``/healthz`` a liveness probe.
"""

from django.contrib import admin
from django.http import HttpResponse
from django.urls import include, path


def health_check(request):
    return HttpResponse("ok")


urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz", health_check, name="health-check"),
    path("api/", include("inventory.urls")),
]
