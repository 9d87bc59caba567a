from django.contrib import admin
from django.urls import path, include


def health_check(request):
    from django.http import JsonResponse

    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz", health_check),
    path("api/v1/pool/", include("backend.apps.pool.urls")),
]
