"""URL configuration for Logdrop."""

from django.http import HttpResponse, JsonResponse
from django.urls import include, path


def healthz(request):
    """Liveness probe. No I/O, always returns 200."""
    return JsonResponse({"status": "ok"})


def ping(request):
    """Heartbeat for load balancers."""
    return HttpResponse(".", content_type="text/plain")


urlpatterns = [
    path("healthz/", healthz, name="healthz"),
    path("ping", ping, name="ping"),
    path("", include("logstore.urls")),
]
