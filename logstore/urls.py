"""
URL configuration for the logstore app.

Mounted at the site root in boot/urls.py.
"""

from django.urls import path, register_converter

from logstore import views
from logstore.converters import ULIDConverter

register_converter(ULIDConverter, "ulid")

app_name = "logstore"

urlpatterns = [
    # API
    path("logs/", views.upload_view, name="upload"),
    path("logs/file/<ulid:file_id>/", views.file_view, name="file"),
    path("logs/bundle/<ulid:bundle_id>/", views.bundle_view, name="bundle"),
    # Pages
    path("view/bundle/<ulid:bundle_id>/", views.bundle_page_view, name="bundle-page"),
]
