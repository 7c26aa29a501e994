"""
URL configuration for updates API endpoints.

URL names double as rate-limit action names.
"""

from django.urls import path

from api.v1.updates import views

urlpatterns = [
    path("check", views.UpdateCheckView.as_view(), name="update_check"),
    path("download-token", views.DownloadTokenView.as_view(), name="download_token"),
    path("download", views.DownloadView.as_view(), name="download"),
]
