"""
URL configuration for license API endpoints.

URL names double as rate-limit action names.
"""

from django.urls import path

from api.v1.license import views

urlpatterns = [
    path("activate", views.ActivateView.as_view(), name="activate"),
    path("validate", views.ValidateView.as_view(), name="validate"),
    path("deactivate", views.DeactivateView.as_view(), name="deactivate"),
]
