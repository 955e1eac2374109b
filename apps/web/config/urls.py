"""
URL configuration for Tableside.
"""

from django.urls import include, path

urlpatterns = [
    # Public API endpoints
    path("api/", include("apps.web.ordering.urls")),
]
