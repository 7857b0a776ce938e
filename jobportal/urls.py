"""
URL configuration for the jobportal project.

The JSON API lives under ``/api/``. ``/login`` and ``/dashboard`` are page
paths owned by the frontend; the route guard middleware intercepts them.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("users.urls")),
]
