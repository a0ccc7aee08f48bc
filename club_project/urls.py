"""
URL configuration for club_project.

Only the Django admin is routed here; the member-facing request layer
lives outside this project and calls the services in ``scores.services``.
"""
from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
