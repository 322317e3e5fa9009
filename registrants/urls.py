"""
URL configuration for the registrants app.

Registers the public registration endpoint and the admin registrant
routes.  Include this module under ``/api/`` in the project-level URL
config.
"""
from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import RegisterView, RegistrantViewSet

router = DefaultRouter()
router.register(r"registrants", RegistrantViewSet, basename="registrant")

urlpatterns = [
    path("registrations/", RegisterView.as_view(), name="registration-create"),
    *router.urls,
]
