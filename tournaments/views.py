"""
Read-only tournament endpoints for the public registration page.
"""
from rest_framework import permissions, viewsets

from .models import Tournament
from .serializers import TournamentSerializer


class TournamentViewSet(viewsets.ReadOnlyModelViewSet):
    """List and retrieve tournaments that are not archived or drafts."""

    serializer_class = TournamentSerializer
    permission_classes = [permissions.AllowAny]
    lookup_field = "id"

    def get_queryset(self):
        qs = Tournament.objects.exclude(status__in=[Tournament.STATUS_DRAFT, Tournament.STATUS_ARCHIVED])
        open_only = self.request.query_params.get("open")
        if open_only is not None and open_only.lower() in ("1", "true", "t", "yes", "y"):
            qs = qs.filter(status=Tournament.STATUS_OPEN, registration_open=True)
        return qs
