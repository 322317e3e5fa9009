"""
Serializers for the tournaments app.

Tournaments are exposed read-only to the public registration page; the
capacity summary is computed from a fresh confirmed count on each read.
"""
from rest_framework import serializers

from .models import Group, Tournament


class TournamentSerializer(serializers.ModelSerializer):
    current_fee = serializers.IntegerField(read_only=True)
    accepting_registrations = serializers.BooleanField(read_only=True)
    capacity = serializers.SerializerMethodField()

    class Meta:
        model = Tournament
        fields = [
            "id",
            "name",
            "year",
            "slug",
            "status",
            "event_date",
            "registration_open",
            "registration_deadline",
            "accepting_registrations",
            "entry_fee",
            "early_bird_fee",
            "early_bird_deadline",
            "current_fee",
            "capacity",
        ]
        read_only_fields = fields

    def get_capacity(self, obj: Tournament) -> dict:
        return obj.capacity_snapshot().as_dict()


class GroupSerializer(serializers.ModelSerializer):
    class Meta:
        model = Group
        fields = ["id", "tournament", "group_number", "hole_number", "max_golfers"]
        read_only_fields = fields
