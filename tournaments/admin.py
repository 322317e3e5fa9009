"""
Admin configuration for the tournaments app.
"""
from django.contrib import admin

from .models import Group, Tournament


@admin.register(Tournament)
class TournamentAdmin(admin.ModelAdmin):
    list_display = ("name", "year", "status", "registration_open", "max_capacity", "reserved_slots", "entry_fee")
    list_filter = ("status", "registration_open", "year")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ("tournament", "group_number", "hole_number", "max_golfers")
    list_filter = ("tournament",)
