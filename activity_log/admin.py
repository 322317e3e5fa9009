from django.contrib import admin

from .models import ActivityLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("id", "action", "tournament", "registrant", "actor", "created_at")
    list_filter = ("action", "tournament")
    search_fields = ("details", "registrant__email", "registrant__name")
    readonly_fields = ("tournament", "registrant", "actor", "action", "details", "metadata", "created_at")
    ordering = ("-created_at",)
