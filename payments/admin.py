"""
Django admin registration for the payments app.

Processed webhook events are listed for troubleshooting gateway
deliveries; they are never edited by hand.
"""
from django.contrib import admin
from .models import WebhookEvent


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "outcome", "received_at")
    list_filter = ("event_type", "outcome")
    search_fields = ("event_id",)
    readonly_fields = ("event_id", "event_type", "outcome", "received_at")
    ordering = ("-received_at",)
