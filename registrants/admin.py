from django.contrib import admin

from .models import Registrant


@admin.register(Registrant)
class RegistrantAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "name",
        "email",
        "tournament",
        "admission_status",
        "payment_status",
        "payment_type",
        "payment_amount",
        "paid_at",
    )
    list_filter = ("tournament", "admission_status", "payment_status", "payment_type")
    search_fields = ("name", "email", "company", "payment_intent_id", "checkout_session_id")
    readonly_fields = (
        "checkout_session_id",
        "payment_intent_id",
        "refund_id",
        "payment_token",
        "paid_at",
        "refunded_at",
        "refunded_by",
        "created_at",
        "updated_at",
    )
    ordering = ("-created_at",)
