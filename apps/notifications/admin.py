from django.contrib import admin

from .models import Notification, NotificationAttempt, Template


class NotificationAttemptInline(admin.TabularInline):
    model = NotificationAttempt
    extra = 0
    readonly_fields = ("started_at", "finished_at", "result", "error_message")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("created_at", "event_type", "type", "to", "template_code", "status", "provider", "attempts")
    list_filter = ("type", "status", "event_type", "provider")
    search_fields = ("to", "reference", "template_code", "idempotency_key")
    inlines = [NotificationAttemptInline]


@admin.register(Template)
class TemplateAdmin(admin.ModelAdmin):
    list_display = ("code", "channel", "subject")
    list_filter = ("channel",)
