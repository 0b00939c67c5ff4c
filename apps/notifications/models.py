from django.db import models
from django.utils import timezone

from apps.common.models import BaseModel


class Notification(BaseModel):
    """One outbound SMS or email, queued from a lifecycle event and sent by Celery."""

    TYPE_CHOICES = [("sms", "SMS"), ("email", "Email")]
    STATUS_QUEUED = "queued"
    STATUS_PROCESSING = "processing"
    STATUS_SENT = "sent"
    STATUS_DELIVERED = "delivered"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_QUEUED, "Queued"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_SENT, "Sent"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_FAILED, "Failed"),
    ]
    PROVIDER_CHOICES = [("twilio", "Twilio"), ("sendgrid", "SendGrid"), ("dev", "Dev Mode")]

    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    to = models.CharField(max_length=200)
    template_code = models.CharField(max_length=80)
    payload_json = models.JSONField(default=dict, blank=True)
    # lifecycle event that queued it and the order / payout / stock it is about
    event_type = models.CharField(max_length=40, blank=True)
    reference = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_QUEUED, db_index=True)
    provider = models.CharField(max_length=20, choices=PROVIDER_CHOICES, blank=True, null=True)
    provider_message_id = models.CharField(max_length=120, blank=True, null=True, db_index=True)
    error_code = models.CharField(max_length=50, blank=True, null=True)
    error_message = models.TextField(blank=True, null=True)
    attempts = models.PositiveIntegerField(default=0)
    idempotency_key = models.CharField(max_length=200, blank=True, null=True, unique=True)
    sent_at = models.DateTimeField(blank=True, null=True)
    delivered_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "created_at"], name="notif_status_created_idx"),
            models.Index(fields=["reference", "event_type"], name="notif_reference_idx"),
        ]

    def __str__(self):
        return f"{self.type}:{self.template_code} -> {self.to} ({self.status})"

    def mark_delivered(self) -> None:
        self.status = self.STATUS_DELIVERED
        self.delivered_at = timezone.now()
        self.save(update_fields=["status", "delivered_at", "updated_at"])

    def mark_failed(self, *, error_code=None, error_message: str = "") -> None:
        self.status = self.STATUS_FAILED
        self.error_code = error_code
        self.error_message = error_message
        self.save(update_fields=["status", "error_code", "error_message", "updated_at"])


class NotificationAttempt(BaseModel):
    notification = models.ForeignKey(Notification, on_delete=models.CASCADE, related_name="attempts_log")
    started_at = models.DateTimeField(default=timezone.now)
    finished_at = models.DateTimeField(blank=True, null=True)
    result = models.CharField(max_length=20)  # ok | error
    provider_response_json = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True, null=True)


class Template(BaseModel):
    """Admin-editable override of a built-in message template."""

    CHANNEL_CHOICES = [("sms", "SMS"), ("email", "Email")]
    code = models.CharField(max_length=80)
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES)
    subject = models.CharField(max_length=200, blank=True)
    body_txt = models.TextField(blank=True)
    body_html = models.TextField(blank=True)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["code", "channel"], name="uniq_template_code_channel")]

    def __str__(self):
        return f"{self.channel}:{self.code}"
