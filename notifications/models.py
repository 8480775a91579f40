from django.db import models
from django.conf import settings


class Notification(models.Model):
    class Type(models.TextChoices):
        APPLICATION_SUBMITTED = "APPLICATION_SUBMITTED", "Application Submitted"
        APPLICATION_ASSIGNED = "APPLICATION_ASSIGNED", "Application Assigned"
        STATUS_CHANGED = "STATUS_CHANGED", "Status Changed"
        GENERAL = "GENERAL", "General"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    notification_type = models.CharField(max_length=30, choices=Type.choices, default=Type.GENERAL)
    application = models.ForeignKey(
        'applications.Application', on_delete=models.CASCADE, null=True, blank=True, related_name="notifications"
    )
    title = models.CharField(max_length=200)
    message = models.TextField()
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.title} -> {self.user}"
