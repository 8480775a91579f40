from django.db import models
from django.conf import settings
from applications.models import Application


class OfficerAssignment(models.Model):
    """
    One row each time an officer is given responsibility for an application.
    The latest row names the current holder.
    """
    class Priority(models.IntegerChoices):
        HIGH = 1, 'High'
        MEDIUM = 2, 'Medium'
        LOW = 3, 'Low'

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='officer_assignments')
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='assignments_made'
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='assignments_received'
    )
    priority = models.PositiveSmallIntegerField(choices=Priority.choices, default=Priority.MEDIUM)
    instructions = models.TextField(blank=True)
    expected_completion_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ['created_at', 'id']
        verbose_name = "Officer Assignment"
        verbose_name_plural = "Officer Assignments"

    def __str__(self):
        return f"{self.application.reference} -> {self.assigned_to}"
