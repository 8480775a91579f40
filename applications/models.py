import uuid

from django.db import models
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder


class ServiceCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    sla_days = models.PositiveIntegerField(help_text="Target processing time in days")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = "Service Categories"

    def __str__(self):
        return f"{self.name} ({self.sla_days} days)"


class Application(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PENDING = "PENDING", "Pending Validation"
        VALIDATED = "VALIDATED", "Validated"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"
        # Defined for completeness; no transition produces it.
        COMPLETED = "COMPLETED", "Completed"

    TERMINAL_STATUSES = (Status.APPROVED, Status.REJECTED, Status.COMPLETED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rr_number = models.CharField(max_length=20, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)

    citizen = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='applications')
    service_category = models.ForeignKey(ServiceCategory, on_delete=models.PROTECT, related_name='applications')
    current_holder = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='held_applications'
    )
    application_details = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    validated_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'validated_at'], name='application_status_valid_idx'),
            models.Index(fields=['current_holder', 'status'], name='application_holder_status_idx'),
        ]

    def __str__(self):
        return f"{self.rr_number or self.id} - {self.service_category.name}"

    @property
    def reference(self):
        return self.rr_number or str(self.id)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def is_overdue(self, now):
        """
        Validated, not yet completed, and past the category SLA.
        """
        if not self.validated_at or self.completed_at:
            return False
        if self.status not in (self.Status.VALIDATED, self.Status.IN_PROGRESS):
            return False
        age = now - self.validated_at
        return age.total_seconds() > self.service_category.sla_days * 86400


class Document(models.Model):
    class DocumentType(models.TextChoices):
        IDENTITY_PROOF = "IDENTITY_PROOF", "Identity Proof"
        ADDRESS_PROOF = "ADDRESS_PROOF", "Address Proof"
        INCOME_CERTIFICATE = "INCOME_CERTIFICATE", "Income Certificate"
        PHOTOGRAPH = "PHOTOGRAPH", "Photograph"
        SUPPORTING_DOCUMENT = "SUPPORTING_DOCUMENT", "Supporting Document"
        OTHER = "OTHER", "Other"

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=30, choices=DocumentType.choices, default=DocumentType.OTHER)
    file_name = models.CharField(max_length=255)
    file_url = models.CharField(max_length=500, help_text="Reference returned by the document store")
    file_size = models.PositiveIntegerField(default=0)
    content_type = models.CharField(max_length=100, blank=True)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='uploaded_documents'
    )
    is_verified = models.BooleanField(default=False)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='verified_documents'
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    verification_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.file_name} ({self.get_document_type_display()})"


class ApplicationWorkflow(models.Model):
    """
    One row per transition. Forwarding records from_status == to_status.
    """
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='workflow')
    from_status = models.CharField(max_length=20, choices=Application.Status.choices, null=True, blank=True)
    to_status = models.CharField(max_length=20, choices=Application.Status.choices)
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    comments = models.TextField(blank=True)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.application.reference}: {self.from_status or '-'} -> {self.to_status}"


class ApplicationValidation(models.Model):
    """Front desk decision snapshot. Written once, at validation."""
    application = models.OneToOneField(Application, on_delete=models.CASCADE, related_name='validation')
    validated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    rr_number = models.CharField(max_length=20)
    is_documents_complete = models.BooleanField(default=False)
    is_eligibility_verified = models.BooleanField(default=False)
    validation_notes = models.TextField(blank=True)
    created_at = models.DateTimeField()

    def __str__(self):
        return f"Validation {self.rr_number}"


class ApplicationAuditLog(models.Model):
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='audit_logs')
    action = models.CharField(max_length=50)
    performed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    old_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.application.reference} - {self.action}"


class DailyRRCounter(models.Model):
    date = models.DateField(unique=True)
    last_seq = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.date}: {self.last_seq}"
