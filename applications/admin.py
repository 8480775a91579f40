from django.contrib import admin
from .models import (
    Application, ApplicationAuditLog, ApplicationValidation, ApplicationWorkflow, DailyRRCounter, Document,
    ServiceCategory,
)


@admin.register(ServiceCategory)
class ServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'sla_days', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)


class DocumentInline(admin.TabularInline):
    model = Document
    extra = 0
    fields = ('document_type', 'file_name', 'file_url', 'is_verified', 'verified_by', 'verified_at')
    readonly_fields = fields


class WorkflowInline(admin.TabularInline):
    model = ApplicationWorkflow
    extra = 0
    fields = ('from_status', 'to_status', 'changed_by', 'comments', 'created_at')
    readonly_fields = fields
    can_delete = False


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('reference', 'service_category', 'citizen', 'status', 'current_holder', 'created_at')
    list_filter = ('status', 'service_category')
    search_fields = ('rr_number', 'citizen__username', 'citizen__citizen_profile__full_name')
    # Status only moves through the workflow services.
    readonly_fields = ('rr_number', 'status', 'citizen', 'current_holder', 'submitted_at', 'validated_at',
                       'completed_at')
    inlines = [DocumentInline, WorkflowInline]


@admin.register(ApplicationValidation)
class ApplicationValidationAdmin(admin.ModelAdmin):
    list_display = ('rr_number', 'application', 'validated_by', 'is_documents_complete', 'created_at')
    search_fields = ('rr_number',)


@admin.register(ApplicationAuditLog)
class ApplicationAuditLogAdmin(admin.ModelAdmin):
    list_display = ('application', 'action', 'performed_by', 'ip_address', 'created_at')
    list_filter = ('action',)
    readonly_fields = ('application', 'action', 'performed_by', 'old_values', 'new_values', 'ip_address',
                       'created_at')


admin.site.register(DailyRRCounter)
