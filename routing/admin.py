from django.contrib import admin
from .models import OfficerAssignment


@admin.register(OfficerAssignment)
class OfficerAssignmentAdmin(admin.ModelAdmin):
    list_display = ('application', 'assigned_by', 'assigned_to', 'priority', 'expected_completion_date', 'created_at')
    list_filter = ('priority', 'created_at')
    search_fields = ('application__rr_number', 'assigned_to__username', 'assigned_to__officer_profile__full_name')
    readonly_fields = ('application', 'assigned_by', 'assigned_to', 'created_at')
