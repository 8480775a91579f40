from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User, OfficerProfile, CitizenProfile


class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active', 'is_staff')
    fieldsets = UserAdmin.fieldsets + (
        ('Portal Role', {'fields': ('role',)}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Portal Role', {'fields': ('role',)}),
    )


@admin.register(User)
class UserAdminConfig(CustomUserAdmin):
    pass


@admin.register(OfficerProfile)
class OfficerProfileAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'user', 'designation', 'department', 'is_available')
    list_filter = ('designation', 'department', 'is_available')
    search_fields = ('full_name', 'user__username')


@admin.register(CitizenProfile)
class CitizenProfileAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'user', 'phone')
    search_fields = ('full_name', 'user__username', 'phone')
