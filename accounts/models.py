from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        CITIZEN = 'CITIZEN', 'Citizen'
        FRONT_DESK = 'FRONT_DESK', 'Front Desk'
        DC = 'DC', 'Deputy Commissioner'
        ADC = 'ADC', 'Additional Deputy Commissioner'
        RO = 'RO', 'Revenue Officer'
        SDM = 'SDM', 'Sub Divisional Magistrate'
        DYDIR = 'DYDIR', 'Deputy Director'
        ADMIN = 'ADMIN', 'Admin'
        SUPER_ADMIN = 'SUPER_ADMIN', 'Super Admin'

    OFFICER_ROLES = (Role.DC, Role.ADC, Role.RO, Role.SDM, Role.DYDIR)
    ADMIN_ROLES = (Role.ADMIN, Role.SUPER_ADMIN)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CITIZEN)
    # is_active comes from AbstractUser and is what the workflow trusts.

    def __str__(self):
        return self.username

    @property
    def is_officer(self):
        return self.role in self.OFFICER_ROLES

    @property
    def is_admin_role(self):
        return self.role in self.ADMIN_ROLES

    @property
    def display_name(self):
        profile = getattr(self, 'officer_profile', None) or getattr(self, 'citizen_profile', None)
        if profile and profile.full_name:
            return profile.full_name
        return self.get_full_name() or self.username


class OfficerProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='officer_profile')
    full_name = models.CharField(max_length=150)
    designation = models.CharField(max_length=100, blank=True)
    department = models.CharField(max_length=100, blank=True)
    office_location = models.CharField(max_length=150, blank=True)
    is_available = models.BooleanField(default=True, help_text="Can receive forwarded applications")

    def __str__(self):
        return f"{self.full_name} ({self.user.get_role_display()})"


class CitizenProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='citizen_profile')
    full_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=15, blank=True)
    address = models.TextField(blank=True)

    def __str__(self):
        return self.full_name
