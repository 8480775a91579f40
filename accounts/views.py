from django.http import JsonResponse
from django.views import View

from .mixins import ApiLoginRequiredMixin
from .utils import get_available_officers


class AvailableOfficersView(ApiLoginRequiredMixin, View):
    def get(self, request):
        officers = get_available_officers(exclude=request.user)
        data = [
            {
                'id': officer.id,
                'fullName': officer.officer_profile.full_name,
                'designation': officer.officer_profile.designation,
                'department': officer.officer_profile.department,
                'officeLocation': officer.officer_profile.office_location,
                'role': officer.role,
            }
            for officer in officers
        ]
        return JsonResponse(data, safe=False)
