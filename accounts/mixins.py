from django.http import JsonResponse


class ApiLoginRequiredMixin:
    """JSON endpoints answer 401 instead of redirecting to a login page."""
    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated or not request.user.is_active:
            return JsonResponse({'error': 'Unauthorized', 'kind': 'unauthorized'}, status=401)
        return super().dispatch(request, *args, **kwargs)
