from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('accounts.urls')),
    path('api/', include('routing.urls')),
    path('api/', include('applications.urls')),
    path('api/', include('notifications.urls')),
    path('api/', include('core.urls')),
]
