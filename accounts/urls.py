from django.urls import path
from . import views

urlpatterns = [
    path('officers/available/', views.AvailableOfficersView.as_view(), name='available_officers'),
]
