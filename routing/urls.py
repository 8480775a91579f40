from django.urls import path
from . import views

urlpatterns = [
    path('applications/<str:application_id>/assignments/', views.AssignmentChainView.as_view(),
         name='assignment_chain'),
]
