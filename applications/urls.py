from django.urls import path
from . import views

urlpatterns = [
    path('applications/', views.ApplicationListView.as_view(), name='application_list'),
    path('applications/stats/', views.ApplicationStatsView.as_view(), name='application_stats'),
    path('applications/<str:application_id>/', views.ApplicationDetailView.as_view(), name='application_detail'),
    path('documents/<int:document_id>/verify/', views.DocumentVerifyView.as_view(), name='verify_document'),
    path('service-categories/', views.ServiceCategoryListView.as_view(), name='service_categories'),
]
