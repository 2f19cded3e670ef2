from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('academic-years/', views.academic_years, name='academic_years'),
    path('academic-years/initialize/', views.academic_year_initialize, name='academic_year_initialize'),
    path('academic-years/current/', views.academic_year_current, name='academic_year_current'),
    path('academic-years/<int:pk>/', views.academic_year_detail, name='academic_year_detail'),
    path('academic-years/<int:pk>/set-current/', views.academic_year_set_current, name='academic_year_set_current'),
]
