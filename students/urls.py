from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    # Student CRUD
    path('', views.students_collection, name='students'),
    path('<int:pk>/', views.student_detail, name='student_detail'),
    path('<int:pk>/promotion-history/', views.promotion_student_history, name='promotion_history'),

    # Promotion
    path('promotion/years/', views.promotion_years, name='promotion_years'),
    path('promotion/override/', views.promotion_override, name='promotion_override'),
    path('promotion/classes/<int:pk>/', views.promotion_class_students, name='promotion_class_students'),
    path('promotion/classes/<int:pk>/next-level/', views.promotion_next_level, name='promotion_next_level'),
    path('promotion/classes/<int:pk>/defaults/', views.promotion_default_decisions, name='promotion_defaults'),
    path('promotion/classes/<int:pk>/stats/', views.promotion_stats, name='promotion_stats'),
    path('promotion/classes/<int:pk>/process/', views.promotion_process, name='promotion_process'),
]
