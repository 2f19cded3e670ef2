from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    # Class routes
    path('classes/', views.classes_collection, name='classes'),
    path('classes/mine/', views.my_classes, name='my_classes'),
    path('classes/<int:pk>/', views.class_detail, name='class_detail'),
    path('classes/<int:pk>/teacher/', views.class_assign_teacher, name='class_assign_teacher'),
    path('classes/<int:pk>/summary/', views.class_summary_view, name='class_summary'),
    path('classes/<int:pk>/setup-status/', views.class_setup_status_view, name='class_setup_status'),
    path('classes/<int:pk>/students/', views.class_students, name='class_students'),
    path('classes/<int:pk>/export/', views.class_export, name='class_export'),
    path('classes/<int:pk>/assessments/', views.class_assessments, name='class_assessments'),

    # Subject setup and competences
    path('subjects/', views.subject_list, name='subjects'),
    path('classes/<int:pk>/subjects/', views.class_subjects, name='class_subjects'),
    path('classes/<int:pk>/clone-competences/', views.clone_competences, name='clone_competences'),
    path('class-subjects/<int:pk>/instructor/', views.class_subject_instructor, name='class_subject_instructor'),
    path('class-subjects/<int:pk>/competences/', views.class_subject_competences, name='class_subject_competences'),
    path('class-subjects/<int:pk>/assessments/', views.class_subject_assessments, name='class_subject_assessments'),

    # Catalogue
    path('ranks/', views.api_ranks, name='ranks'),
    path('streams/', views.api_streams, name='streams'),
    path('classes/preview/', views.api_class_preview, name='class_preview'),
    path('years/', views.api_years, name='years'),
    path('terms/', views.api_terms, name='terms'),
]
