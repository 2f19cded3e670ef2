from django.urls import path
from . import views

app_name = 'teachers'

urlpatterns = [
    path('', views.teachers_collection, name='teachers'),
    path('<uuid:pk>/', views.teacher_detail, name='teacher_detail'),
    path('<uuid:pk>/account/', views.create_account, name='create_account'),
    path('<uuid:pk>/account/deactivate/', views.deactivate_account, name='deactivate_account'),
]
