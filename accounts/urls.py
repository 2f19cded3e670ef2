from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('csrf/', views.csrf, name='csrf'),
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('me/', views.me, name='me'),
    path('password/change/', views.password_change, name='password_change'),
    path('users/', views.users_collection, name='users'),
    path('users/<int:pk>/', views.user_detail, name='user_detail'),
    path('users/<int:pk>/suspend/', views.user_suspend, name='user_suspend'),
    path('users/<int:pk>/activate/', views.user_activate, name='user_activate'),
]
