from django import forms
from django.contrib.auth.forms import AuthenticationForm

from .models import User


class LoginForm(AuthenticationForm):
    """Custom login form with email as username field."""

    username = forms.EmailField(label="Email")
    password = forms.CharField(label="Password", strip=False)

    error_messages = {
        'invalid_login': "Invalid email or password. Please try again.",
        'inactive': "This account is inactive. Contact your administrator.",
    }


class UserUpdateForm(forms.ModelForm):
    """Admin edit of another account: names and school role."""

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'role']
