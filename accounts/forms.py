import re

from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

from .models import phone_validator

PASSWORD_PATTERN = re.compile(r'^(?=.*[A-Za-z])(?=.*\d).{8,}$')


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(widget=forms.PasswordInput)


class RegistrationForm(forms.Form):
    """Sign-up form; the e-mail address doubles as the username."""
    email = forms.EmailField()
    password = forms.CharField(widget=forms.PasswordInput, min_length=8, max_length=100)
    phone = forms.CharField(max_length=10, validators=[phone_validator])

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        if get_user_model().objects.filter(username__iexact=email).exists():
            raise forms.ValidationError('An account with this e-mail already exists.')
        return email

    def clean_password(self):
        password = self.cleaned_data['password']
        if not PASSWORD_PATTERN.match(password):
            raise forms.ValidationError('Password needs at least 8 characters with a letter and a digit.')
        validate_password(password)
        return password


class PhoneChangeForm(forms.Form):
    phone = forms.CharField(max_length=10, validators=[phone_validator])
