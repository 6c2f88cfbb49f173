from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models

phone_validator = RegexValidator(
    regex=r'^09\d{8}$',
    message='Enter a valid mobile number (09 followed by 8 digits).',
)


class MemberProfile(models.Model):
    """Contact details kept alongside a member's login account."""
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='profile',
    )
    phone = models.CharField(max_length=10, validators=[phone_validator])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Member profile'
        verbose_name_plural = 'Member profiles'

    def __str__(self):
        return f"{self.user.email} ({self.phone})"
