from django.core.validators import MinValueValidator
from django.db import models


class RoomQuerySet(models.QuerySet):
    def active(self):
        """Rooms that can currently be booked."""
        return self.filter(is_active=True)


class Room(models.Model):
    """Room model representing a bookable hotel room."""
    name = models.CharField(max_length=100, unique=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text='Nightly price',
    )
    capacity = models.PositiveIntegerField(default=2)
    description = models.TextField(blank=True, default='')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RoomQuerySet.as_manager()

    class Meta:
        ordering = ['name']
        verbose_name = 'Room'
        verbose_name_plural = 'Rooms'

    def __str__(self):
        return self.name + ("" if self.is_active else " (inactive)")
