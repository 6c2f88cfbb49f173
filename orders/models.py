from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from rooms.models import Room


class OrderQuerySet(models.QuerySet):
    def active(self):
        """Orders that still hold their room (not cancelled)."""
        return self.filter(is_cancelled=False)

    def for_member(self, member):
        return self.filter(member=member)

    def cart_for(self, member):
        return self.filter(member=member, is_paid=False, is_cancelled=False)

    def overlapping(self, start_date, end_date):
        """
        Orders whose stay shares a night with [start_date, end_date).

        A same-day order (start_date == end_date) occupies the night that
        starts on start_date; callers normalise the candidate interval the
        same way before calling.
        """
        return self.filter(
            Q(start_date__lt=end_date)
            & (
                Q(end_date__gt=start_date)
                | Q(end_date=F('start_date'), start_date__gte=start_date)
            )
        )


class Order(models.Model):
    """Order model representing a room reservation held by a member."""
    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name='orders')
    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders',
    )
    order_date = models.DateTimeField(default=timezone.now)
    start_date = models.DateField()
    end_date = models.DateField()
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    is_paid = models.BooleanField(default=False)
    is_cancelled = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ['-order_date']
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        indexes = [
            models.Index(fields=['room', 'start_date', 'end_date'], name='order_room_dates_idx'),
            models.Index(fields=['member', 'is_paid', 'is_cancelled'], name='order_member_cart_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount__gte=0),
                name='order_total_amount_non_negative',
            ),
        ]

    def __str__(self):
        return f"Order #{self.pk} - {self.room.name} ({self.start_date} to {self.end_date})"

    @property
    def nights(self):
        return max((self.end_date - self.start_date).days, 1)

    @property
    def in_cart(self):
        return not self.is_paid and not self.is_cancelled

    def as_dict(self):
        return {
            'id': self.pk,
            'room_id': self.room_id,
            'room_name': self.room.name,
            'member_id': self.member_id,
            'order_date': self.order_date.isoformat(),
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'nights': self.nights,
            'total_amount': str(self.total_amount),
            'is_paid': self.is_paid,
            'is_cancelled': self.is_cancelled,
        }
