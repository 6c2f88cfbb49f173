"""
Reservation engine: availability, booking, cancellation, cart and checkout.

Request handlers pass the member id in explicitly; nothing here reads the
session. Every write runs in ``transaction.atomic()`` so a rejected request
leaves no partial state behind.

Double bookings are prevented in three layers:
1. the overlap check itself (``check_room_availability``),
2. a per-room lock held around check-then-insert inside this process,
3. ``SELECT ... FOR UPDATE`` on the room row, which serialises concurrent
   reservations across processes on databases that support row locks
   (SQLite serialises writers through ``transaction_mode = IMMEDIATE``).
"""
import logging
import threading
from datetime import date, datetime, timedelta
from decimal import Decimal
from functools import wraps

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import InterfaceError, OperationalError, transaction
from django.db.models import DecimalField, Sum
from django.utils import timezone

from rooms.models import Room
from .exceptions import (
    AlreadyCancelledError,
    BookingValidationError,
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
    NotInCartError,
)
from .models import Order

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
DATE_FORMAT = '%Y-%m-%d'
CENTS = Decimal('0.01')

_room_locks = {}
_room_locks_guard = threading.Lock()


def translate_db_errors(func):
    """Report database outages as InfrastructureError instead of leaking driver errors."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.exception('Database failure in %s', func.__name__)
            raise InfrastructureError() from exc
    return wrapper


def _room_lock(room_pk):
    with _room_locks_guard:
        return _room_locks.setdefault(room_pk, threading.Lock())


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""
    if not transaction.get_connection().in_atomic_block:
        return queryset
    if transaction.get_connection().features.has_select_for_update_of:
        return queryset.select_for_update(of=('self',))
    return queryset.select_for_update()


# Date helpers

def to_date(value, field_name='date'):
    """Accept a date, a datetime or a 'yyyy-MM-dd' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), DATE_FORMAT).date()
        except ValueError:
            pass
    raise BookingValidationError(f'Invalid {field_name}: {value!r}')


def validate_stay(start, end):
    start_date = to_date(start, 'start date')
    end_date = to_date(end, 'end date')
    if end_date < start_date:
        raise BookingValidationError('End date must not be before start date.')
    if start_date == date.max:
        raise BookingValidationError('Start date is past the last bookable night.')
    return start_date, end_date


def occupied_until(start, end):
    """Exclusive end of the nights a stay occupies; a same-day stay holds one night."""
    return end if end > start else start + ONE_DAY


def compute_nights(start, end):
    return max((end - start).days, 1)


def compute_total(price, start, end):
    return Decimal(price) * compute_nights(start, end)


def default_horizon(today=None):
    """Today through today + BOOKING_HORIZON_MONTHS months."""
    today = today or timezone.localdate()
    months = getattr(settings, 'BOOKING_HORIZON_MONTHS', 3)
    return today, today + relativedelta(months=months)


# Lookups

def _get_active_room(room_id, lock=False):
    queryset = Room.objects.active()
    if lock:
        queryset = _lock_queryset_if_possible(queryset)
    try:
        room = queryset.filter(pk=room_id).first()
    except (ValueError, TypeError):
        room = None
    if room is None:
        raise NotFoundError(f'Room {room_id} does not exist or cannot be booked.')
    return room


def _get_order(order_id, lock=False):
    queryset = Order.objects.select_related('room')
    if lock:
        queryset = _lock_queryset_if_possible(Order.objects.all())
    try:
        order = queryset.filter(pk=order_id).first()
    except (ValueError, TypeError):
        order = None
    if order is None:
        raise NotFoundError(f'Order {order_id} does not exist.')
    return order


def _check_owner(order, member_id, as_admin):
    if not as_admin and order.member_id != member_id:
        logger.warning('Member %s tried to modify order %s owned by %s', member_id, order.pk, order.member_id)
        raise ForbiddenError()


@translate_db_errors
def list_active_rooms():
    return list(Room.objects.active())


@translate_db_errors
def get_room_for_booking(room_id):
    return _get_active_room(room_id)


@translate_db_errors
def orders_for_room(room_id, active_only=True):
    queryset = Order.objects.filter(room_id=room_id)
    if active_only:
        queryset = queryset.active()
    return list(queryset.order_by('start_date'))


@translate_db_errors
def orders_for_member(member_id):
    """All of a member's orders, newest first."""
    return list(Order.objects.for_member(member_id).select_related('room').order_by('-order_date'))


@translate_db_errors
def get_order_details(order_id, member_id, *, as_admin=False):
    order = _get_order(order_id)
    _check_owner(order, member_id, as_admin)
    return order


# Availability

def _conflicting_orders(room_pk, start_date, end_date, exclude_order_id=None):
    queryset = (
        Order.objects.active()
        .filter(room_id=room_pk)
        .overlapping(start_date, occupied_until(start_date, end_date))
    )
    if exclude_order_id is not None:
        queryset = queryset.exclude(pk=exclude_order_id)
    return queryset


@translate_db_errors
def check_room_availability(room_id, start, end, exclude_order_id=None):
    """
    Check if a room is free for the stay [start, end).

    Only non-cancelled orders block the room. Returns True when no such
    order shares a night with the requested stay.
    """
    start_date, end_date = validate_stay(start, end)
    try:
        return not _conflicting_orders(room_id, start_date, end_date, exclude_order_id).exists()
    except (ValueError, TypeError):
        raise NotFoundError(f'Room {room_id} does not exist.')


@translate_db_errors
def list_booked_dates(room_id, horizon_start=None, horizon_end=None):
    """
    Every calendar day inside the horizon touched by a non-cancelled order.

    Each order contributes its days from start to end inclusive, which is
    coarser than the half-open conflict check; use it for display only.
    """
    default_start, default_end = default_horizon()
    horizon_start = default_start if horizon_start is None else to_date(horizon_start, 'horizon start')
    horizon_end = default_end if horizon_end is None else to_date(horizon_end, 'horizon end')
    if horizon_end < horizon_start:
        raise BookingValidationError('Horizon end must not be before horizon start.')

    try:
        room_exists = Room.objects.filter(pk=room_id).exists()
    except (ValueError, TypeError):
        room_exists = False
    if not room_exists:
        raise NotFoundError(f'Room {room_id} does not exist.')

    stays = (
        Order.objects.active()
        .filter(room_id=room_id, start_date__lte=horizon_end, end_date__gte=horizon_start)
        .values_list('start_date', 'end_date')
    )
    booked = set()
    for start_date, end_date in stays:
        day = max(start_date, horizon_start)
        last = min(end_date, horizon_end)
        while True:
            booked.add(day)
            if day >= last:
                break
            day += ONE_DAY
    return sorted(booked)


# Booking lifecycle

@translate_db_errors
def reserve_room(room_id, member_id, start, end):
    """
    Create an unpaid order for the stay, or raise without writing anything.

    Raises NotFoundError for unknown or inactive rooms and members,
    BookingValidationError for malformed dates and ConflictError when the
    room is already taken for any night of the stay.
    """
    start_date, end_date = validate_stay(start, end)
    room = _get_active_room(room_id)
    if not get_user_model().objects.filter(pk=member_id).exists():
        raise NotFoundError(f'Member {member_id} does not exist.')

    with _room_lock(room.pk):
        with transaction.atomic():
            # Re-read under the row lock; the room may have been deactivated meanwhile.
            room = _get_active_room(room.pk, lock=True)
            if _conflicting_orders(room.pk, start_date, end_date).exists():
                logger.warning(
                    'Reservation conflict: room=%s member=%s %s..%s',
                    room.pk, member_id, start_date, end_date,
                )
                raise ConflictError(
                    f'{room.name} is not available from {start_date} to {end_date}.'
                )
            order = Order.objects.create(
                room=room,
                member_id=member_id,
                start_date=start_date,
                end_date=end_date,
                total_amount=compute_total(room.price, start_date, end_date),
            )

    logger.info(
        'Order %s reserved: room=%s member=%s %s..%s total=%s',
        order.pk, room.pk, member_id, start_date, end_date, order.total_amount,
    )
    return order


@translate_db_errors
def cancel_order(order_id, member_id, *, as_admin=False):
    """Mark an order cancelled. Paid orders may be cancelled too; cancellation is final."""
    with transaction.atomic():
        order = _get_order(order_id, lock=True)
        _check_owner(order, member_id, as_admin)
        if order.is_cancelled:
            raise AlreadyCancelledError(f'Order {order.pk} has already been cancelled.')
        order.is_cancelled = True
        order.save(update_fields=['is_cancelled', 'updated_at'])
    logger.info('Order %s cancelled by member %s', order.pk, member_id)
    return order


# Cart

@translate_db_errors
def get_cart(member_id):
    """The member's unpaid, non-cancelled orders."""
    return list(Order.objects.cart_for(member_id).select_related('room').order_by('start_date', 'pk'))


@translate_db_errors
def cart_total(member_id):
    total = Order.objects.cart_for(member_id).aggregate(
        total=Sum('total_amount', output_field=DecimalField(max_digits=12, decimal_places=2)),
    )['total']
    return (total or Decimal('0')).quantize(CENTS)


@translate_db_errors
def remove_from_cart(order_id, member_id):
    """Removing a cart item cancels it; orders are never deleted."""
    with transaction.atomic():
        order = _get_order(order_id, lock=True)
        _check_owner(order, member_id, as_admin=False)
        if not order.in_cart:
            raise NotInCartError(f'Order {order.pk} is not in the cart.')
        order.is_cancelled = True
        order.save(update_fields=['is_cancelled', 'updated_at'])
    logger.info('Order %s removed from cart of member %s', order.pk, member_id)
    return order


@translate_db_errors
def checkout(member_id):
    """
    Pay for every item in the member's cart in a single transaction.

    Either all cart orders become paid or none do. Raises EmptyCartError
    when there is nothing to pay.
    """
    with transaction.atomic():
        cart = list(
            _lock_queryset_if_possible(Order.objects.cart_for(member_id).select_related('room'))
            .order_by('start_date', 'pk')
        )
        if not cart:
            raise EmptyCartError()
        Order.objects.filter(pk__in=[order.pk for order in cart]).update(
            is_paid=True,
            updated_at=timezone.now(),
        )
        for order in cart:
            order.is_paid = True

    logger.info('Member %s checked out %d order(s)', member_id, len(cart))
    return cart
