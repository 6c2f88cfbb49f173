import logging
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from . import services
from .exceptions import InfrastructureError, ReservationError
from .forms import DateRangeForm, ReserveRoomForm

logger = logging.getLogger(__name__)


def booking_errors_as_json(view):
    """Turn engine errors into structured JSON responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ReservationError as exc:
            logger.info('%s rejected: %s', request.path, exc.message)
            return JsonResponse(exc.as_dict(), status=exc.status_code)
        except InfrastructureError as exc:
            logger.error('%s failed: %s', request.path, exc.message)
            return JsonResponse(exc.as_dict(), status=exc.status_code)
    return wrapper


def _form_errors(form):
    return JsonResponse(
        {
            'success': False,
            'error': 'validation_error',
            'message': 'Invalid input.',
            'fields': form.errors.get_json_data(),
        },
        status=400,
    )


def _room_as_dict(room):
    return {
        'id': room.pk,
        'name': room.name,
        'price': str(room.price),
        'capacity': room.capacity,
        'description': room.description,
    }


@require_GET
@booking_errors_as_json
def room_list(request):
    """Active rooms open for booking."""
    rooms = services.list_active_rooms()
    return JsonResponse({'success': True, 'rooms': [_room_as_dict(room) for room in rooms]})


@require_GET
@booking_errors_as_json
def room_detail(request, room_id):
    room = services.get_room_for_booking(room_id)
    return JsonResponse({'success': True, 'room': _room_as_dict(room)})


@require_GET
@booking_errors_as_json
def booked_dates(request, room_id):
    """Booked calendar days for a room, as 'yyyy-MM-dd' strings."""
    form = DateRangeForm(request.GET)
    if not form.is_valid():
        return _form_errors(form)
    days = services.list_booked_dates(
        room_id,
        form.cleaned_data.get('start_date'),
        form.cleaned_data.get('end_date'),
    )
    return JsonResponse({'success': True, 'bookings': [day.isoformat() for day in days]})


@require_GET
@booking_errors_as_json
def room_availability(request, room_id):
    form = DateRangeForm(request.GET)
    if not form.is_valid():
        return _form_errors(form)
    start_date = form.cleaned_data.get('start_date')
    end_date = form.cleaned_data.get('end_date')
    if not start_date or not end_date:
        return JsonResponse(
            {'success': False, 'error': 'validation_error', 'message': 'start_date and end_date are required.'},
            status=400,
        )
    available = services.check_room_availability(room_id, start_date, end_date)
    return JsonResponse({
        'success': True,
        'room_id': room_id,
        'start_date': start_date.isoformat(),
        'end_date': end_date.isoformat(),
        'available': available,
    })


@login_required
@require_POST
@booking_errors_as_json
def reserve_room(request):
    form = ReserveRoomForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    cd = form.cleaned_data
    order = services.reserve_room(cd['room'], request.user.pk, cd['start_date'], cd['end_date'])
    return JsonResponse({'success': True, 'order': order.as_dict()}, status=201)


@login_required
@require_GET
@booking_errors_as_json
def order_list(request):
    """The signed-in member's orders, newest first."""
    orders = services.orders_for_member(request.user.pk)
    return JsonResponse({'success': True, 'orders': [order.as_dict() for order in orders]})


@login_required
@require_GET
@booking_errors_as_json
def order_detail(request, order_id):
    order = services.get_order_details(order_id, request.user.pk, as_admin=request.user.is_staff)
    payload = order.as_dict()
    payload['price'] = str(order.room.price)
    return JsonResponse({'success': True, 'order': payload})


@login_required
@require_POST
@booking_errors_as_json
def cancel_order(request, order_id):
    order = services.cancel_order(order_id, request.user.pk, as_admin=request.user.is_staff)
    return JsonResponse({'success': True, 'order': order.as_dict()})


@login_required
@require_GET
@booking_errors_as_json
def cart(request):
    items = services.get_cart(request.user.pk)
    return JsonResponse({
        'success': True,
        'items': [order.as_dict() for order in items],
        'total': str(services.cart_total(request.user.pk)),
    })


@login_required
@require_POST
@booking_errors_as_json
def remove_from_cart(request, order_id):
    order = services.remove_from_cart(order_id, request.user.pk)
    return JsonResponse({'success': True, 'order': order.as_dict()})


@login_required
@require_POST
@booking_errors_as_json
def checkout(request):
    paid = services.checkout(request.user.pk)
    return JsonResponse({'success': True, 'orders': [order.as_dict() for order in paid]})
