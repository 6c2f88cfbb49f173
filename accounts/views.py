import logging

from django.contrib.auth import authenticate, get_user_model, login, logout, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.contrib.auth.forms import PasswordChangeForm
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods, require_POST

from .forms import LoginForm, PhoneChangeForm, RegistrationForm
from .models import MemberProfile

logger = logging.getLogger(__name__)


def _invalid(form):
    return JsonResponse(
        {
            'success': False,
            'error': 'validation_error',
            'message': 'Invalid input.',
            'fields': form.errors.get_json_data(),
        },
        status=400,
    )


def _member_as_dict(user):
    profile = MemberProfile.objects.filter(user=user).first()
    return {
        'id': user.pk,
        'email': user.email,
        'phone': profile.phone if profile else '',
        'is_staff': user.is_staff,
    }


@require_POST
def register_view(request):
    """Create a member account and sign it in."""
    form = RegistrationForm(request.POST)
    if not form.is_valid():
        return _invalid(form)

    cd = form.cleaned_data
    with transaction.atomic():
        user = get_user_model().objects.create_user(
            username=cd['email'],
            email=cd['email'],
            password=cd['password'],
        )
        MemberProfile.objects.create(user=user, phone=cd['phone'])

    login(request, user)
    logger.info('Member %s registered', user.pk)
    return JsonResponse({'success': True, 'member': _member_as_dict(user)}, status=201)


@require_http_methods(['GET', 'POST'])
def login_view(request):
    """Sign a member in. GET is where login_required sends anonymous requests."""
    if request.method == 'GET':
        return JsonResponse(
            {
                'success': False,
                'error': 'authentication_required',
                'message': 'Sign in by POSTing email and password to this URL.',
                'next': request.GET.get('next', ''),
            },
            status=401,
        )

    form = LoginForm(request.POST)
    if not form.is_valid():
        return _invalid(form)

    email = form.cleaned_data['email'].strip().lower()
    user = authenticate(request, username=email, password=form.cleaned_data['password'])
    if user is None:
        logger.warning('Failed sign-in for %s', email)
        return JsonResponse(
            {'success': False, 'error': 'invalid_credentials', 'message': 'Invalid email or password.'},
            status=401,
        )

    login(request, user)
    return JsonResponse({'success': True, 'member': _member_as_dict(user)})


@login_required
@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({'success': True})


@login_required
@require_POST
def change_password(request):
    form = PasswordChangeForm(user=request.user, data=request.POST)
    if not form.is_valid():
        return _invalid(form)
    user = form.save()
    # Keep the current session valid after the hash changes.
    update_session_auth_hash(request, user)
    logger.info('Member %s changed password', user.pk)
    return JsonResponse({'success': True})


@login_required
@require_POST
def change_phone(request):
    form = PhoneChangeForm(request.POST)
    if not form.is_valid():
        return _invalid(form)
    MemberProfile.objects.update_or_create(
        user=request.user,
        defaults={'phone': form.cleaned_data['phone']},
    )
    return JsonResponse({'success': True, 'member': _member_as_dict(request.user)})
