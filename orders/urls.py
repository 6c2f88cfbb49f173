from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    path('', views.order_list, name='order_list'),
    path('rooms/', views.room_list, name='room_list'),
    path('rooms/<int:room_id>/', views.room_detail, name='room_detail'),
    path('rooms/<int:room_id>/booked-dates/', views.booked_dates, name='booked_dates'),
    path('rooms/<int:room_id>/availability/', views.room_availability, name='room_availability'),
    path('reserve/', views.reserve_room, name='reserve_room'),
    path('cart/', views.cart, name='cart'),
    path('cart/<int:order_id>/remove/', views.remove_from_cart, name='remove_from_cart'),
    path('checkout/', views.checkout, name='checkout'),
    path('<int:order_id>/', views.order_detail, name='order_detail'),
    path('<int:order_id>/cancel/', views.cancel_order, name='cancel_order'),
]
