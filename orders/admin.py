from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'room', 'member', 'start_date', 'end_date', 'total_amount', 'is_paid', 'is_cancelled', 'order_date')
    list_filter = ('is_paid', 'is_cancelled', 'room')
    search_fields = ('member__username', 'member__email', 'room__name')
    date_hierarchy = 'start_date'
    list_select_related = ('room', 'member')

    def has_delete_permission(self, request, obj=None):
        # Orders are history; cancel instead of deleting.
        return False
