from django.contrib import admin

from .models import Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('name', 'price', 'capacity', 'is_active', 'updated_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'description')
    actions = ('deactivate_rooms', 'activate_rooms')

    @admin.action(description='Deactivate selected rooms')
    def deactivate_rooms(self, request, queryset):
        queryset.update(is_active=False)

    @admin.action(description='Activate selected rooms')
    def activate_rooms(self, request, queryset):
        queryset.update(is_active=True)
