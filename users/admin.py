from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'username', 'name', 'created_at')
    search_fields = ('email', 'username', 'name')
    ordering = ('-created_at',)
    readonly_fields = ('password', 'created_at', 'updated_at')

    fieldsets = (
        (None, {'fields': ('email', 'username', 'password')}),
        ('Personal Info', {'fields': ('name',)}),
        ('Dates', {'fields': ('created_at', 'updated_at')}),
    )
