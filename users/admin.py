from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'name', 'role', 'is_onboarded', 'is_staff')
    list_filter = ('role', 'is_onboarded', 'is_staff', 'is_superuser', 'is_active')
    search_fields = ('username', 'email', 'name')
    fieldsets = UserAdmin.fieldsets + (
        ('Profile', {'fields': ('name', 'role', 'avatar_url', 'bio', 'is_onboarded')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Profile', {'fields': ('name', 'role')}),
    )
