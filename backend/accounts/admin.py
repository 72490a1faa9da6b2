from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class AccountUserAdmin(UserAdmin):
    list_display = ("username", "email", "user_uid", "full_name", "is_staff", "date_joined")
    search_fields = ("username", "email", "user_uid")
    readonly_fields = ("user_uid",)
