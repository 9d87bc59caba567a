from django.contrib import admin
from .models import ExchangeUser


@admin.register(ExchangeUser)
class ExchangeUserAdmin(admin.ModelAdmin):
    list_display = ("username", "email", "is_active", "created_at")
    search_fields = ("username", "email")
    list_filter = ("is_active",)
    date_hierarchy = "created_at"
