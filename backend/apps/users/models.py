# backend/users/models.py
from django.db import models


class ExchangeUser(models.Model):
    """Exchange account that holds balances and stakes in launch pools."""

    username = models.CharField(max_length=64, unique=True, db_index=True)
    email = models.CharField(max_length=128, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def display_name(self):
        return self.username or self.email or str(self.pk)

    def __str__(self):
        return self.display_name()
