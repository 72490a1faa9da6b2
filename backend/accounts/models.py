# accounts/models.py
import string
import random
from django.contrib.auth.models import AbstractUser
from django.db import models


def generate_uid(length=8):
    chars = string.ascii_uppercase + string.digits
    return ''.join(random.choices(chars, k=length))


class User(AbstractUser):
    email = models.EmailField(unique=True, db_index=True)

    user_uid = models.CharField(
        max_length=8,
        unique=True,
        editable=False,
        db_index=True
    )

    full_name = models.CharField(max_length=120, blank=True)

    def save(self, *args, **kwargs):
        if not self.user_uid:
            while True:
                uid = generate_uid()
                if not User.objects.filter(user_uid=uid).exists():
                    self.user_uid = uid
                    break

        super().save(*args, **kwargs)

    def __str__(self):
        return self.email
