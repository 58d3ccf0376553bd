from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("Email is required.")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", User.ROLE_ADMIN)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    ROLE_ADMIN = "admin"
    ROLE_SECRETARIO = "secretario"
    ROLE_OVERSEER = "overseer"
    ROLE_HELPER = "helper"
    ROLE_PUBLISHER = "publisher"

    ROLE_CHOICES = [
        (ROLE_ADMIN, "Administrador"),
        (ROLE_SECRETARIO, "Secretario"),
        (ROLE_OVERSEER, "Superintendente"),
        (ROLE_HELPER, "Ayudante"),
        (ROLE_PUBLISHER, "Publicador"),
    ]

    username = None  # remove username field
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_PUBLISHER)

    # Members of the congregation service committee sign pioneer applications.
    is_committee_member = models.BooleanField(default=False)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []  # no username required

    objects = UserManager()

    @property
    def can_manage(self) -> bool:
        return self.role in (self.ROLE_ADMIN, self.ROLE_SECRETARIO) or self.is_committee_member

    @property
    def can_review_applications(self) -> bool:
        return self.can_manage or self.role == self.ROLE_OVERSEER

    def __str__(self):
        return self.email
