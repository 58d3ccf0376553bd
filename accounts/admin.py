import logging

from django import forms
from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.password_validation import validate_password

from .models import User

logger = logging.getLogger(__name__)

# Roles that work in the reports screens get admin access on creation.
STAFF_ROLES = (User.ROLE_ADMIN, User.ROLE_SECRETARIO, User.ROLE_OVERSEER, User.ROLE_HELPER)


class StaffUserCreationForm(forms.ModelForm):
    password1 = forms.CharField(label="Contraseña", widget=forms.PasswordInput, strip=False)
    password2 = forms.CharField(label="Confirmar contraseña", widget=forms.PasswordInput, strip=False)

    class Meta:
        model = User
        fields = ("email", "full_name", "role", "is_committee_member")

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if not email:
            raise forms.ValidationError("El correo es obligatorio.")
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("Ya existe un usuario con este correo.")
        return email

    def clean_password2(self):
        p1 = self.cleaned_data.get("password1")
        p2 = self.cleaned_data.get("password2")
        if p1 and p2 and p1 != p2:
            raise forms.ValidationError("Las contraseñas no coinciden.")
        validate_password(p2, self.instance)
        return p2

    def save(self, commit=True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data["password1"])
        user.is_staff = user.role in STAFF_ROLES or user.is_committee_member
        if commit:
            user.save()
        return user


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    model = User
    add_form = StaffUserCreationForm

    list_display = ("email", "full_name", "role", "is_committee_member", "is_staff", "is_active", "access")
    list_filter = ("role", "is_committee_member", "is_staff", "is_active")
    ordering = ("email",)
    search_fields = ("email", "full_name")
    actions = ["add_to_committee", "remove_from_committee"]

    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "full_name", "role", "is_committee_member", "password1", "password2")}),
    )
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Perfil", {"fields": ("full_name", "role", "is_committee_member")}),
        ("Permisos", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Fechas", {"fields": ("last_login", "date_joined")}),
    )

    @admin.display(description="Acceso")
    def access(self, obj):
        if obj.can_manage:
            return "Administra"
        if obj.can_review_applications:
            return "Revisa solicitudes"
        return "Solo lectura"

    @admin.action(description="Agregar al comité de servicio")
    def add_to_committee(self, request, queryset):
        updated = queryset.update(is_committee_member=True, is_staff=True)
        logger.info("%s added %d user(s) to the service committee.", request.user, updated)
        self.message_user(request, f"{updated} usuario(s) agregados al comité.", messages.SUCCESS)

    @admin.action(description="Quitar del comité de servicio")
    def remove_from_committee(self, request, queryset):
        updated = queryset.update(is_committee_member=False)
        logger.info("%s removed %d user(s) from the service committee.", request.user, updated)
        self.message_user(request, f"{updated} usuario(s) quitados del comité.", messages.SUCCESS)
