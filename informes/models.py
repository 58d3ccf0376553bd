# informes/models.py
import logging
import re

from django.core.validators import MinValueValidator
from django.db import models

from .periods import MONTH_CHOICES, MONTHS

logger = logging.getLogger(__name__)


class Publisher(models.Model):
    """
    A tracked congregation member. Status changes over time but no history is kept.
    """
    ESTATUS_ACTIVO = "Activo"
    ESTATUS_INACTIVO = "Inactivo"
    ESTATUS_TRASLADADO = "Se cambió de congregación"
    ESTATUS_FALLECIO = "Falleció"
    ESTATUS_SACADO = "Sacado de la congregación"

    ESTATUS_CHOICES = [
        (ESTATUS_ACTIVO, "Activo"),
        (ESTATUS_INACTIVO, "Inactivo"),
        (ESTATUS_TRASLADADO, "Se cambió de congregación"),
        (ESTATUS_FALLECIO, "Falleció"),
        (ESTATUS_SACADO, "Sacado de la congregación"),
    ]

    PRECURSOR_REGULAR = "Precursor Regular"
    PRECURSOR_ESPECIAL = "Precursor Especial"
    MISIONERO = "Misionero"

    PRIV_ADICIONAL_CHOICES = [
        (PRECURSOR_REGULAR, "Precursor Regular"),
        (PRECURSOR_ESPECIAL, "Precursor Especial"),
        (MISIONERO, "Misionero"),
    ]

    PRIVILEGIO_CHOICES = [
        ("Anciano", "Anciano"),
        ("Siervo Ministerial", "Siervo Ministerial"),
    ]

    nombre = models.CharField(max_length=100)
    apellido = models.CharField(max_length=100, blank=True)
    segundo_apellido = models.CharField(max_length=100, blank=True)
    apellido_casada = models.CharField(max_length=100, blank=True)

    sexo = models.CharField(max_length=10, blank=True, choices=[("Hombre", "Hombre"), ("Mujer", "Mujer")])
    fecha_nacimiento = models.DateField(null=True, blank=True)
    fecha_bautismo = models.DateField(null=True, blank=True)
    esperanza = models.CharField(
        max_length=20,
        blank=True,
        choices=[("Otras ovejas", "Otras ovejas"), ("Ungido", "Ungido")],
    )
    celular = models.CharField(max_length=30, blank=True)
    correo = models.EmailField(blank=True)

    grupo = models.CharField(max_length=50, blank=True, db_index=True)
    estatus = models.CharField(max_length=30, choices=ESTATUS_CHOICES, default=ESTATUS_ACTIVO, db_index=True)
    privilegio = models.CharField(max_length=30, choices=PRIVILEGIO_CHOICES, blank=True)
    priv_adicional = models.CharField(max_length=30, choices=PRIV_ADICIONAL_CHOICES, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["nombre", "apellido"]
        verbose_name = "publicador"
        verbose_name_plural = "publicadores"

    @property
    def full_name(self) -> str:
        parts = [self.nombre, self.apellido, self.segundo_apellido, self.apellido_casada]
        return " ".join(p.strip() for p in parts if p and p.strip() and p.strip().lower() != "n/a")

    @property
    def is_active(self) -> bool:
        return self.estatus == self.ESTATUS_ACTIVO

    def __str__(self) -> str:
        return self.full_name or f"Publicador #{self.pk}"


class ServiceReport(models.Model):
    AUX_MARKER = "PA"

    publicador = models.ForeignKey(
        Publisher,
        on_delete=models.CASCADE,
        related_name="informes",
    )
    anio_calendario = models.PositiveIntegerField()
    mes = models.CharField(max_length=12, choices=MONTH_CHOICES)

    participacion = models.BooleanField(default=False)
    precursor_auxiliar = models.CharField(
        max_length=2,
        blank=True,
        default="",
        help_text="'PA' si sirvió como precursor auxiliar este mes.",
    )
    cursos_biblicos = models.PositiveIntegerField(null=True, blank=True)
    horas = models.DecimalField(
        max_digits=6,
        decimal_places=1,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    notas = models.TextField(blank=True, default="")

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("publicador", "anio_calendario", "mes")
        ordering = ["anio_calendario", "publicador_id"]
        verbose_name = "informe de servicio"
        verbose_name_plural = "informes de servicio"

    @property
    def is_auxiliary(self) -> bool:
        return self.precursor_auxiliar == self.AUX_MARKER

    def __str__(self) -> str:
        return f"{self.publicador} – {self.mes} {self.anio_calendario}"


# Month lists are written by hand: "Marzo, Abril y Mayo", "marzo and april".
MONTH_SPLIT_RE = re.compile(r", | y | and ")


class PioneerApplication(models.Model):
    """
    Auxiliary-pioneer application (S-205b). Three committee signatures approve it.
    """
    STATUS_PENDIENTE = "Pendiente"
    STATUS_APROBADO = "Aprobado"

    STATUS_CHOICES = [
        (STATUS_PENDIENTE, "Pendiente"),
        (STATUS_APROBADO, "Aprobado"),
    ]

    HORAS_CHOICES = [
        ("15", "15 Horas"),
        ("30", "30 Horas"),
    ]

    SIGNATURE_SLOTS = ("firma1", "firma2", "firma3")

    nombre = models.CharField(max_length=200)
    mes = models.CharField(max_length=200, blank=True)
    de_continuo = models.BooleanField(default=False)
    fecha = models.DateField()
    horas = models.CharField(max_length=2, choices=HORAS_CHOICES)

    # PNG data URLs captured from the signature canvas.
    firma_solicitante = models.TextField()
    firma1 = models.TextField(blank=True, default="")
    firma2 = models.TextField(blank=True, default="")
    firma3 = models.TextField(blank=True, default="")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDIENTE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-fecha", "-id"]
        verbose_name = "solicitud de precursor auxiliar"
        verbose_name_plural = "solicitudes de precursor auxiliar"

    @property
    def signatures(self) -> list[str]:
        return [getattr(self, slot) for slot in self.SIGNATURE_SLOTS]

    @property
    def signature_count(self) -> int:
        return sum(1 for s in self.signatures if s)

    @property
    def is_fully_signed(self) -> bool:
        return self.signature_count == len(self.SIGNATURE_SLOTS)

    def add_committee_signature(self, data_url: str) -> bool:
        """
        Fill the first empty committee slot. The third signature approves the
        application. Returns False (and changes nothing) when all slots are taken.
        """
        for slot in self.SIGNATURE_SLOTS:
            if not getattr(self, slot):
                setattr(self, slot, data_url)
                update_fields = [slot]
                if slot == self.SIGNATURE_SLOTS[-1]:
                    self.status = self.STATUS_APROBADO
                    update_fields.append("status")
                self.save(update_fields=update_fields)
                return True

        logger.warning("Application %s is already fully signed.", self.pk)
        return False

    def month_names(self) -> list[str]:
        return [m.strip() for m in MONTH_SPLIT_RE.split((self.mes or "").lower()) if m.strip()]

    def covers_month(self, month: str) -> bool:
        if self.de_continuo:
            return True
        target = month.lower()
        return any(target in m for m in self.month_names())

    def __str__(self) -> str:
        return f"{self.nombre} – {self.mes or 'continuo'} [{self.status}]"


class WatchSchedule(models.Model):
    """
    Watch (vigilancia) duty for one meeting day of one year.
    assignments: {"Enero": {"7:20-7:50pm": "Nacozari", ...}, ...}
    """
    DAY_TUESDAY = "tuesday"
    DAY_SATURDAY = "saturday"

    DAY_CHOICES = [
        (DAY_TUESDAY, "Martes"),
        (DAY_SATURDAY, "Sábado"),
    ]

    SLOTS = {
        DAY_TUESDAY: ["7:20-7:50pm", "7:50-8:20pm", "8:20-8:50pm", "8:50-9:20pm"],
        DAY_SATURDAY: ["4:15-4:50pm", "4:50-5:20pm", "5:20-5:50pm", "5:50-6:20pm"],
    }

    year = models.PositiveIntegerField()
    day = models.CharField(max_length=10, choices=DAY_CHOICES)
    assignments = models.JSONField(default=dict, blank=True)

    class Meta:
        unique_together = ("year", "day")
        ordering = ["year", "day"]

    @property
    def slots(self) -> list[str]:
        return self.SLOTS[self.day]

    def assigned(self, month: str, slot: str) -> str:
        return (self.assignments.get(month) or {}).get(slot, "")

    def assign(self, month: str, slot: str, congregation: str) -> None:
        if month not in MONTHS:
            raise ValueError(f"Mes desconocido: {month}")
        if slot not in self.slots:
            raise ValueError(f"Horario desconocido para {self.day}: {slot}")
        month_map = dict(self.assignments.get(month) or {})
        if congregation:
            month_map[slot] = congregation
        else:
            month_map.pop(slot, None)
        self.assignments = {**self.assignments, month: month_map}

    def __str__(self) -> str:
        return f"Vigilancia {self.get_day_display()} {self.year}"


class WatchEvent(models.Model):
    schedule = models.ForeignKey(
        WatchSchedule,
        on_delete=models.CASCADE,
        related_name="events",
    )
    date = models.DateField()
    description = models.CharField(max_length=255)
    congregation = models.CharField(max_length=100)

    class Meta:
        ordering = ["date", "id"]

    def __str__(self) -> str:
        return f"{self.date:%Y-%m-%d} – {self.description} ({self.congregation})"
