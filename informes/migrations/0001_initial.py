import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


MONTH_CHOICES = [
    ("Enero", "Enero"),
    ("Febrero", "Febrero"),
    ("Marzo", "Marzo"),
    ("Abril", "Abril"),
    ("Mayo", "Mayo"),
    ("Junio", "Junio"),
    ("Julio", "Julio"),
    ("Agosto", "Agosto"),
    ("Septiembre", "Septiembre"),
    ("Octubre", "Octubre"),
    ("Noviembre", "Noviembre"),
    ("Diciembre", "Diciembre"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Publisher",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nombre", models.CharField(max_length=100)),
                ("apellido", models.CharField(blank=True, max_length=100)),
                ("segundo_apellido", models.CharField(blank=True, max_length=100)),
                ("apellido_casada", models.CharField(blank=True, max_length=100)),
                (
                    "sexo",
                    models.CharField(blank=True, choices=[("Hombre", "Hombre"), ("Mujer", "Mujer")], max_length=10),
                ),
                ("fecha_nacimiento", models.DateField(blank=True, null=True)),
                ("fecha_bautismo", models.DateField(blank=True, null=True)),
                (
                    "esperanza",
                    models.CharField(
                        blank=True,
                        choices=[("Otras ovejas", "Otras ovejas"), ("Ungido", "Ungido")],
                        max_length=20,
                    ),
                ),
                ("celular", models.CharField(blank=True, max_length=30)),
                ("correo", models.EmailField(blank=True, max_length=254)),
                ("grupo", models.CharField(blank=True, db_index=True, max_length=50)),
                (
                    "estatus",
                    models.CharField(
                        choices=[
                            ("Activo", "Activo"),
                            ("Inactivo", "Inactivo"),
                            ("Se cambió de congregación", "Se cambió de congregación"),
                            ("Falleció", "Falleció"),
                            ("Sacado de la congregación", "Sacado de la congregación"),
                        ],
                        db_index=True,
                        default="Activo",
                        max_length=30,
                    ),
                ),
                (
                    "privilegio",
                    models.CharField(
                        blank=True,
                        choices=[("Anciano", "Anciano"), ("Siervo Ministerial", "Siervo Ministerial")],
                        max_length=30,
                    ),
                ),
                (
                    "priv_adicional",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Precursor Regular", "Precursor Regular"),
                            ("Precursor Especial", "Precursor Especial"),
                            ("Misionero", "Misionero"),
                        ],
                        max_length=30,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "publicador",
                "verbose_name_plural": "publicadores",
                "ordering": ["nombre", "apellido"],
            },
        ),
        migrations.CreateModel(
            name="PioneerApplication",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nombre", models.CharField(max_length=200)),
                ("mes", models.CharField(blank=True, max_length=200)),
                ("de_continuo", models.BooleanField(default=False)),
                ("fecha", models.DateField()),
                ("horas", models.CharField(choices=[("15", "15 Horas"), ("30", "30 Horas")], max_length=2)),
                ("firma_solicitante", models.TextField()),
                ("firma1", models.TextField(blank=True, default="")),
                ("firma2", models.TextField(blank=True, default="")),
                ("firma3", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=[("Pendiente", "Pendiente"), ("Aprobado", "Aprobado")],
                        db_index=True,
                        default="Pendiente",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "solicitud de precursor auxiliar",
                "verbose_name_plural": "solicitudes de precursor auxiliar",
                "ordering": ["-fecha", "-id"],
            },
        ),
        migrations.CreateModel(
            name="WatchSchedule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveIntegerField()),
                ("day", models.CharField(choices=[("tuesday", "Martes"), ("saturday", "Sábado")], max_length=10)),
                ("assignments", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "ordering": ["year", "day"],
                "unique_together": {("year", "day")},
            },
        ),
        migrations.CreateModel(
            name="WatchEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("description", models.CharField(max_length=255)),
                ("congregation", models.CharField(max_length=100)),
                (
                    "schedule",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="informes.watchschedule",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "id"],
            },
        ),
        migrations.CreateModel(
            name="ServiceReport",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("anio_calendario", models.PositiveIntegerField()),
                ("mes", models.CharField(choices=MONTH_CHOICES, max_length=12)),
                ("participacion", models.BooleanField(default=False)),
                (
                    "precursor_auxiliar",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="'PA' si sirvió como precursor auxiliar este mes.",
                        max_length=2,
                    ),
                ),
                ("cursos_biblicos", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "horas",
                    models.DecimalField(
                        blank=True,
                        decimal_places=1,
                        max_digits=6,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("notas", models.TextField(blank=True, default="")),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "publicador",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="informes",
                        to="informes.publisher",
                    ),
                ),
            ],
            options={
                "verbose_name": "informe de servicio",
                "verbose_name_plural": "informes de servicio",
                "ordering": ["anio_calendario", "publicador_id"],
                "unique_together": {("publicador", "anio_calendario", "mes")},
            },
        ),
    ]
