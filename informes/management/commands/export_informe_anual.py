# informes/management/commands/export_informe_anual.py
from django.core.management.base import BaseCommand, CommandError

from informes.exports import write_service_year_csv
from informes.periods import current_service_year
from informes.snapshot import load_snapshot


class Command(BaseCommand):
    help = "Export the service-year totals (September to August) as CSV."

    def add_arguments(self, parser):
        parser.add_argument("--anio-servicio", type=int, default=0, help="e.g. 2024 (Sep 2023 - Aug 2024). Defaults to the current one.")
        parser.add_argument("--out", default="", help="Output filename (optional)")

    def handle(self, *args, **options):
        service_year = options["anio_servicio"] or current_service_year()
        if service_year < 2000 or service_year > 2100:
            raise CommandError(f"Invalid service year: {service_year}")

        filename = (options["out"] or "").strip() or f"informe_anual_{service_year}.csv"

        try:
            with open(filename, "w", newline="", encoding="utf-8") as f:
                rows = write_service_year_csv(load_snapshot(), service_year, f)
        except OSError as exc:
            raise CommandError(f"Could not write {filename}: {exc}") from exc

        self.stdout.write(self.style.SUCCESS(f"Wrote {filename} ({rows} months)"))
