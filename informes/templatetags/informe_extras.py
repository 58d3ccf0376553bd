# informes/templatetags/informe_extras.py
from django import template

register = template.Library()


@register.filter
def get_item(d, key):
    """
    Usage in templates:
      {{ buckets|get_item:"auxiliares" }}
    """
    if d is None:
        return None
    return d.get(key)


@register.filter
def percent_of(value, maximum):
    """Bar height for the dashboard charts, 0-100."""
    try:
        value, maximum = float(value or 0), float(maximum or 0)
    except (TypeError, ValueError):
        return 0
    if maximum <= 0:
        return 0
    return round(value * 100 / maximum)


@register.filter
def hours(value):
    if value is None:
        return "—"
    return f"{value:g}"
