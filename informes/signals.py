# informes/signals.py
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .feed import feed
from .models import Publisher, ServiceReport
from .snapshot import load_snapshot


def _publish_snapshot():
    if feed.has_subscribers:
        feed.publish(load_snapshot())


@receiver(post_save, sender=Publisher)
@receiver(post_delete, sender=Publisher)
@receiver(post_save, sender=ServiceReport)
@receiver(post_delete, sender=ServiceReport)
def publish_on_change(sender, **kwargs):
    # Subscribers only ever see committed data.
    transaction.on_commit(_publish_snapshot)
