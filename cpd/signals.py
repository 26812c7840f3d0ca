import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Activity, ActivityDocument, Profile
from .utils import clear_cpd_caches

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Activity)
@receiver(post_delete, sender=Activity)
@receiver(post_save, sender=ActivityDocument)
@receiver(post_delete, sender=ActivityDocument)
@receiver(post_save, sender=Profile)
@receiver(post_delete, sender=Profile)
def invalidate_cpd_summary(sender, instance, **kwargs):
    """Any change to a user's CPD data makes their cached summary stale."""
    logger.debug(f"{sender.__name__} {instance.pk} changed, invalidating summary for user {instance.user_id}")
    clear_cpd_caches(instance.user_id)
