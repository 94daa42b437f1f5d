from django.db.models.signals import pre_save, post_save, post_delete
from django.dispatch import receiver

from .flags import clear_flag_cache
from .models import FeatureFlag


@receiver(pre_save, sender=FeatureFlag)
def remember_previous_key(sender, instance, **kwargs):
    instance._previous_key = (
        FeatureFlag.objects.filter(pk=instance.pk).values_list("key", flat=True).first()
        if instance.pk else None
    )


@receiver([post_save, post_delete], sender=FeatureFlag)
def invalidate_flag_cache(sender, instance, **kwargs):
    clear_flag_cache(instance.key)
    previous = getattr(instance, "_previous_key", None)
    if previous and previous != instance.key:
        clear_flag_cache(previous)
