from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .models import Tenant
from .services.tenant_cache import clear_tenant_cache


@receiver([post_save, post_delete], sender=Tenant)
def evict_tenant_cache(sender, instance, **kwargs):
    clear_tenant_cache(instance.slug)
