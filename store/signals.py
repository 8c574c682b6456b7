from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver
import logging

from .models import Product
from authentication.core.uploads import delete_stored_file

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Product)
def remember_replaced_product_image(sender, instance, **kwargs):
    """
    Note the previous image file when a product's image is replaced or cleared.
    """
    instance._replaced_image = None
    if not instance.pk:
        return

    old_name = Product.objects.filter(pk=instance.pk).values_list('image', flat=True).first()
    new_name = instance.image.name if instance.image else None
    if old_name and old_name != new_name:
        instance._replaced_image = old_name


@receiver(post_save, sender=Product)
def remove_replaced_product_image(sender, instance, **kwargs):
    """
    Delete the previous image once the new row is committed.
    """
    old_name = getattr(instance, '_replaced_image', None)
    if not old_name:
        return
    instance._replaced_image = None
    logger.info(f"Product '{instance.name}' image replaced, removing {old_name}")
    transaction.on_commit(lambda: delete_stored_file(old_name))


@receiver(post_delete, sender=Product)
def remove_deleted_product_image(sender, instance, **kwargs):
    if instance.image:
        delete_stored_file(instance.image.name)
