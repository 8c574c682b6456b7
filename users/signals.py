from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver
from authentication.models import CustomUser
from authentication.core.uploads import delete_stored_file


@receiver(pre_save, sender=CustomUser)
def remember_replaced_avatar(sender, instance, **kwargs):
    instance._replaced_avatar = None
    if not instance.pk:
        return

    old_avatar = CustomUser.objects.filter(pk=instance.pk).values_list('avatar', flat=True).first()
    new_avatar = instance.avatar.name if instance.avatar else None
    if old_avatar and old_avatar != new_avatar:
        instance._replaced_avatar = old_avatar


@receiver(post_save, sender=CustomUser)
def remove_replaced_avatar(sender, instance, **kwargs):
    old_avatar = getattr(instance, '_replaced_avatar', None)
    if old_avatar:
        instance._replaced_avatar = None
        transaction.on_commit(lambda: delete_stored_file(old_avatar))


@receiver(post_delete, sender=CustomUser)
def remove_avatar_on_delete(sender, instance, **kwargs):
    if instance.avatar:
        delete_stored_file(instance.avatar.name)
