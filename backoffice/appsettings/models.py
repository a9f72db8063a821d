from django.db import models

_MISSING = object()


class Setting(models.Model):
    group = models.CharField(max_length=50)
    name = models.CharField(max_length=50, blank=True, default="")
    details = models.CharField(max_length=255, blank=True, default="")
    key = models.CharField(max_length=50)
    value = models.TextField(blank=True, default="")
    is_visible = models.BooleanField(
        default=True,
        help_text="Invisible settings cannot be viewed or edited from the admin once created.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["group", "key"]
        unique_together = ("group", "key")

    def __str__(self) -> str:
        return f"{self.group}.{self.key}"

    @classmethod
    def get_data(cls, group: str, key: str) -> "Setting":
        """Return the setting row; raises ``Setting.DoesNotExist`` when missing."""
        return cls.objects.get(group=group, key=key)

    @classmethod
    def get_value(cls, group: str, key: str, default=_MISSING):
        try:
            return cls.get_data(group, key).value
        except cls.DoesNotExist:
            if default is _MISSING:
                raise
            return default

    @classmethod
    def set_value(cls, group: str, key: str, value) -> "Setting":
        setting, _ = cls.objects.update_or_create(
            group=group, key=key, defaults={"value": value}
        )
        return setting

    @classmethod
    def stripe_product_id(cls) -> str:
        return cls.get_value("stripe", "product", "")

    @classmethod
    def stripe_price_id(cls) -> str:
        return cls.get_value("stripe", "price", "")
