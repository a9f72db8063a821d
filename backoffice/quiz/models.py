import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.db.models import Max
from django.utils.text import slugify


class PackStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=100, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class Difficulty(models.Model):
    name = models.CharField(max_length=50, unique=True)
    slug = models.SlugField(max_length=60, unique=True)
    level = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(10)],
    )
    # Hex color in #RRGGBB
    color = models.CharField(
        max_length=7,
        validators=[
            RegexValidator(
                regex=r"^#[0-9A-Fa-f]{6}$",
                message="Color must be a hex value like #RRGGBB",
            )
        ],
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["level", "name"]
        verbose_name_plural = "difficulties"

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):
        # Slug always follows the name
        self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class Pack(models.Model):
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="packs"
    )
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name="packs")
    difficulty = models.ForeignKey(
        Difficulty, on_delete=models.CASCADE, related_name="packs", null=True, blank=True
    )
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(max_length=2500)
    price = models.DecimalField(
        max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    status = models.CharField(max_length=16, choices=PackStatus.choices, default=PackStatus.DRAFT)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_published(self) -> bool:
        return self.status == PackStatus.PUBLISHED

    def toggle_status(self) -> str:
        """Flip between draft and published and return the new status."""
        self.status = PackStatus.DRAFT if self.is_published else PackStatus.PUBLISHED
        self.save(update_fields=["status", "updated_at"])
        return self.status


class Question(models.Model):
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    pack = models.ForeignKey(Pack, on_delete=models.CASCADE, related_name="questions")
    name = models.CharField(max_length=255)
    number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    is_free = models.BooleanField(default=False)
    description = models.TextField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["pack", "number"]
        unique_together = ("pack", "number")

    def __str__(self) -> str:
        return f"#{self.number} {self.name}"

    @staticmethod
    def next_number(pack_id) -> int:
        """Highest number used in the pack plus one."""
        highest = Question.objects.filter(pack_id=pack_id).aggregate(n=Max("number"))["n"]
        return (highest or 0) + 1


class QuestionAnswer(models.Model):
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name="answers")
    description = models.TextField()
    is_correct = models.BooleanField(default=False)
    explanation = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return self.description[:50]
