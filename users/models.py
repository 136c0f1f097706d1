# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_CREATOR = "creator"
    ROLE_EDITOR = "editor"

    ROLE_CHOICES = (
        (ROLE_CREATOR, "Creator"),
        (ROLE_EDITOR, "Editor"),
    )

    # Empty until the user picks a side during onboarding
    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        blank=True,
        default="",
    )

    name = models.CharField(max_length=255, blank=True, default="")
    avatar_url = models.CharField(max_length=1024, blank=True, null=True)
    bio = models.TextField(blank=True, null=True)

    is_onboarded = models.BooleanField(default=False, help_text="Has the user completed the setup flow?")

    class Meta:
        ordering = ["name", "username"]

    @property
    def is_creator(self) -> bool:
        return self.role == self.ROLE_CREATOR

    @property
    def is_editor(self) -> bool:
        return self.role == self.ROLE_EDITOR

    @property
    def display_name(self) -> str:
        return self.name or self.username

    def __str__(self):
        return self.username
