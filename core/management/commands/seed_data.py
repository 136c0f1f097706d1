from django.core.files.base import ContentFile
from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.db import transaction

from projects import chat, comments, services
from projects.models import Project

User = get_user_model()

FAKE_VIDEO = b"\x00\x00\x00\x18ftypmp42 demo video bytes"


def demo_file(name):
    return ContentFile(FAKE_VIDEO, name=name)


class Command(BaseCommand):
    help = "Seeds the database with a demo creator, editor and projects across the lifecycle"

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            default="password",
            help="Password set on the demo accounts",
        )

    def ensure_user(self, username, role, name, password):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                "email": f"{username}@example.com",
                "role": role,
                "name": name,
                "is_onboarded": True,
            },
        )
        if created or not user.check_password(password):
            user.set_password(password)
            user.save()
        return user

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding data...")
        password = options["password"]

        # 1. Users
        maya = self.ensure_user("maya", User.ROLE_CREATOR, "Maya Creator", password)
        ravi = self.ensure_user("ravi", User.ROLE_EDITOR, "Ravi Editor", password)
        self.ensure_user("lena", User.ROLE_EDITOR, "Lena Cutter", password)

        if Project.objects.filter(creator=maya).exists():
            self.stdout.write(self.style.WARNING("Demo projects already exist, skipping"))
            return

        # 2. Draft with raw footage, no editor yet
        draft = services.create_project(
            maya, "Morning routine vlog", "youtube",
            description="Keep it calm, lo-fi music, subtitles in English.",
            priority="low",
        )
        services.upload_version(draft.pk, maya, demo_file("morning_raw.mp4"), "raw", comment="All clips")

        # 3. Assigned and waiting for the editor to accept
        pending = services.create_project(maya, "Product teaser", "instagram", priority="high")
        services.assign_editor(pending.pk, ravi, actor=maya)

        # 4. In review with chat and timestamped notes
        review = services.create_project(maya, "Travel reel: Goa", "instagram", editor=ravi)
        services.upload_version(review.pk, maya, demo_file("goa_raw.mp4"), "raw")
        chat.send_message(review.pk, maya, "Please keep the sunset shot")
        chat.send_message(review.pk, ravi, "Got it, first cut coming up")
        cut = services.upload_version(review.pk, ravi, demo_file("goa_v1.mp4"), "edited", comment="First cut")
        comments.add_video_comment(cut.pk, maya, 12.5, "Music is too loud here")
        comments.add_video_comment(cut.pk, maya, 41, "Hold this shot a bit longer")

        # 5. Completed and rated
        done = services.create_project(maya, "Podcast clip #12", "tiktok", editor=ravi)
        services.upload_version(done.pk, ravi, demo_file("podcast_v1.mp4"), "edited")
        services.approve_project(done.pk, actor=maya)
        services.complete_project(done.pk, actor=maya)
        services.rate_project(done.pk, 5, feedback="Fast and clean", actor=maya)

        for project in Project.objects.filter(creator=maya).order_by("id"):
            self.stdout.write(f"  {project.title}: {project.status}")

        self.stdout.write(self.style.SUCCESS("Seeding complete!"))
