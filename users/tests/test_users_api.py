from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from users.models import User
from projects import services
from projects.models import Project


class UserApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.creator = User.objects.create_user(
            username="maya",
            email="maya@example.com",
            password="pass1234",
            role=User.ROLE_CREATOR,
            name="Maya Rao",
            is_onboarded=True,
        )
        self.editor = User.objects.create_user(
            username="arjun",
            email="arjun@example.com",
            password="pass1234",
            role=User.ROLE_EDITOR,
            name="Arjun Cuts",
            bio="Reels and shorts, fast turnaround",
            is_onboarded=True,
        )
        self.newbie = User.objects.create_user(
            username="newbie",
            email="newbie@example.com",
            password="pass1234",
        )

    def auth(self, user):
        self.client.force_authenticate(user=user)

    def test_me(self):
        self.auth(self.creator)
        resp = self.client.get(reverse("user-me"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.json()
        self.assertEqual(data["username"], "maya")
        self.assertEqual(data["role"], "creator")
        self.assertEqual(data["display_name"], "Maya Rao")

    def test_update_me_cannot_change_role(self):
        self.auth(self.creator)
        resp = self.client.patch(reverse("user-me"), {"bio": "Travel vlogs", "role": "editor"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.creator.refresh_from_db()
        self.assertEqual(self.creator.bio, "Travel vlogs")
        self.assertEqual(self.creator.role, "creator")

    def test_onboarding(self):
        self.auth(self.newbie)
        resp = self.client.post(reverse("user-onboarding"), {"name": "  Nia  ", "role": "editor"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.newbie.refresh_from_db()
        self.assertTrue(self.newbie.is_onboarded)
        self.assertEqual(self.newbie.role, "editor")
        self.assertEqual(self.newbie.name, "Nia")

    def test_onboarding_rejects_unknown_role(self):
        self.auth(self.newbie)
        resp = self.client.post(reverse("user-onboarding"), {"name": "Nia", "role": "admin"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("role", resp.json()["errors"])
        self.newbie.refresh_from_db()
        self.assertFalse(self.newbie.is_onboarded)

    def test_explore_editors(self):
        self.auth(self.creator)
        resp = self.client.get(reverse("user-list"), {"role": "editor"})

        usernames = [u["username"] for u in resp.json()]
        self.assertEqual(usernames, ["arjun"])

    def test_search(self):
        self.auth(self.creator)
        resp = self.client.get(reverse("user-list"), {"search": "turnaround"})
        self.assertEqual([u["username"] for u in resp.json()], ["arjun"])

        resp = self.client.get(reverse("user-list"), {"search": "nobody-matches"})
        self.assertEqual(resp.json(), [])

    def test_explore_hides_self_and_unonboarded(self):
        self.auth(self.editor)
        resp = self.client.get(reverse("user-list"))
        self.assertEqual([u["username"] for u in resp.json()], ["maya"])

    def test_rating_stats(self):
        project = services.create_project(self.creator, "Reel", "instagram", editor=self.editor)
        Project.objects.filter(pk=project.pk).update(status=Project.Status.COMPLETED)
        services.rate_project(project.pk, 4, actor=self.creator)

        self.auth(self.creator)
        resp = self.client.get(reverse("user-rating-stats", args=[self.editor.pk]))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json(), {"user_id": self.editor.pk, "average": 4.0, "total": 1})
