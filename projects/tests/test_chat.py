from projects import chat, services
from projects.exceptions import NotAllowed, ValidationError
from projects.realtime import channel, messages_topic

from .base import ProjectTestCase


class MessageTests(ProjectTestCase):
    def setUp(self):
        super().setUp()
        self.project = self.project_in_edit()

    def test_send_bumps_the_other_side(self):
        chat.send_message(self.project.pk, self.creator, "Can we use the blue LUT?")
        chat.send_message(self.project.pk, self.creator, "And add captions")
        chat.send_message(self.project.pk, self.editor, "Sure")

        self.project.refresh_from_db()
        self.assertEqual(self.project.unread_editor_messages, 2)
        self.assertEqual(self.project.unread_creator_messages, 1)

    def test_reading_resets_only_the_readers_counter(self):
        chat.send_message(self.project.pk, self.creator, "hello")
        chat.send_message(self.project.pk, self.editor, "hi")

        messages = list(chat.list_messages(self.project.pk, viewer=self.editor))

        self.assertEqual([m.content for m in messages], ["hello", "hi"])
        self.project.refresh_from_db()
        self.assertEqual(self.project.unread_editor_messages, 0)
        self.assertEqual(self.project.unread_creator_messages, 1)

    def test_content_is_sanitized(self):
        message = chat.send_message(self.project.pk, self.creator, "  <script>x()</script>Cut at 0:42  ")
        self.assertEqual(message.content, "x()Cut at 0:42")

    def test_empty_message(self):
        with self.assertRaises(ValidationError):
            chat.send_message(self.project.pk, self.creator, "   ")

    def test_outsider_cannot_post_or_read(self):
        with self.assertRaises(NotAllowed):
            chat.send_message(self.project.pk, self.outsider, "hey")
        with self.assertRaises(NotAllowed):
            chat.list_messages(self.project.pk, viewer=self.outsider)

    def test_publishes_after_commit(self):
        received = []
        subscription = channel.subscribe(messages_topic(self.project.pk), received.append)
        self.addCleanup(subscription.unsubscribe)

        with self.captureOnCommitCallbacks(execute=True):
            message = chat.send_message(self.project.pk, self.editor, "v1 is up")

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0]["type"], "INSERT")
        self.assertEqual(received[0]["record"]["id"], message.pk)
        self.assertEqual(received[0]["record"]["content"], "v1 is up")

    def test_other_topics_are_not_delivered(self):
        other = self.new_project(title="Other")
        received = []
        subscription = channel.subscribe(messages_topic(other.pk), received.append)
        self.addCleanup(subscription.unsubscribe)

        with self.captureOnCommitCallbacks(execute=True):
            chat.send_message(self.project.pk, self.editor, "not for you")

        self.assertEqual(received, [])


class ThreadTests(ProjectTestCase):
    def test_threads_show_my_unread_and_last_message(self):
        active = self.project_in_edit()
        quiet = self.new_project(title="Quiet one")

        chat.send_message(active.pk, self.editor, "first")
        chat.send_message(active.pk, self.editor, "latest")

        threads = chat.threads_for_user(self.creator)
        by_id = {t["project_id"]: t for t in threads}

        self.assertEqual(threads[0]["project_id"], active.pk)
        self.assertEqual(by_id[active.pk]["unread"], 2)
        self.assertEqual(by_id[active.pk]["role"], "creator")
        self.assertEqual(by_id[active.pk]["last_message"]["content"], "latest")
        self.assertEqual(by_id[active.pk]["last_message"]["sender_id"], self.editor.pk)
        self.assertIsNone(by_id[quiet.pk]["last_message"])

    def test_editor_sees_only_assigned_projects(self):
        assigned = self.project_in_edit()
        self.new_project(title="Not assigned")

        threads = chat.threads_for_user(self.editor)
        self.assertEqual([t["project_id"] for t in threads], [assigned.pk])
        self.assertEqual(threads[0]["role"], "editor")

    def test_reject_removes_thread_for_editor(self):
        project = self.new_project()
        services.assign_editor(project.pk, self.editor, actor=self.creator)
        services.reject_assignment(project.pk, actor=self.editor)

        self.assertEqual(chat.threads_for_user(self.editor), [])
