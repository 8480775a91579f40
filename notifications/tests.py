from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase, Client
from django.urls import reverse

from applications.exceptions import NotFound
from .models import Notification
from .services import (
    PendingNotification, dispatch_notifications, list_notifications, mark_all_read, mark_read, notify,
)

User = get_user_model()


class NotificationServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='citizen', password='password')
        self.other = User.objects.create_user(username='other', password='password')

    def pending(self, user, title="Status update"):
        return PendingNotification(
            user_id=user.id,
            notification_type=Notification.Type.STATUS_CHANGED,
            title=title,
            message="Your application moved on.",
        )

    def test_dispatch_delivers_batch(self):
        delivered = dispatch_notifications([self.pending(self.user), self.pending(self.other)])
        self.assertEqual(delivered, 2)
        self.assertEqual(Notification.objects.count(), 2)

    def test_dispatch_survives_failures(self):
        real_notify = notify
        calls = []

        def flaky(user_id, *args, **kwargs):
            calls.append(user_id)
            if len(calls) == 1:
                raise DatabaseError("sink down")
            return real_notify(user_id, *args, **kwargs)

        with mock.patch('notifications.services.notify', side_effect=flaky):
            with self.assertLogs('notifications.services', level='ERROR'):
                delivered = dispatch_notifications([self.pending(self.user), self.pending(self.other)])

        self.assertEqual(delivered, 1)
        self.assertEqual(list(Notification.objects.values_list('user_id', flat=True)), [self.other.id])

    def test_list_and_unread_count(self):
        for i in range(3):
            notify(self.user.id, Notification.Type.GENERAL, f"Notice {i}", "Office closed on Friday")
        notify(self.other.id, Notification.Type.GENERAL, "Not yours", "-")
        Notification.objects.filter(title="Notice 0").update(is_read=True)

        result = list_notifications(self.user, limit=2)
        self.assertEqual(result['pagination'], {'page': 1, 'limit': 2, 'total': 3, 'pages': 2})
        self.assertEqual(result['unreadCount'], 2)

        result = list_notifications(self.user, is_read=False)
        self.assertEqual(len(result['notifications']), 2)

    def test_page_past_the_end(self):
        for i in range(3):
            notify(self.user.id, Notification.Type.GENERAL, f"Notice {i}", "Office closed on Friday")

        result = list_notifications(self.user, page=5, limit=2)
        self.assertEqual(result['pagination'], {'page': 2, 'limit': 2, 'total': 3, 'pages': 2})
        self.assertEqual(len(result['notifications']), 1)

        result = list_notifications(self.other)
        self.assertEqual(result['notifications'], [])
        self.assertEqual(result['pagination']['pages'], 1)

    def test_mark_read_is_recipient_only(self):
        notification = notify(self.user.id, Notification.Type.GENERAL, "Hello", "World")
        with self.assertRaises(NotFound):
            mark_read(notification.id, self.other)

        mark_read(notification.id, self.user)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)

    def test_mark_all_read(self):
        notify(self.user.id, Notification.Type.GENERAL, "One", "1")
        notify(self.user.id, Notification.Type.GENERAL, "Two", "2")
        notify(self.other.id, Notification.Type.GENERAL, "Three", "3")

        self.assertEqual(mark_all_read(self.user), 2)
        self.assertEqual(Notification.objects.filter(is_read=False).count(), 1)


class NotificationApiTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(username='citizen', password='password')
        self.notification = notify(self.user.id, Notification.Type.GENERAL, "Hello", "World")
        self.client.login(username='citizen', password='password')

    def test_list(self):
        response = self.client.get(reverse('notification_list'), {'isRead': 'false'})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['unreadCount'], 1)
        self.assertEqual(data['notifications'][0]['title'], "Hello")
        self.assertIsNone(data['notifications'][0]['application'])

    def test_bad_type_filter(self):
        response = self.client.get(reverse('notification_list'), {'type': 'SPAM'})
        self.assertEqual(response.status_code, 400)

    def test_mark_read_endpoints(self):
        response = self.client.post(reverse('notification_read', args=[self.notification.id]))
        self.assertTrue(response.json()['notification']['isRead'])

        notify(self.user.id, Notification.Type.GENERAL, "Again", "World")
        response = self.client.post(reverse('notification_read_all'))
        self.assertEqual(response.json()['updated'], 1)

    def test_other_users_notification(self):
        other = User.objects.create_user(username='other', password='password')
        foreign = notify(other.id, Notification.Type.GENERAL, "Private", "-")
        response = self.client.post(reverse('notification_read', args=[foreign.id]))
        self.assertEqual(response.status_code, 404)
