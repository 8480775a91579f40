from django.test import TestCase, Client, override_settings
from django.urls import reverse

from applications.tests import TEMP_MEDIA_ROOT, WorkflowFixtureMixin


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class DashboardTests(WorkflowFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = Client()
        self.pending = self.create_pending()
        self.validated = self.create_validated()

    def test_requires_login(self):
        self.assertEqual(self.client.get(reverse('dashboard')).status_code, 401)

    def test_front_desk_sees_pending_queue(self):
        self.client.login(username='front_desk', password='password')
        data = self.client.get(reverse('dashboard')).json()
        self.assertEqual(data['role'], 'FRONT_DESK')
        self.assertEqual(data['stats']['total'], 2)
        self.assertEqual([a['id'] for a in data['queue']], [str(self.pending.id)])
        self.assertTrue(data['recentActivity'])
        self.assertGreaterEqual(data['unreadNotifications'], 2)

    def test_officer_sees_held_work(self):
        self.client.login(username='dc_officer', password='password')
        data = self.client.get(reverse('dashboard')).json()
        self.assertEqual(data['stats']['total'], 1)
        self.assertEqual([a['id'] for a in data['queue']], [str(self.validated.id)])
        self.assertEqual(data['recentActivity'][0]['toStatus'], 'VALIDATED')

    def test_citizen_has_no_queue(self):
        self.client.login(username='citizen', password='password')
        data = self.client.get(reverse('dashboard')).json()
        self.assertEqual(data['stats']['total'], 2)
        self.assertNotIn('queue', data)
