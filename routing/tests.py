import json
from datetime import timedelta

from django.test import TestCase, Client, override_settings
from django.urls import reverse

from applications import services
from applications.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from applications.models import Application
from applications.tests import TEMP_MEDIA_ROOT, WorkflowFixtureMixin
from accounts.models import User
from notifications.models import Notification
from .models import OfficerAssignment
from .services import assignment_chain, forward_application


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class ForwardApplicationTest(WorkflowFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.application = self.create_validated()

    def test_forward_reassigns_holder_without_status_change(self):
        before_workflow = self.application.workflow.count()
        later = self.now + timedelta(days=2)

        result = forward_application(
            self.application.id, self.officer,
            target_officer_id=self.other_officer.id,
            priority=OfficerAssignment.Priority.HIGH,
            instructions="Verify land records",
            now=later,
        )

        application = self.reload(self.application)
        self.assertEqual(application.status, Application.Status.VALIDATED)
        self.assertEqual(application.current_holder, self.other_officer)
        self.assertEqual(application.workflow.count(), before_workflow + 1)
        last = application.workflow.last()
        self.assertEqual(last.from_status, last.to_status)
        self.assertEqual(application.audit_logs.first().action, 'APPLICATION_FORWARDED')

        assignment = result.assignment
        self.assertEqual(assignment.assigned_by, self.officer)
        self.assertEqual(assignment.priority, OfficerAssignment.Priority.HIGH)
        self.assertEqual(assignment.expected_completion_date, later + timedelta(days=7))
        self.assertEqual(application.officer_assignments.last(), assignment)

        self.assertTrue(Notification.objects.filter(
            user=self.other_officer, notification_type=Notification.Type.APPLICATION_ASSIGNED
        ).exists())

    def test_previous_holder_loses_control(self):
        forward_application(
            self.application.id, self.officer, target_officer_id=self.other_officer.id,
            instructions="Please take over", now=self.now,
        )
        with self.assertRaises(Forbidden):
            forward_application(
                self.application.id, self.officer, target_officer_id=self.other_officer.id,
                instructions="Again", now=self.now,
            )

    def test_forward_to_unavailable_officer(self):
        busy = self.make_user('busy_officer', User.Role.SDM, available=False)
        before = OfficerAssignment.objects.count()

        with self.assertRaises(ValidationError):
            forward_application(
                self.application.id, self.officer, target_officer_id=busy.id, instructions="Handle", now=self.now,
            )

        self.assertEqual(OfficerAssignment.objects.count(), before)
        self.assertEqual(self.reload(self.application).current_holder, self.officer)

    def test_forward_to_inactive_or_non_officer(self):
        inactive = self.make_user('gone_officer', User.Role.DYDIR, is_active=False)
        for target in (inactive, self.front_desk):
            with self.assertRaises(ValidationError):
                forward_application(
                    self.application.id, self.officer, target_officer_id=target.id, instructions="x", now=self.now,
                )
        with self.assertRaises(NotFound):
            forward_application(
                self.application.id, self.officer, target_officer_id=9999, instructions="x", now=self.now,
            )

    def test_forward_to_malformed_officer_id(self):
        with self.assertRaises(NotFound):
            forward_application(
                self.application.id, self.officer, target_officer_id='abc', instructions="x", now=self.now,
            )
        self.assertEqual(Application.objects.get(pk=self.application.pk).current_holder, self.officer)

    def test_forward_requires_target_and_instructions(self):
        with self.assertRaises(ValidationError):
            forward_application(self.application.id, self.officer, target_officer_id=self.other_officer.id)
        with self.assertRaises(ValidationError):
            forward_application(self.application.id, self.officer, instructions="No target")

    def test_forward_to_current_holder(self):
        with self.assertRaises(ValidationError):
            forward_application(
                self.application.id, self.admin, target_officer_id=self.officer.id, instructions="Same", now=self.now,
            )

    def test_only_holder_or_admin_forwards(self):
        with self.assertRaises(Forbidden):
            forward_application(
                self.application.id, self.other_officer, target_officer_id=self.other_officer.id,
                instructions="Mine now", now=self.now,
            )
        with self.assertRaises(Forbidden):
            forward_application(
                self.application.id, self.front_desk, target_officer_id=self.other_officer.id,
                instructions="Reroute", now=self.now,
            )
        forward_application(
            self.application.id, self.admin, target_officer_id=self.other_officer.id,
            instructions="Reroute", now=self.now,
        )
        self.assertEqual(self.reload(self.application).current_holder, self.other_officer)

    def test_cannot_forward_closed_application(self):
        closed = self.create_in_progress()
        services.approve_application(closed.id, self.officer, now=self.now)
        with self.assertRaises(InvalidTransition):
            forward_application(
                closed.id, self.officer, target_officer_id=self.other_officer.id,
                instructions="Late", now=self.now,
            )

    def test_assignment_chain(self):
        forward_application(
            self.application.id, self.officer, target_officer_id=self.other_officer.id,
            instructions="Over to you", now=self.now + timedelta(hours=1),
        )
        chain = list(assignment_chain(self.reload(self.application)))
        self.assertEqual([a.assigned_to for a in chain], [self.officer, self.other_officer])


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class ForwardApiTest(WorkflowFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = Client()
        self.application = self.create_validated()

    def test_forward_and_read_chain(self):
        self.client.login(username='dc_officer', password='password')
        response = self.client.patch(
            reverse('application_detail', args=[self.application.id]),
            data=json.dumps({
                'action': 'forward',
                'targetOfficerId': self.other_officer.id,
                'priority': 1,
                'instructions': "Field inspection needed",
            }),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['application']['currentHolder']['id'], self.other_officer.id)

        response = self.client.get(reverse('assignment_chain', args=[self.application.id]))
        data = response.json()
        self.assertEqual(data['currentHolderId'], self.other_officer.id)
        self.assertEqual([a['priority'] for a in data['assignments']], [2, 1])

    def test_forward_missing_instructions(self):
        self.client.login(username='dc_officer', password='password')
        response = self.client.patch(
            reverse('application_detail', args=[self.application.id]),
            data=json.dumps({'action': 'forward', 'targetOfficerId': self.other_officer.id}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['kind'], 'validation')
