import io
import json
import os
import shutil
import tempfile
from datetime import datetime, timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone
from django.utils.http import urlencode
from PIL import Image

from accounts.models import OfficerProfile, CitizenProfile
from notifications.models import Notification
from routing.models import OfficerAssignment
from . import permissions, services
from .exceptions import Forbidden, InvalidTransition, NotFound, ServerError, Unauthorized, ValidationError
from .models import (
    Application, ApplicationAuditLog, ApplicationValidation, ApplicationWorkflow, Document, ServiceCategory,
)
from .queries import get_application, get_application_stats, list_applications, visible_applications
from .rr_numbers import format_rr_number, generate_rr_number
from .storage import validate_upload

User = get_user_model()
Status = Application.Status

TEMP_MEDIA_ROOT = tempfile.mkdtemp()


def tearDownModule():
    shutil.rmtree(TEMP_MEDIA_ROOT, ignore_errors=True)


def pdf_upload(name='proof.pdf'):
    return SimpleUploadedFile(name, b'%PDF-1.4 sample document', content_type='application/pdf')


def png_upload(name='photo.png'):
    buffer = io.BytesIO()
    Image.new('RGB', (4, 4), color='white').save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class WorkflowFixtureMixin:
    """Users, a category and helpers to walk an application along the workflow."""
    now = timezone.make_aware(datetime(2025, 5, 10, 11, 0))

    def setUp(self):
        self.category = ServiceCategory.objects.create(name="Income Certificate", sla_days=7)
        self.citizen = self.make_user('citizen', User.Role.CITIZEN, "Asha Menon")
        self.other_citizen = self.make_user('citizen2', User.Role.CITIZEN, "John Mathew")
        self.front_desk = self.make_user('front_desk', User.Role.FRONT_DESK)
        self.officer = self.make_user('dc_officer', User.Role.DC, "Ravi Kumar")
        self.other_officer = self.make_user('ro_officer', User.Role.RO, "Meera Nair")
        self.admin = self.make_user('admin', User.Role.ADMIN)

    def make_user(self, username, role, full_name=None, available=True, is_active=True):
        user = User.objects.create_user(username=username, password='password', role=role, is_active=is_active)
        if role in User.OFFICER_ROLES:
            OfficerProfile.objects.create(user=user, full_name=full_name or username, is_available=available)
        elif role == User.Role.CITIZEN:
            CitizenProfile.objects.create(user=user, full_name=full_name or username)
        return user

    def create_draft(self, citizen=None, officer=None):
        result = services.create_application(
            citizen or self.citizen,
            self.category.id,
            (officer or self.officer).id,
            "Need an income certificate for a scholarship",
            [(pdf_upload(), Document.DocumentType.INCOME_CERTIFICATE)],
            now=self.now,
        )
        return result.application

    def create_pending(self):
        application = self.create_draft()
        services.submit_application(application.id, self.citizen, now=self.now)
        return application

    def create_validated(self):
        application = self.create_pending()
        services.validate_application(application.id, self.front_desk, is_documents_complete=True, now=self.now)
        return application

    def create_in_progress(self):
        application = self.create_validated()
        services.process_application(application.id, self.officer, now=self.now)
        return application

    def reload(self, application):
        return Application.objects.get(pk=application.pk)


class PermissionTableTests(TestCase):
    def test_front_desk_validates_pending(self):
        self.assertTrue(permissions.is_allowed(Status.PENDING, permissions.VALIDATE, User.Role.FRONT_DESK))
        self.assertFalse(permissions.is_allowed(Status.PENDING, permissions.VALIDATE, User.Role.CITIZEN))
        self.assertFalse(permissions.is_allowed(Status.PENDING, permissions.VALIDATE, User.Role.DC))

    def test_admin_still_needs_an_edge(self):
        self.assertTrue(permissions.is_allowed(Status.PENDING, permissions.VALIDATE, User.Role.ADMIN))
        self.assertFalse(permissions.is_allowed(Status.DRAFT, permissions.VALIDATE, User.Role.SUPER_ADMIN))

    def test_terminal_statuses_have_no_edges(self):
        for status in Application.TERMINAL_STATUSES:
            for action in permissions.ACTIONS:
                with self.assertRaises(InvalidTransition):
                    permissions.target_status(status, action)

    def test_forward_keeps_status(self):
        self.assertEqual(permissions.target_status(Status.IN_PROGRESS, permissions.FORWARD), Status.IN_PROGRESS)

    def test_roles_for_action(self):
        self.assertEqual(permissions.roles_for_action(permissions.SUBMIT), {User.Role.CITIZEN})
        self.assertIn(User.Role.FRONT_DESK, permissions.roles_for_action(permissions.REJECT))
        self.assertNotIn(User.Role.FRONT_DESK, permissions.roles_for_action(permissions.APPROVE))


class RRNumberTests(TestCase):
    now = timezone.make_aware(datetime(2025, 5, 10, 11, 0))

    def setUp(self):
        self.category = ServiceCategory.objects.create(name="Caste Certificate", sla_days=5)
        self.citizen = User.objects.create_user(username='citizen', password='password')

    def make_validated(self, validated_at, rr_number):
        return Application.objects.create(
            citizen=self.citizen,
            service_category=self.category,
            status=Status.VALIDATED,
            validated_at=validated_at,
            rr_number=rr_number,
        )

    def test_format(self):
        self.assertEqual(format_rr_number(self.now, 4), "RR25050004")

    def test_sequence_continues_from_validated_count(self):
        for seq in range(1, 4):
            self.make_validated(self.now - timedelta(hours=seq), f"RR250500{seq:02d}")
        # Yesterday's validations do not count.
        self.make_validated(self.now - timedelta(days=1), "RR25050001")

        self.assertEqual(generate_rr_number(self.now), "RR25050004")
        self.assertEqual(generate_rr_number(self.now), "RR25050005")

    def test_sequence_resets_daily(self):
        self.assertEqual(generate_rr_number(self.now), "RR25050001")
        self.assertEqual(generate_rr_number(self.now + timedelta(days=1)), "RR25050001")


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class DocumentStoreTests(TestCase):
    def test_accepts_pdf_and_real_image(self):
        validate_upload(pdf_upload())
        validate_upload(png_upload())

    def test_rejects_other_types(self):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        with self.assertRaises(ValidationError):
            validate_upload(upload)

    def test_rejects_corrupt_image(self):
        upload = SimpleUploadedFile('scan.png', b'not really a png', content_type='image/png')
        with self.assertRaises(ValidationError):
            validate_upload(upload)

    @override_settings(PORTAL_MAX_DOCUMENT_SIZE=10)
    def test_rejects_large_files(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_upload(pdf_upload())
        self.assertIn("too large", ctx.exception.message)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class CreateApplicationTests(WorkflowFixtureMixin, TestCase):
    def test_create_draft(self):
        application = self.create_draft()

        self.assertEqual(application.status, Status.DRAFT)
        self.assertIsNone(application.rr_number)
        self.assertIsNone(application.current_holder)
        self.assertEqual(application.documents.count(), 1)
        self.assertTrue(application.documents.first().file_url.startswith('/media/applications/'))

        workflow = list(application.workflow.all())
        self.assertEqual(len(workflow), 1)
        self.assertIsNone(workflow[0].from_status)
        self.assertEqual(workflow[0].to_status, Status.DRAFT)

        assignment = application.officer_assignments.get()
        self.assertEqual(assignment.assigned_to, self.officer)
        self.assertEqual(assignment.priority, OfficerAssignment.Priority.MEDIUM)

        self.assertEqual(application.audit_logs.get().action, 'APPLICATION_CREATED')
        self.assertEqual(Notification.objects.filter(user=self.citizen).count(), 1)
        self.assertEqual(Notification.objects.filter(user=self.officer).count(), 1)

    def test_requires_documents(self):
        with self.assertRaises(ValidationError):
            services.create_application(self.citizen, self.category.id, self.officer.id, "Details", [])
        self.assertFalse(Application.objects.exists())

    def test_only_citizens_create(self):
        with self.assertRaises(Forbidden):
            services.create_application(
                self.front_desk, self.category.id, self.officer.id, "Details", [(pdf_upload(), 'OTHER')]
            )

    def test_unavailable_officer(self):
        busy = self.make_user('busy', User.Role.ADC, available=False)
        with self.assertRaises(ValidationError):
            self.create_draft(officer=busy)
        self.assertFalse(Application.objects.exists())

    def test_missing_officer_and_category(self):
        with self.assertRaises(NotFound):
            services.create_application(self.citizen, self.category.id, 9999, "Details", [(pdf_upload(), 'OTHER')])
        with self.assertRaises(NotFound):
            services.create_application(self.citizen, 9999, self.officer.id, "Details", [(pdf_upload(), 'OTHER')])

    def test_non_numeric_ids_are_not_found(self):
        with self.assertRaises(NotFound):
            services.create_application(self.citizen, self.category.id, 'abc', "Details", [(pdf_upload(), 'OTHER')])
        with self.assertRaises(NotFound):
            services.create_application(self.citizen, 'abc', self.officer.id, "Details", [(pdf_upload(), 'OTHER')])

    def test_failed_create_removes_stored_files(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)

        with override_settings(MEDIA_ROOT=media_root):
            with mock.patch('applications.services.record_audit', side_effect=DatabaseError("disk full")):
                with self.assertRaises(ServerError):
                    services.create_application(
                        self.citizen, self.category.id, self.officer.id, "Details",
                        [(pdf_upload(), 'OTHER'), (png_upload(), 'PHOTOGRAPH')],
                        now=self.now,
                    )

        self.assertEqual(Application.objects.count(), 0)
        self.assertEqual(Document.objects.count(), 0)
        stored = [name for _, _, files in os.walk(media_root) for name in files]
        self.assertEqual(stored, [])

    def test_inactive_category(self):
        self.category.is_active = False
        self.category.save()
        with self.assertRaises(ValidationError):
            self.create_draft()


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class WorkflowEngineTests(WorkflowFixtureMixin, TestCase):
    def assertRowDeltas(self, application, before_workflow, before_audit, workflow=1, audit=1):
        self.assertEqual(application.workflow.count(), before_workflow + workflow)
        self.assertEqual(application.audit_logs.count(), before_audit + audit)

    def test_submit(self):
        application = self.create_draft()
        before = (application.workflow.count(), application.audit_logs.count())

        result = services.submit_application(application.id, self.citizen, ip_address='10.0.0.1', now=self.now)

        application = self.reload(application)
        self.assertEqual(application.status, Status.PENDING)
        self.assertEqual(application.submitted_at, self.now)
        self.assertRowDeltas(application, *before)
        last = application.workflow.last()
        self.assertEqual((last.from_status, last.to_status), (Status.DRAFT, Status.PENDING))
        self.assertEqual(application.audit_logs.first().ip_address, '10.0.0.1')
        # Citizen plus the front desk pool.
        self.assertEqual(len(result.notifications), 2)
        self.assertTrue(Notification.objects.filter(user=self.front_desk).exists())

    def test_submit_without_documents(self):
        application = self.create_draft()
        application.documents.all().delete()
        before = (application.workflow.count(), application.audit_logs.count())

        with self.assertRaises(ValidationError):
            services.submit_application(application.id, self.citizen, now=self.now)

        application = self.reload(application)
        self.assertEqual(application.status, Status.DRAFT)
        self.assertRowDeltas(application, *before, workflow=0, audit=0)

    def test_submit_someone_elses_application(self):
        application = self.create_draft()
        with self.assertRaises(Forbidden):
            services.submit_application(application.id, self.other_citizen, now=self.now)
        self.assertEqual(self.reload(application).status, Status.DRAFT)

    def test_validate_assigns_rr_number_and_holder(self):
        for seq in range(1, 4):
            Application.objects.create(
                citizen=self.other_citizen, service_category=self.category, status=Status.VALIDATED,
                validated_at=self.now - timedelta(hours=seq), rr_number=f"RR250500{seq:02d}",
            )
        application = self.create_pending()
        before = (application.workflow.count(), application.audit_logs.count())

        result = services.validate_application(
            application.id, self.front_desk,
            is_documents_complete=True, is_eligibility_verified=True, validation_notes="All in order",
            now=self.now,
        )

        application = self.reload(application)
        self.assertEqual(result.rr_number, "RR25050004")
        self.assertEqual(application.rr_number, "RR25050004")
        self.assertEqual(application.status, Status.VALIDATED)
        self.assertEqual(application.validated_at, self.now)
        self.assertEqual(application.current_holder, self.officer)
        self.assertRowDeltas(application, *before)

        validation = ApplicationValidation.objects.get(application=application)
        self.assertEqual(validation.rr_number, "RR25050004")
        self.assertEqual(validation.validation_notes, "All in order")

        assignment = application.officer_assignments.last()
        self.assertEqual(assignment.assigned_to_id, application.current_holder_id)
        self.assertEqual(assignment.expected_completion_date, self.now + timedelta(days=7))

    def test_validate_twice(self):
        application = self.create_validated()
        rr_number = self.reload(application).rr_number

        with self.assertRaises(InvalidTransition):
            services.validate_application(application.id, self.front_desk, now=self.now)

        application = self.reload(application)
        self.assertEqual(application.rr_number, rr_number)
        self.assertEqual(ApplicationValidation.objects.filter(application=application).count(), 1)

    def test_validate_by_citizen(self):
        application = self.create_pending()
        with self.assertRaises(Forbidden):
            services.validate_application(application.id, self.citizen, now=self.now)

    def test_front_desk_rejects_at_validation(self):
        application = self.create_pending()
        with self.assertRaises(ValidationError):
            services.validate_application(application.id, self.front_desk, should_reject=True, now=self.now)
        self.assertEqual(self.reload(application).status, Status.PENDING)

        services.validate_application(
            application.id, self.front_desk, should_reject=True, rejection_reason="Blurred ID proof", now=self.now,
        )
        application = self.reload(application)
        self.assertEqual(application.status, Status.REJECTED)
        self.assertIsNone(application.rr_number)
        self.assertEqual(application.audit_logs.first().action, 'APPLICATION_REJECTED')

    def test_process_by_holder_only(self):
        application = self.create_validated()

        with self.assertRaises(Forbidden):
            services.process_application(application.id, self.other_officer, now=self.now)
        self.assertEqual(self.reload(application).status, Status.VALIDATED)

        services.process_application(application.id, self.officer, comments="Checking records", now=self.now)
        application = self.reload(application)
        self.assertEqual(application.status, Status.IN_PROGRESS)
        self.assertEqual(application.workflow.last().comments, "Checking records")

    def test_approve(self):
        application = self.create_in_progress()
        before = Notification.objects.filter(user=self.citizen).count()

        services.approve_application(application.id, self.officer, comments="Issued", now=self.now)

        application = self.reload(application)
        self.assertEqual(application.status, Status.APPROVED)
        self.assertEqual(application.completed_at, self.now)
        self.assertEqual(Notification.objects.filter(user=self.citizen).count(), before + 1)
        self.assertEqual(application.audit_logs.first().action, 'APPLICATION_APPROVED')

    def test_approve_from_validated_is_invalid(self):
        application = self.create_validated()
        with self.assertRaises(InvalidTransition):
            services.approve_application(application.id, self.officer, now=self.now)

    def test_reject_requires_reason(self):
        application = self.create_in_progress()
        with self.assertRaises(ValidationError):
            services.reject_application(application.id, self.officer, now=self.now)
        self.assertEqual(self.reload(application).status, Status.IN_PROGRESS)

    def test_rejection_is_terminal_for_regular_actions(self):
        application = self.create_in_progress()
        services.reject_application(application.id, self.front_desk, rejection_reason="Ineligible", now=self.now)
        self.assertEqual(self.reload(application).status, Status.REJECTED)

        with self.assertRaises(InvalidTransition):
            services.approve_application(application.id, self.officer, now=self.now)
        with self.assertRaises(InvalidTransition):
            services.process_application(application.id, self.admin, now=self.now)

        # Only the admin override reopens it.
        services.override_status(
            application.id, self.admin, Status.IN_PROGRESS, comments="Rejected in error", now=self.now,
        )
        self.assertEqual(self.reload(application).status, Status.IN_PROGRESS)

    def test_admin_bypasses_holder_check(self):
        application = self.create_validated()
        services.process_application(application.id, self.admin, now=self.now)
        self.assertEqual(self.reload(application).status, Status.IN_PROGRESS)

    def test_admin_cannot_skip_states(self):
        application = self.create_draft()
        with self.assertRaises(InvalidTransition):
            services.validate_application(application.id, self.admin, now=self.now)

    def test_unauthenticated_and_missing(self):
        application = self.create_draft()
        with self.assertRaises(Unauthorized):
            services.submit_application(application.id, AnonymousUser())
        with self.assertRaises(NotFound):
            services.submit_application('6d1f3a56-0000-4000-8000-000000000000', self.citizen)
        with self.assertRaises(NotFound):
            services.submit_application('not-a-uuid', self.citizen)

    def test_database_failure_rolls_back(self):
        application = self.create_draft()
        before = application.workflow.count()

        with mock.patch('applications.services.record_audit', side_effect=DatabaseError("disk full")):
            with self.assertRaises(ServerError):
                services.submit_application(application.id, self.citizen, now=self.now)

        application = self.reload(application)
        self.assertEqual(application.status, Status.DRAFT)
        self.assertEqual(application.workflow.count(), before)

    def test_notification_failure_keeps_transition(self):
        application = self.create_draft()
        with mock.patch('notifications.services.notify', side_effect=DatabaseError("sink down")):
            with self.assertLogs('notifications.services', level='ERROR'):
                services.submit_application(application.id, self.citizen, now=self.now)
        self.assertEqual(self.reload(application).status, Status.PENDING)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class StatusOverrideTests(WorkflowFixtureMixin, TestCase):
    def reject_in_progress(self):
        application = self.create_in_progress()
        services.reject_application(application.id, self.officer, rejection_reason="Ineligible", now=self.now)
        return application

    def test_reopens_rejected_application(self):
        application = self.reject_in_progress()
        before = (application.workflow.count(), application.audit_logs.count())

        services.override_status(
            application.id, self.admin, Status.IN_PROGRESS, comments="Rejected in error",
            ip_address='10.0.0.9', now=self.now,
        )

        application = self.reload(application)
        self.assertEqual(application.status, Status.IN_PROGRESS)
        self.assertEqual(application.current_holder, self.officer)
        self.assertIsNone(application.completed_at)
        self.assertEqual(application.workflow.count(), before[0] + 1)
        self.assertEqual(application.audit_logs.count(), before[1] + 1)

        last = application.workflow.last()
        self.assertEqual((last.from_status, last.to_status), (Status.REJECTED, Status.IN_PROGRESS))
        self.assertIn("Rejected in error", last.comments)
        audit = application.audit_logs.first()
        self.assertEqual(audit.action, 'ADMIN_STATUS_OVERRIDE')
        self.assertEqual(audit.ip_address, '10.0.0.9')
        self.assertEqual(audit.old_values['status'], Status.REJECTED)

        # The regular workflow carries on from the restored status.
        services.approve_application(application.id, self.officer, now=self.now)
        self.assertEqual(self.reload(application).status, Status.APPROVED)

    def test_closes_an_approved_application(self):
        application = self.create_in_progress()
        services.approve_application(application.id, self.officer, now=self.now)

        services.override_status(application.id, self.admin, Status.COMPLETED, comments="Certificate collected",
                                 now=self.now + timedelta(days=1))
        application = self.reload(application)
        self.assertEqual(application.status, Status.COMPLETED)
        self.assertEqual(application.completed_at, self.now + timedelta(days=1))

    def test_only_admins_override(self):
        application = self.reject_in_progress()
        for user in (self.front_desk, self.officer, self.citizen):
            with self.assertRaises(Forbidden):
                services.override_status(application.id, user, Status.IN_PROGRESS, comments="Reopen")
        with self.assertRaises(Unauthorized):
            services.override_status(application.id, AnonymousUser(), Status.IN_PROGRESS, comments="Reopen")
        self.assertEqual(self.reload(application).status, Status.REJECTED)

    def test_requires_reason(self):
        application = self.reject_in_progress()
        before = application.workflow.count()
        with self.assertRaises(ValidationError):
            services.override_status(application.id, self.admin, Status.IN_PROGRESS, comments="  ")
        application = self.reload(application)
        self.assertEqual(application.status, Status.REJECTED)
        self.assertEqual(application.workflow.count(), before)

    def test_keeps_structural_guards(self):
        application = self.reject_in_progress()
        with self.assertRaises(InvalidTransition):
            services.override_status(application.id, self.admin, Status.REJECTED, comments="Same")
        with self.assertRaises(InvalidTransition):
            services.override_status(application.id, self.admin, Status.DRAFT, comments="Start over")
        with self.assertRaises(ValidationError):
            services.override_status(application.id, self.admin, 'ARCHIVED', comments="Unknown")

        draft = self.create_draft()
        with self.assertRaises(InvalidTransition):
            services.override_status(draft.id, self.admin, Status.PENDING, comments="Never submitted")

    def test_rejected_before_validation_goes_back_to_queue(self):
        application = self.create_pending()
        services.validate_application(
            application.id, self.front_desk, should_reject=True, rejection_reason="Blurred ID proof", now=self.now,
        )

        # No RR number was ever issued.
        with self.assertRaises(InvalidTransition):
            services.override_status(application.id, self.admin, Status.VALIDATED, comments="Documents fine")

        services.override_status(application.id, self.admin, Status.PENDING, comments="Documents fine", now=self.now)
        application = self.reload(application)
        self.assertEqual(application.status, Status.PENDING)
        self.assertIsNone(application.current_holder)

        services.validate_application(application.id, self.front_desk, now=self.now)
        application = self.reload(application)
        self.assertEqual(application.status, Status.VALIDATED)
        self.assertIsNotNone(application.rr_number)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class DocumentVerificationTests(WorkflowFixtureMixin, TestCase):
    def test_front_desk_verifies(self):
        application = self.create_pending()
        document = application.documents.get()

        services.verify_document(document.id, self.front_desk, is_verified=True, notes="Original seen", now=self.now)

        document.refresh_from_db()
        self.assertTrue(document.is_verified)
        self.assertEqual(document.verified_by, self.front_desk)
        self.assertEqual(document.verified_at, self.now)
        self.assertEqual(application.audit_logs.first().action, 'DOCUMENT_VERIFIED')

    def test_citizen_and_non_holder_cannot_verify(self):
        application = self.create_validated()
        document = application.documents.get()
        with self.assertRaises(Forbidden):
            services.verify_document(document.id, self.citizen)
        with self.assertRaises(Forbidden):
            services.verify_document(document.id, self.other_officer)
        services.verify_document(document.id, self.officer)

    def test_closed_application(self):
        application = self.create_in_progress()
        services.approve_application(application.id, self.officer, now=self.now)
        with self.assertRaises(ValidationError):
            services.verify_document(application.documents.get().id, self.front_desk)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class QueryTests(WorkflowFixtureMixin, TestCase):
    def test_visibility_by_role(self):
        validated = self.create_validated()
        draft = self.create_draft(citizen=self.other_citizen)

        self.assertEqual(set(visible_applications(self.citizen)), {validated})
        self.assertEqual(set(visible_applications(self.officer)), {validated})
        self.assertEqual(set(visible_applications(self.other_officer)), set())
        self.assertEqual(set(visible_applications(self.front_desk)), {validated, draft})
        self.assertEqual(set(visible_applications(self.admin)), {validated, draft})

    def test_list_filters_and_pagination(self):
        self.create_pending()
        self.create_draft(citizen=self.other_citizen)

        result = list_applications(self.front_desk, search="asha")
        self.assertEqual(result['pagination']['total'], 1)

        result = list_applications(self.front_desk, status=Status.DRAFT)
        self.assertEqual(result['applications'][0].citizen, self.other_citizen)

        result = list_applications(self.front_desk, page=2, limit=1)
        self.assertEqual(result['pagination'], {'page': 2, 'limit': 1, 'total': 2, 'pages': 2})
        self.assertEqual(len(result['applications']), 1)

    def test_page_past_the_end_returns_last_page(self):
        self.create_draft()
        self.create_draft(citizen=self.other_citizen)

        result = list_applications(self.front_desk, page=9, limit=1)
        self.assertEqual(result['pagination'], {'page': 2, 'limit': 1, 'total': 2, 'pages': 2})
        self.assertEqual(len(result['applications']), 1)

        result = list_applications(self.other_officer)
        self.assertEqual(result['applications'], [])
        self.assertEqual(result['pagination']['total'], 0)

    def test_get_application_is_scoped_for_citizens(self):
        application = self.create_draft()
        self.assertEqual(get_application(self.citizen, application.id), application)
        self.assertEqual(get_application(self.front_desk, application.id), application)
        with self.assertRaises(NotFound):
            get_application(self.other_citizen, application.id)

    def test_stats_and_overdue(self):
        self.create_in_progress()
        self.create_pending()
        approved = self.create_in_progress()
        services.approve_application(approved.id, self.officer, now=self.now)

        stats = get_application_stats(now=self.now + timedelta(days=1))
        self.assertEqual(stats, {'total': 3, 'pending': 1, 'inProgress': 1, 'completed': 1, 'overdue': 0})

        stats = get_application_stats(now=self.now + timedelta(days=8))
        self.assertEqual(stats['overdue'], 1)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class ApplicationApiTests(WorkflowFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = Client()

    def patch(self, application, payload):
        url = reverse('application_detail', args=[application.id])
        return self.client.patch(url, data=json.dumps(payload), content_type='application/json')

    def test_requires_login(self):
        response = self.client.get(reverse('application_list'))
        self.assertEqual(response.status_code, 401)

    def test_create_via_api(self):
        self.client.login(username='citizen', password='password')
        response = self.client.post(reverse('application_list'), {
            'serviceCategoryId': self.category.id,
            'preferredOfficerId': self.officer.id,
            'applicationDetails': "Certificate for bank loan",
            'documents': [pdf_upload(), png_upload()],
            'documentTypes': ['IDENTITY_PROOF', 'PHOTOGRAPH'],
        })
        self.assertEqual(response.status_code, 201)
        data = response.json()['application']
        self.assertEqual(data['status'], Status.DRAFT)
        application = Application.objects.get(pk=data['id'])
        self.assertEqual(
            sorted(application.documents.values_list('document_type', flat=True)),
            ['IDENTITY_PROOF', 'PHOTOGRAPH'],
        )

    def test_create_rejects_bad_payload(self):
        self.client.login(username='citizen', password='password')
        response = self.client.post(reverse('application_list'), {'serviceCategoryId': self.category.id})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['kind'], 'validation')

    def test_full_lifecycle(self):
        application = self.create_draft()

        self.client.login(username='citizen', password='password')
        self.assertEqual(self.patch(application, {'action': 'submit'}).status_code, 200)

        self.client.login(username='front_desk', password='password')
        response = self.patch(application, {'action': 'validate', 'isDocumentsComplete': True})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['rrNumber'].startswith('RR'))

        self.client.login(username='dc_officer', password='password')
        self.assertEqual(self.patch(application, {'action': 'process'}).status_code, 200)
        response = self.patch(application, {'action': 'approve', 'comments': "Done"})
        self.assertEqual(response.json()['application']['status'], Status.APPROVED)

    def test_errors_map_to_status_codes(self):
        application = self.create_pending()
        self.client.login(username='citizen', password='password')

        response = self.patch(application, {'action': 'validate'})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['kind'], 'forbidden')

        response = self.patch(application, {'action': 'submit'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['kind'], 'invalid_transition')

        response = self.patch(application, {'action': 'archive'})
        self.assertEqual(response.status_code, 400)

    def test_detail_hidden_from_other_citizens(self):
        application = self.create_draft()
        self.client.login(username='citizen2', password='password')
        response = self.client.get(reverse('application_detail', args=[application.id]))
        self.assertEqual(response.status_code, 404)

        self.client.login(username='citizen', password='password')
        data = self.client.get(reverse('application_detail', args=[application.id])).json()['application']
        self.assertEqual(len(data['workflow']), 1)
        self.assertEqual(len(data['documents']), 1)

    def test_stats_and_categories(self):
        self.create_pending()
        self.client.login(username='front_desk', password='password')
        stats = self.client.get(reverse('application_stats')).json()['stats']
        self.assertEqual(stats['pending'], 1)

        categories = self.client.get(reverse('service_categories')).json()['serviceCategories']
        self.assertEqual([c['name'] for c in categories], ["Income Certificate"])

    def test_verify_document_endpoint(self):
        application = self.create_pending()
        document = application.documents.get()
        self.client.login(username='front_desk', password='password')
        response = self.client.post(
            reverse('verify_document', args=[document.id]),
            data=json.dumps({'isVerified': True, 'notes': "Checked"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['document']['isVerified'])

    def test_form_encoded_patch(self):
        application = self.create_draft()
        self.client.login(username='citizen', password='password')
        response = self.client.patch(
            reverse('application_detail', args=[application.id]),
            data=urlencode({'action': 'submit'}),
            content_type='application/x-www-form-urlencoded',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reload(application).status, Status.PENDING)

    def test_admin_override_endpoint(self):
        application = self.create_in_progress()
        services.reject_application(application.id, self.officer, rejection_reason="Ineligible", now=self.now)

        self.client.login(username='front_desk', password='password')
        response = self.patch(application, {'action': 'override', 'status': Status.IN_PROGRESS, 'comments': "Reopen"})
        self.assertEqual(response.status_code, 403)

        self.client.login(username='admin', password='password')
        response = self.patch(application, {'action': 'override', 'status': Status.IN_PROGRESS})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['kind'], 'validation')

        response = self.patch(application, {'action': 'override', 'status': Status.IN_PROGRESS, 'comments': "Reopen"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['application']['status'], Status.IN_PROGRESS)
        self.assertTrue(
            ApplicationAuditLog.objects.filter(application=application, action='ADMIN_STATUS_OVERRIDE').exists()
        )
