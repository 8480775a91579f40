from django.test import TestCase, Client, RequestFactory
from django.urls import reverse
from django.contrib.auth import get_user_model
from .models import OfficerProfile, CitizenProfile
from .utils import get_client_ip, get_available_officers, is_eligible_officer

User = get_user_model()


class IdentityTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.citizen = User.objects.create_user(username="citizen", password="password")
        CitizenProfile.objects.create(user=self.citizen, full_name="Asha Menon")

        self.dc = User.objects.create_user(username="dc_officer", password="password", role=User.Role.DC)
        OfficerProfile.objects.create(user=self.dc, full_name="Ravi Kumar", designation="Deputy Collector")

        self.ro = User.objects.create_user(username="ro_officer", password="password", role=User.Role.RO)
        OfficerProfile.objects.create(user=self.ro, full_name="Meera Nair", is_available=False)

        self.adc = User.objects.create_user(
            username="adc_officer", password="password", role=User.Role.ADC, is_active=False
        )
        OfficerProfile.objects.create(user=self.adc, full_name="Inactive Officer")

    def test_default_role_is_citizen(self):
        self.assertEqual(self.citizen.role, User.Role.CITIZEN)
        self.assertFalse(self.citizen.is_officer)

    def test_display_name_prefers_profile(self):
        self.assertEqual(self.citizen.display_name, "Asha Menon")
        bare = User.objects.create_user(username="bare", password="password")
        self.assertEqual(bare.display_name, "bare")

    def test_client_ip_prefers_forwarded_header(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '10.0.0.1')

        request = self.factory.get('/', HTTP_X_REAL_IP='10.0.0.9', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '10.0.0.9')

        request = self.factory.get('/', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '127.0.0.1')

    def test_officer_eligibility(self):
        self.assertTrue(is_eligible_officer(self.dc))
        self.assertFalse(is_eligible_officer(self.ro))
        self.assertFalse(is_eligible_officer(self.adc))
        self.assertFalse(is_eligible_officer(self.citizen))

    def test_available_officers_excludes_unavailable_and_inactive(self):
        officers = list(get_available_officers())
        self.assertEqual(officers, [self.dc])
        self.assertEqual(list(get_available_officers(exclude=self.dc)), [])


class AvailableOfficersViewTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse('available_officers')
        self.dc = User.objects.create_user(username="dc_officer", password="password", role=User.Role.DC)
        OfficerProfile.objects.create(user=self.dc, full_name="Ravi Kumar", department="Revenue")
        self.sdm = User.objects.create_user(username="sdm_officer", password="password", role=User.Role.SDM)
        OfficerProfile.objects.create(user=self.sdm, full_name="Sara Thomas")

    def test_requires_login(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['kind'], 'unauthorized')

    def test_lists_officers_except_caller(self):
        self.client.login(username="dc_officer", password="password")
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual([o['id'] for o in data], [self.sdm.id])
        self.assertEqual(data[0]['fullName'], "Sara Thomas")
        self.assertEqual(data[0]['role'], User.Role.SDM)
