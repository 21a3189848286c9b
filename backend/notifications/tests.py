"""
Test suite for the notifications module
Tests: notification creation, read tracking and platform feedback
"""
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification, Feedback
from backend.notifications.services import notify, notify_dealer


class NotifyTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_notify(self):
        notification = notify(self.user, 'system', 'Maintenance', 'Scheduled downtime tonight',
                              related_object_id=42)
        self.assertEqual(notification.priority, 'normal')
        self.assertEqual(notification.related_object_id, '42')
        self.assertFalse(notification.read_status)

    def test_title_defaults_to_message(self):
        notification = notify(self.user, 'system', '', 'Welcome to the marketplace')
        self.assertEqual(notification.title, 'Welcome to the marketplace')

    def test_missing_recipient(self):
        with self.assertRaises(ValueError):
            notify(None, 'system', 'Hi', 'Hello')

    def test_missing_message(self):
        with self.assertRaises(ValueError):
            notify(self.user, 'system', 'Hi', '')

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            notify(self.user, 'sms', 'Hi', 'Hello')
        self.assertFalse(Notification.objects.exists())

    def test_notify_dealer_targets_owner(self):
        dealer = TestDataFactory.create_dealer(user=self.user)
        notify_dealer(dealer, 'offer', 'New offer', 'You have an offer')
        self.assertEqual(Notification.objects.get().user, self.user)


class NotificationAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.first = notify(self.user, 'offer', 'Offer', 'New offer on your Swift')
        self.second = notify(self.user, 'payment', 'Payment', 'Funds held in escrow')
        notify(self.other, 'system', 'Other', 'Not yours')

    def test_list_own_notifications(self):
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual({n['id'] for n in response.data['results']}, {self.first.id, self.second.id})
        self.assertEqual(response.data['unread_count'], 2)

    def test_limit(self):
        response = self.client.get('/api/v1/notifications/?limit=1')
        self.assertEqual(len(response.data['results']), 1)

    def test_mark_read(self):
        response = self.client.post(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertTrue(response.data['read_status'])
        self.assertIsNotNone(response.data['read_at'])

        response = self.client.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data['unread_count'], 1)
        response = self.client.get('/api/v1/notifications/?unread_only=true')
        self.assertEqual([n['id'] for n in response.data['results']], [self.second.id])

    def test_cannot_read_others(self):
        foreign = Notification.objects.get(user=self.other)
        response = self.client.post(f'/api/v1/notifications/{foreign.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        response = self.client.post('/api/v1/notifications/read-all/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(Notification.objects.filter(user=self.other, read_status=False).count(), 1)

    def test_requires_login(self):
        self.client.logout()
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class FeedbackTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_submit_feedback(self):
        response = self.client.post('/api/v1/feedback/', {
            'type': 'feature', 'title': 'Bulk upload', 'message': 'Let me import a CSV of vehicles',
            'rating': 4, 'status': 'resolved',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'new')
        self.assertEqual(Feedback.objects.get().user, self.user)

    def test_message_required_after_sanitizing(self):
        response = self.client.post('/api/v1/feedback/', {'type': 'bug', 'message': '<p></p>'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rating_range(self):
        response = self.client.post('/api/v1/feedback/', {'type': 'bug', 'message': 'Crash', 'rating': 9},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_triage(self):
        feedback = Feedback.objects.create(user=self.user, type='bug', message='Search is slow')
        admin = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

        response = admin.get('/api/v1/admin/feedback/?type=bug')
        self.assertEqual(response.data['count'], 1)

        response = admin.patch(f'/api/v1/admin/feedback/{feedback.id}/', {
            'status': 'planned', 'admin_response': 'On the roadmap', 'message': 'edited',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        feedback.refresh_from_db()
        self.assertEqual(feedback.status, 'planned')
        self.assertEqual(feedback.message, 'Search is slow')

    def test_dealer_cannot_triage(self):
        response = self.client.get('/api/v1/admin/feedback/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
