"""
Test suite for the marketing module
Tests: media processing jobs, batch processing, generated content, asset feedback,
social publishing and insights
"""
from datetime import timedelta
from unittest.mock import patch, MagicMock

import requests
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.marketing import content_service, services
from backend.marketing.models import MarketingAsset, SocialMediaAccount

IMAGES = [f'https://images.test/car_{index}.jpg' for index in range(1, 9)]


class MarketingTestMixin:

    def setUp(self):
        TestDataFactory.clear_cache()
        self.dealer = TestDataFactory.create_dealer(business_name='Pune Auto Hub', city='Pune')
        self.vehicle = TestDataFactory.create_vehicle(self.dealer, make='Hyundai', model='Creta')
        self.client = AuthenticatedAPIClient().authenticate_user(self.dealer.owner)


class ProcessingTests(MarketingTestMixin, TestCase):

    def _process(self, kind, image_urls=None, vehicle=None):
        vehicle = vehicle or self.vehicle
        payload = {'image_urls': image_urls} if image_urls is not None else {}
        return self.client.post(f'/api/v1/vehicles/{vehicle.id}/processing/{kind}/', payload, format='json')

    def test_process_images(self):
        response = self._process('images')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['processedUrls']), 3)
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.image_processing_status, 'completed')
        self.assertEqual(self.vehicle.processing_job_id, response.data['jobId'])

    def test_360_needs_eight_images(self):
        response = self._process('360')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('8 images', response.data['error'])
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.view_360_processing_status, 'failed')

        response = self._process('360', IMAGES)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.view_360_processing_status, 'completed')
        self.assertTrue(self.vehicle.view_360_url.startswith('https://360-viewer.example.com/'))

    def test_no_images(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, image_urls=[])
        response = self._process('images', vehicle=vehicle)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'At least one image is required for processing')

    def test_invalid_image_url(self):
        response = self._process('images', ['ftp://images.test/a.jpg'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_kind(self):
        response = self._process('hologram')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_other_dealers_vehicle(self):
        other = TestDataFactory.create_vehicle(TestDataFactory.create_dealer())
        response = self._process('images', vehicle=other)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_marketing_content_creates_draft_assets(self):
        response = self._process('marketing')
        self.assertEqual(len(response.data['marketingAssets']), 4)
        assets = MarketingAsset.objects.filter(vehicle=self.vehicle)
        self.assertEqual(assets.count(), 4)
        self.assertEqual(set(assets.values_list('status', flat=True)), {'draft'})
        self.assertEqual(assets.get(platform='facebook').dimensions, '1200x628')

    def test_status_and_reset(self):
        self._process('images')
        self._process('reel')
        response = self.client.get(f'/api/v1/vehicles/{self.vehicle.id}/processing/')
        self.assertEqual(response.data['imageProcessing']['processedCount'], 3)
        self.assertEqual(response.data['reel']['status'], 'completed')

        response = self.client.post(f'/api/v1/vehicles/{self.vehicle.id}/processing/reset/', {'type': 'reel'},
                                    format='json')
        self.assertEqual(response.data['reel']['status'], 'none')
        self.assertIsNone(response.data['reel']['url'])
        self.assertEqual(response.data['imageProcessing']['status'], 'completed')

        response = self.client.post(f'/api/v1/vehicles/{self.vehicle.id}/processing/reset/', format='json')
        self.assertEqual(response.data['imageProcessing']['status'], 'none')
        self.assertIsNone(response.data['lastProcessedAt'])

    def test_queue_and_summary(self):
        self._process('images')
        self._process('360')
        response = self.client.get('/api/v1/marketing/queue/')
        self.assertEqual([job['type'] for job in response.data['completedJobs']], ['images'])
        self.assertEqual([job['type'] for job in response.data['failedJobs']], ['view360'])

        response = self.client.get('/api/v1/marketing/assets/summary/')
        self.assertEqual(response.data['totalVehicles'], 1)
        self.assertEqual(response.data['vehiclesWithProcessedImages'], 1)
        self.assertEqual(response.data['processingStats']['view360']['failed'], 1)
        self.assertEqual(len(response.data['recentlyGenerated']), 1)


class BatchProcessingTests(MarketingTestMixin, TestCase):

    def test_batch_all_skips_jobs_without_enough_images(self):
        response = self.client.post('/api/v1/marketing/batch/', {'vehicle_ids': [self.vehicle.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['successful'], 1)
        results = response.data['results'][0]['result']['results']
        self.assertEqual(set(results), {'images', 'reel', 'marketing'})

    def test_batch_reports_missing_vehicle(self):
        other = TestDataFactory.create_vehicle(TestDataFactory.create_dealer())
        response = self.client.post('/api/v1/marketing/batch/',
                                    {'vehicle_ids': [self.vehicle.id, other.id], 'action': 'images'},
                                    format='json')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['successful'], 1)
        self.assertEqual(response.data['failed'], 1)
        self.assertEqual(response.data['results'][1]['error'], 'Vehicle not found')

    def test_batch_single_job_failure(self):
        response = self.client.post('/api/v1/marketing/batch/', {'vehicle_ids': [self.vehicle.id], 'action': '360'},
                                    format='json')
        self.assertEqual(response.data['failed'], 1)

    def test_batch_requires_vehicles(self):
        response = self.client.post('/api/v1/marketing/batch/', {'vehicle_ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(LLM_API_URL='')
class ContentGenerationTests(MarketingTestMixin, TestCase):

    def test_template_content(self):
        content = content_service.generate_content(self.vehicle, 'social_post', 'instagram')
        self.assertIn('Hyundai', content['title'])
        self.assertIn('#Hyundai', content['hashtags'])
        self.assertIn('#Pune', content['hashtags'])
        self.assertEqual(content['estimated_reach'], 5000)
        self.assertEqual(content['call_to_action'], content_service.PLATFORM_CTA['instagram'])

    def test_generate_endpoint_stores_draft(self):
        response = self.client.post('/api/v1/marketing/generate/', {
            'vehicle_id': self.vehicle.id, 'content_type': 'social_post', 'platform': 'facebook',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertTrue(response.data['ai_generated'])
        self.assertEqual(response.data['tags'], response.data['content']['hashtags'])

    @override_settings(LLM_API_URL='https://llm.test/invoke', LLM_API_KEY='secret')
    @patch('backend.marketing.content_service.requests.post')
    def test_llm_output_merged_over_template(self, mock_post):
        mock_response = MagicMock()
        mock_response.json.return_value = {'result': {'title': 'Creta, ready to roll', 'mood': 'upbeat',
                                                      'description': ''}}
        mock_post.return_value = mock_response

        content = content_service.generate_content(self.vehicle)
        self.assertEqual(content['title'], 'Creta, ready to roll')
        self.assertNotIn('mood', content)
        self.assertIn('Well maintained', content['description'])
        self.assertEqual(mock_post.call_args.kwargs['headers']['Authorization'], 'Bearer secret')

    @override_settings(LLM_API_URL='https://llm.test/invoke')
    @patch('backend.marketing.content_service.requests.post')
    def test_llm_timeout_falls_back(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()
        content = content_service.generate_content(self.vehicle)
        self.assertIn('Hyundai', content['title'])

    @override_settings(LLM_API_URL='https://llm.test/invoke')
    @patch('backend.marketing.content_service.requests.post')
    def test_llm_non_object_falls_back(self, mock_post):
        mock_post.return_value.json.return_value = ['not', 'an', 'object']
        self.assertIsNone(content_service.invoke_llm('prompt', {}))


@override_settings(LLM_API_URL='')
class AssetFeedbackTests(MarketingTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.asset = services.generate_ai_content(self.dealer, self.vehicle)

    def _rate(self, rating, feedback='', asset=None):
        asset = asset or self.asset
        return self.client.post(f'/api/v1/marketing/assets/{asset.id}/feedback/',
                                {'rating': rating, 'feedback': feedback}, format='json')

    def test_status_for_rating(self):
        self.assertEqual(services.status_for_rating(5), 'approved')
        self.assertEqual(services.status_for_rating(3), 'draft')
        self.assertEqual(services.status_for_rating(1), 'rejected')

    def test_rating_approves(self):
        response = self._rate(5, 'Great hashtags')
        self.assertEqual(response.data['status'], 'approved')
        insights = response.data['ai_insights']['insights']
        self.assertIn('Dealer noted: Great hashtags', insights['positive_aspects'])
        self.assertEqual(insights['confidence_score'], 0.7)

    def test_rating_rejects(self):
        response = self._rate(2)
        self.assertEqual(response.data['status'], 'rejected')
        self.assertTrue(response.data['ai_insights']['insights']['improvement_areas'])

    def test_insights_need_ratings(self):
        response = self.client.get('/api/v1/marketing/insights/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_insights(self):
        self._rate(5)
        other = services.generate_ai_content(self.dealer, self.vehicle, 'ad_creative', 'facebook')
        self._rate(1, asset=other)
        response = self.client.get('/api/v1/marketing/insights/')
        self.assertEqual(response.data['effective_platforms'], ['instagram'])
        self.assertEqual(response.data['improvement_areas'], ['Ad Creative'])
        self.assertEqual(response.data['overall_score'], 60)

    def test_recommendations(self):
        TestDataFactory.create_vehicle(self.dealer, make='BMW', model='X1', price=3500000)
        response = self.client.get('/api/v1/marketing/recommendations/')
        self.assertIn('360_view', response.data['recommended_content_types'])
        self.assertEqual(response.data['trending_focus'], ['BMW', 'Hyundai'])

    def test_performance_tracking(self):
        response = self.client.post(f'/api/v1/marketing/assets/{self.asset.id}/performance/',
                                    {'metrics': {'views': 120, 'likes': 14}}, format='json')
        self.assertEqual(response.data['performance_metrics']['views'], 120)
        self.assertEqual(response.data['performance_metrics']['shares'], 0)
        self.assertIn('last_updated', response.data['performance_metrics'])

        response = self.client.post(f'/api/v1/marketing/assets/{self.asset.id}/performance/',
                                    {'metrics': {'followers': 1}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_asset_list_filters_and_delete(self):
        services.generate_ai_content(self.dealer, self.vehicle, 'ad_creative', 'facebook')
        response = self.client.get('/api/v1/marketing/assets/?platform=facebook')
        self.assertEqual(response.data['count'], 1)

        response = self.client.delete(f'/api/v1/marketing/assets/{self.asset.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get('/api/v1/marketing/assets/').data['count'], 1)


@override_settings(LLM_API_URL='')
class SocialPublishingTests(MarketingTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.asset = services.generate_ai_content(self.dealer, self.vehicle)

    def _connect(self, platform='instagram', username='@puneautohub'):
        return self.client.post('/api/v1/marketing/social-accounts/', {
            'platform': platform, 'account_username': username, 'default_hashtags': ['PuneCars'],
        }, format='json')

    def _publish(self, **payload):
        payload.setdefault('platforms', ['instagram'])
        return self.client.post(f'/api/v1/marketing/assets/{self.asset.id}/publish/', payload, format='json')

    def test_connect_account(self):
        response = self._connect()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['account_username'], 'puneautohub')
        self.assertEqual(response.data['default_hashtags'], ['#PuneCars'])

    def test_reconnect_updates_existing(self):
        self._connect()
        self._connect(username='hub_pune')
        self.assertEqual(SocialMediaAccount.objects.filter(dealer=self.dealer).count(), 1)
        self.assertEqual(SocialMediaAccount.objects.get().account_username, 'hub_pune')

    def test_disconnect(self):
        account_id = self._connect().data['id']
        response = self.client.post(f'/api/v1/marketing/social-accounts/{account_id}/disconnect/')
        self.assertEqual(response.data['connection_status'], 'disconnected')
        response = self.client.get('/api/v1/marketing/social-accounts/?connection_status=connected')
        self.assertEqual(response.data, [])

    def test_publish_needs_connected_account(self):
        response = self._publish()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('instagram', response.data['error'])

    def test_publish(self):
        self._connect()
        response = self._publish(caption='Fresh arrival', hashtags=['#Creta'])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['asset']['status'], 'published')
        post = response.data['posts'][0]
        self.assertEqual(post['status'], 'published')
        self.assertEqual(post['hashtags'], ['#Creta'])
        self.assertTrue(post['post_id'].startswith('instagram_'))

    def test_schedule_keeps_status(self):
        self._connect()
        scheduled = (timezone.now() + timedelta(days=1)).isoformat()
        response = self._publish(scheduled_for=scheduled)
        self.assertEqual(response.data['posts'][0]['status'], 'scheduled')
        self.assertEqual(response.data['asset']['status'], 'draft')

    def test_rejected_asset_cannot_publish(self):
        self._connect()
        services.rate_asset(self.dealer, self.asset.id, 1)
        response = self._publish()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_published_asset_cannot_be_rated(self):
        self._connect()
        self._publish()
        response = self.client.post(f'/api/v1/marketing/assets/{self.asset.id}/feedback/', {'rating': 4},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
