"""
Vehicle media processing and marketing asset bookkeeping.

Processing is simulated: each job validates its inputs, records the
processing status on the vehicle and writes predictable placeholder URLs
for the generated media. A job that cannot run is marked ``failed`` on the
vehicle before the error is raised, so the processing queue shows it.
"""
import logging
import random
import string
import time
from datetime import timedelta

from django.db import transaction as db_transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.vehicles.models import Vehicle
from . import content_service
from .models import MarketingAsset, SocialMediaAccount

logger = logging.getLogger(__name__)

MIN_IMAGES = {'images': 1, '360': 8, 'reel': 3, 'marketing': 1}

STATUS_FIELDS = {
    'images': 'image_processing_status',
    '360': 'view_360_processing_status',
    'reel': 'reel_processing_status',
    'marketing': 'marketing_content_processing_status',
}

# Keys used in summaries and the processing queue
SUMMARY_KEYS = {'images': 'images', '360': 'view360', 'reel': 'reel', 'marketing': 'marketing'}

PROCESSING_TYPES = list(STATUS_FIELDS)
BATCH_ACTIONS = PROCESSING_TYPES + ['all']
RECENT_DAYS = 7


class MarketingError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


def _job_id(prefix):
    return f"{prefix}_{int(time.time() * 1000)}"


def _random_suffix(rng, length=9):
    return ''.join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(length))


def get_owned_vehicle(dealer, vehicle_id):
    return get_object_or_404(Vehicle, pk=vehicle_id, dealer=dealer)


def _source_images(vehicle, image_urls=None, prefer_processed=False):
    if image_urls:
        return list(image_urls)
    if prefer_processed and vehicle.processed_image_urls:
        return list(vehicle.processed_image_urls)
    return list(vehicle.image_urls or [])


def _start(vehicle, kind, image_urls):
    """Validate the image count and flag the job as processing"""
    status_field = STATUS_FIELDS[kind]
    minimum = MIN_IMAGES[kind]
    vehicle.last_processed_at = timezone.now()
    if len(image_urls) < minimum:
        setattr(vehicle, status_field, 'failed')
        vehicle.save(update_fields=[status_field, 'last_processed_at', 'updated_at'])
        if minimum == 1:
            raise MarketingError('At least one image is required for processing')
        raise MarketingError(f'At least {minimum} images are required for this job ({len(image_urls)} provided)')
    setattr(vehicle, status_field, 'processing')
    vehicle.save(update_fields=[status_field, 'last_processed_at', 'updated_at'])


def _finish(vehicle, kind, job_id, **fields):
    status_field = STATUS_FIELDS[kind]
    for name, value in fields.items():
        setattr(vehicle, name, value)
    setattr(vehicle, status_field, 'completed')
    vehicle.processing_job_id = job_id
    vehicle.last_processed_at = timezone.now()
    vehicle.save(update_fields=[*fields, status_field, 'processing_job_id', 'last_processed_at', 'updated_at'])
    logger.info(f"Vehicle {vehicle.id}: {kind} processing completed (job {job_id})")


def process_images(vehicle, image_urls=None):
    """Uniform-background versions of the vehicle photos"""
    image_urls = _source_images(vehicle, image_urls)
    _start(vehicle, 'images', image_urls)
    processed = [
        f"https://processed-images.example.com/uniform-bg/{vehicle.id}_{index}_processed.jpg"
        for index in range(1, len(image_urls) + 1)
    ]
    job_id = _job_id('job')
    _finish(vehicle, 'images', job_id, processed_image_urls=processed)
    return {'success': True, 'vehicleId': vehicle.id, 'processedUrls': processed, 'jobId': job_id,
            'message': 'Images processed successfully with uniform backgrounds'}


def generate_360_view(vehicle, image_urls=None):
    image_urls = _source_images(vehicle, image_urls, prefer_processed=True)
    _start(vehicle, '360', image_urls)
    view_url = f"https://360-viewer.example.com/embed/{vehicle.id}?autoplay=true&controls=true"
    job_id = _job_id('360_job')
    _finish(vehicle, '360', job_id, view_360_url=view_url)
    return {'success': True, 'vehicleId': vehicle.id, 'viewUrl': view_url, 'jobId': job_id,
            'message': f'360 view generated from {len(image_urls)} images'}


def generate_reel(vehicle, image_urls=None):
    image_urls = _source_images(vehicle, image_urls, prefer_processed=True)
    _start(vehicle, 'reel', image_urls)
    reel_url = f"https://marketing-platform.example.com/reels/{vehicle.id}?autoplay=true&muted=true"
    job_id = _job_id('reel_job')
    _finish(vehicle, 'reel', job_id, reel_url=reel_url)
    return {'success': True, 'vehicleId': vehicle.id, 'reelUrl': reel_url, 'jobId': job_id,
            'message': 'Marketing reel generated successfully'}


def generate_marketing_content(vehicle, image_urls=None):
    """Platform-sized creatives; each one is also stored as a draft MarketingAsset"""
    image_urls = _source_images(vehicle, image_urls, prefer_processed=True)
    _start(vehicle, 'marketing', image_urls)

    generated_at = timezone.now().isoformat()
    base = 'https://marketing-platform.example.com'
    creatives = [
        {'type': 'social_post', 'platform': 'instagram', 'dimensions': '1080x1080',
         'url': f'{base}/posts/{vehicle.id}/instagram_post.jpg'},
        {'type': 'story_template', 'platform': 'instagram', 'dimensions': '1080x1920',
         'url': f'{base}/stories/{vehicle.id}/instagram_story.jpg'},
        {'type': 'ad_creative', 'platform': 'facebook', 'dimensions': '1200x628',
         'url': f'{base}/ads/{vehicle.id}/facebook_ad.jpg'},
        {'type': 'brochure', 'platform': 'general', 'dimensions': 'A4',
         'url': f'{base}/brochures/{vehicle.id}/vehicle_brochure.pdf'},
    ]
    for creative in creatives:
        creative['generated_at'] = generated_at

    job_id = _job_id('marketing_job')
    with db_transaction.atomic():
        MarketingAsset.objects.bulk_create([
            MarketingAsset(dealer_id=vehicle.dealer_id, vehicle=vehicle, asset_type=creative['type'],
                           platform=creative['platform'], url=creative['url'],
                           dimensions=creative['dimensions'], tags=[vehicle.make, vehicle.model])
            for creative in creatives
        ])
        _finish(vehicle, 'marketing', job_id, marketing_content_urls=creatives)
    return {'success': True, 'vehicleId': vehicle.id, 'marketingAssets': creatives, 'jobId': job_id,
            'message': f'Generated {len(creatives)} marketing assets successfully'}


PROCESSORS = {
    'images': process_images,
    '360': generate_360_view,
    'reel': generate_reel,
    'marketing': generate_marketing_content,
}


def run_processing(vehicle, kind, image_urls=None):
    if kind not in PROCESSORS:
        raise MarketingError(f'Unknown processing type: {kind}')
    return PROCESSORS[kind](vehicle, image_urls)


def reset_processing_status(vehicle, kind='all'):
    if kind not in BATCH_ACTIONS:
        raise MarketingError(f'Unknown processing type: {kind}')

    updates = {}
    if kind in ('images', 'all'):
        updates.update(image_processing_status='none', processed_image_urls=[])
    if kind in ('360', 'all'):
        updates.update(view_360_processing_status='none', view_360_url='')
    if kind in ('reel', 'all'):
        updates.update(reel_processing_status='none', reel_url='')
    if kind in ('marketing', 'all'):
        updates.update(marketing_content_processing_status='none', marketing_content_urls=[])
    if kind == 'all':
        updates.update(processing_job_id='', last_processed_at=None)

    for name, value in updates.items():
        setattr(vehicle, name, value)
    vehicle.save(update_fields=[*updates, 'updated_at'])
    logger.info(f"Vehicle {vehicle.id}: processing status reset ({kind})")
    return vehicle


def _process_all(vehicle):
    """Every job the vehicle has enough images for; individual failures are recorded, not raised"""
    images = _source_images(vehicle)
    results = {}
    for kind in PROCESSING_TYPES:
        if kind in ('360', 'reel') and len(images) < MIN_IMAGES[kind]:
            continue
        try:
            results[SUMMARY_KEYS[kind]] = PROCESSORS[kind](vehicle)
        except MarketingError as e:
            results[SUMMARY_KEYS[kind]] = {'success': False, 'error': e.message}
    return {
        'success': any(result.get('success') for result in results.values()),
        'vehicleId': vehicle.id,
        'results': results,
        'message': 'Batch processing completed',
    }


def batch_process(dealer, vehicle_ids, action='all'):
    if not vehicle_ids:
        raise MarketingError('Select at least one vehicle')
    if action not in BATCH_ACTIONS:
        raise MarketingError(f'Unknown batch action: {action}')

    vehicles = {vehicle.id: vehicle for vehicle in Vehicle.objects.filter(dealer=dealer, pk__in=vehicle_ids)}
    summary = {'total': len(vehicle_ids), 'successful': 0, 'failed': 0, 'action': action, 'results': [],
               'startedAt': timezone.now().isoformat()}

    for vehicle_id in vehicle_ids:
        vehicle = vehicles.get(vehicle_id)
        entry = {'vehicleId': vehicle_id, 'processedAt': timezone.now().isoformat()}
        try:
            if vehicle is None:
                raise MarketingError('Vehicle not found', status_code=404)
            entry['result'] = _process_all(vehicle) if action == 'all' else run_processing(vehicle, action)
            entry['success'] = True
            summary['successful'] += 1
        except MarketingError as e:
            entry.update(success=False, error=e.message)
            summary['failed'] += 1
        summary['results'].append(entry)

    summary['completedAt'] = timezone.now().isoformat()
    logger.info(f"Batch {action} for dealer {dealer.id}: {summary['successful']} ok, {summary['failed']} failed")
    return summary


def processing_status(vehicle):
    return {
        'vehicleId': vehicle.id,
        'imageProcessing': {
            'status': vehicle.image_processing_status,
            'processedCount': len(vehicle.processed_image_urls or []),
            'originalCount': len(vehicle.image_urls or []),
        },
        'view360': {'status': vehicle.view_360_processing_status, 'url': vehicle.view_360_url or None},
        'reel': {'status': vehicle.reel_processing_status, 'url': vehicle.reel_url or None},
        'marketing': {'status': vehicle.marketing_content_processing_status,
                      'assetCount': len(vehicle.marketing_content_urls or [])},
        'lastProcessedAt': vehicle.last_processed_at,
        'jobId': vehicle.processing_job_id,
    }


def assets_summary(dealer):
    vehicles = list(Vehicle.objects.filter(dealer=dealer))
    stats = {key: {'pending': 0, 'processing': 0, 'completed': 0, 'failed': 0} for key in SUMMARY_KEYS.values()}
    summary = {
        'totalVehicles': len(vehicles),
        'vehiclesWithImages': 0,
        'vehiclesWithProcessedImages': 0,
        'vehiclesWith360View': 0,
        'vehiclesWithReels': 0,
        'vehiclesWithMarketingContent': 0,
        'totalAssets': MarketingAsset.objects.filter(dealer=dealer).count(),
        'processingStats': stats,
        'recentlyGenerated': [],
    }
    recent_cutoff = timezone.now() - timedelta(days=RECENT_DAYS)

    for vehicle in vehicles:
        summary['vehiclesWithImages'] += bool(vehicle.image_urls)
        summary['vehiclesWithProcessedImages'] += bool(vehicle.processed_image_urls)
        summary['vehiclesWith360View'] += bool(vehicle.view_360_url)
        summary['vehiclesWithReels'] += bool(vehicle.reel_url)
        summary['vehiclesWithMarketingContent'] += bool(vehicle.marketing_content_urls)

        for kind, field in STATUS_FIELDS.items():
            value = getattr(vehicle, field)
            if value in stats[SUMMARY_KEYS[kind]]:
                stats[SUMMARY_KEYS[kind]][value] += 1

        if vehicle.last_processed_at and vehicle.last_processed_at >= recent_cutoff:
            summary['recentlyGenerated'].append({
                'vehicleId': vehicle.id,
                'vehicleName': vehicle.display_name,
                'processedAt': vehicle.last_processed_at,
                'hasProcessedImages': bool(vehicle.processed_image_urls),
                'has360View': bool(vehicle.view_360_url),
                'hasReel': bool(vehicle.reel_url),
                'hasMarketingContent': bool(vehicle.marketing_content_urls),
            })

    summary['recentlyGenerated'].sort(key=lambda item: item['processedAt'], reverse=True)
    return summary


def processing_queue(dealer):
    queue = {'activeJobs': [], 'completedJobs': [], 'failedJobs': []}
    buckets = {'pending': 'activeJobs', 'processing': 'activeJobs', 'completed': 'completedJobs',
               'failed': 'failedJobs'}

    for vehicle in Vehicle.objects.filter(dealer=dealer):
        for kind, field in STATUS_FIELDS.items():
            value = getattr(vehicle, field)
            if value not in buckets:
                continue
            queue[buckets[value]].append({
                'vehicleId': vehicle.id,
                'vehicleName': vehicle.display_name,
                'type': SUMMARY_KEYS[kind],
                'status': value,
                'lastProcessedAt': vehicle.last_processed_at,
                'jobId': vehicle.processing_job_id,
            })

    epoch = timezone.now() - timedelta(days=365 * 100)
    for key in ('completedJobs', 'failedJobs'):
        queue[key].sort(key=lambda job: job['lastProcessedAt'] or epoch, reverse=True)
    return queue


def generate_ai_content(dealer, vehicle, content_type='social_post', platform='instagram', preferences=None):
    """Generated copy for a vehicle, stored as a draft asset"""
    content = content_service.generate_content(vehicle, content_type, platform, preferences)
    stamp = int(time.time() * 1000)
    asset = MarketingAsset.objects.create(
        dealer=dealer,
        vehicle=vehicle,
        asset_type=content_type,
        platform=platform,
        url=f"https://assets.example.com/generated/{vehicle.id}/{content_type}_{stamp}.jpg",
        thumbnail_url=f"https://assets.example.com/thumbnails/{vehicle.id}/{content_type}_{stamp}_thumb.jpg",
        content=content,
        tags=content.get('hashtags', []),
        ai_generated=True,
    )
    logger.info(f"Generated {content_type} content for vehicle {vehicle.id} (asset {asset.id})")
    return asset


def status_for_rating(rating):
    if rating >= 4:
        return 'approved'
    if rating <= 2:
        return 'rejected'
    return 'draft'


def rate_asset(dealer, asset_id, rating, feedback=''):
    """Record the dealer's rating and run it through feedback analysis"""
    asset = get_object_or_404(MarketingAsset, pk=asset_id, dealer=dealer)
    if asset.status == 'published':
        raise MarketingError('Published assets can no longer be rated', status_code=409)

    insights = content_service.process_ai_feedback(asset, rating, feedback)
    asset.dealer_rating = rating
    asset.dealer_feedback = feedback
    asset.status = status_for_rating(rating)
    asset.ai_insights = {'processed': True, 'insights': insights, 'processedAt': timezone.now().isoformat()}
    asset.save(update_fields=['dealer_rating', 'dealer_feedback', 'status', 'ai_insights', 'updated_at'])
    return asset


def personalised_insights(dealer):
    rated = list(MarketingAsset.objects.filter(dealer=dealer, dealer_rating__isnull=False))
    if not rated:
        raise MarketingError('Rate a few generated assets first to get personalised insights')
    return content_service.personalised_insights(dealer, rated)


def recommendations(dealer):
    vehicles = list(Vehicle.objects.filter(dealer=dealer).exclude(status='sold'))
    return content_service.marketing_recommendations(
        dealer, vehicles, MarketingAsset.objects.filter(dealer=dealer).count()
    )


def track_performance(dealer, asset_id, metrics):
    """Merge new counters into the asset's metrics"""
    with db_transaction.atomic():
        asset = get_object_or_404(MarketingAsset.objects.select_for_update(), pk=asset_id, dealer=dealer)
        merged = dict(asset.performance_metrics or {})
        merged.update(metrics)
        now = timezone.now()
        merged['last_updated'] = now.isoformat()
        asset.performance_metrics = merged
        asset.last_used_at = now
        asset.save(update_fields=['performance_metrics', 'last_used_at', 'updated_at'])
    return merged


def connect_account(dealer, platform, username, default_hashtags=None):
    account, created = SocialMediaAccount.objects.update_or_create(
        dealer=dealer, platform=platform,
        defaults={
            'account_id': f"{platform}_{int(time.time() * 1000)}",
            'account_username': username,
            'connection_status': 'connected',
            'default_hashtags': default_hashtags or [],
        },
    )
    logger.info(f"Dealer {dealer.id} {'connected' if created else 'reconnected'} {platform} as {username}")
    return account


def disconnect_account(dealer, account_id):
    account = get_object_or_404(SocialMediaAccount, pk=account_id, dealer=dealer)
    account.connection_status = 'disconnected'
    account.save(update_fields=['connection_status', 'updated_at'])
    return account


def publish_asset(dealer, asset_id, platforms, caption='', hashtags=None, scheduled_for=None, rng=None):
    """Post an asset to connected platforms, or schedule it when ``scheduled_for`` is set"""
    rng = rng or random
    connected = set(
        SocialMediaAccount.objects.filter(dealer=dealer, connection_status='connected', platform__in=platforms)
        .values_list('platform', flat=True)
    )
    missing = [platform for platform in platforms if platform not in connected]
    if missing:
        raise MarketingError(f"Connect your {', '.join(missing)} account first")

    with db_transaction.atomic():
        asset = get_object_or_404(MarketingAsset.objects.select_for_update(), pk=asset_id, dealer=dealer)
        if asset.status == 'rejected':
            raise MarketingError('Rejected assets cannot be published', status_code=409)

        now = timezone.now()
        post_status = 'scheduled' if scheduled_for and scheduled_for > now else 'published'
        posted_at = (scheduled_for if post_status == 'scheduled' else now).isoformat()
        posts = []
        for platform in platforms:
            stamp = int(time.time() * 1000)
            posts.append({
                'platform': platform,
                'post_id': f"{platform}_{stamp}_{_random_suffix(rng)}",
                'post_url': f"https://{platform}.com/posts/{stamp}",
                'posted_at': posted_at,
                'caption': caption,
                'hashtags': hashtags or [],
                'status': post_status,
            })

        asset.social_media_posts = list(asset.social_media_posts or []) + posts
        asset.last_used_at = now
        update_fields = ['social_media_posts', 'last_used_at', 'updated_at']
        if post_status == 'published':
            asset.status = 'published'
            update_fields.append('status')
        asset.save(update_fields=update_fields)

    logger.info(f"Asset {asset.id} {post_status} to {', '.join(platforms)}")
    return asset, posts
