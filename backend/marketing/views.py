from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.shortcuts import get_object_or_404

from backend.core.permissions import HasDealerProfile
from backend.core.utils import paginated_response
from . import services
from .models import MarketingAsset, SocialMediaAccount
from .serializers import (
    MarketingAssetSerializer, SocialMediaAccountSerializer, GenerateContentSerializer, ProcessingSerializer,
    ResetProcessingSerializer, BatchProcessingSerializer, AssetFeedbackSerializer, PerformanceSerializer,
    PublishSerializer,
)
from .services import MarketingError


def _error(e):
    return Response({'error': e.message}, status=e.status_code)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def asset_list(request):
    """My marketing assets, filterable by vehicle, type, platform and status"""
    queryset = MarketingAsset.objects.filter(dealer=request.user.dealer).select_related('vehicle')
    for param in ('asset_type', 'platform', 'status'):
        value = request.query_params.get(param)
        if value:
            queryset = queryset.filter(**{param: value})
    vehicle_id = request.query_params.get('vehicle')
    if vehicle_id:
        queryset = queryset.filter(vehicle_id=vehicle_id)
    return paginated_response(request, queryset, MarketingAssetSerializer, default_limit=20)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def asset_detail(request, pk):
    asset = get_object_or_404(MarketingAsset, pk=pk, dealer=request.user.dealer)
    if request.method == 'DELETE':
        asset.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(MarketingAssetSerializer(asset).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def generate_content(request):
    serializer = GenerateContentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    dealer = request.user.dealer
    vehicle = services.get_owned_vehicle(dealer, data['vehicle_id'])
    asset = services.generate_ai_content(dealer, vehicle, data['content_type'], data['platform'],
                                         data.get('preferences'))
    return Response(MarketingAssetSerializer(asset).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def asset_feedback(request, pk):
    """Rate an asset; the rating decides whether it is approved or rejected"""
    serializer = AssetFeedbackSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        asset = services.rate_asset(request.user.dealer, pk, serializer.validated_data['rating'],
                                    serializer.validated_data.get('feedback', ''))
    except MarketingError as e:
        return _error(e)
    return Response(MarketingAssetSerializer(asset).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def asset_performance(request, pk):
    serializer = PerformanceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    metrics = services.track_performance(request.user.dealer, pk, serializer.validated_data['metrics'])
    return Response({'performance_metrics': metrics})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def asset_publish(request, pk):
    serializer = PublishSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        asset, posts = services.publish_asset(
            request.user.dealer, pk, data['platforms'], caption=data.get('caption', ''),
            hashtags=data.get('hashtags'), scheduled_for=data.get('scheduled_for'),
        )
    except MarketingError as e:
        return _error(e)
    return Response({'asset': MarketingAssetSerializer(asset).data, 'posts': posts})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def marketing_insights(request):
    try:
        return Response(services.personalised_insights(request.user.dealer))
    except MarketingError as e:
        return _error(e)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def marketing_recommendations(request):
    return Response(services.recommendations(request.user.dealer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def assets_summary(request):
    return Response(services.assets_summary(request.user.dealer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def processing_queue(request):
    return Response(services.processing_queue(request.user.dealer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_processing_status(request, pk):
    vehicle = services.get_owned_vehicle(request.user.dealer, pk)
    return Response(services.processing_status(vehicle))


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_process(request, pk, kind):
    """Run one processing job (images, 360, reel or marketing) for my vehicle"""
    if kind not in services.PROCESSORS:
        return Response({'error': f'Unknown processing type: {kind}'}, status=status.HTTP_404_NOT_FOUND)
    serializer = ProcessingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    vehicle = services.get_owned_vehicle(request.user.dealer, pk)
    try:
        result = services.run_processing(vehicle, kind, serializer.validated_data.get('image_urls'))
    except MarketingError as e:
        return _error(e)
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_reset_processing(request, pk):
    serializer = ResetProcessingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    vehicle = services.get_owned_vehicle(request.user.dealer, pk)
    services.reset_processing_status(vehicle, serializer.validated_data['type'])
    return Response(services.processing_status(vehicle))


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def batch_processing(request):
    serializer = BatchProcessingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        result = services.batch_process(request.user.dealer, serializer.validated_data['vehicle_ids'],
                                        serializer.validated_data['action'])
    except MarketingError as e:
        return _error(e)
    return Response(result)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def social_account_list_connect(request):
    dealer = request.user.dealer
    if request.method == 'GET':
        accounts = SocialMediaAccount.objects.filter(dealer=dealer)
        connection_status = request.query_params.get('connection_status')
        if connection_status:
            accounts = accounts.filter(connection_status=connection_status)
        return Response(SocialMediaAccountSerializer(accounts, many=True).data)

    serializer = SocialMediaAccountSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    account = services.connect_account(dealer, data['platform'], data['account_username'],
                                       data.get('default_hashtags'))
    return Response(SocialMediaAccountSerializer(account).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def social_account_disconnect(request, pk):
    account = services.disconnect_account(request.user.dealer, pk)
    return Response(SocialMediaAccountSerializer(account).data)
