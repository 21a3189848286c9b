import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db import transaction as db_transaction
from django.db.models import F, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.cache_utils import get_cached_marketplace_list, cache_marketplace_list
from backend.core.permissions import HasDealerProfile
from backend.core.utils import paginate_payload, paginated_response
from backend.deals import services as deal_services
from .filters import VehicleFilter
from .models import Vehicle
from .serializers import VehicleSerializer, VehicleListSerializer, PriceSuggestionSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_list_create(request):
    """The current dealer's inventory"""
    dealer = request.user.dealer

    if request.method == 'GET':
        queryset = Vehicle.objects.filter(dealer=dealer).select_related('dealer')
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return paginated_response(request, queryset.order_by('-created_at'), VehicleSerializer, default_limit=20)

    serializer = VehicleSerializer(data=request.data)
    if serializer.is_valid():
        vehicle = serializer.save(dealer=dealer)
        logger.info(f"Vehicle {vehicle.id} ({vehicle.display_name}) created by dealer {dealer.id}")
        return Response(VehicleSerializer(vehicle).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_detail(request, pk):
    vehicle = get_object_or_404(Vehicle.objects.select_related('dealer'), pk=pk)
    is_owner = vehicle.dealer_id == request.user.dealer.id

    if request.method == 'GET':
        if is_owner:
            return Response(VehicleSerializer(vehicle).data)
        if vehicle.status == 'draft':
            return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(VehicleListSerializer(vehicle).data)

    if not is_owner:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        if not request.data:
            return Response({'error': 'No update data provided'}, status=status.HTTP_400_BAD_REQUEST)
        if vehicle.status == 'sold':
            return Response({'error': 'Sold vehicles cannot be edited'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = VehicleSerializer(vehicle, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if vehicle.status == 'in_transaction':
        return Response({'error': 'Vehicle has an active deal and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
    with db_transaction.atomic():
        previews = deal_services.customer_previews(vehicle.id)
        if vehicle.transactions.exclude(pk__in=previews.values('pk')).exists():
            # Deals keep their vehicle for the audit trail
            return Response({'error': 'Vehicle has deal history and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        previews.delete()
        vehicle.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_publish(request, pk):
    """Move a draft listing to the marketplace"""
    vehicle = get_object_or_404(Vehicle, pk=pk, dealer=request.user.dealer)
    if vehicle.status != 'draft':
        return Response({'error': f'Only draft vehicles can be published (current: {vehicle.status})'},
                        status=status.HTTP_400_BAD_REQUEST)
    vehicle.status = 'live'
    if not vehicle.date_listed:
        vehicle.date_listed = timezone.now()
    vehicle.save(update_fields=['status', 'date_listed', 'updated_at'])
    return Response(VehicleSerializer(vehicle).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def marketplace(request):
    """Live listings from other dealers, searchable and sortable"""
    dealer = request.user.dealer
    params = {key: request.query_params.get(key) for key in request.query_params}
    cached_data, cache_key = get_cached_marketplace_list({**params, 'exclude_dealer': dealer.id})
    if cached_data is not None:
        return Response(cached_data)

    queryset = Vehicle.objects.filter(status='live').exclude(dealer=dealer).select_related('dealer')
    vehicle_filter = VehicleFilter(request.query_params, queryset=queryset)
    if not vehicle_filter.is_valid():
        return Response(vehicle_filter.errors, status=status.HTTP_400_BAD_REQUEST)

    queryset = vehicle_filter.qs
    if 'sort_by' not in request.query_params:
        queryset = queryset.order_by('-is_featured', '-priority_score', '-created_at')

    payload = paginate_payload(request, queryset, VehicleListSerializer, default_limit=20)
    cache_marketplace_list(cache_key, payload)
    return Response(payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_record_view(request, pk):
    """Count a marketplace view from another dealer"""
    vehicle = get_object_or_404(Vehicle, pk=pk, status='live')
    if vehicle.dealer_id != request.user.dealer.id:
        Vehicle.objects.filter(pk=vehicle.pk).update(views=F('views') + 1)
    vehicle.refresh_from_db(fields=['views'])
    return Response({'views': vehicle.views})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_transactions(request, pk):
    """Deals on a vehicle; the seller sees all, anyone else only their own"""
    from backend.deals.models import Transaction
    from backend.deals.serializers import TransactionListSerializer

    dealer = request.user.dealer
    vehicle = get_object_or_404(Vehicle, pk=pk)
    queryset = Transaction.objects.filter(vehicle=vehicle).select_related('vehicle', 'buyer', 'seller')
    if vehicle.dealer_id != dealer.id:
        queryset = queryset.filter(Q(buyer=dealer) | Q(seller=dealer))
    serializer = TransactionListSerializer(queryset.order_by('-created_at'), many=True, context={'dealer': dealer})
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def vehicle_price_suggestion(request):
    """Suggested market price for a make/model/year"""
    from backend.marketing.content_service import suggest_price

    serializer = PriceSuggestionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(suggest_price(**serializer.validated_data))
