import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db.models import Q
from django.shortcuts import get_object_or_404

from backend.core.permissions import HasDealerProfile, IsPlatformAdmin, get_dealer
from backend.deals.models import Transaction
from backend.deals.pricing import estimate_logistics_cost
from backend.deals.serializers import TransactionDetailSerializer
from backend.deals.state import DealError
from backend.vehicles.models import Vehicle
from . import services
from .models import LogisticsPartner
from .serializers import (
    LogisticsPartnerSerializer, BookingSerializer, TransportStatusSerializer, DeliveryConfirmationSerializer
)

logger = logging.getLogger(__name__)


def _deal_response(deal, dealer):
    deal = Transaction.objects.select_related('vehicle', 'buyer', 'seller').get(pk=deal.pk)
    return Response(TransactionDetailSerializer(deal, context={'dealer': dealer}).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def partner_list_create(request):
    """Active partners for everyone; platform admins see all and can add"""
    if request.method == 'GET':
        queryset = LogisticsPartner.objects.all()
        if not request.user.is_platform_admin:
            queryset = queryset.filter(is_active=True)
        return Response(LogisticsPartnerSerializer(queryset, many=True).data)

    if not request.user.is_platform_admin:
        return Response({'error': IsPlatformAdmin.message}, status=status.HTTP_403_FORBIDDEN)
    serializer = LogisticsPartnerSerializer(data=request.data)
    if serializer.is_valid():
        partner = serializer.save()
        logger.info(f"Logistics partner {partner.id} ({partner.partner_name}) added")
        return Response(LogisticsPartnerSerializer(partner).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def partner_detail(request, pk):
    partner = get_object_or_404(LogisticsPartner, pk=pk)
    if request.method == 'DELETE':
        # Bookings reference partners by id, so deactivate instead of deleting
        partner.is_active = False
        partner.save(update_fields=['is_active', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)
    serializer = LogisticsPartnerSerializer(partner, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def logistics_estimate(request):
    """Rough transport cost from a vehicle's dealer to the current dealer"""
    vehicle_id = request.query_params.get('vehicle_id')
    if not vehicle_id:
        return Response({'error': 'vehicle_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    vehicle = get_object_or_404(Vehicle.objects.select_related('dealer'), pk=vehicle_id)
    cost = estimate_logistics_cost(vehicle.dealer, get_dealer(request.user))
    return Response({'vehicle_id': vehicle.id, 'estimated_cost': cost})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_quotes(request, pk):
    """Live quotes for moving a deal's vehicle from seller to buyer"""
    dealer = request.user.dealer
    deal = get_object_or_404(
        Transaction.objects.select_related('buyer', 'seller'), Q(buyer=dealer) | Q(seller=dealer), pk=pk
    )
    return Response(services.get_quotes(deal.seller, deal.buyer, deal.agreed_amount))


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_book_transport(request, pk):
    serializer = BookingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    dealer = request.user.dealer
    try:
        deal = services.book_transport(
            dealer, pk, data['partner'], data['pickup_date'],
            pickup_address=data.get('pickup_address', ''),
            delivery_address=data.get('delivery_address', ''),
            special_instructions=data.get('special_instructions', ''),
        )
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return _deal_response(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def deal_transport_status(request, pk):
    """Seller or a platform admin (on the partner's behalf) reports pickup progress"""
    serializer = TransportStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    dealer = get_dealer(request.user)
    deal = get_object_or_404(Transaction, pk=pk)
    acting_as_admin = request.user.is_platform_admin and deal.party_role(dealer) is None
    if dealer is None and not acting_as_admin:
        return Response({'error': 'Create your dealer profile first.'}, status=status.HTTP_403_FORBIDDEN)
    try:
        deal = services.update_transport_status(
            dealer, pk, serializer.validated_data['status'], request=request, is_admin=acting_as_admin,
        )
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return _deal_response(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_confirm_delivery(request, pk):
    serializer = DeliveryConfirmationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    dealer = request.user.dealer
    try:
        deal = services.confirm_delivery(dealer, pk, serializer.validated_data.get('handover_code', ''))
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return _deal_response(deal, dealer)
