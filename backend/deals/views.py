import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db.models import Q
from django.shortcuts import get_object_or_404

from backend.core.permissions import HasDealerProfile, IsVerifiedDealer
from backend.core.utils import paginated_response
from backend.core.validators import validate_offer
from backend.vehicles.models import Vehicle
from . import services
from .models import Transaction
from .pricing import get_dynamic_margins, get_platform_fee
from .serializers import (
    TransactionListSerializer, TransactionDetailSerializer, CustomerViewSerializer, DealMessageSerializer,
    OfferSerializer, OfferCheckSerializer, CounterOfferSerializer, ReasonSerializer, MessageSerializer,
    RatingSerializer, CustomerModeSerializer, PinSerializer, FinalizeSerializer, ArchiveSerializer,
)
from .state import DealError

logger = logging.getLogger(__name__)


def _error(e):
    return Response({'error': e.message}, status=e.status_code)


def _detail(deal, dealer, code=status.HTTP_200_OK):
    deal = Transaction.objects.select_related('vehicle', 'buyer', 'seller').get(pk=deal.pk)
    return Response(TransactionDetailSerializer(deal, context={'dealer': dealer}).data, status=code)


def _party_deal_or_404(pk, dealer):
    return get_object_or_404(
        Transaction.objects.select_related('vehicle', 'buyer', 'seller'),
        Q(buyer=dealer) | Q(seller=dealer), pk=pk,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_list_create(request):
    """
    GET: the dealer's deals. ``role`` = buying|selling, ``status`` filters by
    status (comma separated), ``archived`` = true shows archived deals only.

    POST: make an offer on a marketplace vehicle (verified dealers only).
    """
    dealer = request.user.dealer

    if request.method == 'GET':
        role = request.query_params.get('role')
        if role == 'buying':
            queryset = Transaction.objects.filter(buyer=dealer)
        elif role == 'selling':
            queryset = Transaction.objects.filter(seller=dealer).exclude(status='pending_customer_view')
        else:
            queryset = Transaction.objects.filter(
                Q(buyer=dealer) | (Q(seller=dealer) & ~Q(status='pending_customer_view'))
            )
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status__in=[s.strip() for s in status_filter.split(',') if s.strip()])
        queryset = queryset.filter(deal_archived=request.query_params.get('archived') == 'true')
        queryset = queryset.select_related('vehicle', 'buyer', 'seller').order_by('-updated_at')
        return paginated_response(request, queryset, TransactionListSerializer, default_limit=20,
                                  context={'dealer': dealer})

    if not IsVerifiedDealer().has_permission(request, None):
        return Response({'error': IsVerifiedDealer.message}, status=status.HTTP_403_FORBIDDEN)
    serializer = OfferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        deal, advice = services.create_offer(
            dealer, serializer.validated_data['vehicle_id'], serializer.validated_data['offer_amount'],
            serializer.validated_data.get('message', ''), request=request,
        )
    except DealError as e:
        return _error(e)
    response = _detail(deal, dealer, status.HTTP_201_CREATED)
    response.data['advice'] = advice
    return response


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def offer_check(request):
    """Advice on an offer amount before it is sent"""
    serializer = OfferCheckSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    vehicle = get_object_or_404(Vehicle, pk=serializer.validated_data['vehicle_id'], status='live')
    return Response(validate_offer(serializer.validated_data['offer_amount'], vehicle.price))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_detail(request, pk):
    dealer = request.user.dealer
    deal = _party_deal_or_404(pk, dealer)
    return Response(TransactionDetailSerializer(deal, context={'dealer': dealer}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_counter(request, pk):
    serializer = CounterOfferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    dealer = request.user.dealer
    try:
        deal = services.counter_offer(dealer, pk, serializer.validated_data['amount'],
                                      serializer.validated_data.get('message', ''), request=request)
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_accept(request, pk):
    dealer = request.user.dealer
    try:
        deal = services.accept_offer(dealer, pk, request=request)
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_reject(request, pk):
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    dealer = request.user.dealer
    try:
        deal = services.reject_offer(dealer, pk, serializer.validated_data.get('reason', ''), request=request)
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_cancel(request, pk):
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    dealer = request.user.dealer
    try:
        deal = services.cancel_deal(dealer, pk, serializer.validated_data.get('reason', ''), request=request)
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_messages(request, pk):
    dealer = request.user.dealer
    if request.method == 'GET':
        deal = _party_deal_or_404(pk, dealer)
        return Response(DealMessageSerializer(deal.messages.select_related('sender'), many=True).data)

    serializer = MessageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        message = services.post_message(dealer, pk, serializer.validated_data['message'])
    except DealError as e:
        return _error(e)
    return Response(DealMessageSerializer(message).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_release_funds(request, pk):
    dealer = request.user.dealer
    try:
        deal = services.release_funds(dealer, pk, request=request)
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_rate(request, pk):
    serializer = RatingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    dealer = request.user.dealer
    try:
        deal = services.complete_with_rating(dealer, pk, serializer.validated_data['rating'],
                                          serializer.validated_data.get('review', ''))
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_archive(request, pk):
    serializer = ArchiveSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    dealer = request.user.dealer
    try:
        deal = services.set_archived(dealer, pk, serializer.validated_data['archived'])
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)


# --- Customer Mode ---

@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def margin_preview(request):
    """Bracket margins for a price, and whether the user may override them"""
    price = request.query_params.get('price')
    if not price:
        return Response({'error': 'price is required'}, status=status.HTTP_400_BAD_REQUEST)
    margins = get_dynamic_margins(price)
    margins['platform_fee'] = get_platform_fee()
    margins['can_customize'] = services.can_use_custom_margins(request.user)
    return Response(margins)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVerifiedDealer])
def customer_mode_enter(request):
    serializer = CustomerModeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        deal = services.enter_customer_mode(
            request.user.dealer, data['vehicle_id'],
            desired_percent=data.get('desired_margin_percent'),
            minimum_percent=data.get('minimum_margin_percent'),
            request=request,
        )
    except DealError as e:
        return _error(e)
    return Response(CustomerViewSerializer(deal).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def customer_view(request, pk):
    deal = get_object_or_404(Transaction.objects.select_related('vehicle'), pk=pk, buyer=request.user.dealer)
    if deal.showroom_price is None:
        return Response({'error': 'This deal has no Customer Mode pricing'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(CustomerViewSerializer(deal).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def customer_mode_exit(request, pk):
    try:
        deal = services.exit_customer_mode(request.user.dealer, pk)
    except DealError as e:
        return _error(e)
    return Response(CustomerViewSerializer(deal).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def private_pricing(request, pk):
    """Unlock the cost breakdown behind the showroom price with the private PIN"""
    serializer = PinSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        data = services.get_private_pricing(request.user.dealer, pk, serializer.validated_data['pin'])
    except DealError as e:
        return _error(e)
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVerifiedDealer])
def customer_finalize(request, pk):
    serializer = FinalizeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    dealer = request.user.dealer
    try:
        deal = services.finalize_for_customer(dealer, pk, serializer.validated_data['customer_price'],
                                              request=request)
    except DealError as e:
        return _error(e)
    return _detail(deal, dealer)
