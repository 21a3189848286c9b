import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db.models import Q
from django.shortcuts import get_object_or_404

from backend.core.permissions import HasDealerProfile, IsVerifiedDealer
from backend.deals.models import Transaction
from backend.deals.state import DealError
from . import services
from .serializers import PaymentSerializer, PaymentRequestSerializer, QuoteRequestSerializer

logger = logging.getLogger(__name__)


def _party_deal_or_404(request, pk):
    dealer = request.user.dealer
    return get_object_or_404(Transaction, Q(buyer=dealer) | Q(seller=dealer), pk=pk)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def gateway_list(request):
    return Response(services.list_gateways())


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def payment_quote(request, pk):
    """Deal amount, gateway fee and total for ?gateway="""
    serializer = QuoteRequestSerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    deal = _party_deal_or_404(request, pk)
    return Response(services.quote(deal.agreed_amount, serializer.validated_data['gateway']))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_payments(request, pk):
    """
    GET: payment attempts for a deal.
    POST: pay into escrow. 201 on success, 402 with the failed record when
    the gateway declines.
    """
    if request.method == 'GET':
        deal = _party_deal_or_404(request, pk)
        return Response(PaymentSerializer(deal.payments.all(), many=True).data)

    if not IsVerifiedDealer().has_permission(request, None):
        return Response({'error': IsVerifiedDealer.message}, status=status.HTTP_403_FORBIDDEN)
    serializer = PaymentRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        payment = services.pay(request.user.dealer, pk, serializer.validated_data['gateway'],
                               serializer.validated_data['payment_method'], request=request)
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)

    data = PaymentSerializer(payment).data
    if payment.status != 'completed':
        return Response({'error': payment.failure_reason, 'payment': data}, status=status.HTTP_402_PAYMENT_REQUIRED)
    return Response(data, status=status.HTTP_201_CREATED)
