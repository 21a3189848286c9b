import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.cache_utils import invalidate_dashboard_cache
from backend.core.permissions import HasDealerProfile, IsPlatformAdmin, get_dealer
from backend.core.utils import create_system_log, paginated_response
from backend.notifications.services import notify, notify_dealer
from .models import Dealer
from .serializers import (
    DealerSerializer, DealerPublicSerializer, VerificationDecisionSerializer, PrivatePinSerializer
)
from .services import get_dashboard_data

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def dealer_me(request):
    """Current user's dealer profile: fetch, create (onboarding) or update"""
    dealer = get_dealer(request.user)

    if request.method == 'GET':
        if dealer is None:
            return Response({'error': 'Dealer profile not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(DealerSerializer(dealer).data)

    if request.method == 'POST':
        if dealer is not None:
            return Response({'error': 'Dealer profile already exists'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = DealerSerializer(data=request.data)
        if serializer.is_valid():
            dealer = serializer.save(owner=request.user)
            logger.info(f"Dealer profile {dealer.id} created for user {request.user.username}")
            create_system_log(request=request, action_type='create', module='dealers',
                              target_id=dealer.id, target_name=dealer.business_name)
            return Response(DealerSerializer(dealer).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # PATCH
    if dealer is None:
        return Response({'error': 'Dealer profile not found'}, status=status.HTTP_404_NOT_FOUND)
    serializer = DealerSerializer(dealer, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        invalidate_dashboard_cache(dealer.id)
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dealer_list(request):
    """Directory of active dealers"""
    queryset = Dealer.objects.filter(is_active=True)
    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(Q(business_name__icontains=search) | Q(city__icontains=search))
    state = request.query_params.get('state')
    if state:
        queryset = queryset.filter(state__iexact=state)
    city = request.query_params.get('city')
    if city:
        queryset = queryset.filter(city__iexact=city)
    if request.query_params.get('verified_only') == 'true':
        queryset = queryset.filter(verification_status='verified')
    return paginated_response(request, queryset, DealerPublicSerializer, default_limit=25)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dealer_detail(request, pk):
    dealer = get_object_or_404(Dealer, pk=pk, is_active=True)
    if request.user.is_platform_admin or dealer.owner_id == request.user.id:
        return Response(DealerSerializer(dealer).data)
    return Response(DealerPublicSerializer(dealer).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def dealer_submit_verification(request):
    """Send the dealer's KYB details for review"""
    with transaction.atomic():
        dealer = Dealer.objects.select_for_update().get(pk=request.user.dealer.pk)
        if dealer.verification_status == 'verified':
            return Response({'error': 'Dealer is already verified'}, status=status.HTTP_400_BAD_REQUEST)
        if dealer.verification_status == 'in_review':
            return Response({'error': 'Verification is already in review'}, status=status.HTTP_400_BAD_REQUEST)
        if not dealer.gstin and not dealer.pan:
            return Response({'error': 'GSTIN or PAN is required for verification'}, status=status.HTTP_400_BAD_REQUEST)

        dealer.verification_status = 'in_review'
        dealer.last_activity = timezone.now()
        dealer.save(update_fields=['verification_status', 'last_activity', 'updated_at'])

        notify(
            request.user, 'verification', 'Verification submitted',
            'Your dealer profile has been submitted for verification. We will notify you once it is reviewed.',
            link='/onboarding', related_object_id=dealer.id,
        )
    return Response(DealerSerializer(dealer).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def dealer_verification_decision(request, pk):
    """Platform admin approves or rejects a dealer"""
    serializer = VerificationDecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    decision = serializer.validated_data['decision']
    notes = serializer.validated_data.get('notes', '')

    with transaction.atomic():
        dealer = get_object_or_404(Dealer.objects.select_for_update(), pk=pk)
        previous = dealer.verification_status
        dealer.verification_status = decision
        dealer.verification_notes = notes
        dealer.verified_at = timezone.now() if decision == 'verified' else None
        dealer.save(update_fields=['verification_status', 'verification_notes', 'verified_at', 'updated_at'])

        if decision == 'verified':
            notify_dealer(dealer, 'verification', 'Dealer verified',
                          'Your dealer account is verified. You can now trade on the marketplace.',
                          priority='high', related_object_id=dealer.id)
        else:
            notify_dealer(dealer, 'verification', 'Verification rejected',
                          f'Your verification was rejected. {notes}'.strip(),
                          priority='high', action_required=True, related_object_id=dealer.id)

    create_system_log(
        request=request, action_type='dealer_verification', module='dealers',
        target_id=dealer.id, target_name=dealer.business_name,
        details={'previous': previous, 'new': decision, 'notes': notes},
    )
    return Response(DealerSerializer(dealer).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def dealer_set_private_pin(request):
    """Set or change the 4-digit PIN that unlocks private pricing in Customer Mode"""
    serializer = PrivatePinSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        dealer = Dealer.objects.select_for_update().get(pk=request.user.dealer.pk)
        if dealer.private_view_pin_hash and not dealer.check_private_pin(serializer.validated_data.get('current_pin', '')):
            return Response({'error': 'Current PIN is incorrect'}, status=status.HTTP_403_FORBIDDEN)
        dealer.set_private_pin(serializer.validated_data['pin'])
        dealer.save(update_fields=['private_view_pin_hash', 'updated_at'])
    return Response({'has_private_pin': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def dealer_dashboard(request):
    return Response(get_dashboard_data(request.user.dealer))
