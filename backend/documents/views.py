from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db.models import Q
from django.shortcuts import get_object_or_404

from backend.core.permissions import HasDealerProfile, IsPlatformAdmin
from backend.core.utils import paginated_response
from backend.deals.models import Transaction
from backend.deals.state import DealError
from . import services
from .models import DigitalDocument, RTOApplication
from .serializers import (
    DigitalDocumentSerializer, GenerateDocumentSerializer, RTOApplicationSerializer, RTOSubmitSerializer,
    RTOStatusSerializer,
)


def _party_deal_or_404(request, pk):
    dealer = request.user.dealer
    return get_object_or_404(Transaction, Q(buyer=dealer) | Q(seller=dealer), pk=pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_documents(request, pk):
    """Documents for a deal; POST generates one of ``document_type``"""
    if request.method == 'GET':
        deal = _party_deal_or_404(request, pk)
        return Response(DigitalDocumentSerializer(deal.documents.all(), many=True).data)

    serializer = GenerateDocumentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        document = services.generate_document(request.user.dealer, pk, serializer.validated_data['document_type'])
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(DigitalDocumentSerializer(document).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def document_sign(request, pk):
    try:
        document = services.sign_document(request.user.dealer, pk, request=request)
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(DigitalDocumentSerializer(document).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def document_verify(request, pk):
    """Integrity check; open to the deal's parties and platform admins"""
    document = get_object_or_404(DigitalDocument.objects.select_related('transaction'), pk=pk)
    dealer = getattr(request.user, 'dealer', None)
    if not request.user.is_platform_admin and document.transaction.party_role(dealer) is None:
        return Response({'error': 'Document not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(services.verify_document(document))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def deal_rto(request, pk):
    """Latest RTO application for a deal, or submit a new one"""
    if request.method == 'GET':
        deal = _party_deal_or_404(request, pk)
        application = deal.rto_applications.first()
        if application is None:
            return Response({'error': 'No RTO application found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(RTOApplicationSerializer(application).data)

    serializer = RTOSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        application = services.submit_rto_application(
            request.user.dealer, pk, serializer.validated_data['application_fee'],
            serializer.validated_data.get('document_urls'),
        )
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(RTOApplicationSerializer(application).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def rto_admin_list(request):
    queryset = RTOApplication.objects.all()
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    return paginated_response(request, queryset, RTOApplicationSerializer, default_limit=25)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def rto_admin_update_status(request, pk):
    serializer = RTOStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        application = services.update_rto_status(
            pk, data['status'], request.user,
            tracking_number=data.get('tracking_number', ''),
            rejection_reason=data.get('rejection_reason', ''),
            request=request,
        )
    except DealError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(RTOApplicationSerializer(application).data)
