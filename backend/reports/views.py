import logging
from datetime import datetime, timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.http import HttpResponse
from django.utils import timezone

from backend.core.permissions import HasDealerProfile, IsPlatformAdmin
from backend.core.utils import create_system_log
from . import analytics

logger = logging.getLogger('backend.reports')

DEFAULT_PERIOD_DAYS = 365


def _date_range(request):
    """Parse ?date_from= and ?date_to= (YYYY-MM-DD); defaults to the last year"""
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)

    if not date_to:
        date_to = timezone.localdate()
    else:
        date_to = datetime.strptime(date_to, '%Y-%m-%d').date()

    if not date_from:
        date_from = date_to - timedelta(days=DEFAULT_PERIOD_DAYS)
    else:
        date_from = datetime.strptime(date_from, '%Y-%m-%d').date()

    if date_from > date_to:
        raise ValueError('date_from must be on or before date_to')
    return date_from, date_to


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def dealer_analytics(request):
    """Business analytics for my dealership over a date range"""
    try:
        date_from, date_to = _date_range(request)
    except ValueError as e:
        return Response({'error': f'Invalid date range: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)

    response = Response(analytics.dealer_analytics(request.user.dealer, date_from, date_to))
    response['Cache-Control'] = 'private, max-age=60'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasDealerProfile])
def dealer_analytics_export(request):
    try:
        date_from, date_to = _date_range(request)
    except ValueError as e:
        return Response({'error': f'Invalid date range: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)

    dealer = request.user.dealer
    data = analytics.dealer_analytics(dealer, date_from, date_to)
    filename = f"{'_'.join(dealer.business_name.split())}_Analytics_Report_{timezone.now():%Y-%m-%d}.csv"

    response = HttpResponse(analytics.analytics_csv(dealer, data), content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    logger.info(f"Dealer {dealer.id} exported analytics for {date_from} to {date_to}")
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def platform_analytics(request):
    return Response(analytics.platform_analytics())


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def generate_admin_report(request, report_type):
    """Build one of the admin reports and record that it was generated"""
    if report_type not in analytics.REPORT_TYPES:
        return Response(
            {'error': f"Unknown report type. Choose one of: {', '.join(analytics.REPORT_TYPES)}"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    report = analytics.generate_report(report_type)
    create_system_log(
        request=request,
        action_type='report_generation',
        module='reports',
        target_id=report_type,
        target_name=report['type'],
        details={'report_type': report_type, 'generated_by': request.user.email,
                 'generated_at': report['generated_at']},
    )
    return Response(report)
