"""Utility functions for the system audit log"""
import logging

from .models import SystemLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_system_log(request=None, action_type=None, module=None, target_id=None,
                      details=None, user=None, target_name=None, severity='info'):
    """
    Create a system log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action_type: One of SystemLog.ACTION_CHOICES
        module: Area of the platform the action belongs to (deals, admin, ...)
        target_id: ID of the affected object (as string)
        details: Dictionary describing the change
        user: Optional user override (defaults to request.user if request provided)
        target_name: Human-readable name of the affected object
        severity: info / warning / error / critical
    """
    try:
        log_user = None
        if user:
            log_user = user
        elif request and hasattr(request, 'user'):
            log_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action_type or not module or target_id is None:
            logger.warning(f"System log skipped: missing required fields (action_type={action_type}, module={module}, target_id={target_id})")
            return None

        return SystemLog.objects.create(
            user=log_user if log_user and log_user.is_authenticated else None,
            action_type=action_type,
            module=module,
            target_id=str(target_id),
            target_name=target_name,
            details=details or {},
            severity=severity,
            ip_address=ip_address,
        )
    except Exception as e:
        # Audit failures never abort the calling operation
        logger.error(f"Failed to create system log: {str(e)}")
        return None


def paginate_payload(request, queryset, serializer_class, default_limit=15, context=None):
    """Page a queryset using ?page= and ?limit= and build the standard envelope"""
    from django.core.paginator import Paginator

    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), 100)
    except (TypeError, ValueError):
        page, limit = 1, default_limit

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }


def paginated_response(request, queryset, serializer_class, default_limit=15, context=None):
    from rest_framework.response import Response
    return Response(paginate_payload(request, queryset, serializer_class, default_limit, context))
