from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.permissions import IsPlatformAdmin
from backend.core.utils import paginated_response
from .models import Notification, Feedback
from .serializers import NotificationSerializer, FeedbackSerializer, FeedbackAdminSerializer

DEFAULT_NOTIFICATION_LIMIT = 50


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """Latest notifications for the current user"""
    queryset = Notification.objects.filter(user=request.user)
    if request.query_params.get('unread_only') == 'true':
        queryset = queryset.filter(read_status=False)
    try:
        limit = min(int(request.query_params.get('limit', DEFAULT_NOTIFICATION_LIMIT)), 200)
    except ValueError:
        limit = DEFAULT_NOTIFICATION_LIMIT
    notifications = queryset.order_by('-created_at')[:limit]
    return Response({
        'results': NotificationSerializer(notifications, many=True).data,
        'unread_count': Notification.objects.filter(user=request.user, read_status=False).count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    count = Notification.objects.filter(user=request.user, read_status=False).count()
    return Response({'unread_count': count})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if not notification.read_status:
        notification.read_status = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['read_status', 'read_at'])
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, read_status=False).update(
        read_status=True, read_at=timezone.now()
    )
    return Response({'updated': updated})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def feedback_create(request):
    serializer = FeedbackSerializer(data=request.data)
    if serializer.is_valid():
        feedback = serializer.save(user=request.user)
        return Response(FeedbackSerializer(feedback).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def feedback_list(request):
    queryset = Feedback.objects.select_related('user')
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    type_filter = request.query_params.get('type')
    if type_filter:
        queryset = queryset.filter(type=type_filter)
    return paginated_response(request, queryset.order_by('-created_at'), FeedbackAdminSerializer, default_limit=25)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def feedback_detail(request, pk):
    feedback = get_object_or_404(Feedback, pk=pk)
    serializer = FeedbackAdminSerializer(feedback, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
