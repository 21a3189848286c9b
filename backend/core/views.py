import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .config import invalidate_config
from .models import SystemConfig, SystemLog
from .permissions import IsPlatformAdmin, get_dealer
from .serializers import (
    UserSerializer, UserAdminSerializer, UserCreateSerializer, MarginPermissionSerializer,
    SystemConfigSerializer, SystemLogSerializer
)
from .utils import create_system_log, paginated_response

logger = logging.getLogger(__name__)
User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['email'] = user.email
        token['platform_admin'] = user.is_platform_admin
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"Registered user {user.username}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with dealer summary and access flags"""
    user = request.user

    if request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()

    user_data = UserSerializer(user).data
    dealer = get_dealer(user)
    if dealer is not None:
        user_data['dealer'] = {
            'id': dealer.id,
            'business_name': dealer.business_name,
            'verification_status': dealer.verification_status,
            'city': dealer.city,
            'state': dealer.state,
            'has_private_pin': bool(dealer.private_view_pin_hash),
        }
    else:
        user_data['dealer'] = None

    is_admin = user.is_platform_admin
    user_data['is_admin'] = is_admin
    user_data['needs_onboarding'] = dealer is None
    user_data['can_trade'] = dealer is not None and dealer.verification_status == 'verified'
    user_data['can_access_admin'] = is_admin
    user_data['can_use_custom_margins'] = bool(user.custom_margin_enabled or is_admin)
    return Response(user_data)


# Platform admin: users
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def user_list(request):
    queryset = User.objects.all().order_by('-date_joined')
    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(username__icontains=search) | Q(email__icontains=search) |
            Q(first_name__icontains=search) | Q(last_name__icontains=search)
        )
    if request.query_params.get('custom_margin') == 'true':
        queryset = queryset.filter(custom_margin_enabled=True)
    return paginated_response(request, queryset, UserAdminSerializer, default_limit=25)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def user_detail(request, pk):
    user = get_object_or_404(User, pk=pk)
    if request.method == 'PATCH':
        serializer = UserAdminSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(UserAdminSerializer(user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def user_margin_permission(request, pk):
    """Grant or revoke custom margin overrides, keeping a history on the user"""
    serializer = MarginPermissionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    enabled = serializer.validated_data['custom_margin_enabled']
    reason = serializer.validated_data.get('reason', '')

    with transaction.atomic():
        user = get_object_or_404(User.objects.select_for_update(), pk=pk)
        previous = user.custom_margin_enabled
        history = list(user.margin_override_history or [])
        history.append({
            'changed_by': request.user.email or request.user.username,
            'changed_at': timezone.now().isoformat(),
            'previous': previous,
            'new': enabled,
            'reason': reason,
        })
        user.custom_margin_enabled = enabled
        user.margin_override_history = history
        user.save(update_fields=['custom_margin_enabled', 'margin_override_history', 'updated_at'])

    create_system_log(
        request=request,
        action_type='margin_permission_change',
        module='admin',
        target_id=user.id,
        target_name=user.email or user.username,
        details={'previous': previous, 'new': enabled, 'reason': reason},
        severity='warning' if enabled else 'info',
    )
    return Response(UserAdminSerializer(user).data)


# Platform admin: system configuration
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def system_config_list_create(request):
    if request.method == 'GET':
        queryset = SystemConfig.objects.all()
        category = request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)
        return Response(SystemConfigSerializer(queryset, many=True).data)

    serializer = SystemConfigSerializer(data=request.data)
    if serializer.is_valid():
        config = serializer.save(last_modified_by=request.user)
        invalidate_config(config.config_key)
        create_system_log(
            request=request, action_type='system_config_change', module='admin',
            target_id=config.id, target_name=config.config_key,
            details={'new_value': config.config_value}, severity='warning',
        )
        return Response(SystemConfigSerializer(config).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def system_config_detail(request, key):
    config = get_object_or_404(SystemConfig, config_key=key)
    if request.method == 'GET':
        return Response(SystemConfigSerializer(config).data)

    previous_value = config.config_value
    serializer = SystemConfigSerializer(config, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    config = serializer.save(last_modified_by=request.user)
    invalidate_config(config.config_key)
    create_system_log(
        request=request, action_type='system_config_change', module='admin',
        target_id=config.id, target_name=config.config_key,
        details={'previous_value': previous_value, 'new_value': config.config_value},
        severity='warning',
    )
    logger.info(f"System config {config.config_key} changed by {request.user.username}")
    return Response(SystemConfigSerializer(config).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def system_log_list(request):
    """List system logs with filtering"""
    queryset = SystemLog.objects.select_related('user')

    action_type = request.query_params.get('action_type')
    if action_type:
        queryset = queryset.filter(action_type=action_type)
    module = request.query_params.get('module')
    if module:
        queryset = queryset.filter(module=module)
    severity = request.query_params.get('severity')
    if severity:
        queryset = queryset.filter(severity=severity)

    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    return paginated_response(request, queryset.order_by('-created_at'), SystemLogSerializer, default_limit=50)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search dealers, marketplace vehicles and the caller's deals"""
    query = request.query_params.get('q', '').strip()
    if not query:
        return Response({'dealers': [], 'vehicles': [], 'transactions': []})

    from backend.dealers.models import Dealer
    from backend.dealers.serializers import DealerPublicSerializer
    from backend.vehicles.filters import VehicleFilter
    from backend.vehicles.models import Vehicle
    from backend.vehicles.serializers import VehicleListSerializer
    from backend.deals.models import Transaction
    from backend.deals.serializers import TransactionListSerializer

    results = {}

    dealers = Dealer.objects.filter(is_active=True).filter(
        Q(business_name__icontains=query) | Q(city__icontains=query) | Q(state__icontains=query)
    )[:20]
    results['dealers'] = DealerPublicSerializer(dealers, many=True).data

    vehicles_filter = VehicleFilter({'q': query}, queryset=Vehicle.objects.filter(status='live').select_related('dealer'))
    results['vehicles'] = VehicleListSerializer(vehicles_filter.qs[:20], many=True).data

    dealer = get_dealer(request.user)
    if dealer is not None:
        transactions = Transaction.objects.filter(Q(buyer=dealer) | Q(seller=dealer)).filter(
            Q(vehicle__make__icontains=query) | Q(vehicle__model__icontains=query) |
            Q(buyer__business_name__icontains=query) | Q(seller__business_name__icontains=query)
        ).select_related('vehicle', 'buyer', 'seller')[:20]
        results['transactions'] = TransactionListSerializer(transactions, many=True, context={'dealer': dealer}).data
    else:
        results['transactions'] = []

    return Response(results)
