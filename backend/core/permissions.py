from rest_framework.permissions import BasePermission


def get_dealer(user):
    """Dealer profile owned by the user, or None"""
    if not user or not user.is_authenticated:
        return None
    return getattr(user, 'dealer', None)


class IsPlatformAdmin(BasePermission):
    message = 'Platform admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)


class HasDealerProfile(BasePermission):
    message = 'Create your dealer profile first.'

    def has_permission(self, request, view):
        dealer = get_dealer(request.user)
        return dealer is not None and dealer.is_active


class IsVerifiedDealer(BasePermission):
    message = 'Your dealer account must be verified for this action.'

    def has_permission(self, request, view):
        dealer = get_dealer(request.user)
        return dealer is not None and dealer.is_active and dealer.verification_status == 'verified'
