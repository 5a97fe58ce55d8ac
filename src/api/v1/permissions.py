"""Custom DRF permission classes for API v1."""
from rest_framework.permissions import SAFE_METHODS, BasePermission


class BelongsToOrganization(BasePermission):
    """Authenticated users attached to an organization."""

    message = "Votre compte n'est rattache a aucune organisation."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.organization_id)


class IsFinanceManagerOrReadOnly(BelongsToOrganization):
    """Reads for any member; writes for ADMIN, PT_MANAGER and CLUB_MANAGER."""

    message = 'Seuls les administrateurs et responsables peuvent effectuer cette operation.'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        if request.method in SAFE_METHODS:
            return True
        return request.user.can_manage_finances


class IsFinanceManager(BelongsToOrganization):
    message = 'Seuls les administrateurs et responsables peuvent effectuer cette operation.'

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.can_manage_finances
