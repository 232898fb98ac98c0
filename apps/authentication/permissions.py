from rest_framework.permissions import BasePermission


class IsPlacementAdmin(BasePermission):
    """Bearer-token user with the admin role (or Django staff)."""
    message = 'Admin privileges required'

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user and
            user.is_authenticated and
            getattr(user, 'is_placement_admin', False)
        )
