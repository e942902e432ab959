"""Role-based permission classes and helpers"""
import logging

from rest_framework import status
from rest_framework.permissions import BasePermission
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class IsAdminRole(BasePermission):
    """Allows access only to users with the admin role (or superusers)"""
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsAdminOrPM(BasePermission):
    """Allows access only to admins and project managers"""
    message = 'Insufficient permissions'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin_or_pm)


def forbidden(request, message='Insufficient permissions'):
    """403 response in the API's error shape, with a warning log"""
    logger.warning(f"User {request.user.username} denied: {message}")
    return Response({'error': message}, status=status.HTTP_403_FORBIDDEN)
