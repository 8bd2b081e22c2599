"""
Domain errors and the DRF exception handler.

Services raise the typed errors below and never retry. The handler at the
bottom is the boundary that turns them into HTTP responses.

Messages are deliberately generic ("Post not found", "You are not authorized
to delete this post"): they name the kind of resource, never its owner, so a
caller who is merely unauthorized learns nothing more than the error type.
"""
import logging

from django.db import IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CommunityError(Exception):
    """Base class for every error the community services raise."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class NotFoundError(CommunityError):
    """A referenced user, post, comment, plan, step or notification is absent."""
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'


class AuthorizationError(CommunityError):
    """The actor is not the owner/author of the resource being mutated."""
    status_code = status.HTTP_403_FORBIDDEN
    code = 'forbidden'


class ValidationError(CommunityError):
    """Out-of-range or otherwise invalid input."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'invalid'


class SelfReferenceError(ValidationError):
    """A user tried to follow themselves."""
    code = 'self_reference'


def custom_exception_handler(exc, context):
    """
    Custom exception handler that:
    1. Maps CommunityError subclasses to their status codes
    2. Lets DRF handle its own exceptions, in a consistent format
    3. Logs and hides everything else
    """
    if isinstance(exc, CommunityError):
        return Response(
            {'error': exc.message or exc.code, 'code': exc.code},
            status=exc.status_code
        )

    response = exception_handler(exc, context)

    if response is not None:
        if not isinstance(response.data, dict) or 'error' not in response.data:
            response.data = {
                'error': str(exc),
                'details': response.data
            }
        return response

    if isinstance(exc, IntegrityError):
        logger.warning(f"IntegrityError: {exc}")
        return Response(
            {'error': 'Data integrity error.'},
            status=status.HTTP_409_CONFLICT
        )

    logger.exception(f"Unhandled exception: {exc}")

    return Response(
        {'error': 'An unexpected error occurred.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
