from __future__ import annotations
"""Domain error kinds raised by the directory, registry, delegation and permission services.

Every kind is an HTTPException so the application error handler renders it with the
same JSON envelope as Flask's own aborts. ``kind`` names the failure independently of
the HTTP status (InvalidScope and InvalidArgument share 400, for example).
"""
from typing import Optional
from werkzeug.exceptions import HTTPException


class DomainError(HTTPException):
    code = 400
    kind = 'DomainError'

    def __init__(self, description: Optional[str] = None):
        super().__init__(description=description)


class NotFound(DomainError):
    code = 404
    kind = 'NotFound'


class InvalidHierarchy(DomainError):
    code = 400
    kind = 'InvalidHierarchy'


class InvalidScope(DomainError):
    code = 400
    kind = 'InvalidScope'


class InvalidArgument(DomainError):
    code = 400
    kind = 'InvalidArgument'


class Conflict(DomainError):
    code = 400
    kind = 'Conflict'


class Forbidden(DomainError):
    code = 403
    kind = 'Forbidden'


class PermissionDenied(DomainError):
    code = 403
    kind = 'PermissionDenied'


__all__ = [
    'DomainError', 'NotFound', 'InvalidHierarchy', 'InvalidScope', 'InvalidArgument',
    'Conflict', 'Forbidden', 'PermissionDenied',
]
