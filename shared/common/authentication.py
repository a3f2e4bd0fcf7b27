# shared/common/authentication.py
"""
JWT Authentication
"""

import jwt
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple, List
from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)


# Roles issued by the identity provider
ROLE_STUDENT = 'student'
ROLE_MEMBER = 'member'
ROLE_INSTRUCTOR = 'instructor'
ROLE_ADMIN = 'admin'
ROLE_OWNER = 'owner'

STAFF_ROLES = [ROLE_INSTRUCTOR, ROLE_ADMIN, ROLE_OWNER]
ADMIN_ROLES = [ROLE_ADMIN, ROLE_OWNER]
RESTRICTED_ROLES = [ROLE_STUDENT, ROLE_MEMBER]


class JWTAuthentication(authentication.BaseAuthentication):
    """
    JWT Token Authentication for API requests.
    Tokens are signed with the shared JWT secret.
    """

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple[Any, Dict]]:
        auth_header = authentication.get_authorization_header(request)

        if not auth_header:
            return None

        try:
            auth_parts = auth_header.decode('utf-8').split()
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Invalid token header encoding')

        if len(auth_parts) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header format')

        if auth_parts[0].lower() != self.keyword.lower():
            return None

        token = auth_parts[1]
        return self.authenticate_token(token)

    def authenticate_token(self, token: str) -> Tuple[Any, Dict]:
        """Validate and decode JWT token"""
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                options={
                    'require': ['exp', 'iat', 'sub'],
                    'verify_exp': True,
                }
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

        user = TokenUser(payload)
        return (user, payload)

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class TokenUser:
    """
    User object created from JWT token payload.
    Provides a consistent interface for accessing user data.
    """

    def __init__(self, payload: Dict):
        self.payload = payload
        self.id = payload.get('sub')
        self.user_id = payload.get('sub')
        self.email = payload.get('email')
        self.username = payload.get('username')
        self.roles = payload.get('roles', [])
        self.is_active = True
        self.is_authenticated = True
        self.is_anonymous = False

    def __str__(self) -> str:
        return f"TokenUser({self.email})"

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role"""
        return role in self.roles

    def has_any_role(self, roles: List[str]) -> bool:
        """Check if user has any of the specified roles"""
        return bool(set(self.roles) & set(roles))

    @property
    def is_staff_member(self) -> bool:
        return self.has_any_role(STAFF_ROLES)

    @property
    def is_admin(self) -> bool:
        return self.has_any_role(ADMIN_ROLES)

    @property
    def is_restricted(self) -> bool:
        """Students and members only see their own, redacted records."""
        return not self.is_staff_member


def generate_access_token(
    user_id: str,
    roles: List[str],
    email: str = None,
    username: str = None,
    extra_claims: Dict = None
) -> str:
    """Generate an access token signed with the shared secret."""
    now = datetime.now(timezone.utc)

    payload = {
        'sub': str(user_id),
        'email': email,
        'username': username,
        'roles': roles,
        'iat': now,
        'exp': now + settings.JWT_ACCESS_TOKEN_LIFETIME,
        'type': 'access',
    }

    if extra_claims:
        payload.update(extra_claims)

    return jwt.encode(
        payload,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )
