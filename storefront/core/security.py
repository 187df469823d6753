"""
Bearer-token authentication against the auth service.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.core.config import Settings, get_settings
from storefront.core.exceptions import AuthenticationError, MissingStripeCustomerError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: Optional[str] = None
    stripe_customer_id: Optional[str] = None


async def validate_token(token: str, settings: Settings) -> AuthenticatedUser:
    """
    Ask the auth service who owns ``token``.

    Raises:
        AuthenticationError: Token rejected or the auth service is unreachable
    """
    url = f"{settings.AUTH_SERVICE_URL.rstrip('/')}/auth/validate"
    headers = {"Content-Type": "application/json", "X-Service-Token": settings.SERVICE_SECRET}

    try:
        async with httpx.AsyncClient(timeout=settings.SERVICE_TIMEOUT_SECONDS) as client:
            response = await client.post(url, headers=headers, json={"accessToken": token})
    except httpx.RequestError as e:
        logger.error(f"Auth service unreachable: {str(e)}")
        raise AuthenticationError("Authentication service unavailable")

    if response.status_code != 200:
        raise AuthenticationError("Invalid or expired token")

    try:
        body = response.json()
    except ValueError:
        raise AuthenticationError("Invalid response from authentication service")

    data = body.get("data") or body.get("user") or body
    user_id = data.get("user_id") or data.get("userId") or data.get("id")
    if not body.get("valid", True) or not user_id:
        raise AuthenticationError("Invalid or expired token")

    return AuthenticatedUser(
        user_id=str(user_id),
        email=data.get("email"),
        stripe_customer_id=data.get("stripe_customer_id") or data.get("stripeCustomerId"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return await validate_token(credentials.credentials, settings)


async def require_stripe_customer(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    """Invoice creation needs a Stripe customer on file."""
    if not user.stripe_customer_id:
        raise MissingStripeCustomerError("No Stripe customer associated with this account")
    return user
