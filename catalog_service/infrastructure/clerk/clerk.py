from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from catalog_service.config.config import ClerkConfig
from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import (
    ExternalServiceError,
    TokenExpiredError,
    TokenInvalidError,
    TokenMissingClaimError,
)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """The identity attached to an authenticated request."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ClerkAuthService:
    """
    Verifies Clerk session tokens and resolves the Clerk user behind them.
    Tokens are checked locally against the instance's PEM public key; the user
    profile is then loaded from the Clerk Backend API.
    """

    def __init__(self, config: ClerkConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(
            base_url=config.api_url, timeout=10.0
        )
        log.info("ClerkAuthService initialized [algorithm={}]", config.algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        log.debug("Verifying Clerk session token (length={})", len(token))

        try:
            payload = jwt.decode(
                token,
                self.config.jwt_key,
                algorithms=[self.config.algorithm],
                options={"verify_aud": False},
            )
            return payload

        except ExpiredSignatureError as e:
            log.warning("Token verification failed: expired")
            raise TokenExpiredError("Token has expired") from e

        except JWTError as e:
            log.warning("Token decoding failed", error=str(e))
            raise TokenInvalidError(f"Invalid token: {str(e)}") from e

    def get_user(self, user_id: str) -> AuthenticatedUser:
        try:
            response = self.http_client.get(
                f"/users/{user_id}",
                headers={"Authorization": f"Bearer {self.config.secret_key}"},
            )
        except httpx.HTTPError as e:
            log.error("Clerk API unreachable", user_id=user_id, error=str(e))
            raise ExternalServiceError(
                service_name="clerk", message="Failed to load user", original_exception=e
            ) from e

        if response.status_code == status.HTTP_404_NOT_FOUND:
            raise TokenInvalidError("Token subject does not exist")
        if response.status_code != status.HTTP_200_OK:
            log.error(
                "Clerk API returned an error",
                user_id=user_id,
                status_code=response.status_code,
            )
            raise ExternalServiceError(service_name="clerk", message="Failed to load user")

        data = response.json()
        emails = data.get("email_addresses") or []
        primary_id = data.get("primary_email_address_id")
        email = next(
            (e.get("email_address") for e in emails if e.get("id") == primary_id),
            emails[0].get("email_address") if emails else None,
        )
        return AuthenticatedUser(
            id=data["id"],
            email=email,
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
        )

    def close(self) -> None:
        """Close the Clerk API client unless it was handed in by the caller."""
        if self._owns_client:
            self.http_client.close()

    def authenticate(self, token: str) -> AuthenticatedUser:
        payload = self.verify_token(token)
        user_id = payload.get("sub")
        if not user_id:
            log.warning("Token is missing 'sub' claim")
            raise TokenMissingClaimError("Token is missing 'sub' (user ID)")

        user = self.get_user(user_id)
        log.info("Successfully authenticated user_id={}", user.id)
        return user


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    Dependency for endpoints that are not public.
    Resolves the caller from the `Authorization: Bearer <token>` header.
    """
    if credentials is None or not credentials.credentials:
        log.info("Authentication failed: no token provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth_service: ClerkAuthService = request.app.state.auth_service

    try:
        return auth_service.authenticate(credentials.credentials)

    except TokenExpiredError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    except (TokenInvalidError, TokenMissingClaimError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    except ExternalServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider unavailable",
        ) from e
