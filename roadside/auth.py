import logging
import time
from typing import Optional

import httpx
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import JWKS_URL, JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET
from .database import get_db
from .models import CLIENT, Organization, OrganizationMember, User

logger = logging.getLogger(__name__)

security = HTTPBearer()

# Cache for the JWKS key set, keyed by kid
_cached_keys: Optional[dict] = None


async def get_jwks_keys() -> Optional[dict]:
    """Fetch the Cognito-style JWKS and index it by key ID"""
    global _cached_keys
    if _cached_keys:
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(JWKS_URL, timeout=10.0)
            if response.status_code == 200:
                _cached_keys = {k["kid"]: k for k in response.json().get("keys", []) if "kid" in k}
                logger.info(f"✅ Fetched {len(_cached_keys)} JWKS keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch JWKS: HTTP {response.status_code}")
    except Exception as e:
        logger.error(f"❌ Error fetching JWKS: {str(e)}")
    return None


async def _signing_key(token: str) -> dict:
    """JWKS entry matching the token's key ID, refreshing the cache once on a miss"""
    global _cached_keys

    try:
        kid = jose_jwt.get_unverified_header(token).get("kid")
    except JWTError as e:
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.") from e
    if not kid:
        raise HTTPException(status_code=401, detail="Token missing key ID")

    keys = await get_jwks_keys()
    if not keys or kid not in keys:
        logger.warning(f"⚠️ Key ID {kid} not found in JWKS, invalidating cache and retrying")
        _cached_keys = None
        keys = await get_jwks_keys()
        if not keys or kid not in keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")
    return keys[kid]


async def verify_token(token: str) -> dict:
    """
    Verify a bearer JWT.
    RS256 against the JWKS endpoint when JWKS_URL is configured, otherwise HS256 with JWT_SECRET.
    """
    if JWKS_URL:
        key, algorithms = await _signing_key(token), ["RS256"]
    else:
        key, algorithms = JWT_SECRET, ["HS256"]

    try:
        # Cognito access tokens carry client_id instead of aud, so audience is checked below
        payload = jose_jwt.decode(
            token, key, algorithms=algorithms, issuer=JWT_ISSUER, options={"verify_aud": False}
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.error(f"❌ Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token") from e

    if JWT_AUDIENCE and JWT_AUDIENCE not in (payload.get("aud"), payload.get("client_id")):
        raise HTTPException(status_code=401, detail="Invalid token audience")

    return payload


def create_access_token(sub: str, email: str, role: str = CLIENT, expires_in: int = 3600) -> str:
    """Issue an HS256 token signed with JWT_SECRET (local/dev logins and tests)"""
    claims = {"sub": sub, "email": email, "custom:role": role, "exp": int(time.time()) + expires_in}
    return jose_jwt.encode(claims, JWT_SECRET, algorithm="HS256")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token, creating the row on first login"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = await verify_token(credentials.credentials)
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.auth_sub == sub).first()
    if not user:
        email = claims.get("email") or f"{sub}@users.local"
        logger.info(f"🆕 Creating new user: {email}")
        user = User(
            auth_sub=sub,
            email=email,
            first_name=claims.get("given_name"),
            last_name=claims.get("family_name"),
            role=claims.get("custom:role") or CLIENT,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    return user


def get_user_organization(db: Session, user: User) -> Optional[Organization]:
    """Organization the user owns, else the first one they are an approved member of"""
    org = db.query(Organization).filter(Organization.owner_id == user.id).first()
    if org:
        return org
    return (
        db.query(Organization)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .filter(OrganizationMember.user_id == user.id, OrganizationMember.status == "approved")
        .order_by(OrganizationMember.joined_at)
        .first()
    )


async def get_current_organization(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Organization:
    """Require the caller to belong to an organization"""
    org = get_user_organization(db, user)
    if not org:
        logger.warning(f"⚠️ User {user.id} has no organization")
        raise HTTPException(status_code=403, detail="Organization membership required")
    return org
