import time

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwk
from jose import jwt as jose_jwt

from roadside import auth
from roadside.auth import create_access_token, get_current_user, get_user_organization, verify_token
from roadside.models import ADMIN, CLIENT, User


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


async def test_valid_token_returns_claims():
    claims = await verify_token(create_access_token("sub-1", "ann@example.com", role=ADMIN))

    assert claims["sub"] == "sub-1"
    assert claims["custom:role"] == ADMIN


async def test_expired_token_is_flagged():
    with pytest.raises(HTTPException) as exc:
        await verify_token(create_access_token("sub-1", "ann@example.com", expires_in=-60))

    assert exc.value.status_code == 401
    assert exc.value.headers == {"X-Token-Expired": "true"}


async def test_tampered_token_is_rejected():
    token = create_access_token("sub-1", "ann@example.com")

    with pytest.raises(HTTPException) as exc:
        await verify_token(token[:-4] + "AAAA")

    assert exc.value.detail == "Invalid token"


async def test_issuer_is_checked_when_configured(monkeypatch):
    monkeypatch.setattr(auth, "JWT_ISSUER", "https://issuer.example.com")

    with pytest.raises(HTTPException) as exc:
        await verify_token(create_access_token("sub-1", "ann@example.com"))
    assert exc.value.detail == "Invalid token"

    token = jose_jwt.encode(
        {"sub": "sub-1", "iss": "https://issuer.example.com", "exp": int(time.time()) + 60},
        auth.JWT_SECRET,
        algorithm="HS256",
    )
    assert (await verify_token(token))["sub"] == "sub-1"


async def test_audience_accepts_aud_or_client_id(monkeypatch):
    monkeypatch.setattr(auth, "JWT_AUDIENCE", "roadside-web")

    def token(**claims):
        return jose_jwt.encode(
            {"sub": "sub-1", "exp": int(time.time()) + 60, **claims}, auth.JWT_SECRET, algorithm="HS256"
        )

    assert (await verify_token(token(aud="roadside-web")))["sub"] == "sub-1"
    assert (await verify_token(token(client_id="roadside-web")))["sub"] == "sub-1"

    with pytest.raises(HTTPException) as exc:
        await verify_token(token(client_id="someone-else"))
    assert exc.value.detail == "Invalid token audience"


@pytest.fixture
def rsa_signer():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, serialization.NoEncryption()
    )
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )

    def sign(kid, **claims):
        claims = {"sub": "cognito-sub", "exp": int(time.time()) + 60, **claims}
        return jose_jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})

    sign.public_jwk = {**jwk.construct(public_pem, "RS256").to_dict(), "use": "sig"}
    return sign


@pytest.fixture
def jwks_endpoint(monkeypatch):
    """Serve a key set over a mocked transport and count fetches"""
    served = {"keys": [], "fetches": 0}

    def handler(request):
        served["fetches"] += 1
        return httpx.Response(200, json={"keys": served["keys"]})

    real_client = httpx.AsyncClient
    monkeypatch.setattr(auth, "JWKS_URL", "https://cognito.example.com/.well-known/jwks.json")
    monkeypatch.setattr(auth, "_cached_keys", None)
    monkeypatch.setattr(
        auth.httpx, "AsyncClient", lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
    )
    return served


async def test_jwks_key_is_chosen_by_kid_and_cached(rsa_signer, jwks_endpoint):
    jwks_endpoint["keys"] = [{**rsa_signer.public_jwk, "kid": "other"}, {**rsa_signer.public_jwk, "kid": "k1"}]

    assert (await verify_token(rsa_signer("k1")))["sub"] == "cognito-sub"
    assert (await verify_token(rsa_signer("k1")))["sub"] == "cognito-sub"

    assert jwks_endpoint["fetches"] == 1
    assert set(auth._cached_keys) == {"other", "k1"}


async def test_unknown_kid_refreshes_the_key_set_once(rsa_signer, jwks_endpoint, monkeypatch):
    monkeypatch.setattr(auth, "_cached_keys", {"rotated-out": {**rsa_signer.public_jwk, "kid": "rotated-out"}})
    jwks_endpoint["keys"] = [{**rsa_signer.public_jwk, "kid": "k2"}]

    assert (await verify_token(rsa_signer("k2")))["sub"] == "cognito-sub"
    assert jwks_endpoint["fetches"] == 1

    with pytest.raises(HTTPException) as exc:
        await verify_token(rsa_signer("never-published"))
    assert exc.value.detail == "Unable to verify token signature"
    assert jwks_endpoint["fetches"] == 2


async def test_first_login_creates_user_with_token_role(db):
    token = create_access_token("new-sub", "dispatch@example.com", role=ADMIN)

    user = await get_current_user(bearer(token), db)

    assert user.email == "dispatch@example.com"
    assert user.role == ADMIN
    again = await get_current_user(bearer(token), db)
    assert again.id == user.id
    assert db.query(User).count() == 1


async def test_role_defaults_to_client(db):
    token = jose_jwt.encode(
        {"sub": "plain-sub", "exp": int(time.time()) + 60}, auth.JWT_SECRET, algorithm="HS256"
    )

    user = await get_current_user(bearer(token), db)

    assert user.role == CLIENT
    assert user.email == "plain-sub@users.local"


def test_user_organization_prefers_owned_then_approved_membership(
    db, make_user, make_organization, add_member
):
    member = make_user()
    first = make_organization(company_name="First Fleet")
    second = make_organization(company_name="Second Fleet")

    assert get_user_organization(db, member) is None

    add_member(first, member, status="pending")
    assert get_user_organization(db, member) is None

    add_member(second, member)
    assert get_user_organization(db, member).id == second.id

    owned = make_organization(owner=member, company_name="Own Shop")
    assert get_user_organization(db, member).id == owned.id
