"""
Утилиты безопасности: проверка bearer-токена и получение identity.

Поддерживаемые провайдеры (IDENTITY_PROVIDER):
- supabase — GET {SUPABASE_URL}/auth/v1/user с bearer-токеном
- jwt      — проверка JWT через OIDC/JWKS или shared secret
- none     — токен и есть identity (ТОЛЬКО dev/тесты)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import jwt
import requests

from .config import get_settings
from .errors import ErrCode, UnauthorizedError


@dataclass(frozen=True)
class Identity:
    subject: str
    provider: str
    claims: dict[str, Any] | None = None


def extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    prefix = "bearer "
    if authorization.lower().startswith(prefix):
        token = authorization[len(prefix) :].strip()
        return token or None
    return None


def _is_prod_env(app_env: str | None) -> bool:
    env = (app_env or "").strip().lower()
    return env in {"prod", "production"}


def _invalid(message: str, details: dict | None = None) -> UnauthorizedError:
    return UnauthorizedError(message, details, code=ErrCode.INVALID_TOKEN)


def _jwt_algorithms(raw: str) -> list[str]:
    algos = [a.strip() for a in (raw or "").split(",") if a.strip()]
    return algos or ["RS256"]


@lru_cache(maxsize=8)
def _get_jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


@lru_cache(maxsize=8)
def _discover_jwks_url(issuer_url: str, timeout_s: int) -> str:
    discovery = issuer_url.rstrip("/") + "/.well-known/openid-configuration"
    try:
        resp = requests.get(discovery, timeout=timeout_s)
        resp.raise_for_status()
        data = resp.json()
    except Exception as e:
        raise _invalid("Не удалось получить OIDC discovery", {"err": str(e)}) from e

    jwks = data.get("jwks_uri")
    if not jwks:
        raise _invalid("OIDC discovery не содержит jwks_uri")
    return str(jwks)


def _verify_jwt(token: str) -> dict[str, Any]:
    s = get_settings()
    algos = _jwt_algorithms(s.oidc_algorithms)
    audience = s.oidc_audience
    issuer = s.oidc_issuer_url
    leeway = int(s.jwt_clock_skew_sec or 30)

    kwargs: dict[str, Any] = {
        "algorithms": algos,
        "options": {"verify_aud": bool(audience)},
        "leeway": leeway,
    }
    if audience:
        kwargs["audience"] = audience
    if issuer:
        kwargs["issuer"] = issuer

    secret = (s.jwt_shared_secret or "").strip()
    if secret:
        try:
            return jwt.decode(token, secret, **kwargs)
        except jwt.PyJWTError as e:
            raise _invalid("JWT не прошёл проверку", {"err": str(e)}) from e

    jwks_url = (s.oidc_jwks_url or "").strip()
    if not jwks_url:
        if not issuer:
            raise _invalid("JWT/OIDC не настроен: укажи OIDC_JWKS_URL или OIDC_ISSUER_URL")
        jwks_url = _discover_jwks_url(issuer, int(s.oidc_discovery_timeout_sec or 5))

    try:
        key = _get_jwks_client(jwks_url).get_signing_key_from_jwt(token).key
        return jwt.decode(token, key=key, **kwargs)
    except jwt.PyJWTError as e:
        raise _invalid("JWT не прошёл проверку", {"err": str(e)}) from e


def _verify_supabase(token: str) -> dict[str, Any]:
    s = get_settings()
    base = (s.supabase_url or "").rstrip("/")
    if not base:
        raise _invalid("SUPABASE_URL не задан")
    api_key = s.supabase_anon_key or s.supabase_service_role_key or ""

    try:
        resp = requests.get(
            f"{base}/auth/v1/user",
            headers={"Authorization": f"Bearer {token}", "apikey": api_key},
            timeout=int(s.identity_timeout_sec or 10),
        )
    except requests.RequestException as e:
        raise _invalid("Identity provider недоступен", {"err": str(e)}) from e

    if resp.status_code != 200:
        raise _invalid("Токен отклонён identity provider", {"status": resp.status_code})

    try:
        data = resp.json()
    except ValueError as e:
        raise _invalid("Identity provider вернул невалидный JSON") from e

    if not isinstance(data, dict) or not data.get("id"):
        raise _invalid("Identity provider не вернул id пользователя")
    return data


def verify_token(token: str | None) -> Identity:
    """
    Резолвит bearer-токен в identity вызывающего.
    Любая неудача -> UnauthorizedError(code=invalid_token).
    """
    if not token:
        raise _invalid("Токен отсутствует")

    settings = get_settings()
    provider = (settings.identity_provider or "supabase").lower().strip()

    if provider == "none":
        if _is_prod_env(settings.app_env):
            raise _invalid("IDENTITY_PROVIDER=none запрещён в APP_ENV=prod")
        return Identity(subject=token, provider="none")

    if provider == "jwt":
        claims = _verify_jwt(token)
        sub = claims.get("sub")
        if not sub:
            raise _invalid("JWT не содержит sub")
        return Identity(subject=str(sub), provider="jwt", claims=claims)

    if provider == "supabase":
        user = _verify_supabase(token)
        return Identity(subject=str(user["id"]), provider="supabase", claims=user)

    raise _invalid("Неизвестный identity provider", {"provider": provider})
