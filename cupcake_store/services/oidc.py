from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt

from cupcake_store.core import config

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/callback"
HTTP_TIMEOUT_SECONDS = 10.0
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "testserver"}


class OidcError(Exception):
    pass


@dataclass(frozen=True)
class OidcClientConfig:
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str
    redirect_uri: str
    end_session_endpoint: Optional[str] = None


def callback_url_for_host(host: str) -> str:
    hostname = host.split(":")[0].lower()
    scheme = "http" if hostname in _LOCAL_HOSTS else "https"
    return f"{scheme}://{host}{CALLBACK_PATH}"


def fetch_discovery_document(issuer_url: str) -> Dict[str, Any]:
    url = f"{issuer_url.rstrip('/')}/.well-known/openid-configuration"
    try:
        with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS) as client:
            response = client.get(url)
            response.raise_for_status()
            return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("[OIDC] discovery failed issuer=%s error=%s", issuer_url, exc)
        raise OidcError("Falha ao consultar o provedor de identidade") from exc


class OidcConfigCache:
    """Configuração do provedor por host, com expiração.

    O callback depende do host da requisição, então cada host tem a sua
    entrada. O documento de discovery é refeito quando a entrada expira.
    """

    def __init__(
        self,
        *,
        issuer_url: str | None = None,
        ttl_seconds: int | None = None,
        fetcher: Callable[[str], Dict[str, Any]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.issuer_url = issuer_url or config.OIDC_ISSUER_URL
        self.ttl_seconds = config.OIDC_DISCOVERY_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._fetcher = fetcher or fetch_discovery_document
        self._clock = clock
        self._entries: Dict[str, tuple[float, OidcClientConfig]] = {}
        self._lock = threading.Lock()

    def get(self, host: str) -> OidcClientConfig:
        key = (host or "").strip().lower()
        if not key:
            raise OidcError("Host da requisição ausente")
        now = self._clock()
        with self._lock:
            cached = self._entries.get(key)
            if cached and now - cached[0] < self.ttl_seconds:
                return cached[1]

        document = self._fetcher(self.issuer_url)
        try:
            client_config = OidcClientConfig(
                issuer=document.get("issuer") or self.issuer_url,
                authorization_endpoint=document["authorization_endpoint"],
                token_endpoint=document["token_endpoint"],
                jwks_uri=document["jwks_uri"],
                redirect_uri=callback_url_for_host(key),
                end_session_endpoint=document.get("end_session_endpoint"),
            )
        except KeyError as exc:
            raise OidcError(f"Documento de discovery incompleto: {exc.args[0]}") from exc

        with self._lock:
            self._entries[key] = (now, client_config)
        logger.info("[OIDC] discovery cached host=%s issuer=%s", key, client_config.issuer)
        return client_config

    def invalidate(self, host: str | None = None) -> None:
        with self._lock:
            if host is None:
                self._entries.clear()
            else:
                self._entries.pop(host.strip().lower(), None)


def generate_pkce_pair() -> tuple[str, str]:
    verifier = secrets.token_urlsafe(48)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def build_authorization_url(
    client_config: OidcClientConfig,
    *,
    state: str,
    nonce: str,
    code_challenge: str,
) -> str:
    params = {
        "response_type": "code",
        "client_id": config.OIDC_CLIENT_ID,
        "redirect_uri": client_config.redirect_uri,
        "scope": config.OIDC_SCOPES,
        "state": state,
        "nonce": nonce,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "prompt": "login consent",
    }
    return f"{client_config.authorization_endpoint}?{urlencode(params)}"


def build_logout_url(client_config: OidcClientConfig, *, post_logout_redirect_uri: str) -> str | None:
    if not client_config.end_session_endpoint:
        return None
    params = {
        "client_id": config.OIDC_CLIENT_ID,
        "post_logout_redirect_uri": post_logout_redirect_uri,
    }
    return f"{client_config.end_session_endpoint}?{urlencode(params)}"


def exchange_code(client_config: OidcClientConfig, *, code: str, code_verifier: str) -> Dict[str, Any]:
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": client_config.redirect_uri,
        "client_id": config.OIDC_CLIENT_ID,
        "code_verifier": code_verifier,
    }
    if config.OIDC_CLIENT_SECRET:
        data["client_secret"] = config.OIDC_CLIENT_SECRET
    try:
        with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS) as client:
            response = client.post(client_config.token_endpoint, data=data)
            response.raise_for_status()
            tokens = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("[OIDC] token exchange failed error=%s", exc)
        raise OidcError("Falha ao trocar o código de autorização") from exc

    if not tokens.get("id_token"):
        raise OidcError("Resposta do provedor sem id_token")
    return tokens


def fetch_jwks(client_config: OidcClientConfig) -> Dict[str, Any]:
    try:
        with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS) as client:
            response = client.get(client_config.jwks_uri)
            response.raise_for_status()
            return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("[OIDC] jwks fetch failed error=%s", exc)
        raise OidcError("Falha ao obter as chaves do provedor") from exc


def decode_id_token(
    id_token: str,
    *,
    jwks: Dict[str, Any],
    issuer: str,
    nonce: str | None = None,
    access_token: str | None = None,
) -> Dict[str, Any]:
    try:
        claims = jwt.decode(
            id_token,
            jwks,
            algorithms=["RS256", "ES256"],
            audience=config.OIDC_CLIENT_ID or None,
            issuer=issuer,
            access_token=access_token,
            options={"verify_aud": bool(config.OIDC_CLIENT_ID)},
        )
    except JWTError as exc:
        raise OidcError("id_token inválido") from exc

    if nonce is not None and claims.get("nonce") != nonce:
        raise OidcError("nonce divergente")
    return claims


def complete_authorization(
    client_config: OidcClientConfig,
    *,
    code: str,
    code_verifier: str,
    nonce: str | None = None,
) -> Dict[str, Any]:
    """Troca o código e devolve as claims verificadas do id_token."""
    tokens = exchange_code(client_config, code=code, code_verifier=code_verifier)
    jwks = fetch_jwks(client_config)
    return decode_id_token(
        tokens["id_token"],
        jwks=jwks,
        issuer=client_config.issuer,
        nonce=nonce,
        access_token=tokens.get("access_token"),
    )


oidc_config_cache = OidcConfigCache()
