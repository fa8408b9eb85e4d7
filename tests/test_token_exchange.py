"""Tests for the authorization-code → token exchange."""

import asyncio
from urllib.parse import parse_qsl

import httpx
import pytest

from tasknest import config
from tasknest.auth.storage import MemoryCredentialStore
from tasknest.auth.token import ExchangeError, TokenExchanger
from tasknest.google.client import ApiError

from .fakes import json_response, refuse_connection, routing_transport

TOKEN_OK = {
    "access_token": "ya29.new",
    "expires_in": 3599,
    "refresh_token": "1//refresh-new",
    "scope": "https://www.googleapis.com/auth/tasks",
    "token_type": "Bearer",
}

PROFILE = {"id": "42", "email": "ada@example.com", "name": "Ada", "picture": None}


def _exchanger(store, transport) -> TokenExchanger:
    return TokenExchanger(
        store,
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:14123",
        transport=transport,
    )


def test_exchange_posts_form_and_stores_tokens(creds):
    calls: list[httpx.Request] = []
    transport = routing_transport(
        {config.GOOGLE_TOKEN_URL: lambda r: json_response(200, TOKEN_OK)}, calls
    )

    tokens = asyncio.run(_exchanger(creds, transport).exchange("4/0code"))

    assert tokens.access_token == "ya29.new"
    assert tokens.refresh_token == "1//refresh-new"
    assert tokens.expires_in == 3599

    (request,) = calls
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert dict(parse_qsl(request.content.decode())) == {
        "code": "4/0code",
        "client_id": "client-id",
        "client_secret": "client-secret",
        "redirect_uri": "http://localhost:14123",
        "grant_type": "authorization_code",
    }

    assert creds.get(config.ACCESS_TOKEN_KEY) == "ya29.new"
    assert creds.get(config.REFRESH_TOKEN_KEY) == "1//refresh-new"


def test_exchange_without_refresh_token_keeps_previous():
    store = MemoryCredentialStore(
        {config.ACCESS_TOKEN_KEY: "ya29.old", config.REFRESH_TOKEN_KEY: "1//refresh-old"}
    )
    body = {k: v for k, v in TOKEN_OK.items() if k != "refresh_token"}
    transport = routing_transport({config.GOOGLE_TOKEN_URL: lambda r: json_response(200, body)})

    tokens = asyncio.run(_exchanger(store, transport).exchange("code"))

    assert tokens.refresh_token is None
    assert store.get(config.ACCESS_TOKEN_KEY) == "ya29.new"
    assert store.get(config.REFRESH_TOKEN_KEY) == "1//refresh-old"


def test_exchange_with_refresh_token_overwrites_previous():
    store = MemoryCredentialStore({config.REFRESH_TOKEN_KEY: "1//refresh-old"})
    transport = routing_transport({config.GOOGLE_TOKEN_URL: lambda r: json_response(200, TOKEN_OK)})

    asyncio.run(_exchanger(store, transport).exchange("code"))

    assert store.get(config.REFRESH_TOKEN_KEY) == "1//refresh-new"


def test_exchange_error_on_non_2xx_writes_nothing(creds):
    calls: list[httpx.Request] = []
    transport = routing_transport(
        {
            config.GOOGLE_TOKEN_URL: lambda r: json_response(
                400, {"error": "invalid_grant", "error_description": "Bad Request"}
            )
        },
        calls,
    )

    with pytest.raises(ExchangeError) as exc_info:
        asyncio.run(_exchanger(creds, transport).exchange("used-code"))

    assert exc_info.value.status == 400
    assert "invalid_grant" in exc_info.value.body
    assert "invalid_grant" in str(exc_info.value)
    assert creds.get(config.ACCESS_TOKEN_KEY) is None
    assert creds.get(config.REFRESH_TOKEN_KEY) is None
    # Codes are single use: exactly one attempt
    assert len(calls) == 1



def test_exchange_error_when_token_endpoint_unreachable(creds):
    transport = routing_transport({config.GOOGLE_TOKEN_URL: refuse_connection})

    with pytest.raises(ExchangeError, match="Connection refused") as exc_info:
        asyncio.run(_exchanger(creds, transport).exchange("code"))

    assert exc_info.value.status is None
    assert creds.get(config.ACCESS_TOKEN_KEY) is None

@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"token_type": "Bearer"}),
        httpx.Response(200, json=["access_token"]),
    ],
)
def test_exchange_error_on_malformed_body(creds, response):
    transport = routing_transport({config.GOOGLE_TOKEN_URL: lambda r: response})

    with pytest.raises(ExchangeError):
        asyncio.run(_exchanger(creds, transport).exchange("code"))
    assert creds.get(config.ACCESS_TOKEN_KEY) is None


def test_login_returns_profile_fetched_with_new_token(creds):
    seen_auth: list[str] = []

    def userinfo(request: httpx.Request) -> httpx.Response:
        seen_auth.append(request.headers["authorization"])
        return json_response(200, PROFILE)

    transport = routing_transport(
        {
            config.GOOGLE_TOKEN_URL: lambda r: json_response(200, TOKEN_OK),
            config.GOOGLE_USERINFO_URL: userinfo,
        }
    )

    profile = asyncio.run(_exchanger(creds, transport).login("code"))

    assert profile.email == "ada@example.com"
    assert profile.name == "Ada"
    assert seen_auth == ["Bearer ya29.new"]
    assert "ada@example.com" in creds.get(config.PROFILE_KEY)


def test_login_fails_when_profile_fetch_fails(creds):
    transport = routing_transport(
        {
            config.GOOGLE_TOKEN_URL: lambda r: json_response(200, TOKEN_OK),
            config.GOOGLE_USERINFO_URL: lambda r: httpx.Response(403, text="forbidden"),
        }
    )

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(_exchanger(creds, transport).login("code"))
    assert exc_info.value.status == 403
    assert creds.get(config.PROFILE_KEY) is None
