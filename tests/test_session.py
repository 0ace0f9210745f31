"""
Tests for coselpro.core.session and coselpro.core.connection.
"""

from datetime import timedelta

import pytest
import requests
from unittest.mock import patch

from coselpro.core.connection import ConnectionContext
from coselpro.core.errors import (
    ExpiredTokenError,
    NewTokenError,
    RenewTokenError,
    TokenParsingError,
)
from coselpro.core.session import CoSelPro
from coselpro.core.token import Token

TEST_URI = "http://proliant:3000"


class TestSessionConstruction:
    """Tests for CoSelPro constructors."""

    def test_from_active_token(self, client, http, active_token):
        api = CoSelPro.from_token(client, active_token)
        assert api.user_name == "Consultation"
        assert api.schema == "rest"
        assert api.token is active_token
        http.request.assert_not_called()

    def test_from_expired_token_fails_without_network(self, client, http, expired_token):
        with pytest.raises(ExpiredTokenError):
            CoSelPro.from_token(client, expired_token)
        http.request.assert_not_called()

    def test_from_token_inside_safety_margin_is_accepted(self, client, now):
        token = Token(token="t", expire=now + timedelta(minutes=2), user_name="Consultation")
        assert CoSelPro.from_token(client, token).user_name == "Consultation"

    def test_from_credentials(self, client, http, credentials, make_response, token_payload, now):
        http.request.return_value = make_response(
            payload=token_payload("tok-1", now + timedelta(hours=1))
        )

        api = CoSelPro.from_credentials(client, credentials)

        assert api.user_name == "Consultation"
        assert api.token.active()
        assert api.client is client

    def test_from_credentials_rejected(self, client, http, credentials, make_response):
        http.request.return_value = make_response(status=401, payload={"message": "denied"})

        with pytest.raises(NewTokenError) as exc_info:
            CoSelPro.from_credentials(client, credentials)

        assert isinstance(exc_info.value.cause, TokenParsingError)
        assert exc_info.value.cause.status == 401

    def test_from_credentials_unreachable(self, client, http, credentials):
        http.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(NewTokenError):
            CoSelPro.from_credentials(client, credentials)

    @patch("coselpro.core.client.requests.Session")
    def test_from_credentials_with_uri(self, mock_session_class, credentials, make_response, token_payload, now):
        http = mock_session_class.return_value
        http.request.return_value = make_response(
            payload=token_payload("tok-1", now + timedelta(hours=1))
        )

        api = CoSelPro.from_credentials("http://other:3000", credentials, persist=False)

        assert api.client.base == "http://other:3000/"
        assert http.request.call_args.kwargs["url"] == "http://other:3000/rpc/login"

    @patch("coselpro.core.client.requests.Session")
    def test_from_credentials_uses_credentials_host(
        self, mock_session_class, credentials, make_response, token_payload, now
    ):
        http = mock_session_class.return_value
        http.request.return_value = make_response(
            payload=token_payload("tok-1", now + timedelta(hours=1))
        )

        api = CoSelPro.from_credentials(None, credentials, persist=False)

        assert api.client.base == "http://proliant:3000/"

    def test_from_cache(self, client, http, active_token, token_file):
        active_token.save(token_file)

        api = CoSelPro.from_cache(client)

        assert api.token == active_token
        http.request.assert_not_called()

    def test_from_cache_missing_file(self, client):
        with pytest.raises(NewTokenError):
            CoSelPro.from_cache(client)

    def test_from_cache_expired(self, client, expired_token, token_file):
        expired_token.save(token_file)
        with pytest.raises(ExpiredTokenError):
            CoSelPro.from_cache(client)


class TestSessionRenewal:
    """Tests for CoSelPro.renew and CoSelPro.refreshed."""

    def test_renewal_chain(self, client, http, active_token, make_response, token_payload):
        first = active_token.expire + timedelta(minutes=30)
        second = active_token.expire + timedelta(minutes=60)
        http.request.side_effect = [
            make_response(payload=token_payload("tok-2", first)),
            make_response(payload=token_payload("tok-3", second)),
        ]
        api = CoSelPro.from_token(client, active_token)

        renewed = api.renew()
        renewed_again = renewed.renew()

        assert api.token.expire < renewed.token.expire < renewed_again.token.expire
        assert api.user_name == renewed.user_name == renewed_again.user_name
        second_call = http.request.call_args_list[1].kwargs
        assert second_call["headers"]["Authorization"] == "Bearer tok-2"

        # original session left untouched and still usable
        assert api.token is active_token
        assert api.scoped("company").token == "tok-active"
        assert renewed.client is api.client

    def test_renew_failure(self, client, http, active_token, make_response):
        http.request.return_value = make_response(status=401, payload={"message": "JWT expired"})
        api = CoSelPro.from_token(client, active_token)

        with pytest.raises(RenewTokenError) as exc_info:
            api.renew()

        assert isinstance(exc_info.value.cause, TokenParsingError)
        assert api.token is active_token

    def test_refreshed_keeps_session_outside_margin(self, client, http, active_token):
        api = CoSelPro.from_token(client, active_token)
        assert api.refreshed() is api
        http.request.assert_not_called()

    def test_refreshed_renews_inside_margin(self, client, http, now, make_response, token_payload):
        token = Token(token="tok-short", expire=now + timedelta(minutes=3), user_name="Consultation")
        http.request.return_value = make_response(
            payload=token_payload("tok-long", now + timedelta(hours=1))
        )
        api = CoSelPro.from_token(client, token)

        refreshed = api.refreshed()

        assert refreshed is not api
        assert refreshed.token.token == "tok-long"


class TestSessionRequests:
    """Tests for CoSelPro.scoped and CoSelPro.rpc."""

    def test_scoped_sets_bearer_and_schema(self, client, http, active_token, make_response):
        http.request.return_value = make_response(payload=[{"company_id": 1, "company": "TI"}])
        api = CoSelPro.from_token(client, active_token)

        rows = api.scoped("company").select("company_id", "company").eq("company_id", 1).json()

        assert rows == [{"company_id": 1, "company": "TI"}]
        kwargs = http.request.call_args.kwargs
        assert kwargs["url"] == "http://proliant:3000/company"
        assert kwargs["headers"]["Authorization"] == "Bearer tok-active"
        assert kwargs["headers"]["Accept-Profile"] == "rest"

    def test_scoped_rechecks_expiry(self, client, http, expired_token):
        # session built while the token was valid
        api = CoSelPro(client, expired_token)

        with pytest.raises(ExpiredTokenError):
            api.scoped("company")
        http.request.assert_not_called()

    def test_rpc(self, client, http, active_token, make_response):
        http.request.return_value = make_response(payload={"count": 3})
        api = CoSelPro.from_token(client, active_token)

        assert api.rpc("company_count", {"division_id": 2}) == {"count": 3}
        kwargs = http.request.call_args.kwargs
        assert kwargs["url"] == "http://proliant:3000/rpc/company_count"
        assert kwargs["headers"]["Authorization"] == "Bearer tok-active"

    def test_rpc_with_expired_token(self, client, http, expired_token):
        api = CoSelPro(client, expired_token)
        with pytest.raises(ExpiredTokenError):
            api.rpc("company_count")
        http.request.assert_not_called()


class TestConnectionContext:
    """Tests for ConnectionContext."""

    def test_missing_base_url_raises(self):
        with pytest.raises(ValueError, match="Missing base_url"):
            ConnectionContext()

    @patch.dict("os.environ", {"COSELPRO_URI": "http://env.example.com:3000", "COSELPRO_SCHEMA": "api"})
    def test_reads_from_environment(self):
        conn = ConnectionContext()
        assert conn.base_url == "http://env.example.com:3000"
        assert conn.schema == "api"

    @patch("coselpro.core.client.requests.Session")
    def test_uses_cached_token(self, mock_session_class, active_token, token_file):
        active_token.save(token_file)

        with ConnectionContext(base_url=TEST_URI, token_path=str(token_file)) as conn:
            assert conn.session.token == active_token

        mock_session_class.return_value.request.assert_not_called()
        mock_session_class.return_value.close.assert_called_once()

    @patch("coselpro.core.client.requests.Session")
    def test_renews_cached_token_inside_margin(
        self, mock_session_class, now, token_file, make_response, token_payload
    ):
        Token(token="tok-short", expire=now + timedelta(minutes=2), user_name="Consultation").save(token_file)
        http = mock_session_class.return_value
        http.request.return_value = make_response(
            payload=token_payload("tok-long", now + timedelta(hours=1))
        )

        conn = ConnectionContext(base_url=TEST_URI, token_path=str(token_file))

        assert conn.session.token.token == "tok-long"
        assert http.request.call_args.kwargs["url"] == "http://proliant:3000/rpc/extend_token"
        assert Token.load(token_file).token == "tok-long"

    @patch("coselpro.core.client.requests.Session")
    def test_logs_in_without_cache(
        self, mock_session_class, now, token_file, make_response, token_payload
    ):
        http = mock_session_class.return_value
        http.request.return_value = make_response(
            payload=token_payload("tok-1", now + timedelta(hours=1))
        )

        conn = ConnectionContext(
            base_url=TEST_URI, login="consult", password="consult", token_path=str(token_file)
        )

        assert conn.session.user_name == "Consultation"
        assert http.request.call_args.kwargs["url"] == "http://proliant:3000/rpc/login"
        assert token_file.exists()

    @patch("coselpro.core.client.requests.Session")
    def test_expired_cache_falls_back_to_login(
        self, mock_session_class, expired_token, now, token_file, make_response, token_payload
    ):
        expired_token.save(token_file)
        http = mock_session_class.return_value
        http.request.return_value = make_response(
            payload=token_payload("tok-1", now + timedelta(hours=1))
        )

        conn = ConnectionContext(
            base_url=TEST_URI, login="consult", password="consult", token_path=str(token_file)
        )

        assert conn.session.token.token == "tok-1"
        assert http.request.call_count == 1

    def test_missing_credentials_raises(self, token_file):
        conn = ConnectionContext(base_url=TEST_URI, token_path=str(token_file))
        with pytest.raises(NewTokenError, match="Missing credentials"):
            conn.session

    @patch("coselpro.core.client.requests.Session")
    def test_renew_replaces_session(
        self, mock_session_class, active_token, token_file, make_response, token_payload
    ):
        active_token.save(token_file)
        http = mock_session_class.return_value
        http.request.return_value = make_response(
            payload=token_payload("tok-2", active_token.expire + timedelta(minutes=30))
        )
        conn = ConnectionContext(base_url=TEST_URI, token_path=str(token_file))
        before = conn.session

        after = conn.renew()

        assert conn.session is after
        assert after.token.expire > before.token.expire
