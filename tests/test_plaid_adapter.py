"""
Test suite for the Plaid gateway: credential checks, error translation and retry
"""

import json

import plaid
import pytest
import urllib3

from core.adapters.plaid_adapter import PlaidGateway, mask_secret
from core.exceptions import ConfigurationError, UpstreamError


def api_error(status, code=None, error_type="API_ERROR", message="something went wrong"):
    e = plaid.ApiException(status=status, reason="Error")
    e.body = json.dumps({"error_code": code, "error_type": error_type, "error_message": message})
    return e


class Response(dict):
    def to_dict(self):
        return dict(self)


class FakePlaidApi:
    """Each method pops its next outcome; exceptions are raised, dicts returned."""

    def __init__(self, **outcomes):
        self.outcomes = outcomes
        self.requests = []

    def _next(self, name, request):
        self.requests.append((name, request))
        outcome = self.outcomes[name].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return Response(outcome)

    def __getattr__(self, name):
        if name.startswith("_") or name not in self.__dict__.get("outcomes", {}):
            raise AttributeError(name)
        return lambda request: self._next(name, request)


def gateway(api, **kwargs):
    return PlaidGateway("client-id", "secret", api=api, backoff_seconds=0, **kwargs)


class TestConstruction:
    """Test credential validation"""

    @pytest.mark.parametrize("client_id,secret", [("", "secret"), ("id", ""), ("  ", "  "), (None, "secret")])
    def test_missing_credentials(self, client_id, secret):
        with pytest.raises(ConfigurationError):
            PlaidGateway(client_id, secret)

    def test_unknown_environment(self):
        with pytest.raises(ConfigurationError, match="Unknown Plaid environment"):
            PlaidGateway("id", "secret", environment="staging")

    def test_from_settings(self, settings):
        gw = PlaidGateway.from_settings(api=FakePlaidApi())
        assert gw.is_sandbox
        assert gw.products == list(settings.PLAID_PRODUCTS)

    def test_mask_secret(self):
        assert mask_secret("access-sandbox-abc") == "acces..."
        assert mask_secret(None) == ""


class TestCalls:
    """Test request building and response handling"""

    def test_create_link_token(self):
        api = FakePlaidApi(link_token_create=[{"link_token": "link-sandbox-1", "expiration": "soon"}])
        assert gateway(api).create_link_token("wallet-1")["link_token"] == "link-sandbox-1"

        _, request = api.requests[0]
        assert request.user.client_user_id == "wallet-1"
        assert request.client_name == "SolStable"

    def test_empty_link_token(self):
        api = FakePlaidApi(link_token_create=[{"link_token": ""}])
        with pytest.raises(UpstreamError, match="Invalid link token"):
            gateway(api).create_link_token("wallet-1")

    def test_get_balances_single_account(self):
        api = FakePlaidApi(accounts_balance_get=[{"accounts": [{"account_id": "a", "balances": {"current": 100.0, "available": 90.0}}]}])
        assert gateway(api).get_balances("access", "a") == {"current": 100.0, "available": 90.0}

    def test_get_balances_no_accounts(self):
        api = FakePlaidApi(accounts_balance_get=[{"accounts": []}])
        with pytest.raises(UpstreamError):
            gateway(api).get_balances("access", "a")

    def test_institution_name(self):
        api = FakePlaidApi(institutions_get_by_id=[{"institution": {"name": "First Platypus Bank"}}])
        assert gateway(api).get_institution_name("ins_109508") == "First Platypus Bank"


class TestErrors:
    """Test error translation and bounded retry"""

    def test_invalid_keys_is_configuration_error_without_retry(self):
        api = FakePlaidApi(link_token_create=[api_error(400, "INVALID_API_KEYS", "INVALID_INPUT", "invalid client_id or secret provided")])
        with pytest.raises(ConfigurationError, match="invalid client_id"):
            gateway(api).create_link_token("wallet-1")
        assert len(api.requests) == 1

    def test_client_error_is_upstream_with_code(self):
        api = FakePlaidApi(item_public_token_exchange=[api_error(400, "INVALID_PUBLIC_TOKEN", "INVALID_INPUT")])
        with pytest.raises(UpstreamError) as exc:
            gateway(api).exchange_public_token("public-bad")
        assert exc.value.code == "INVALID_PUBLIC_TOKEN"
        assert len(api.requests) == 1

    def test_server_error_is_retried(self):
        api = FakePlaidApi(accounts_get=[api_error(500, "INTERNAL_SERVER_ERROR"), {"accounts": [{"account_id": "a"}]}])
        assert gateway(api).get_accounts("access") == [{"account_id": "a"}]
        assert len(api.requests) == 2

    def test_rate_limit_gives_up_after_max_attempts(self):
        api = FakePlaidApi(accounts_get=[api_error(429, "RATE_LIMIT_EXCEEDED")] * 3)
        with pytest.raises(UpstreamError) as exc:
            gateway(api, max_attempts=3).get_accounts("access")
        assert exc.value.code == "RATE_LIMIT_EXCEEDED"
        assert len(api.requests) == 3

    def test_transport_error_is_retried(self):
        api = FakePlaidApi(item_get=[urllib3.exceptions.ProtocolError("connection reset"), {"item": {"institution_id": "ins_1"}}])
        assert gateway(api).get_item("access") == {"institution_id": "ins_1"}

    def test_unparsable_error_body(self):
        e = plaid.ApiException(status=502, reason="Bad Gateway")
        e.body = "<html>"
        api = FakePlaidApi(accounts_get=[e])
        with pytest.raises(UpstreamError, match="Bad Gateway"):
            gateway(api, max_attempts=1).get_accounts("access")
