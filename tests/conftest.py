"""Shared fixtures: in-memory Plaid gateway and Solana chain fakes."""

from types import SimpleNamespace

import pytest
from solders.hash import Hash
from solders.keypair import Keypair

from core.exceptions import UpstreamError
from core.services import BankLinkService

W1 = "11111111111111111111111111111111"
W2 = "So11111111111111111111111111111111111111112"
TOKEN_ADDR = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


@pytest.fixture(autouse=True)
def plaid_settings(settings):
    settings.PLAID_CLIENT_ID = "test-client-id"
    settings.PLAID_SECRET = "test-secret"
    settings.PLAID_ENV = "sandbox"
    settings.PLAID_SANDBOX_FALLBACKS = True
    settings.UPSTREAM_BACKOFF_SECONDS = 0
    return settings


class FakeGateway:
    """Stands in for PlaidGateway; every call is recorded."""

    is_sandbox = True

    def __init__(self, balances=None, accounts=None, institution_name="First Platypus Bank"):
        self.calls = []
        self.exchanges = 0
        self.balances = balances if balances is not None else {"current": 500.0, "available": 500.0}
        self.accounts = accounts if accounts is not None else [
            {"account_id": "acc-credit", "type": "credit", "subtype": "credit card", "name": "Plaid Credit Card", "mask": "3333"},
            {"account_id": "acc-checking", "type": "depository", "subtype": "checking", "name": "Plaid Checking", "mask": "0000"},
        ]
        self.institution_name = institution_name
        self.fail_with = None

    def create_link_token(self, client_user_id):
        self.calls.append(("create_link_token", client_user_id))
        if self.fail_with:
            raise self.fail_with
        return {"link_token": "link-sandbox-123", "expiration": "2026-10-18T23:00:00Z"}

    def exchange_public_token(self, public_token):
        self.calls.append(("exchange_public_token", public_token))
        if self.fail_with:
            raise self.fail_with
        self.exchanges += 1
        return {"access_token": f"access-sandbox-{self.exchanges}", "item_id": f"item-{self.exchanges}"}

    def get_item(self, access_token):
        return {"institution_id": "ins_109508"}

    def get_institution_name(self, institution_id):
        if self.institution_name is None:
            raise UpstreamError("institution lookup failed")
        return self.institution_name

    def get_accounts(self, access_token):
        return list(self.accounts)

    def get_balances(self, access_token, account_id):
        self.calls.append(("get_balances", access_token, account_id))
        return dict(self.balances)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def link_service(gateway):
    return BankLinkService(gateway)


@pytest.fixture
def patched_service(monkeypatch, gateway):
    """Route the API views to a BankLinkService over the fake gateway."""
    factory = lambda: BankLinkService(gateway)
    monkeypatch.setattr("api.views_ops.bank_link_service", factory)
    monkeypatch.setattr("api.views_read.bank_link_service", factory)
    return gateway


class FakeChain:
    """Stands in for SolanaChainAdapter."""

    def __init__(self):
        self.sent = []
        self.confirm_result = None
        self.confirm_raises = None
        self.send_raises = None
        self.statuses = {}
        self.holdings = []

    def minimum_balance_for_mint(self):
        return 1461600

    def latest_blockhash(self):
        return Hash.new_unique(), 1000

    def send_raw_transaction(self, raw, signature):
        if self.send_raises:
            raise self.send_raises
        self.sent.append((raw, signature))
        return signature

    def confirm(self, signature, last_valid_block_height=None):
        if self.confirm_raises:
            raise self.confirm_raises
        return self.confirm_result

    def signature_status(self, signature):
        status = self.statuses.get(signature)
        if isinstance(status, Exception):
            raise status
        return status

    def wallet_token_accounts(self, owner):
        return list(self.holdings)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def payer():
    return Keypair()


def rpc_value(value):
    return SimpleNamespace(value=value)
