"""
Test suite for the bank link service

Covers account selection, balance coercion and the degraded sandbox mode,
PlaidItem upsert semantics and best-effort persistence.
"""

from decimal import Decimal

import pytest
from django.db import DatabaseError
from django.db.models import QuerySet

from core.exceptions import UpstreamError
from core.models import PlaidItem
from core.services import BankLinkService, select_account

from .conftest import W1, FakeGateway


class TestSelectAccount:
    """Test which linked account is used"""

    def test_prefers_depository_checking(self):
        accounts = [
            {"account_id": "a", "type": "credit", "subtype": "credit card"},
            {"account_id": "b", "type": "depository", "subtype": "savings"},
        ]
        assert select_account(accounts)["account_id"] == "b"

    def test_falls_back_to_first_account(self):
        accounts = [
            {"account_id": "a", "type": "investment", "subtype": "401k"},
            {"account_id": "b", "type": "depository", "subtype": "cd"},
        ]
        assert select_account(accounts)["account_id"] == "a"

    def test_no_accounts(self):
        assert select_account([]) is None


@pytest.mark.django_db
class TestCompleteLink:
    """Test the public token exchange"""

    def test_returns_sanitized_snapshot(self, link_service):
        snapshot = link_service.complete_link(W1, "public-sandbox-1")

        assert snapshot == {
            "institutionName": "First Platypus Bank",
            "accountName": "Plaid Checking",
            "accountMask": "0000",
            "currentBalance": 500.0,
            "availableBalance": 500.0,
        }
        assert "access" not in str(snapshot)

    def test_persists_plaid_item(self, link_service):
        link_service.complete_link(W1, "public-sandbox-1")

        item = PlaidItem.objects.get(wallet_address=W1)
        assert item.access_token == "access-sandbox-1"
        assert item.item_id == "item-1"
        assert item.account_id == "acc-checking"
        assert item.available_balance == Decimal("500.00")

    def test_second_link_replaces_first(self, gateway, link_service):
        link_service.complete_link(W1, "public-sandbox-1")
        gateway.balances = {"current": 750.25, "available": 700.1}
        gateway.institution_name = "Tattersall Federal Credit Union"
        link_service.complete_link(W1, "public-sandbox-2")

        assert PlaidItem.objects.filter(wallet_address=W1).count() == 1
        item = PlaidItem.objects.get(wallet_address=W1)
        assert item.item_id == "item-2"
        assert item.institution_name == "Tattersall Federal Credit Union"
        assert item.current_balance == Decimal("750.25")
        assert item.available_balance == Decimal("700.10")

    def test_institution_lookup_failure_uses_default_name(self):
        service = BankLinkService(FakeGateway(institution_name=None))
        snapshot = service.complete_link(W1, "public-sandbox-1")
        assert snapshot["institutionName"] == "Your Bank"

    def test_available_falls_back_to_current(self):
        service = BankLinkService(FakeGateway(balances={"current": 320.5, "available": None}))
        snapshot = service.complete_link(W1, "public-sandbox-1")
        assert snapshot["availableBalance"] == 320.5

    def test_sandbox_fallback_balance(self):
        service = BankLinkService(FakeGateway(balances={}), sandbox_fallbacks=True)
        snapshot = service.complete_link(W1, "public-sandbox-1")
        assert snapshot["currentBalance"] == 1000.0
        assert snapshot["availableBalance"] == 1000.0

    def test_missing_balance_fails_without_sandbox_mode(self):
        service = BankLinkService(FakeGateway(balances={"current": None}), sandbox_fallbacks=False)
        with pytest.raises(UpstreamError, match="balance unavailable"):
            service.complete_link(W1, "public-sandbox-1")
        assert not PlaidItem.objects.exists()

    def test_non_finite_balance_is_treated_as_absent(self):
        service = BankLinkService(FakeGateway(balances={"current": "NaN", "available": "NaN"}), sandbox_fallbacks=True)
        snapshot = service.complete_link(W1, "public-sandbox-1")
        assert snapshot["availableBalance"] == 1000.0

    def test_no_accounts_is_upstream_error(self):
        service = BankLinkService(FakeGateway(accounts=[]))
        with pytest.raises(UpstreamError, match="No suitable account"):
            service.complete_link(W1, "public-sandbox-1")

    def test_database_failure_still_returns_snapshot(self, monkeypatch, link_service):
        def broken(*args, **kwargs):
            raise DatabaseError("database is locked")

        monkeypatch.setattr(PlaidItem.objects, "update_or_create", broken)
        snapshot = link_service.complete_link(W1, "public-sandbox-1")
        assert snapshot["availableBalance"] == 500.0


@pytest.mark.django_db
class TestGetLinkedAccount:
    """Test reading the linked account back"""

    def test_not_linked_returns_none(self, gateway, link_service):
        assert link_service.get_linked_account(W1) is None
        assert gateway.calls == []

    def test_refreshes_balance_live(self, gateway, link_service):
        link_service.complete_link(W1, "public-sandbox-1")
        gateway.balances = {"current": 90.0, "available": 80.0}

        snapshot = link_service.get_linked_account(W1)

        assert snapshot["availableBalance"] == 80.0
        assert gateway.calls[-1] == ("get_balances", "access-sandbox-1", "acc-checking")
        assert PlaidItem.objects.get(wallet_address=W1).available_balance == Decimal("80.00")

    def test_refresh_write_failure_returns_live_balance(self, monkeypatch, gateway, link_service):
        link_service.complete_link(W1, "public-sandbox-1")
        gateway.balances = {"current": 42.0, "available": 41.0}

        def broken(self, **kwargs):
            raise DatabaseError("read-only replica")

        monkeypatch.setattr(QuerySet, "update", broken)
        snapshot = link_service.get_linked_account(W1)
        assert snapshot["availableBalance"] == 41.0
