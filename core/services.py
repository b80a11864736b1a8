"""Business orchestration for bank linking and mint auditing.

This module coordinates: link token → public token exchange → PlaidItem upsert,
live balance refresh, and the StablecoinMint audit trail (including
reconciliation of mints whose confirmation was never observed).

Persistence around a successful upstream call is best-effort: a failed write
is logged and the caller still gets the live data.
"""

import logging
from datetime import timedelta
from decimal import Decimal, ROUND_DOWN

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from .adapters.chain_adapter import SolanaChainAdapter
from .adapters.plaid_adapter import PlaidGateway, mask_secret
from .constants import CENTS, to_balance
from .exceptions import BalanceExceeded, PersistenceError, UpstreamError
from .models import MintStatus, PlaidItem, StablecoinMint, Token

logger = logging.getLogger(__name__)

DEPOSITORY_SUBTYPES = ("checking", "savings")

# StablecoinMint.amount_minted is DecimalField(max_digits=12, decimal_places=2)
MAX_AUDIT_AMOUNT = Decimal("9999999999.99")


def select_account(accounts: list[dict]) -> dict | None:
	"""
	First depository checking/savings account, else the first account of any type
	"""
	for acc in accounts:
		if acc.get("type") == "depository" and acc.get("subtype") in DEPOSITORY_SUBTYPES:
			return acc
	return accounts[0] if accounts else None


class BankLinkService:

	def __init__(self, gateway: PlaidGateway, sandbox_fallbacks: bool | None = None, fallback_balance: Decimal | None = None):
		self.gateway = gateway
		self.sandbox_fallbacks = settings.PLAID_SANDBOX_FALLBACKS if sandbox_fallbacks is None else sandbox_fallbacks
		self.fallback_balance = settings.SANDBOX_FALLBACK_BALANCE if fallback_balance is None else fallback_balance

	def request_link_handle(self, wallet_address: str) -> dict:
		"""
		Create a Plaid Link token scoped to this wallet
		"""
		logger.info("Creating Plaid link token for wallet %s", wallet_address)
		return self.gateway.create_link_token(client_user_id=wallet_address)

	def complete_link(self, wallet_address: str, public_token: str) -> dict:
		"""
		Exchange the public token, pick the account, read its balance and upsert the PlaidItem.

		Returns the sanitized snapshot even if the database write fails.
		"""
		logger.info("Processing token exchange for wallet %s", wallet_address)
		exchange = self.gateway.exchange_public_token(public_token)
		access_token = exchange["access_token"]
		item_id = exchange["item_id"]

		item = self.gateway.get_item(access_token)
		institution_id = item.get("institution_id")
		institution_name = None
		if institution_id:
			try:
				institution_name = self.gateway.get_institution_name(institution_id)
			except UpstreamError:
				logger.warning("Could not get institution name for %s, using default", institution_id)

		account = select_account(self.gateway.get_accounts(access_token))
		if account is None:
			raise UpstreamError("No suitable account found")

		balances = self.gateway.get_balances(access_token, account["account_id"])
		current, available = self._coerce_balances(balances)

		fields = dict(
			item_id=item_id,
			access_token=access_token,
			institution_id=institution_id,
			institution_name=institution_name,
			account_id=account["account_id"],
			account_name=account.get("name"),
			account_mask=account.get("mask"),
			current_balance=current,
			available_balance=available,
		)
		try:
			_, created = PlaidItem.objects.update_or_create(wallet_address=wallet_address, defaults=fields)
			logger.info("%s PlaidItem for wallet %s (access token %s)", "Stored" if created else "Replaced", wallet_address, mask_secret(access_token))
		except DatabaseError:
			logger.exception("Database error when storing PlaidItem for %s - continuing anyway", wallet_address)

		return PlaidItem(**fields).snapshot()

	def get_linked_account(self, wallet_address: str) -> dict | None:
		"""
		Stored account with a live balance, or None when the wallet never linked one
		"""
		try:
			item = PlaidItem.objects.filter(wallet_address=wallet_address).first()
		except DatabaseError as e:
			logger.exception("Database error when getting bank account info for %s", wallet_address)
			raise PersistenceError("Unable to access bank account information") from e

		if item is None:
			logger.info("No linked bank account found for wallet %s", wallet_address)
			return None

		balances = self.gateway.get_balances(item.access_token, item.account_id)
		item.current_balance, item.available_balance = self._coerce_balances(balances)

		try:
			PlaidItem.objects.filter(pk=item.pk).update(
				current_balance=item.current_balance,
				available_balance=item.available_balance,
				last_updated=timezone.now(),
			)
		except DatabaseError:
			logger.exception("Failed to update balance for %s, returning live data anyway", wallet_address)

		return item.snapshot()

	def _coerce_balances(self, balances: dict):
		"""
		(current, available) as finite Decimals; available falls back to current.
		Absent values use the degraded sandbox balance when that mode is on.
		"""
		current = to_balance(balances.get("current"))
		available = to_balance(balances.get("available"))
		if available is None:
			available = current
		if current is None or available is None:
			if not self.sandbox_fallbacks:
				raise UpstreamError("balance unavailable")
			logger.warning("Plaid returned no balance; using sandbox fallback %s", self.fallback_balance)
			current = self.fallback_balance if current is None else current
			available = self.fallback_balance if available is None else available
		return current, available


class MintRecorder:
	"""
	Insert/select access to the StablecoinMint audit trail and the Token registry
	"""

	@staticmethod
	def _plaid_item(wallet_address: str) -> PlaidItem:
		item = PlaidItem.objects.filter(wallet_address=wallet_address).first()
		if item is None:
			raise PersistenceError("No linked bank account found for wallet address")
		return item

	@staticmethod
	def _audit_amount(amount) -> Decimal:
		try:
			value = Decimal(str(amount))
		except ArithmeticError as e:
			raise PersistenceError("Mint amount is not a number") from e
		if not value.is_finite() or value <= 0:
			raise PersistenceError("Mint amount must be a positive number")
		return value

	def record_mint(self, wallet_address: str, token_address: str, amount, status: str = MintStatus.COMPLETED, transaction_id: str | None = None) -> StablecoinMint:
		"""
		Insert an audit row. The amount may not exceed the available balance
		captured on the wallet's PlaidItem (BalanceExceeded).
		"""
		value = self._audit_amount(amount)
		try:
			item = self._plaid_item(wallet_address)
			available = item.available_balance
			if available is None or value > available:
				logger.warning("Mint of %s for %s exceeds available balance %s", value, wallet_address, available)
				raise BalanceExceeded(
					f"Mint amount {value} exceeds the available balance of the linked bank account",
					available_balance=f"{available:.2f}" if available is not None else None,
				)
			if value > MAX_AUDIT_AMOUNT:
				raise PersistenceError("Mint amount is outside the audit range")
			return StablecoinMint.objects.create(
				wallet_address=wallet_address,
				plaid_item=item,
				token_address=token_address,
				amount_minted=value.quantize(CENTS, rounding=ROUND_DOWN),
				status=status,
				transaction_id=transaction_id or None,
				completed_at=timezone.now() if status == MintStatus.COMPLETED else None,
			)
		except DatabaseError as e:
			logger.exception("Error recording stablecoin mint for %s", wallet_address)
			raise PersistenceError("Failed to record stablecoin mint") from e

	def open_pending(self, wallet_address: str, token_address: str, amount, signature: str) -> StablecoinMint:
		return self.record_mint(wallet_address, token_address, amount, status=MintStatus.PENDING, transaction_id=signature)

	def mark(self, signature: str, status: str) -> int:
		"""
		Move pending rows for a signature to a final status
		"""
		try:
			return StablecoinMint.objects.filter(transaction_id=signature, status=MintStatus.PENDING).update(
				status=status,
				completed_at=timezone.now() if status == MintStatus.COMPLETED else None,
			)
		except DatabaseError as e:
			raise PersistenceError("Failed to update mint status") from e

	def history(self, wallet_address: str) -> list[StablecoinMint]:
		try:
			return list(StablecoinMint.objects.filter(wallet_address=wallet_address).order_by("created_at", "id"))
		except DatabaseError as e:
			raise PersistenceError("Failed to get minting history") from e

	def record_token(self, details, form, owner_address: str) -> Token:
		try:
			token, _ = Token.objects.update_or_create(
				token_address=details.token_address,
				defaults=dict(
					name=form.name,
					symbol=form.symbol,
					description=form.description or "",
					supply=details.supply,
					decimals=details.decimals,
					mint_authority=details.mint_authority,
					freeze_authority=details.freeze_authority,
					transaction_id=details.transaction_id,
					owner_address=owner_address,
				),
			)
			return token
		except DatabaseError as e:
			raise PersistenceError("Failed to record token") from e


def bank_link_service() -> BankLinkService:
	"""
	Build the service from settings; raises ConfigurationError without credentials
	"""
	return BankLinkService(PlaidGateway.from_settings())


def chain_adapter() -> SolanaChainAdapter:
	return SolanaChainAdapter.from_settings()


def list_wallet_tokens(chain: SolanaChainAdapter, wallet_address: str) -> list[dict]:
	"""
	Non-empty SPL holdings of a wallet, named from the Token registry when we created the mint
	"""
	holdings = [h for h in chain.wallet_token_accounts(wallet_address) if Decimal(h["ui_amount"]) > 0]
	known = {t.token_address: t for t in Token.objects.filter(token_address__in=[h["mint"] for h in holdings])}
	today = timezone.now().date().isoformat()
	out = []
	for h in holdings:
		mint = h["mint"]
		token = known.get(mint)
		if token is not None:
			name, symbol, created = token.name, token.symbol, token.created_at.date().isoformat()
		else:
			short = f"{mint[:6]}...{mint[-4:]}"
			name, symbol, created = f"SPL Token {short}", f"SPL{mint[:4]}", today
		out.append({
			"name": name,
			"symbol": symbol,
			"address": mint,
			"totalSupply": h["ui_amount"],
			"decimals": h["decimals"],
			"createdAt": created,
		})
	return out


def reconcile_pending_mints(chain: SolanaChainAdapter, now=None, grace_seconds: int | None = None) -> dict:
	"""
	Resolve pending mints by polling their signatures.

	Landed without error → completed; landed with error → failed; unknown to the
	network after the grace period → failed; otherwise left pending.
	"""
	now = now or timezone.now()
	grace = timedelta(seconds=settings.MINT_RECONCILE_GRACE_SECONDS if grace_seconds is None else grace_seconds)
	counts = {"completed": 0, "failed": 0, "pending": 0}

	pending = StablecoinMint.objects.filter(status=MintStatus.PENDING, transaction_id__isnull=False)
	for rec in pending:
		try:
			status = chain.signature_status(rec.transaction_id)
		except UpstreamError:
			logger.warning("Could not reach RPC node for %s; leaving pending", rec.transaction_id)
			counts["pending"] += 1
			continue

		if status is not None and status["err"] is not None:
			new_status = MintStatus.FAILED
		elif status is not None and status["confirmation_status"] in ("confirmed", "finalized"):
			new_status = MintStatus.COMPLETED
		elif status is None and now - rec.created_at > grace:
			new_status = MintStatus.FAILED
		else:
			counts["pending"] += 1
			continue

		rec.status = new_status
		rec.completed_at = now if new_status == MintStatus.COMPLETED else None
		rec.save(update_fields=["status", "completed_at"])
		counts[new_status.value] += 1
		logger.info("Reconciled mint %s (%s) → %s", rec.id, rec.transaction_id, new_status)
	return counts
