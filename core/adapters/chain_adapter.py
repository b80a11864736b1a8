"""Adapter over the Solana RPC node.

Wraps solana-py's synchronous Client: rent, blockhash, raw submission,
confirmation polling with an explicit timeout, signature status lookups and
token account listing. RPC failures become UpstreamError / MintFailed /
MintOutcomeUnknown; nothing solana-py specific leaks out.
"""

import logging
import time

from django.conf import settings
from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus
from spl.token.constants import TOKEN_PROGRAM_ID

from core.exceptions import MintFailed, MintOutcomeUnknown, UpstreamError

logger = logging.getLogger(__name__)

# Size of an SPL mint account (spl.token MINT_LAYOUT)
MINT_SIZE = 82

CONFIRMATION_NAMES = (
	(TransactionConfirmationStatus.Processed, "processed"),
	(TransactionConfirmationStatus.Confirmed, "confirmed"),
	(TransactionConfirmationStatus.Finalized, "finalized"),
)

# Which observed statuses satisfy a requested commitment
SATISFIES = {
	"processed": {"processed", "confirmed", "finalized"},
	"confirmed": {"confirmed", "finalized"},
	"finalized": {"finalized"},
}


class SolanaChainAdapter:
	"""
	The "connection" the mint pipeline talks to
	"""

	def __init__(
		self,
		client: Client | None = None,
		rpc_url: str | None = None,
		commitment: str = "confirmed",
		confirm_timeout: float = 60,
		poll_interval: float = 1.0,
		max_attempts: int = 3,
		backoff_seconds: float = 0.5,
	):
		self.commitment = Commitment(commitment)
		self.client = client or Client(rpc_url, commitment=self.commitment)
		self.confirm_timeout = confirm_timeout
		self.poll_interval = poll_interval
		self.max_attempts = max(1, int(max_attempts))
		self.backoff_seconds = backoff_seconds

	@classmethod
	def from_settings(cls, client: Client | None = None):
		return cls(
			client=client,
			rpc_url=settings.SOLANA_RPC_URL,
			commitment=settings.SOLANA_COMMITMENT,
			confirm_timeout=settings.MINT_CONFIRM_TIMEOUT_SECONDS,
			max_attempts=settings.UPSTREAM_MAX_ATTEMPTS,
			backoff_seconds=settings.UPSTREAM_BACKOFF_SECONDS,
		)

	# --- Reads ---------------------------------------------------------------

	def minimum_balance_for_mint(self) -> int:
		"""
		Lamports needed to make a new mint account rent-exempt at the current rate
		"""
		resp = self._rpc("getMinimumBalanceForRentExemption", self.client.get_minimum_balance_for_rent_exemption, MINT_SIZE)
		return int(resp.value)

	def latest_blockhash(self):
		"""
		Returns (blockhash, last_valid_block_height)
		"""
		resp = self._rpc("getLatestBlockhash", self.client.get_latest_blockhash, Commitment("finalized"))
		return resp.value.blockhash, resp.value.last_valid_block_height

	def block_height(self) -> int:
		return int(self._rpc("getBlockHeight", self.client.get_block_height).value)

	def signature_status(self, signature: str) -> dict | None:
		"""
		{"err": ..., "confirmation_status": "processed"|"confirmed"|"finalized"|None},
		or None when the network does not know the signature
		"""
		resp = self._rpc(
			"getSignatureStatuses",
			self.client.get_signature_statuses,
			[Signature.from_string(signature)],
			True,
		)
		status = resp.value[0] if resp.value else None
		if status is None:
			return None
		return {
			"err": status.err,
			"confirmation_status": next((name for member, name in CONFIRMATION_NAMES if member == status.confirmation_status), None),
		}

	def wallet_token_accounts(self, owner: str) -> list[dict]:
		"""
		Parsed SPL token accounts owned by a wallet: [{"mint", "amount", "ui_amount", "decimals"}]
		"""
		resp = self._rpc(
			"getTokenAccountsByOwner",
			self.client.get_token_accounts_by_owner_json_parsed,
			Pubkey.from_string(owner),
			TokenAccountOpts(program_id=TOKEN_PROGRAM_ID),
		)
		out = []
		for keyed in resp.value:
			parsed = keyed.account.data.parsed
			info = (parsed or {}).get("info") or {}
			amount = info.get("tokenAmount") or {}
			if not info.get("mint"):
				continue
			out.append(dict(
				mint=info["mint"],
				amount=amount.get("amount", "0"),
				ui_amount=amount.get("uiAmountString") or "0",
				decimals=int(amount.get("decimals", 0)),
			))
		return out

	# --- Writes --------------------------------------------------------------

	def send_raw_transaction(self, raw: bytes, signature: str) -> str:
		"""
		Broadcast a fully signed transaction.

		A preflight rejection means nothing landed (MintFailed); a transport error
		after handing the bytes over leaves the outcome unknown.
		"""
		try:
			resp = self.client.send_raw_transaction(raw, opts=TxOpts(preflight_commitment=self.commitment))
		except RPCException as e:
			logger.error("Transaction %s rejected by RPC node: %s", signature, e)
			raise MintFailed("Transaction rejected by the network", signature=signature, reason=str(e)) from e
		except SolanaRpcException as e:
			logger.error("Transport error broadcasting %s: %s", signature, e)
			raise MintOutcomeUnknown("Lost contact with the RPC node while submitting", signature=signature) from e
		return str(resp.value)

	def confirm(self, signature: str, last_valid_block_height: int | None = None):
		"""
		Poll until the signature reaches our commitment level.

		Returns the on-chain error (None on success). Raises MintOutcomeUnknown on
		timeout, blockhash expiry without a status, or RPC failure.
		"""
		deadline = time.monotonic() + self.confirm_timeout
		wanted = SATISFIES.get(str(self.commitment), SATISFIES["confirmed"])
		while True:
			try:
				status = self.signature_status(signature)
			except UpstreamError as e:
				raise MintOutcomeUnknown("Could not confirm transaction", signature=signature) from e

			if status is not None:
				if status["err"] is not None:
					return status["err"]
				if status["confirmation_status"] in wanted:
					return None
			elif last_valid_block_height is not None:
				try:
					expired = self.block_height() > last_valid_block_height
				except UpstreamError:
					expired = False
				if expired:
					raise MintOutcomeUnknown("Blockhash expired before the transaction was seen", signature=signature)

			if time.monotonic() >= deadline:
				raise MintOutcomeUnknown(f"Confirmation timed out after {self.confirm_timeout:g}s", signature=signature)
			time.sleep(self.poll_interval)

	# --- Helpers -------------------------------------------------------------

	def _rpc(self, op_name: str, fn, *args):
		attempt = 0
		while True:
			attempt += 1
			try:
				return fn(*args)
			except RPCException as e:
				logger.error("Solana %s error: %s", op_name, e)
				raise UpstreamError(f"Solana RPC error in {op_name}") from e
			except SolanaRpcException as e:
				if attempt >= self.max_attempts:
					raise UpstreamError(f"Solana RPC unreachable during {op_name}") from e
				logger.warning("Solana %s transport error (attempt %d/%d): %s", op_name, attempt, self.max_attempts, e)
			time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
