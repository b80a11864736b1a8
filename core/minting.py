"""SPL token minting pipeline.

One atomic transaction creates the mint account, initializes it, creates the
recipient's associated token account, mints the initial supply and, when asked,
hands mint authority to the recipient:

    fresh mint key → rent → instructions → blockhash → mint key signs
    → wallet signs → broadcast → confirm → audit row

Nothing reaches the network until every signature is present. Before broadcast
the audit row is opened as pending under the transaction signature, and only
moved to completed/failed when the outcome is observed.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import CreateAccountParams, create_account
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
	AuthorityType,
	InitializeMintParams,
	MintToParams,
	SetAuthorityParams,
	create_associated_token_account,
	get_associated_token_address,
	initialize_mint,
	mint_to,
	set_authority,
)

from .adapters.chain_adapter import MINT_SIZE, SolanaChainAdapter
from .constants import supply_to_base_units
from .exceptions import BalanceExceeded, MintFailed, PersistenceError
from .models import MintStatus
from .verification import MintAuthority, TokenFormData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenDetails:
	token_address: str
	mint_authority: str
	freeze_authority: str | None
	supply: str
	decimals: int
	transaction_id: str


def resolve_recipient(address: str | None, payer: Pubkey) -> Pubkey:
	"""
	Parse the recipient; anything empty or unparsable means the payer
	"""
	if not address or not address.strip():
		return payer
	try:
		return Pubkey.from_string(address.strip())
	except ValueError:
		logger.warning("Invalid recipient address %r, using payer as recipient", address)
		return payer


def build_instructions(payer: Pubkey, mint: Pubkey, recipient: Pubkey, form: TokenFormData, base_units: int, rent_lamports: int) -> list:
	"""
	Instructions in submission order. Mint authority starts with the payer.
	"""
	holding = get_associated_token_address(recipient, mint)
	instructions = [
		create_account(CreateAccountParams(
			from_pubkey=payer,
			to_pubkey=mint,
			lamports=rent_lamports,
			space=MINT_SIZE,
			owner=TOKEN_PROGRAM_ID,
		)),
		initialize_mint(InitializeMintParams(
			decimals=form.decimals,
			program_id=TOKEN_PROGRAM_ID,
			mint=mint,
			mint_authority=payer,
			freeze_authority=payer if form.freeze_authority else None,
		)),
		create_associated_token_account(payer, recipient, mint),
		mint_to(MintToParams(
			program_id=TOKEN_PROGRAM_ID,
			mint=mint,
			dest=holding,
			mint_authority=payer,
			amount=base_units,
		)),
	]
	if form.mint_authority == MintAuthority.TRANSFER and recipient != payer:
		instructions.append(set_authority(SetAuthorityParams(
			program_id=TOKEN_PROGRAM_ID,
			account=mint,
			authority=AuthorityType.MINT_TOKENS,
			current_authority=payer,
			new_authority=recipient,
		)))
	return instructions


class TokenMintPipeline:

	def __init__(self, chain: SolanaChainAdapter, recorder=None):
		self.chain = chain
		self.recorder = recorder

	def mint(self, payer, signer, form: TokenFormData, ceiling: Decimal | None = None, mint_keypair: Keypair | None = None) -> TokenDetails:
		"""
		Create the token and credit the initial supply.

		``signer`` is the wallet capability (``sign_transaction(tx) -> tx``).
		``ceiling`` re-checks the supply against a freshly read available balance.
		Raises ValidationError, BalanceExceeded (supply above the linked balance,
		before broadcast), MintFailed, UpstreamError or MintOutcomeUnknown.
		"""
		form.validate()
		if ceiling is not None and form.supply_amount > ceiling:
			raise ValidationError(f"You can only mint up to {ceiling} tokens based on your available balance.")

		payer = payer if isinstance(payer, Pubkey) else Pubkey.from_string(str(payer))
		base_units = supply_to_base_units(form.supply, form.decimals)
		mint_kp = mint_keypair or Keypair()
		mint = mint_kp.pubkey()
		recipient = resolve_recipient(form.recipient_address, payer)
		logger.info("Creating token %s (%s) mint=%s supply=%s decimals=%d", form.name, form.symbol, mint, form.supply, form.decimals)

		rent = self.chain.minimum_balance_for_mint()
		instructions = build_instructions(payer, mint, recipient, form, base_units, rent)
		blockhash, last_valid_block_height = self.chain.latest_blockhash()

		tx = Transaction.new_unsigned(Message.new_with_blockhash(instructions, payer, blockhash))
		tx.partial_sign([mint_kp], blockhash)
		try:
			signed = signer.sign_transaction(tx)
		except Exception as e:
			logger.warning("Wallet did not sign mint transaction: %s", e)
			raise MintFailed("Transaction was not approved by the wallet", reason=str(e)) from e
		if Signature.default() in signed.signatures:
			raise MintFailed("Transaction is missing required signatures")

		signature = str(signed.signatures[0])
		wallet_address = str(payer)
		# a balance rejection here aborts before anything is broadcast
		opened = None
		if self.recorder:
			try:
				opened = self.recorder.open_pending(wallet_address, str(mint), form.supply_amount, signature)
			except PersistenceError:
				logger.exception("Could not open pending audit row for %s; minting without it", signature)

		try:
			self.chain.send_raw_transaction(bytes(signed), signature)
		except MintFailed:
			self._best_effort(self.recorder and self.recorder.mark, signature, MintStatus.FAILED)
			raise
		logger.info("Transaction sent with signature %s", signature)

		err = self.chain.confirm(signature, last_valid_block_height)
		if err is not None:
			logger.error("Transaction %s confirmed with error: %s", signature, err)
			self._best_effort(self.recorder and self.recorder.mark, signature, MintStatus.FAILED)
			raise MintFailed(f"Transaction failed: {err}", signature=signature, reason=str(err))
		logger.info("Transaction %s confirmed", signature)

		if opened is not None:
			self._best_effort(self.recorder.mark, signature, MintStatus.COMPLETED)
		else:
			self._best_effort(self.recorder and self.recorder.record_mint, wallet_address, str(mint), form.supply_amount, MintStatus.COMPLETED, signature)

		details = TokenDetails(
			token_address=str(mint),
			mint_authority=str(recipient) if form.mint_authority == MintAuthority.TRANSFER and recipient != payer else str(payer),
			freeze_authority=str(payer) if form.freeze_authority else None,
			supply=form.supply,
			decimals=form.decimals,
			transaction_id=signature,
		)
		self._best_effort(self.recorder and self.recorder.record_token, details, form, wallet_address)
		return details

	@staticmethod
	def _best_effort(fn, *args):
		"""
		Audit writes never turn an on-chain outcome into an error
		"""
		if not fn:
			return None
		try:
			return fn(*args)
		except (PersistenceError, BalanceExceeded):
			logger.exception("Audit write %s failed; the on-chain result stands", getattr(fn, "__name__", fn))
			return None
