"""Token form data, the bank verification gate and the creation wizard.

All of this is transient, per-session state: nothing here touches the database.
The gate only authorizes a supply against the snapshot it was given; the wizard
routes the user back to the supply step instead of clamping silently.
"""

import enum
import re
from dataclasses import dataclass, replace
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError

from .constants import parse_supply, supply_to_base_units, to_balance

SYMBOL_RE = re.compile(r"^[A-Z0-9]+$")
ADDRESS_RE = re.compile(r"^[A-Za-z0-9]{32,44}$")


class MintAuthority(str, enum.Enum):
	RETAIN = "retain"
	TRANSFER = "transfer"


@dataclass(frozen=True)
class TokenFormData:
	name: str
	symbol: str
	supply: str
	decimals: int = 6
	description: str = ""
	mint_authority: MintAuthority = MintAuthority.RETAIN
	recipient_address: str = ""
	freeze_authority: bool = False

	def errors(self) -> dict:
		"""
		Field name → message for every invalid field
		"""
		errors = {}
		if not self.name.strip():
			errors["name"] = "Token name is required"
		elif len(self.name) > 50:
			errors["name"] = "Token name must be less than 50 characters"

		if not self.symbol.strip():
			errors["symbol"] = "Token symbol is required"
		elif len(self.symbol) > 10:
			errors["symbol"] = "Token symbol must be less than 10 characters"
		elif not SYMBOL_RE.match(self.symbol):
			errors["symbol"] = "Token symbol must contain only uppercase letters and numbers"

		decimals_ok = isinstance(self.decimals, int) and 0 <= self.decimals <= settings.MAX_TOKEN_DECIMALS
		if not decimals_ok:
			errors["decimals"] = f"Decimals must be between 0 and {settings.MAX_TOKEN_DECIMALS}"

		if not str(self.supply).strip():
			errors["supply"] = "Token supply is required"
		else:
			try:
				if parse_supply(self.supply) <= 0:
					errors["supply"] = "Supply must be greater than 0"
				elif decimals_ok:
					supply_to_base_units(self.supply, self.decimals)
			except ValidationError as e:
				errors["supply"] = e.messages[0]

		if self.recipient_address.strip() and not ADDRESS_RE.match(self.recipient_address.strip()):
			errors["recipient_address"] = "Invalid Solana address format"

		if self.mint_authority not in (MintAuthority.RETAIN, MintAuthority.TRANSFER):
			errors["mint_authority"] = "Mint authority must be 'retain' or 'transfer'"
		return errors

	def validate(self):
		errors = self.errors()
		if errors:
			raise ValidationError(errors)

	@property
	def supply_amount(self) -> Decimal:
		return parse_supply(self.supply)


class GateState(str, enum.Enum):
	UNVERIFIED = "unverified"
	VERIFYING = "verifying"
	VERIFIED = "verified"


class VerificationGate:
	"""
	unverified → verifying (link handle requested) → verified (link completed)
	"""

	def __init__(self):
		self.state = GateState.UNVERIFIED
		self.snapshot = None

	def begin(self):
		self.state = GateState.VERIFYING
		self.snapshot = None

	def complete(self, snapshot: dict):
		if self.state != GateState.VERIFYING:
			raise ValidationError("Bank verification was not started")
		if to_balance(snapshot.get("availableBalance")) is None:
			raise ValidationError("Bank snapshot has no available balance")
		self.snapshot = dict(snapshot)
		self.state = GateState.VERIFIED

	def reset(self):
		self.state = GateState.UNVERIFIED
		self.snapshot = None

	@property
	def verified(self) -> bool:
		return self.state == GateState.VERIFIED

	@property
	def available_balance(self) -> Decimal | None:
		if not self.verified:
			return None
		return to_balance(self.snapshot["availableBalance"])

	def can_proceed(self, requested_supply) -> bool:
		"""
		requested supply ≤ available balance; False until verified
		"""
		if not self.verified:
			return False
		try:
			return parse_supply(requested_supply) <= self.available_balance
		except ValidationError:
			return False


class WizardStep(enum.IntEnum):
	DETAILS = 1
	SUPPLY = 2
	BANK = 3
	RECIPIENT = 4
	REVIEW = 5


class TokenWizard:
	"""
	Five-step creation flow over a TokenFormData and a VerificationGate
	"""

	def __init__(self, form: TokenFormData, gate: VerificationGate | None = None):
		self.form = form
		self.gate = gate or VerificationGate()
		self.step = WizardStep.DETAILS
		self.errors = {}

	def update(self, **fields):
		self.form = replace(self.form, **fields)

	def next_step(self) -> WizardStep:
		"""
		Validate the current step and advance; stays put (or goes back to SUPPLY) on failure
		"""
		errors = self.form.errors()
		if self.step == WizardStep.DETAILS:
			self.errors = {k: v for k, v in errors.items() if k in ("name", "symbol")}
		elif self.step == WizardStep.SUPPLY:
			self.errors = {k: v for k, v in errors.items() if k in ("supply", "decimals")}
		elif self.step == WizardStep.BANK:
			self.errors = self._bank_errors()
			if "supply" in self.errors:
				self.step = WizardStep.SUPPLY
				return self.step
		elif self.step == WizardStep.RECIPIENT:
			self.errors = {k: v for k, v in errors.items() if k in ("recipient_address", "mint_authority")}
		else:
			self.errors = {}
			return self.step

		if not self.errors:
			self.step = WizardStep(self.step + 1)
		return self.step

	def prev_step(self) -> WizardStep:
		if self.step > WizardStep.DETAILS:
			self.step = WizardStep(self.step - 1)
		return self.step

	def use_max(self):
		"""
		Explicit user action: set the supply to the verified available balance
		"""
		if not self.gate.verified:
			raise ValidationError("Bank verification required")
		self.update(supply=str(self.gate.available_balance))

	def submit(self) -> TokenFormData:
		"""
		Final check before minting; routes back to the failing step
		"""
		if not self.gate.verified:
			self.step = WizardStep.BANK
			raise ValidationError("Please connect and verify your bank account before creating a stablecoin.")
		if not self.gate.can_proceed(self.form.supply):
			self.step = WizardStep.SUPPLY
			raise ValidationError(f"You can only mint up to {self.gate.available_balance} tokens based on your available balance.")
		self.form.validate()
		return self.form

	def _bank_errors(self) -> dict:
		if not self.gate.verified:
			return {"bank": "Please complete the bank verification process to proceed."}
		if not self.gate.can_proceed(self.form.supply):
			return {"supply": f"You can only mint up to {self.gate.available_balance} tokens based on your available balance."}
		return {}
