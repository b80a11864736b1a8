"""Application error taxonomy.

Routes map each class to an HTTP status and an ``error_type`` string.
Request validation reuses django.core.exceptions.ValidationError.
"""


class SolStableError(Exception):
	error_type = "internal"

	def __init__(self, message: str = "", **details):
		super().__init__(message)
		self.message = message
		self.details = details


class ConfigurationError(SolStableError):
	"""
	Aggregator credentials missing or rejected. Not retryable.
	"""
	error_type = "configuration"


class UpstreamError(SolStableError):
	"""
	Plaid or Solana RPC failure. Retryable by user action.
	"""
	error_type = "upstream"

	def __init__(self, message: str = "", code: str | None = None, **details):
		super().__init__(message, **details)
		self.code = code


class MintOutcomeUnknown(UpstreamError):
	"""
	The transaction was broadcast but its confirmation could not be observed.
	It may or may not land; reconcile by signature before treating it as failed.
	"""
	error_type = "mint_unknown"

	def __init__(self, message: str, signature: str, **details):
		super().__init__(message, **details)
		self.signature = signature


class MintFailed(SolStableError):
	"""
	The wallet declined to sign, or the transaction confirmed with an on-chain error.
	In both cases no tokens were created.
	"""
	error_type = "mint_failed"

	def __init__(self, message: str, signature: str | None = None, reason=None):
		super().__init__(message)
		self.signature = signature
		self.reason = reason


class PersistenceError(SolStableError):
	error_type = "persistence"


class BalanceExceeded(SolStableError):
	"""
	A mint amount above the available balance captured on the wallet's BankLink
	"""
	error_type = "balance_exceeded"
