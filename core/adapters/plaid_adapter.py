"""Adapter over the Plaid API client.

The gateway is constructed explicitly with credentials (validated up front) and
returns plain dicts so services never touch SDK models. Every Plaid failure is
translated into ConfigurationError or UpstreamError here.
"""

import json
import logging
import time

import plaid
import urllib3
from django.conf import settings
from plaid.api import plaid_api
from plaid.model.accounts_balance_get_request import AccountsBalanceGetRequest
from plaid.model.accounts_balance_get_request_options import AccountsBalanceGetRequestOptions
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.institutions_get_request import InstitutionsGetRequest
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products

from core.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

PLAID_HOSTS = {
	"sandbox": plaid.Environment.Sandbox,
	"production": plaid.Environment.Production,
}

# Plaid error codes that mean our own credentials/environment are wrong
CONFIGURATION_ERROR_CODES = {
	"INVALID_API_KEYS",
	"UNAUTHORIZED_ENVIRONMENT",
	"MISSING_CLIENT_ID",
	"MISSING_SECRET",
	"INVALID_CLIENT_ID",
}


def mask_secret(value: str | None, keep: int = 5) -> str:
	if not value:
		return ""
	return value[:keep] + "..."


class PlaidGateway:
	"""
	Thin wrapper around plaid_api.PlaidApi with bounded retry on transient errors
	"""

	def __init__(
		self,
		client_id: str,
		secret: str,
		environment: str = "sandbox",
		client_name: str = "SolStable",
		products=("auth",),
		country_codes=("US",),
		max_attempts: int = 3,
		backoff_seconds: float = 0.5,
		api=None,
	):
		client_id = (client_id or "").strip()
		secret = (secret or "").strip()
		if not client_id or not secret:
			raise ConfigurationError("Banking service configuration is missing")
		if environment not in PLAID_HOSTS:
			raise ConfigurationError(f"Unknown Plaid environment: {environment}")

		self.environment = environment
		self.client_name = client_name
		self.products = list(products)
		self.country_codes = list(country_codes)
		self.max_attempts = max(1, int(max_attempts))
		self.backoff_seconds = backoff_seconds

		if api is None:
			configuration = plaid.Configuration(
				host=PLAID_HOSTS[environment],
				api_key={"clientId": client_id, "secret": secret},
			)
			api = plaid_api.PlaidApi(plaid.ApiClient(configuration))
		self.api = api

	@classmethod
	def from_settings(cls, api=None):
		return cls(
			client_id=settings.PLAID_CLIENT_ID,
			secret=settings.PLAID_SECRET,
			environment=settings.PLAID_ENV,
			client_name=settings.PLAID_CLIENT_NAME,
			products=settings.PLAID_PRODUCTS,
			country_codes=settings.PLAID_COUNTRY_CODES,
			max_attempts=settings.UPSTREAM_MAX_ATTEMPTS,
			backoff_seconds=settings.UPSTREAM_BACKOFF_SECONDS,
			api=api,
		)

	@property
	def is_sandbox(self) -> bool:
		return self.environment == "sandbox"

	# --- Calls ---------------------------------------------------------------

	def create_link_token(self, client_user_id: str) -> dict:
		"""
		Short-lived token that initializes one Plaid Link session
		"""
		request = LinkTokenCreateRequest(
			user=LinkTokenCreateRequestUser(client_user_id=client_user_id),
			client_name=self.client_name,
			products=[Products(p) for p in self.products],
			country_codes=[CountryCode(c) for c in self.country_codes],
			language="en",
		)
		data = self._call("link_token_create", self.api.link_token_create, request)
		if not data.get("link_token"):
			raise UpstreamError("Invalid link token response")
		logger.info("Link token created: %s", mask_secret(data["link_token"], 10))
		return data

	def exchange_public_token(self, public_token: str) -> dict:
		request = ItemPublicTokenExchangeRequest(public_token=public_token)
		data = self._call("item_public_token_exchange", self.api.item_public_token_exchange, request)
		logger.info("Exchanged public token for access token %s", mask_secret(data.get("access_token")))
		return data

	def get_item(self, access_token: str) -> dict:
		data = self._call("item_get", self.api.item_get, ItemGetRequest(access_token=access_token))
		return data.get("item") or {}

	def get_institution_name(self, institution_id: str) -> str | None:
		request = InstitutionsGetByIdRequest(
			institution_id=institution_id,
			country_codes=[CountryCode(c) for c in self.country_codes],
		)
		data = self._call("institutions_get_by_id", self.api.institutions_get_by_id, request)
		return (data.get("institution") or {}).get("name")

	def get_accounts(self, access_token: str) -> list[dict]:
		data = self._call("accounts_get", self.api.accounts_get, AccountsGetRequest(access_token=access_token))
		return data.get("accounts") or []

	def get_balances(self, access_token: str, account_id: str) -> dict:
		"""
		Live balance for one account; returns the Plaid ``balances`` object as a dict
		"""
		request = AccountsBalanceGetRequest(
			access_token=access_token,
			options=AccountsBalanceGetRequestOptions(account_ids=[account_id]),
		)
		data = self._call("accounts_balance_get", self.api.accounts_balance_get, request)
		accounts = data.get("accounts") or []
		if not accounts:
			raise UpstreamError("Balance response contained no accounts")
		return accounts[0].get("balances") or {}

	def list_institutions(self, count: int = 1) -> dict:
		request = InstitutionsGetRequest(
			count=count,
			offset=0,
			country_codes=[CountryCode(c) for c in self.country_codes],
		)
		return self._call("institutions_get", self.api.institutions_get, request)

	# --- Helpers -------------------------------------------------------------

	def _call(self, op_name: str, fn, request) -> dict:
		attempt = 0
		while True:
			attempt += 1
			try:
				response = fn(request)
				return response.to_dict() if hasattr(response, "to_dict") else dict(response)
			except plaid.ApiException as e:
				err = self._translate(op_name, e)
				if isinstance(err, ConfigurationError) or not self._transient(e) or attempt >= self.max_attempts:
					raise err from e
				logger.warning("Plaid %s failed with HTTP %s (attempt %d/%d), retrying", op_name, e.status, attempt, self.max_attempts)
			except urllib3.exceptions.HTTPError as e:
				if attempt >= self.max_attempts:
					raise UpstreamError(f"Plaid {op_name} unreachable: {e}") from e
				logger.warning("Plaid %s transport error (attempt %d/%d): %s", op_name, attempt, self.max_attempts, e)
			time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))

	@staticmethod
	def _transient(e) -> bool:
		status = e.status or 0
		return status == 429 or status >= 500

	@staticmethod
	def _translate(op_name: str, e):
		try:
			body = json.loads(e.body) if e.body else {}
		except (TypeError, ValueError):
			body = {}
		code = body.get("error_code")
		message = body.get("error_message") or body.get("error_type") or str(e.reason or "Plaid request failed")
		logger.error("Plaid %s error: status=%s code=%s type=%s", op_name, e.status, code, body.get("error_type"))
		if code in CONFIGURATION_ERROR_CODES:
			return ConfigurationError(f"Plaid API Error: {message}", error_code=code)
		return UpstreamError(
			f"Plaid API Error: {message}",
			code=code,
			plaid_error_type=body.get("error_type"),
			status=e.status,
		)
