"""Request body validation for the JSON endpoints."""

import json
from decimal import Decimal

from django import forms
from django.core.exceptions import ValidationError


class WalletAddressForm(forms.Form):
	# approximate base58 public key length
	walletAddress = forms.CharField(min_length=32, max_length=44)


class ExchangeTokenForm(WalletAddressForm):
	publicToken = forms.CharField()


class RecordMintForm(WalletAddressForm):
	tokenAddress = forms.CharField(min_length=32, max_length=44)
	# same bounds as StablecoinMint.amount_minted
	amount = forms.DecimalField(max_digits=12, decimal_places=2)
	transactionId = forms.CharField(required=False, max_length=88)

	def clean_amount(self):
		amount = self.cleaned_data["amount"]
		if amount <= Decimal("0"):
			raise ValidationError("Amount must be a positive number")
		return amount


class InvalidBody(ValidationError):
	"""
	Malformed request body; ``details`` maps field → [{"message", "code"}]
	"""

	def __init__(self, details: dict):
		super().__init__("Invalid request body")
		self.details = details


def parse_json(request) -> dict:
	try:
		body = json.loads(request.body or b"{}")
	except (ValueError, UnicodeDecodeError):
		raise InvalidBody({"__all__": [{"message": "Invalid JSON", "code": "invalid"}]})
	if not isinstance(body, dict):
		raise InvalidBody({"__all__": [{"message": "Expected a JSON object", "code": "invalid"}]})
	return body


def validate_body(request, form_class) -> dict:
	"""
	cleaned_data for a JSON body, or InvalidBody carrying the field errors
	"""
	form = form_class(data=parse_json(request))
	if not form.is_valid():
		raise InvalidBody(form.errors.get_json_data())
	return form.cleaned_data
