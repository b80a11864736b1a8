"""Operational endpoints that move the flow forward (link, exchange, record mint)."""

import logging

from django.http import JsonResponse, HttpResponseBadRequest
from django.middleware.csrf import get_token

from core.exceptions import BalanceExceeded, SolStableError
from core.models import MintStatus
from core.services import MintRecorder, bank_link_service
from .errors import bad_request, error_response
from .forms import ExchangeTokenForm, InvalidBody, RecordMintForm, WalletAddressForm, validate_body

logger = logging.getLogger(__name__)


def health(request):
	return JsonResponse({"ok": True})


def csrf(request):
	# sets the csrftoken cookie for the dashboard frontend
	return JsonResponse({"csrftoken": get_token(request)})


def create_link_token(request):
	"""
	POST {walletAddress}: Plaid Link token for this wallet
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = validate_body(request, WalletAddressForm)
	except InvalidBody as e:
		return bad_request(e)

	try:
		data = bank_link_service().request_link_handle(body["walletAddress"])
	except SolStableError as e:
		return error_response(e, "create-link-token")
	return JsonResponse({
		"link_token": data["link_token"],
		"expiration": str(data.get("expiration") or ""),
	})


def exchange_token(request):
	"""
	POST {walletAddress, publicToken}: finish linking and return the account snapshot
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = validate_body(request, ExchangeTokenForm)
	except InvalidBody as e:
		return bad_request(e)

	try:
		snapshot = bank_link_service().complete_link(body["walletAddress"], body["publicToken"])
	except SolStableError as e:
		return error_response(e, "exchange-token", success=False)

	logger.info("Sending bank account data for %s: %s", body["walletAddress"], snapshot)
	return JsonResponse({"success": True, "bankAccount": snapshot})


def record_mint(request):
	"""
	POST {walletAddress, tokenAddress, amount, transactionId?}: completed mint audit row
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = validate_body(request, RecordMintForm)
	except InvalidBody as e:
		return bad_request(e)

	try:
		MintRecorder().record_mint(
			body["walletAddress"],
			body["tokenAddress"],
			body["amount"],
			status=MintStatus.COMPLETED,
			transaction_id=body.get("transactionId") or None,
		)
	except BalanceExceeded as e:
		return error_response(e, "record-mint", status=400, availableBalance=e.details.get("available_balance"))
	except SolStableError as e:
		return error_response(e, "record-mint")
	return JsonResponse({"success": True})
