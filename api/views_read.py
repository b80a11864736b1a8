"""Read endpoints: linked account, mint history, wallet tokens, Plaid diagnostics."""

from django.http import JsonResponse, HttpResponseBadRequest
from solders.pubkey import Pubkey

from core.adapters.plaid_adapter import PlaidGateway
from core.exceptions import SolStableError
from core.services import MintRecorder, bank_link_service, chain_adapter, list_wallet_tokens
from .errors import bad_request, error_response
from .forms import InvalidBody, WalletAddressForm, validate_body


def account_info(request):
	"""
	POST {walletAddress}: stored account with a live balance; 404 when none is linked
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = validate_body(request, WalletAddressForm)
	except InvalidBody as e:
		return bad_request(e)

	try:
		snapshot = bank_link_service().get_linked_account(body["walletAddress"])
	except SolStableError as e:
		return error_response(e, "account-info")

	if snapshot is None:
		return JsonResponse({"error": "No linked bank account found"}, status=404)
	return JsonResponse({"success": True, "bankAccount": snapshot})


def mint_history(request):
	"""
	POST {walletAddress}: mint audit rows, oldest first
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = validate_body(request, WalletAddressForm)
	except InvalidBody as e:
		return bad_request(e)

	try:
		rows = MintRecorder().history(body["walletAddress"])
	except SolStableError as e:
		return error_response(e, "mint-history")
	return JsonResponse({"success": True, "history": [r.as_dict() for r in rows]})


def wallet_tokens(request):
	"""
	POST {walletAddress}: non-empty SPL token holdings of the wallet
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = validate_body(request, WalletAddressForm)
	except InvalidBody as e:
		return bad_request(e)

	try:
		owner = str(Pubkey.from_string(body["walletAddress"]))
	except ValueError:
		return bad_request(InvalidBody({"walletAddress": [{"message": "Not a valid Solana address", "code": "invalid"}]}))

	try:
		tokens = list_wallet_tokens(chain_adapter(), owner)
	except SolStableError as e:
		return error_response(e, "wallet-tokens")
	return JsonResponse({"success": True, "tokens": tokens})


def plaid_debug(request):
	"""
	GET: check the Plaid credentials with a one-row institutions listing
	"""
	try:
		data = PlaidGateway.from_settings().list_institutions(count=1)
	except SolStableError as e:
		return JsonResponse({
			"success": False,
			"message": "Plaid API credentials test failed",
			"error": e.message,
			"error_type": e.error_type,
		}, status=500)
	return JsonResponse({
		"success": True,
		"message": "Plaid API credentials are working correctly",
		"institutions_count": len(data.get("institutions") or []),
		"total_institutions": data.get("total"),
	})
