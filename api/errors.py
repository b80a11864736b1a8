"""Map application errors to JSON error responses."""

import logging

from django.conf import settings
from django.http import JsonResponse

from core.exceptions import ConfigurationError, SolStableError, UpstreamError

logger = logging.getLogger(__name__)

SANDBOX_HINT = (
	"Plaid sandbox: choose any test institution and sign in with "
	"username 'user_good' and password 'pass_good'."
)


def error_response(exc: SolStableError, route: str, status: int = 500, **extra) -> JsonResponse:
	"""
	500 by default; the body always carries ``error`` and ``error_type``
	"""
	logger.error("%s failed (%s): %s", route, exc.error_type, exc.message)
	if isinstance(exc, ConfigurationError):
		body = {"error": f"Service misconfigured: {exc.message}"}
	else:
		body = {"error": exc.message or "Request failed"}
	body["error_type"] = exc.error_type
	if isinstance(exc, UpstreamError):
		if exc.code:
			body["error_code"] = exc.code
		if settings.PLAID_ENV == "sandbox":
			body["hint"] = SANDBOX_HINT
	body.update(extra)
	return JsonResponse(body, status=status)


def bad_request(exc) -> JsonResponse:
	return JsonResponse({"error": "Invalid request body", "details": exc.details}, status=400)
