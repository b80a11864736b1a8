"""Public API surface.

- /plaid/create-link-token, /plaid/exchange-token: bank linking
- /plaid/account-info: linked account with a live balance
- /plaid/record-mint, /plaid/mint-history: mint audit trail
- /plaid/debug: credential check
- /solana/wallet-tokens: SPL holdings of a wallet
"""

from django.urls import path
from .views_ops import health, csrf, create_link_token, exchange_token, record_mint
from .views_read import account_info, mint_history, wallet_tokens, plaid_debug


urlpatterns = [
	path("health", health),
	path("csrf", csrf),
	path("plaid/create-link-token", create_link_token),
	path("plaid/exchange-token", exchange_token),
	path("plaid/account-info", account_info),
	path("plaid/record-mint", record_mint),
	path("plaid/mint-history", mint_history),
	path("plaid/debug", plaid_debug),
	path("solana/wallet-tokens", wallet_tokens),
]
