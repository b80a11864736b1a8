"""Mint a bank-backed SPL token from the command line.

The keypair file acts as the wallet. The linked bank balance is re-read live
right before the transaction is built, so the supply ceiling is current.
"""

import json
from dataclasses import asdict

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from core.exceptions import MintOutcomeUnknown, SolStableError
from core.minting import TokenMintPipeline
from core.services import MintRecorder, bank_link_service, chain_adapter
from core.verification import MintAuthority, TokenFormData, TokenWizard, VerificationGate
from core.wallet import KeypairWalletProvider, WalletSession


class Command(BaseCommand):
	help = "Create an SPL token whose supply is bounded by the wallet's verified bank balance"

	def add_arguments(self, parser):
		parser.add_argument("--keypair", required=True, help="Solana CLI keypair file of the payer wallet")
		parser.add_argument("--name", required=True)
		parser.add_argument("--symbol", required=True)
		parser.add_argument("--supply", required=True)
		parser.add_argument("--decimals", type=int, default=6)
		parser.add_argument("--description", default="")
		parser.add_argument("--recipient", default="")
		parser.add_argument("--transfer-mint-authority", action="store_true")
		parser.add_argument("--freeze-authority", action="store_true")

	def handle(self, *args, **opts):
		form = TokenFormData(
			name=opts["name"],
			symbol=opts["symbol"],
			supply=opts["supply"],
			decimals=opts["decimals"],
			description=opts["description"],
			mint_authority=MintAuthority.TRANSFER if opts["transfer_mint_authority"] else MintAuthority.RETAIN,
			recipient_address=opts["recipient"],
			freeze_authority=opts["freeze_authority"],
		)

		with WalletSession(KeypairWalletProvider.from_file(opts["keypair"])) as session:
			session.connect()
			wallet = session.address
			try:
				account = bank_link_service().get_linked_account(wallet)
				if account is None:
					raise CommandError(f"No linked bank account found for {wallet}")

				gate = VerificationGate()
				gate.begin()
				gate.complete(account)
				form = TokenWizard(form, gate).submit()

				pipeline = TokenMintPipeline(chain_adapter(), MintRecorder())
				details = pipeline.mint(session.public_key, session, form, ceiling=gate.available_balance)
			except ValidationError as e:
				raise CommandError("; ".join(e.messages))
			except MintOutcomeUnknown as e:
				raise CommandError(f"{e.message}. Signature {e.signature} is pending; run reconcile_mints later.")
			except SolStableError as e:
				raise CommandError(e.message)

		self.stdout.write(json.dumps(asdict(details), indent=2))
