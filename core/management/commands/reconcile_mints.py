"""Resolve pending mint records by polling their transaction signatures."""

from django.core.management.base import BaseCommand

from core.services import chain_adapter, reconcile_pending_mints


class Command(BaseCommand):
	help = "Poll pending mints by signature and mark them completed or failed"

	def add_arguments(self, parser):
		parser.add_argument("--grace-seconds", type=int, default=None,
			help="How long an unknown signature stays pending before it is marked failed")

	def handle(self, *args, **opts):
		counts = reconcile_pending_mints(chain_adapter(), grace_seconds=opts["grace_seconds"])
		self.stdout.write(
			f"completed={counts['completed']} failed={counts['failed']} pending={counts['pending']}"
		)
