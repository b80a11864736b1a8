"""Database models for the dashboard.


Tables:
- Token: every SPL token created through the minting pipeline
- PlaidItem: one linked bank account per wallet address (upserted on re-link)
- MintStatus
- StablecoinMint: one row per minting attempt, for audit

Team-member accounts use django.contrib.auth's user table.
"""

from django.db import models


class Token(models.Model):
	"""
	A token type created by the pipeline. Lets token lists show names/symbols
	that the chain itself does not store.
	"""
	id = models.BigAutoField(primary_key=True)
	name = models.CharField(max_length=50)
	symbol = models.CharField(max_length=10)
	description = models.TextField(blank=True, default="")
	supply = models.CharField(max_length=64) # human units, as entered
	decimals = models.PositiveSmallIntegerField()
	mint_authority = models.CharField(max_length=44)
	freeze_authority = models.CharField(max_length=44, null=True, blank=True)
	token_address = models.CharField(max_length=44, unique=True)
	transaction_id = models.CharField(max_length=88)
	owner_address = models.CharField(max_length=44, db_index=True)
	created_at = models.DateTimeField(auto_now_add=True)


class PlaidItem(models.Model):
	"""
	A bank account linked through Plaid Link.

	wallet_address is unique: linking again replaces the previous item.
	"""
	id = models.BigAutoField(primary_key=True)
	wallet_address = models.CharField(max_length=44, unique=True)
	item_id = models.CharField(max_length=100, unique=True)
	access_token = models.CharField(max_length=200)
	institution_id = models.CharField(max_length=50, null=True, blank=True)
	institution_name = models.CharField(max_length=200, null=True, blank=True)
	account_id = models.CharField(max_length=100, null=True, blank=True)
	account_name = models.CharField(max_length=200, null=True, blank=True)
	account_mask = models.CharField(max_length=10, null=True, blank=True)
	current_balance = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
	available_balance = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
	last_updated = models.DateTimeField(auto_now=True)
	created_at = models.DateTimeField(auto_now_add=True)

	def snapshot(self):
		"""
		Sanitized account view; never includes the access token
		"""
		return {
			"institutionName": self.institution_name or "Your Bank",
			"accountName": self.account_name or "Bank Account",
			"accountMask": self.account_mask or "0000",
			"currentBalance": float(self.current_balance) if self.current_balance is not None else None,
			"availableBalance": float(self.available_balance) if self.available_balance is not None else None,
		}


class MintStatus(models.TextChoices):
	PENDING = "pending", "Pending"
	COMPLETED = "completed", "Completed"
	FAILED = "failed", "Failed"


class StablecoinMint(models.Model):
	"""
	Audit row for each minting attempt.

	amount_minted must not exceed the linked account's available balance at
	authorization time; that is checked by callers, not by the database.
	"""
	id = models.BigAutoField(primary_key=True)
	wallet_address = models.CharField(max_length=44, db_index=True)
	plaid_item = models.ForeignKey(PlaidItem, null=True, on_delete=models.PROTECT, related_name="mints")
	token_address = models.CharField(max_length=44)
	amount_minted = models.DecimalField(max_digits=12, decimal_places=2)
	status = models.CharField(max_length=16, choices=MintStatus.choices, default=MintStatus.PENDING)
	transaction_id = models.CharField(max_length=88, null=True, blank=True, db_index=True)
	created_at = models.DateTimeField(auto_now_add=True)
	completed_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ["created_at", "id"]

	def as_dict(self):
		return {
			"id": self.id,
			"wallet_address": self.wallet_address,
			"plaid_item_id": self.plaid_item_id,
			"token_address": self.token_address,
			"amount_minted": f"{self.amount_minted:.2f}",
			"status": self.status,
			"transaction_id": self.transaction_id,
			"created_at": self.created_at.isoformat(),
			"completed_at": self.completed_at.isoformat() if self.completed_at else None,
		}
