"""Wallet session manager.

The wallet itself is an injected provider capability (a browser extension
bridge, or a local keypair for server-side and CLI use) exposing::

    connect() -> public key
    disconnect()
    sign_transaction(tx) -> tx

WalletSession turns connect/disconnect into explicit state transitions and
replaces event listeners with callbacks that are always unregistered on close().
"""

import json
import logging
from pathlib import Path

from solders.keypair import Keypair

logger = logging.getLogger(__name__)


class SignatureDeclined(Exception):
	pass


class KeypairWalletProvider:
	"""
	Provider backed by a local keypair. ``approve`` may veto a signature request.
	"""

	def __init__(self, keypair: Keypair, approve=None):
		self.keypair = keypair
		self.approve = approve
		self.connected = False

	@classmethod
	def from_file(cls, path, approve=None):
		"""
		Load a Solana CLI keypair file (JSON array of 64 ints)
		"""
		secret = json.loads(Path(path).read_text())
		return cls(Keypair.from_bytes(bytes(secret)), approve=approve)

	@property
	def public_key(self):
		return self.keypair.pubkey()

	def connect(self):
		self.connected = True
		return self.keypair.pubkey()

	def disconnect(self):
		self.connected = False

	def sign_transaction(self, tx):
		if not self.connected:
			raise SignatureDeclined("Wallet not connected")
		if self.approve is not None and not self.approve(tx):
			raise SignatureDeclined("Transaction was not approved by the wallet")
		tx.partial_sign([self.keypair], tx.message.recent_blockhash)
		return tx


class WalletSession:

	def __init__(self, provider):
		self.provider = provider
		self.public_key = None
		self.connected = False
		self.connecting = False
		self.connection_error = None
		self._callbacks = []

	def subscribe(self, callback):
		"""
		callback(event, public_key) on "connect" / "disconnect"; returns an unsubscribe function
		"""
		self._callbacks.append(callback)

		def unsubscribe():
			if callback in self._callbacks:
				self._callbacks.remove(callback)

		return unsubscribe

	def connect(self):
		if self.connected:
			return self.public_key
		self.connecting = True
		self.connection_error = None
		try:
			self.public_key = self.provider.connect()
		except Exception as e:
			self.connection_error = str(e) or "Failed to connect wallet"
			logger.warning("Wallet connection failed: %s", self.connection_error)
			raise
		finally:
			self.connecting = False
		self.connected = True
		logger.info("Wallet connected: %s", self.public_key)
		self._emit("connect")
		return self.public_key

	def disconnect(self):
		if not self.connected:
			return
		self.provider.disconnect()
		self.connected = False
		self.public_key = None
		logger.info("Wallet disconnected")
		self._emit("disconnect")

	@property
	def address(self) -> str | None:
		return str(self.public_key) if self.public_key is not None else None

	def sign_transaction(self, tx):
		if not self.connected:
			raise SignatureDeclined("Wallet not connected")
		return self.provider.sign_transaction(tx)

	def close(self):
		self.disconnect()
		self._callbacks.clear()

	def __enter__(self):
		return self

	def __exit__(self, *exc):
		self.close()
		return False

	def _emit(self, event: str):
		for cb in list(self._callbacks):
			cb(event, self.public_key)
