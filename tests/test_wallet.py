"""
Test suite for the wallet session manager
"""

import json

import pytest
from solders.keypair import Keypair

from core.wallet import KeypairWalletProvider, SignatureDeclined, WalletSession


class BrokenProvider:
    def connect(self):
        raise ConnectionError("User rejected the request")

    def disconnect(self):
        pass


class TestWalletSession:
    """Test connect/disconnect transitions and callbacks"""

    def test_connect_emits_event(self, payer):
        session = WalletSession(KeypairWalletProvider(payer))
        events = []
        session.subscribe(lambda event, key: events.append((event, key)))

        assert session.connect() == payer.pubkey()
        assert session.connected
        assert session.address == str(payer.pubkey())
        assert events == [("connect", payer.pubkey())]

    def test_connect_is_idempotent(self, payer):
        session = WalletSession(KeypairWalletProvider(payer))
        events = []
        session.subscribe(lambda event, key: events.append(event))
        session.connect()
        session.connect()
        assert events == ["connect"]

    def test_disconnect(self, payer):
        session = WalletSession(KeypairWalletProvider(payer))
        events = []
        session.subscribe(lambda event, key: events.append((event, key)))
        session.connect()
        session.disconnect()

        assert not session.connected
        assert session.address is None
        assert events[-1] == ("disconnect", None)

    def test_unsubscribe(self, payer):
        session = WalletSession(KeypairWalletProvider(payer))
        events = []
        unsubscribe = session.subscribe(lambda event, key: events.append(event))
        unsubscribe()
        unsubscribe()
        session.connect()
        assert events == []

    def test_close_drops_callbacks(self, payer):
        events = []
        with WalletSession(KeypairWalletProvider(payer)) as session:
            session.subscribe(lambda event, key: events.append(event))
            session.connect()
        assert events == ["connect", "disconnect"]
        assert session._callbacks == []

    def test_connection_error(self):
        session = WalletSession(BrokenProvider())
        with pytest.raises(ConnectionError):
            session.connect()
        assert session.connection_error == "User rejected the request"
        assert not session.connected
        assert not session.connecting

    def test_sign_requires_connection(self, payer):
        with pytest.raises(SignatureDeclined):
            WalletSession(KeypairWalletProvider(payer)).sign_transaction(object())


class TestKeypairWalletProvider:
    """Test the local keypair provider"""

    def test_from_file(self, tmp_path):
        kp = Keypair()
        path = tmp_path / "id.json"
        path.write_text(json.dumps(list(bytes(kp))))

        provider = KeypairWalletProvider.from_file(path)
        assert provider.public_key == kp.pubkey()

    def test_declined_by_approver(self, payer):
        provider = KeypairWalletProvider(payer, approve=lambda tx: False)
        provider.connect()
        with pytest.raises(SignatureDeclined, match="not approved"):
            provider.sign_transaction(object())
