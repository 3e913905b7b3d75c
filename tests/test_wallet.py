"""
Unit tests for keypair loading and wallet checks.
"""

import json
import sys
from pathlib import Path

import base58
import pytest
from solders.keypair import Keypair

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import FakeEndpoint
from swaptx.core.errors import ConfigError
from swaptx.trading.endpoints import EndpointPool
from swaptx.trading.wallet import WalletManager, keypair_from_secret, load_keypair


class TestKeypairLoading:
    """Test secret key formats."""

    def test_json_byte_array(self):
        keypair = Keypair()
        secret = json.dumps(list(bytes(keypair)))

        assert keypair_from_secret(secret).pubkey() == keypair.pubkey()

    def test_base58(self):
        keypair = Keypair()
        secret = base58.b58encode(bytes(keypair)).decode()

        assert keypair_from_secret(secret).pubkey() == keypair.pubkey()

    def test_seed(self):
        seed = bytes(range(32))
        secret = base58.b58encode(seed).decode()

        assert keypair_from_secret(secret).pubkey() == Keypair.from_seed(seed).pubkey()

    @pytest.mark.parametrize("secret", ["[1, 2, 3]", "not-base58-0OIl", "[\"a\"]"])
    def test_invalid(self, secret):
        with pytest.raises(ConfigError):
            keypair_from_secret(secret)

    def test_error_does_not_leak_secret(self):
        secret = json.dumps(list(range(10)))

        with pytest.raises(ConfigError) as exc:
            keypair_from_secret(secret)

        assert secret not in str(exc.value)

    def test_load_from_env(self, monkeypatch):
        keypair = Keypair()
        monkeypatch.setenv("PRIVATE_KEY", json.dumps(list(bytes(keypair))))

        assert load_keypair().pubkey() == keypair.pubkey()

    def test_missing_env(self, monkeypatch):
        monkeypatch.delenv("PRIVATE_KEY", raising=False)

        with pytest.raises(ConfigError):
            load_keypair()


class TestWalletManager:
    """Test wallet checks against fake endpoints."""

    def test_verify_address(self):
        keypair = Keypair()
        wallet = WalletManager(keypair, EndpointPool([FakeEndpoint("rpc1")]))

        assert wallet.verify_address(None) == (True, None)
        assert wallet.verify_address(str(keypair.pubkey())) == (True, None)
        matches, error = wallet.verify_address(str(Keypair().pubkey()))
        assert not matches
        assert "mismatch" in error

    def test_balance_in_sol(self):
        wallet = WalletManager(Keypair(), EndpointPool([FakeEndpoint("rpc1", balance=1_500_000_000)]))

        assert wallet.get_balance() == 1.5

    def test_balance_unavailable(self):
        pool = EndpointPool([FakeEndpoint("rpc1", balance=ConnectionError("down"))])

        assert WalletManager(Keypair(), pool).get_balance() is None

    def test_token_balance(self):
        pool = EndpointPool([FakeEndpoint("rpc1", token_balance=2_500_000)])

        assert WalletManager(Keypair(), pool).get_token_balance("mint", 6) == 2.5

    def test_no_token_account_is_zero(self):
        pool = EndpointPool([FakeEndpoint("rpc1", token_balance=None)])

        assert WalletManager(Keypair(), pool).get_token_balance("mint", 6) == 0.0
