import asyncio
import os
from types import SimpleNamespace

# Settings are read when app.py is imported, before any test runs
os.environ.setdefault("AIRDROP_RATE_LIMIT", "1000/minute")

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core.config import AirdropConfig


class FakeSolanaClient:
    """Stands in for solana.rpc.async_api.AsyncClient and records every call."""

    def __init__(self, balance=10**18, recipient_has_account=False, account_info_error=None,
                 send_error=None, confirmation_err=None, confirmation_gate=None):
        self.balance = balance
        self.recipient_has_account = recipient_has_account
        self.account_info_error = account_info_error
        self.send_error = send_error
        self.confirmation_err = confirmation_err
        # confirm_transaction waits on this event when set
        self.confirmation_gate = confirmation_gate
        self.calls = []
        self.sent = []

    async def get_token_account_balance(self, pubkey, commitment=None):
        self.calls.append(("get_token_account_balance", pubkey))
        await asyncio.sleep(0)
        return SimpleNamespace(value=SimpleNamespace(amount=str(self.balance)))

    async def get_account_info(self, pubkey, commitment=None, encoding="base64", data_slice=None):
        self.calls.append(("get_account_info", pubkey))
        await asyncio.sleep(0)
        if self.account_info_error is not None:
            raise self.account_info_error
        return SimpleNamespace(value=SimpleNamespace(lamports=2039280) if self.recipient_has_account else None)

    async def get_latest_blockhash(self, commitment=None):
        self.calls.append(("get_latest_blockhash", commitment))
        await asyncio.sleep(0)
        return SimpleNamespace(value=SimpleNamespace(blockhash=Hash.new_unique(), last_valid_block_height=1000))

    async def send_transaction(self, txn, opts=None):
        self.calls.append(("send_transaction", txn))
        self.sent.append(txn)
        await asyncio.sleep(0)
        if self.send_error is not None:
            raise self.send_error
        return SimpleNamespace(value=txn.signatures[0])

    async def confirm_transaction(self, tx_sig, commitment=None, sleep_seconds=0.5, last_valid_block_height=None):
        self.calls.append(("confirm_transaction", tx_sig))
        await asyncio.sleep(0)
        if self.confirmation_gate is not None:
            await self.confirmation_gate.wait()
        return SimpleNamespace(value=[SimpleNamespace(err=self.confirmation_err)])

    def called(self, name):
        return [args for call, args in self.calls if call == name]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sender_keypair():
    return Keypair()


@pytest.fixture
def airdrop_config(sender_keypair):
    return AirdropConfig(
        sender=sender_keypair,
        token_mint=Pubkey.new_unique(),
        rpc_url="http://localhost:8899",
    )


@pytest.fixture
def recipient_address():
    return str(Keypair().pubkey())


@pytest.fixture
def fake_client():
    return FakeSolanaClient()
