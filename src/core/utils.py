from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_associated_token_account,
    transfer_checked,
)

from core.config import AirdropConfig
from core.errors import AlreadyClaimedError, InvalidWalletAddressError, TransactionFailedError

ACCOUNT_IN_USE_MARKER = "already in use"


def get_solana_client(rpc_url: str) -> AsyncClient:
    """Get the RPC client, confirming at the `confirmed` commitment level"""
    return AsyncClient(rpc_url, commitment=Confirmed)


def parse_wallet_address(wallet_address: str) -> Pubkey:
    """
    Parse a base58 wallet address.

    :raises InvalidWalletAddressError: The string is not a valid Solana address
    """
    try:
        return Pubkey.from_string(wallet_address)
    except ValueError:
        raise InvalidWalletAddressError(detail=f"Invalid wallet address: {wallet_address!r}") from None


async def get_token_balance(client: AsyncClient, token_account: Pubkey) -> int:
    """
    Get the balance of a token account in base units.
    """
    resp = await client.get_token_account_balance(token_account)
    return int(resp.value.amount)


async def token_account_exists(client: AsyncClient, token_account: Pubkey) -> bool:
    resp = await client.get_account_info(token_account)
    return resp.value is not None


def build_airdrop_instructions(
    config: AirdropConfig,
    recipient: Pubkey,
    sender_token_account: Pubkey,
    recipient_token_account: Pubkey,
    create_recipient_account: bool,
) -> list[Instruction]:
    """
    Build the instructions of one airdrop transaction.

    :param config: The airdrop configuration
    :param recipient: The wallet that will own the received tokens
    :param sender_token_account: The sender's associated token account
    :param recipient_token_account: The recipient's associated token account
    :param create_recipient_account: Prepend the creation of the recipient token account

    :return: The ordered instructions, account creation first
    """
    sender = config.sender.pubkey()
    instructions = []
    if create_recipient_account:
        instructions.append(
            create_associated_token_account(payer=sender, owner=recipient, mint=config.token_mint)
        )

    # transfer_checked makes the token program reject a decimals mismatch with the mint
    instructions.append(
        transfer_checked(
            TransferCheckedParams(
                program_id=TOKEN_PROGRAM_ID,
                source=sender_token_account,
                mint=config.token_mint,
                dest=recipient_token_account,
                owner=sender,
                amount=config.amount_in_base_units,
                decimals=config.decimals,
            )
        )
    )
    return instructions


def _is_account_in_use(exc: RPCException) -> bool:
    messages = [str(exc)]
    if exc.args:
        data = getattr(exc.args[0], "data", None)
        messages.extend(getattr(data, "logs", None) or [])
    return any(ACCOUNT_IN_USE_MARKER in message for message in messages)


async def submit_transaction(client: AsyncClient, instructions: list[Instruction], payer: Keypair) -> str:
    """
    Sign the instructions with the payer, send them and wait for confirmation.

    :param client: The RPC client
    :param instructions: The instructions of the transaction
    :param payer: Fee payer and only signer

    :return: The transaction signature
    :raises AlreadyClaimedError: The recipient token account was created in the meantime
    :raises TransactionFailedError: The transaction was confirmed with an error
    """
    latest = (await client.get_latest_blockhash(Confirmed)).value
    message = Message.new_with_blockhash(instructions, payer.pubkey(), latest.blockhash)
    transaction = Transaction([payer], message, latest.blockhash)

    try:
        resp = await client.send_transaction(
            transaction, opts=TxOpts(skip_confirmation=True, preflight_commitment=Confirmed)
        )
    except RPCException as exc:
        if _is_account_in_use(exc):
            raise AlreadyClaimedError(detail=str(exc)) from exc
        raise

    signature = resp.value
    logger.info(f"Sent transaction {signature}, waiting for confirmation...")
    confirmation = await client.confirm_transaction(
        signature, Confirmed, last_valid_block_height=latest.last_valid_block_height
    )
    status = confirmation.value[0]
    if status is not None and status.err is not None:
        raise TransactionFailedError(message=f"Transaction {signature} failed: {status.err}")
    return str(signature)
