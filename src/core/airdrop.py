from dataclasses import dataclass

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from core.config import AirdropConfig
from core.errors import InsufficientTokenBalanceError
from core.utils import (
    build_airdrop_instructions,
    get_token_balance,
    submit_transaction,
    token_account_exists,
)


@dataclass
class AirdropResult:
    signature: str
    amount: int
    instruction_count: int
    created_recipient_account: bool


async def perform_airdrop(client: AsyncClient, config: AirdropConfig, recipient: Pubkey) -> AirdropResult:
    """
    Transfer the configured amount of tokens from the sender to the recipient.

    The recipient token account is created in the same transaction when it does
    not exist yet. Every RPC call is made once, there are no retries.

    :param client: The RPC client
    :param config: The airdrop configuration
    :param recipient: The recipient wallet

    :return: The confirmed airdrop
    :raises InsufficientTokenBalanceError: The sender holds less than one airdrop
    """
    sender = config.sender.pubkey()
    sender_token_account = get_associated_token_address(owner=sender, mint=config.token_mint)
    recipient_token_account = get_associated_token_address(owner=recipient, mint=config.token_mint)

    balance = await get_token_balance(client, sender_token_account)
    if balance < config.amount_in_base_units:
        raise InsufficientTokenBalanceError(
            detail=f"Sender token account {sender_token_account} holds {balance}, "
            f"needs {config.amount_in_base_units}"
        )

    # A failed lookup counts as a missing account, the create instruction then fails on chain if it was wrong
    try:
        has_token_account = await token_account_exists(client, recipient_token_account)
    except Exception as exc:
        logger.warning(f"Error checking recipient token account {recipient_token_account}: {exc}")
        has_token_account = False

    instructions = build_airdrop_instructions(
        config,
        recipient,
        sender_token_account,
        recipient_token_account,
        create_recipient_account=not has_token_account,
    )
    logger.info(
        f"Sending {config.amount} {config.symbol} ({config.amount_in_base_units} base units) to {recipient} "
        f"in {len(instructions)} instruction(s)..."
    )
    signature = await submit_transaction(client, instructions, config.sender)
    logger.info(f"Airdrop successful: {signature}")

    return AirdropResult(
        signature=signature,
        amount=config.amount,
        instruction_count=len(instructions),
        created_recipient_account=not has_token_account,
    )
