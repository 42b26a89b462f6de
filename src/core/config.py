from dataclasses import dataclass, field

from cryptography.fernet import InvalidToken
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core.credentials import KeyEncoding, decrypt_secret, parse_sender_keypair
from core.errors import ConfigurationError

DEFAULT_TOKEN_AMOUNT = 25000
# 18 decimals is already beyond any real mint
MAX_TOKEN_DECIMALS = 18
# the token program stores amounts as u64
MAX_BASE_UNITS = 2**64 - 1


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sender_private_key: SecretStr | None = None
    sender_key_encoding: KeyEncoding = KeyEncoding.BASE58
    sender_key_encrypted: bool = False
    token_mint_address: str | None = None
    rpc_url: str | None = None
    token_amount: int = DEFAULT_TOKEN_AMOUNT
    token_decimals: int = 9
    token_symbol: str = "DUCK"

    airdrop_rate_limit: str = "10/minute"
    log_level: str = "INFO"
    # Prompted for at launch when the sender key is encrypted
    password: str | None = Field(default=None, repr=False)


setting = Settings()


@dataclass(frozen=True)
class AirdropConfig:
    """Validated, read-only configuration handed to every airdrop request."""

    sender: Keypair = field(repr=False)
    token_mint: Pubkey
    rpc_url: str
    amount: int = DEFAULT_TOKEN_AMOUNT
    decimals: int = 9
    symbol: str = "DUCK"

    @property
    def amount_in_base_units(self) -> int:
        return self.amount * 10**self.decimals


def load_airdrop_config(settings: Settings) -> AirdropConfig:
    """
    Validate the settings and build the airdrop configuration.

    :param settings: The process settings
    :return: The airdrop configuration
    :raises ConfigurationError: A required value is missing or malformed
    :raises SenderKeyFormatError: The sender key cannot be decoded
    """
    required = {
        "SENDER_PRIVATE_KEY": settings.sender_private_key.get_secret_value() if settings.sender_private_key else None,
        "TOKEN_MINT_ADDRESS": settings.token_mint_address,
        "RPC_URL": settings.rpc_url,
    }
    missing = [name for name, value in required.items() if not value or not value.strip()]
    if missing:
        raise ConfigurationError(detail=f"Missing environment variables: {', '.join(missing)}")

    try:
        token_mint = Pubkey.from_string(settings.token_mint_address.strip())
    except ValueError:
        raise ConfigurationError(detail=f"TOKEN_MINT_ADDRESS is not a valid address: {settings.token_mint_address}")

    rpc_url = settings.rpc_url.strip()
    if not rpc_url.startswith(("http://", "https://")):
        raise ConfigurationError(detail=f"RPC_URL must be an http(s) URL: {rpc_url}")

    if settings.token_amount <= 0:
        raise ConfigurationError(detail=f"TOKEN_AMOUNT must be positive, got {settings.token_amount}")
    if not 0 <= settings.token_decimals <= MAX_TOKEN_DECIMALS:
        raise ConfigurationError(
            detail=f"TOKEN_DECIMALS must be between 0 and {MAX_TOKEN_DECIMALS}, got {settings.token_decimals}"
        )
    base_units = settings.token_amount * 10**settings.token_decimals
    if base_units > MAX_BASE_UNITS:
        raise ConfigurationError(
            detail=f"TOKEN_AMOUNT {settings.token_amount} with {settings.token_decimals} decimals is {base_units} "
            f"base units, more than a token account can hold"
        )

    raw_key = required["SENDER_PRIVATE_KEY"]
    if settings.sender_key_encrypted:
        if settings.password is None:
            raise ConfigurationError(detail="SENDER_KEY_ENCRYPTED is set but no password was provided")
        try:
            raw_key = decrypt_secret(raw_key, settings.password)
        except InvalidToken:
            raise ConfigurationError(detail="Failed to decrypt SENDER_PRIVATE_KEY with the provided password")

    return AirdropConfig(
        sender=parse_sender_keypair(raw_key, settings.sender_key_encoding),
        token_mint=token_mint,
        rpc_url=rpc_url,
        amount=settings.token_amount,
        decimals=settings.token_decimals,
        symbol=settings.token_symbol,
    )
