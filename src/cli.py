import click
import requests
from core.config import load_airdrop_config, setting
from core.credentials import encrypt_secret
from core.errors import AirdropError

@click.group()
def cli():
    pass

@cli.command()
@click.option('--private-key', type=str, prompt="Sender private key", hide_input=True, help='Sender private key, base58 or JSON array')
@click.option('--password', type=str, prompt="Password to encrypt the private key", hide_input=True,
              confirmation_prompt=True, help='Password for the cipher text')
def encrypt_sender_key(private_key: str, password: str):
    """Encrypt the sender private key so it can be stored in the environment."""
    cipher_text = encrypt_secret(private_key, password)

    print(f"SENDER_PRIVATE_KEY={cipher_text}")
    print("SENDER_KEY_ENCRYPTED=true")

    return cipher_text

@cli.command()
def show_config():
    """Load the airdrop configuration and print it, without the private key."""
    if setting.sender_key_encrypted and setting.password is None:
        setting.password = click.prompt("Sender key password", hide_input=True)

    try:
        config = load_airdrop_config(setting)
    except AirdropError as exc:
        raise click.ClickException(f"{exc.message}: {exc.detail}")

    print(f"Sender: {config.sender.pubkey()}")
    print(f"Token mint: {config.token_mint}")
    print(f"Amount: {config.amount} {config.symbol} ({config.amount_in_base_units} base units, {config.decimals} decimals)")
    print(f"RPC URL: {config.rpc_url}")

@cli.command()
@click.option('--wallet-address', type=str, prompt="Wallet address", help='Recipient wallet address')
@click.option('--server-url', type=str, default="http://localhost:8000", help='Airdrop server URL')
def airdrop(wallet_address: str, server_url: str):
    """Request an airdrop from a running server."""
    response = requests.post(
        f"{server_url}/api/airdrop",
        json={"walletAddress": wallet_address},
    )
    print(response.json())

if __name__ == "__main__":
    cli()
