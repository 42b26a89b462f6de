import base64
import hashlib
import json
from enum import Enum

import base58
from cryptography.fernet import Fernet
from solders.keypair import Keypair

from core.errors import SenderKeyFormatError

# ed25519 secret key followed by its public key
SECRET_KEY_LENGTH = 64


class KeyEncoding(str, Enum):
    """How SENDER_PRIVATE_KEY is written down."""

    BASE58 = "base58"
    JSON_ARRAY = "json_array"


def _decode_json_array(raw: str) -> bytes:
    values = json.loads(raw)
    if not isinstance(values, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in values
    ):
        raise ValueError("expected a JSON array of integers")
    # bytes() rejects values outside 0..255
    return bytes(values)


def parse_sender_keypair(raw: str, encoding: KeyEncoding) -> Keypair:
    """
    Build the sender keypair from its configured representation.

    :param raw: The secret key as base58 text or as a JSON array of byte values
    :param encoding: Which of the two representations `raw` uses

    :return: The sender keypair
    :raises SenderKeyFormatError: The key could not be decoded or has the wrong length
    """
    try:
        if encoding is KeyEncoding.JSON_ARRAY:
            secret = _decode_json_array(raw)
        else:
            secret = base58.b58decode(raw.strip())
        if len(secret) != SECRET_KEY_LENGTH:
            raise ValueError(f"expected {SECRET_KEY_LENGTH} bytes, got {len(secret)}")
        return Keypair.from_bytes(secret)
    except (ValueError, TypeError) as exc:
        # only the exception type is kept, its text may quote key characters
        raise SenderKeyFormatError(
            detail=f"Error parsing sender private key ({encoding.value}): {type(exc).__name__}"
        ) from None


def _fernet(password: str) -> Fernet:
    # Derive a key from the password
    key = hashlib.sha256(password.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(key))


def encrypt_secret(secret: str, password: str) -> str:
    """Encrypt the sender key so it can be stored in the environment at rest."""
    return _fernet(password).encrypt(secret.encode("utf-8")).decode("utf-8")


def decrypt_secret(cipher_text: str, password: str) -> str:
    """Raises cryptography.fernet.InvalidToken when the password is wrong."""
    return _fernet(password).decrypt(cipher_text.encode("utf-8")).decode("utf-8")
