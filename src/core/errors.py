# Typed airdrop errors, each mapped to one HTTP response in app.py


class AirdropError(Exception):
    """Base error for the airdrop flow. `message` is safe to return to the caller."""

    status_code: int = 500
    message: str = "Internal server error during airdrop"

    def __init__(self, message: str | None = None, detail: str | None = None):
        if message is not None:
            self.message = message
        # detail is logged server-side only
        self.detail = detail
        super().__init__(detail or self.message)


class MissingWalletAddressError(AirdropError):
    status_code = 400
    message = "Wallet address is required"


class InvalidRequestBodyError(AirdropError):
    status_code = 400
    message = "Invalid request body"


class InvalidWalletAddressError(AirdropError):
    status_code = 400
    message = "Invalid wallet address format"


class InsufficientTokenBalanceError(AirdropError):
    status_code = 400
    message = "insufficient_token_balance"


class AlreadyClaimedError(AirdropError):
    """The recipient token account was created by a concurrent or earlier airdrop."""

    status_code = 400
    message = "already_claimed_or_has_balance"


class ConfigurationError(AirdropError):
    status_code = 500
    message = "Server configuration error"


class SenderKeyFormatError(AirdropError):
    status_code = 500
    message = "Invalid sender private key format"


class TransactionFailedError(AirdropError):
    """Submission reached the chain but the transaction did not confirm cleanly."""

    status_code = 500
