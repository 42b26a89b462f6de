import getpass
import os
import sys
import time
import traceback
import uuid
from contextlib import asynccontextmanager

from cryptography.fernet import InvalidToken
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from solana.rpc.async_api import AsyncClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.airdrop import perform_airdrop
from core.config import AirdropConfig, load_airdrop_config, setting
from core.credentials import decrypt_secret
from core.errors import AirdropError, ConfigurationError, InvalidRequestBodyError, MissingWalletAddressError
from core.utils import get_solana_client, parse_wallet_address
from schema import AirdropRequest, AirdropResponse, ErrorResponse

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Validate the configuration once, the handler reports a failure on every request
    app.state.airdrop_config = None
    app.state.config_error = None
    app.state.solana_client = None
    try:
        config = load_airdrop_config(setting)
    except AirdropError as exc:
        logger.error(f"Invalid airdrop configuration: {exc.detail or exc.message}")
        app.state.config_error = exc
    else:
        app.state.airdrop_config = config
        app.state.solana_client = get_solana_client(config.rpc_url)
        logger.info(
            f"Airdropping {config.amount} {config.symbol} (mint {config.token_mint}, "
            f"{config.decimals} decimals) from {config.sender.pubkey()} via {config.rpc_url}"
        )

    yield

    if app.state.solana_client is not None:
        await app.state.solana_client.close()


# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)

# Initialize FastAPI app
app = FastAPI(
    title="Token Airdrop API",
    description="Sends a fixed amount of an SPL token to a wallet",
    version="1.0.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AirdropError)
async def airdrop_error_handler(request: Request, exc: AirdropError):
    request_id = getattr(request.state, "request_id", "-")
    if exc.status_code >= 500:
        logger.error(f"Airdrop failed {request_id}: {exc.detail or exc.message}")
    else:
        logger.warning(f"Airdrop rejected {request_id}: {exc.message} {exc.detail or ''}".rstrip())
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return await airdrop_error_handler(request, InvalidRequestBodyError(detail=str(exc.errors())))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


# Middleware for request logging
@app.middleware("http")
async def log_request(request: Request, call_next):
    # Record request time for monitoring
    start_time = time.time()
    request_id = str(uuid.uuid4())

    # Add request_id to request state for logging
    request.state.request_id = request_id

    # Log the incoming request
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"Request {request_id}: {request.method} {request.url.path} from {client_host}")

    try:
        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Response {request_id}: Status {response.status_code}, "
            f"Completed in {process_time:.3f}s"
        )

        # Add request ID to response headers for tracing
        response.headers["X-Request-ID"] = request_id

        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"Error {request_id}: {str(e)}, "
            f"Occurred after {process_time:.3f}s"
        )
        raise


def get_client(request: Request) -> AsyncClient | None:
    return getattr(request.app.state, "solana_client", None)


def get_airdrop_config(request: Request) -> AirdropConfig:
    config = getattr(request.app.state, "airdrop_config", None)
    if config is not None:
        return config
    error = getattr(request.app.state, "config_error", None)
    if error is None:
        raise ConfigurationError(detail="Airdrop configuration was not loaded")
    raise type(error)(detail=error.detail)


error_responses = {
    400: {"model": ErrorResponse},
    405: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# API endpoints
@app.post("/api/airdrop", response_model=AirdropResponse, responses=error_responses)
@limiter.limit(setting.airdrop_rate_limit)  # Rate limiting
async def airdrop(
    request: Request,
    airdrop_request: AirdropRequest | None = None,
    client: AsyncClient | None = Depends(get_client),
):
    """Send the configured token amount to a wallet"""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    wallet_address = airdrop_request.wallet_address if airdrop_request else None
    if not wallet_address:
        raise MissingWalletAddressError()
    recipient = parse_wallet_address(wallet_address)

    try:
        config = get_airdrop_config(request)
        logger.info(f"Processing airdrop {request_id} to {recipient}")
        result = await perform_airdrop(client, config, recipient)
    except AirdropError:
        raise
    except Exception as exc:
        logger.error(
            f"Unhandled exception performing airdrop {request_id}: {exc}\n{traceback.format_exc()}"
        )
        raise AirdropError(message=str(exc) or None) from exc

    return AirdropResponse(
        success=True,
        signature=result.signature,
        amount=result.amount,
        message=f"Successfully airdropped {result.amount} {config.symbol} tokens",
    )


if __name__ == "__main__":
    logger.remove()
    logger.add(sys.stderr, level=setting.log_level.upper())

    if setting.sender_key_encrypted and setting.sender_private_key is not None:
        password = getpass.getpass(prompt="Please enter the sender key password: ")
        try:
            decrypt_secret(setting.sender_private_key.get_secret_value(), password)
            logger.info("Password is correct. Successfully decrypted the sender key")
        except InvalidToken:
            logger.error("Failed to decrypt the sender key: wrong password")
            sys.exit(1)
        setting.password = password

    # Launch the FastAPI app
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("app:app", host="0.0.0.0", port=port, reload=False)
