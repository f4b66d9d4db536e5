"""REST API for submitting transactions to a pool and reading its state."""

import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from zkpool.config import get_settings
from zkpool.core.addresses import derive_nullifier_address
from zkpool.core.state import unpack_state
from zkpool.exceptions import (
    MixerProgramError,
    NullifierAlreadyUsedError,
    SignatureError,
    ZKPoolException,
)
from zkpool.models.schemas import (
    ErrorResponse,
    HealthResponse,
    LatestRootResponse,
    NullifierStatusResponse,
    PoolStateResponse,
    TransactionRequest,
    TransactionResponse,
)
from zkpool.runtime.executor import Runtime, build_runtime
from zkpool.runtime.transaction import AccountMeta, Transaction
from zkpool.utils.encoding import bytes_to_hex, ensure_hash32, hex_to_bytes

# Configure logging
logger = logging.getLogger(__name__)


def create_app(runtime: Runtime) -> FastAPI:
    """Build the API around an existing runtime."""
    app = FastAPI(
        title="zkpool REST API",
        description="Fixed-denomination privacy pool",
        version="0.1.0",
    )
    processor = runtime.processor

    # Custom exception handler for validation errors - convert 422 to 400
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert Pydantic validation errors (422) to 400 Bad Request."""
        error_messages = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            error_messages.append(f"{field}: {error['msg']}")
        return JSONResponse(status_code=400, content={"detail": "; ".join(error_messages)})

    def load_pool_state():
        data = runtime.ledger.read_data(processor.state_address)
        if not data:
            raise HTTPException(status_code=404, detail="Pool is not initialized")
        return unpack_state(data)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check():
        """Check service health and status."""
        return HealthResponse(status="operational")

    @app.get("/pool", response_model=PoolStateResponse, tags=["Pool"])
    def get_pool():
        """Get current pool state."""
        state = load_pool_state()
        return PoolStateResponse(
            state_address=bytes_to_hex(processor.state_address),
            vault_address=bytes_to_hex(processor.vault_address),
            denomination=state.denomination,
            current_root_index=state.current_root_index,
            latest_root=bytes_to_hex(state.history.latest_root()),
            known_roots=[bytes_to_hex(root) for root in state.history.known_roots()],
            vault_balance=runtime.ledger.balance(processor.vault_address),
        )

    @app.get("/pool/roots/latest", response_model=LatestRootResponse, tags=["Pool"])
    def get_latest_root():
        """Get the most recently pushed root."""
        state = load_pool_state()
        return LatestRootResponse(
            root=bytes_to_hex(state.history.latest_root()),
            current_root_index=state.current_root_index,
        )

    @app.get("/nullifiers/{nullifier_hash}", response_model=NullifierStatusResponse, tags=["Pool"])
    def get_nullifier(nullifier_hash: str):
        """Check whether a nullifier hash has been spent."""
        try:
            nullifier = ensure_hash32(nullifier_hash, "nullifier_hash")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid input: {e}")

        registry = processor.registry_for(runtime.ledger)
        return NullifierStatusResponse(
            nullifier_hash=bytes_to_hex(nullifier),
            marker_address=bytes_to_hex(derive_nullifier_address(processor.program_id, nullifier)),
            spent=registry.is_spent(nullifier),
        )

    @app.post(
        "/transactions",
        response_model=TransactionResponse,
        responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Transactions"],
    )
    def submit_transaction(request: TransactionRequest):
        """
        Submit one signed mixer or system Transfer instruction.

        Program errors are returned as 400 (409 for a spent nullifier) with
        the numeric error code in the body.
        """
        try:
            transaction = Transaction(
                program_id=ensure_hash32(request.program_id, "program_id"),
                accounts=[
                    AccountMeta(
                        address=ensure_hash32(meta.address, "address"),
                        is_signer=meta.is_signer,
                        is_writable=meta.is_writable,
                    )
                    for meta in request.accounts
                ],
                data=hex_to_bytes(request.data),
                signatures={
                    ensure_hash32(address, "signer"): hex_to_bytes(signature)
                    for address, signature in request.signatures.items()
                },
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid input: {e}")

        try:
            receipt = runtime.send_transaction(transaction)
        except NullifierAlreadyUsedError as e:
            return JSONResponse(status_code=409, content=e.to_dict())
        except MixerProgramError as e:
            logger.info(f"Transaction rejected: {e.code.name}: {e}")
            return JSONResponse(status_code=400, content=e.to_dict())
        except SignatureError as e:
            raise HTTPException(status_code=401, detail=str(e))
        except ZKPoolException as e:
            raise HTTPException(status_code=400, detail=f"Transaction failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected transaction error: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Transaction failed due to unexpected error")

        return TransactionResponse(
            signature=bytes_to_hex(receipt.signature),
            instruction=receipt.instruction,
            timestamp=receipt.timestamp,
        )

    return app


def create_default_app() -> FastAPI:
    """App factory for ``uvicorn zkpool.api.routes:create_default_app --factory``."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    return create_app(build_runtime(settings))
