import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from evm_guard.api.routes import router
from evm_guard.firewall.config import FirewallConfig
from evm_guard.firewall.errors import FirewallError, UnknownReservationError
from evm_guard.firewall.pipeline import TransactionFirewall

logger = logging.getLogger("evm_guard.api")


def create_app(firewall: TransactionFirewall | None = None) -> FastAPI:
    """
    Build the API. Without an explicit firewall, one is configured from
    ``EVM_GUARD_*`` environment variables at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "firewall", None) is None:
            config = FirewallConfig.from_env()
            if config.payer_address is None:
                logger.warning("EVM_GUARD_PAYER_ADDRESS not set; spending limits will not be enforced.")
            owned = TransactionFirewall(config)
            app.state.firewall = owned

        yield

        if owned is not None:
            owned.close()
            app.state.firewall = None

    app = FastAPI(
        title="EVM Agent Guard - Transaction Firewall API",
        description="Pre-signing checks for autonomous agent transactions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.firewall = firewall

    # Allow CORS for easy dashboard integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(UnknownReservationError)
    async def unknown_reservation_handler(request: Request, exc: UnknownReservationError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(FirewallError)
    async def firewall_error_handler(request: Request, exc: FirewallError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.get("/health")
    async def health_check():
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
