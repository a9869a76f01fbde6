"""Storefront FastAPI application.

Processes cart and order requests synchronously, each inside the storefront
domain context.

Usage:
    uvicorn storefront.api.app:create_app --factory --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.errors import register_error_handlers, request_context_middleware
from storefront.api.routes import cart_router, order_router
from storefront.domain import storefront


def create_app(init_domain: bool = True) -> FastAPI:
    """Build the API. ``init_domain=False`` skips domain initialization (tests do it themselves)."""
    if init_domain:
        storefront.init()

    app = FastAPI(
        title="Storefront API",
        description="Shopping cart, checkout and order management",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context for each request."""
        with storefront.domain_context():
            return await call_next(request)

    app.middleware("http")(request_context_middleware)

    register_error_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": storefront.name})

    return app
