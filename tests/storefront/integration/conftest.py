import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from storefront.api.errors import register_error_handlers
from storefront.api.routes import cart_router, order_router


def build_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    return app


@pytest.fixture()
def app():
    return build_app()


@pytest.fixture()
def client(app):
    return TestClient(app)
