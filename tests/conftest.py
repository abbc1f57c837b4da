from collections.abc import AsyncIterator
from unittest.mock import Mock

import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient

from errorkit.codes import COMMON_ERRORS
from errorkit.exceptions import AppException, RpcError
from errorkit.integration import install
from errorkit.resolver import ExceptionResolver
from tests.factories import AUTH_ERRORS


@pytest.fixture
def logger() -> Mock:
    """Stand-in for the structlog logger; records warning/error calls."""
    return Mock(spec=["debug", "info", "warning", "error"])


@pytest.fixture
def resolver(logger: Mock) -> ExceptionResolver:
    return ExceptionResolver(logger)


def build_app(resolver: ExceptionResolver, *, is_production: bool = False) -> FastAPI:
    """App with one route per failure kind the resolver distinguishes."""
    app = FastAPI()
    install(app, resolver=resolver, is_production=is_production)

    @app.get("/items/{item_id}")
    async def get_item(item_id: int) -> dict[str, object]:
        return {"id": item_id, "name": "widget"}

    @app.get("/items")
    async def list_items() -> list[int]:
        return [1, 2, 3]

    @app.delete("/items/{item_id}", status_code=204)
    async def delete_item(item_id: int) -> None:
        return None

    @app.get("/users/{username}/register")
    async def register(username: str) -> None:
        raise AppException(AUTH_ERRORS.USERNAME_TAKEN, args=[username])

    @app.get("/auth/down")
    async def auth_down() -> None:
        raise AppException(AUTH_ERRORS.AUTH_SERVICE_DOWN, dev_message="ldap timeout")

    @app.get("/teapot")
    async def teapot() -> None:
        raise HTTPException(status_code=418, detail="I'm a teapot")

    @app.get("/forbidden")
    async def forbidden() -> None:
        raise HTTPException(status_code=403, detail={"message": ["no scope", "no role"]})

    @app.get("/crash")
    async def crash() -> None:
        raise RuntimeError("database pool exhausted")

    @app.get("/downstream")
    async def downstream() -> None:
        raise RpcError({"reason": "timeout"})

    @app.get("/missing")
    async def missing() -> None:
        raise AppException(COMMON_ERRORS.NOT_FOUND)

    return app


@pytest_asyncio.fixture
async def client(resolver: ExceptionResolver) -> AsyncIterator[AsyncClient]:
    """HTTP client for an app running outside production."""
    async with AsyncClient(
        transport=ASGITransport(app=build_app(resolver)),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def production_client(resolver: ExceptionResolver) -> AsyncIterator[AsyncClient]:
    """HTTP client for an app that hides devMessage."""
    async with AsyncClient(
        transport=ASGITransport(app=build_app(resolver, is_production=True)),
        base_url="http://test",
    ) as client:
        yield client
