import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from app.middleware import RequestContextMiddleware, SecurityHeadersMiddleware


async def homepage(request: Request):
    return PlainTextResponse("OK")


def _app(*middleware) -> Starlette:
    test_app = Starlette(routes=[Route("/", homepage)])
    for cls, kwargs in middleware:
        test_app.add_middleware(cls, **kwargs)
    return test_app


async def _get(test_app: Starlette, headers: dict | None = None):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.get("/", headers=headers)


@pytest.mark.asyncio
async def test_security_headers_middleware():
    """SecurityHeadersMiddleware adds all security headers to responses."""
    response = await _get(_app((SecurityHeadersMiddleware, {"is_production": True})))

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "max-age=31536000" in response.headers["Strict-Transport-Security"]
    assert response.headers["Content-Security-Policy"] == "default-src 'none'; frame-ancestors 'none'"


@pytest.mark.asyncio
async def test_security_headers_no_hsts_in_dev():
    """HSTS is NOT added when is_production=False."""
    response = await _get(_app((SecurityHeadersMiddleware, {"is_production": False})))

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "Strict-Transport-Security" not in response.headers
    # CSP still present in dev
    assert "Content-Security-Policy" in response.headers


@pytest.mark.asyncio
async def test_request_id_is_echoed():
    response = await _get(_app((RequestContextMiddleware, {})), headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_unsafe_request_id_is_replaced():
    response = await _get(_app((RequestContextMiddleware, {})), headers={"X-Request-ID": "bad id;forged=1"})
    request_id = response.headers["X-Request-ID"]
    assert request_id != "bad id;forged=1"
    assert len(request_id) == 36


@pytest.mark.asyncio
async def test_request_id_generated_when_missing():
    response = await _get(_app((RequestContextMiddleware, {})))
    assert len(response.headers["X-Request-ID"]) == 36
