import uuid

import httpx
import pytest

from app import app
from core.get_current_user import get_current_user
from core.get_db import get_db_async
from factories import make_user, refetch
from models.enums import UserRole
from models.models import User
from routes.faq_chat_routes import get_faq_chat_service
from services.faq_chat_service import FaqChatService

pytestmark = pytest.mark.unit


@pytest.fixture
async def client(db, session_factory):
    user = await refetch(db, User, await make_user(db, role=UserRole.USER))

    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_async] = override_db
    app.dependency_overrides[get_current_user] = lambda: user

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


async def test_health(client):
    res = await client.get("/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


async def test_marketplace_errors_are_json(client):
    res = await client.post(
        "/v2/reservations/initialize", json={"property_id": str(uuid.uuid4())}
    )

    assert res.status_code == 404
    assert res.json() == {
        "success": False,
        "category": "not_found",
        "error": "Property not found",
    }


async def test_validation_errors_are_json(client):
    res = await client.post("/v2/reservations/initialize", json={})

    assert res.status_code == 422
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"


async def test_status_without_reservation(client):
    res = await client.get(f"/v2/reservations/status/{uuid.uuid4()}")

    assert res.status_code == 200
    assert res.json()["has_reservation"] is False


async def test_admin_only_chat_listing(client):
    res = await client.get("/v2/chats/admin/all")

    assert res.status_code == 403
    assert res.json()["category"] == "forbidden"


@pytest.fixture
def faq_service(text_generator):
    service = FaqChatService(text_generator=text_generator)
    app.dependency_overrides[get_faq_chat_service] = lambda: service
    return service


async def test_faq_chat(client, faq_service):
    res = await client.post(
        "/v2/chat", json={"messages": [{"role": "user", "content": "Where do you operate?"}]}
    )

    assert res.status_code == 200
    assert res.json() == {"message": "It has three bedrooms and a pool.", "role": "assistant"}


async def test_faq_chat_rejects_bad_messages(client, faq_service):
    res = await client.post("/v2/chat", json={"messages": "hello"})

    assert res.status_code == 400
    assert res.json()["error"] == "Invalid messages format"
