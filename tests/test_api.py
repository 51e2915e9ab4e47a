"""
HTTP surface: routes, webhook authorization and error mapping.
"""
import hashlib
import hmac
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from stock_bridge.constants.sync import ConfigKey
from stock_bridge.core.exceptions import ConfigurationError
from stock_bridge.db.session import get_db
from stock_bridge.main import build_services, create_app
from stock_bridge.repositories import SyncLogRepository
from stock_bridge.schemas.sync_schemas import SchedulerStatus
from stock_bridge.schemas.tiny import TinyProduct
from stock_bridge.services.shopify import ShopifyOAuth
from stock_bridge.services.sync_service import SyncService
from tests.conftest import FakeSink, FakeSource, add_mapping, make_stock


class StubScheduler:
    def __init__(self):
        self.restarts = 0

    async def restart(self):
        self.restarts += 1

    def status(self):
        return SchedulerStatus(running=True, interval_minutes=180)


@pytest.fixture
def source():
    return FakeSource(
        pages=[[TinyProduct(id="p1", sku="A")]],
        stocks={"p1": make_stock("p1", "A", D1=5)},
    )


@pytest.fixture
def sink():
    return FakeSink(items={"A": "gid://shopify/InventoryItem/1"})


@pytest.fixture
def app(session_factory, test_settings, source, sink):
    app = create_app()
    build_services(app, session_factory, test_settings)
    app.state.sync_service = SyncService(
        source=source,
        sink=sink,
        session_factory=session_factory,
        audit=app.state.audit,
        config=app.state.config_service,
        settings=test_settings,
    )
    app.state.scheduler = StubScheduler()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def logs_of(session_factory, type_):
    with session_factory() as db:
        return [log for log in SyncLogRepository(db).list_logs() if log["type"] == type_]


# ==================== Mappings ====================

def test_mapping_crud(client):
    response = client.post("/api/mappings", json={
        "tiny_deposito_id": 10, "tiny_deposito_nome": "Main", "shopify_location_id": "gid://shopify/Location/5",
    })
    assert response.status_code == 200
    assert response.json()["mapping"]["tiny_deposito_id"] == "10"

    mappings = client.get("/api/mappings").json()["mappings"]
    assert [(m["tiny_deposito_id"], m["active"]) for m in mappings] == [("10", True)]

    assert client.delete("/api/mappings/10").json() == {"ok": True, "removed": True}
    assert client.delete("/api/mappings/10").json() == {"ok": True, "removed": False}
    assert client.get("/api/mappings").json()["mappings"] == []


def test_mapping_requires_ids(client):
    response = client.post("/api/mappings", json={"tiny_deposito_id": "", "shopify_location_id": "5"})
    assert response.status_code == 400


# ==================== Sync & status ====================

def test_full_sync_endpoint(client, session_factory, sink):
    add_mapping(session_factory, "D1", "L1")

    body = client.post("/api/sync/full").json()

    assert body["ok"] is True
    assert body["updated"] == 1
    assert body["trigger"] == "manual"
    assert sink.sets == [("gid://shopify/InventoryItem/1", "L1", 5, "correction")]

    status = client.get("/api/status").json()
    assert status["scheduler"]["interval_minutes"] == 180
    assert status["sync"]["state"] == "completed"
    assert status["sync"]["last_result"]["updated"] == 1


# ==================== Webhooks ====================

def test_stock_webhook_json(client, session_factory, sink):
    add_mapping(session_factory, "D1", "L1")

    response = client.post("/webhooks/tiny/stock", json={"dados": {"idDeposito": "D1", "sku": "A", "saldo": 9}})

    assert response.status_code == 200
    assert response.json()["result"]["status"] == "updated"
    assert sink.sets[-1] == ("gid://shopify/InventoryItem/1", "L1", 9, "correction")


def test_stock_webhook_form_with_embedded_json(client, session_factory, sink):
    add_mapping(session_factory, "D1", "L1")
    document = {"dados": {"idDeposito": "D1", "sku": "A", "saldo": "3"}}

    response = client.post("/webhooks/tiny/stock", data={"payload": json.dumps(document)})

    assert response.status_code == 200
    assert sink.sets[-1][2] == 3


def test_webhook_secret_enforced(client, config_service, session_factory, sink):
    """Test: With a secret configured, callers without it get 401 and nothing is pushed"""
    config_service.set(ConfigKey.TINY_WEBHOOK_SECRET, "s3cret")
    add_mapping(session_factory, "D1", "L1")
    payload = {"dados": {"idDeposito": "D1", "sku": "A", "saldo": 1}}

    denied = client.post("/webhooks/tiny/stock", json=payload)
    assert denied.status_code == 401
    assert denied.json() == {"ok": False, "error": "unauthorized"}
    assert sink.sets == []
    assert logs_of(session_factory, "webhook_stock")[0]["status"] == "unauthorized"

    assert client.post("/webhooks/tiny/stock", json=payload, headers={"x-webhook-secret": "s3cret"}).status_code == 200
    assert client.post("/webhooks/tiny/stock?secret=s3cret", json=payload).status_code == 200
    assert client.post("/webhooks/tiny/sales", json={"secret": "s3cret", "itens": []}).status_code == 200
    assert client.post("/webhooks/tiny/sales", json={"itens": []}).status_code == 401


def test_stock_webhook_failure_is_500_with_message(client, session_factory, source):
    add_mapping(session_factory, "D1", "L1")
    source.stocks["p9"] = ConfigurationError("TINY_API_TOKEN is not configured")

    response = client.post("/webhooks/tiny/stock", json={"idDeposito": "D1", "idProduto": "p9"})

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "TINY_API_TOKEN is not configured"}
    assert logs_of(session_factory, "webhook_stock")[0]["status"] == "error"


def test_sales_webhook(client, session_factory, sink):
    add_mapping(session_factory, "D1", "L1")

    body = client.post("/webhooks/tiny/sales", json={"dados": {"itens": [{"item": {"sku": "A"}}]}}).json()

    assert body == {"ok": True, "skipped": False, "updated": 1, "skus": ["A"]}
    assert sink.sets == [("gid://shopify/InventoryItem/1", "L1", 5, "sale")]


def test_simulated_stock_webhook(client, session_factory, sink):
    add_mapping(session_factory, "D1", "L1")

    body = client.post("/api/test/webhook-stock", json={"sku": "A", "idDeposito": "D1"}).json()

    assert body["result"]["quantity"] == 0
    assert sink.sets == [("gid://shopify/InventoryItem/1", "L1", 0, "correction")]


# ==================== Config, logs, references ====================

def test_config_update_restarts_scheduler(client, app, config_service, session_factory):
    response = client.post("/api/config", json={
        "sync_interval_minutes": 30, "tiny_api_token": "new", "not_allowed": "x",
    })

    assert response.json()["ok"] is True
    assert app.state.scheduler.restarts == 1
    assert config_service.get(ConfigKey.SYNC_INTERVAL_MINUTES) == "30"
    assert config_service.get("not_allowed") is None
    assert logs_of(session_factory, "config")[0]["status"] == "ok"

    values = client.get("/api/config").json()
    assert values["tiny_api_token"] == "new"
    assert values["shopify_access_token"] == ""


def test_logs_endpoint(client, session_factory):
    client.delete("/api/mappings/unknown")

    logs = client.get("/api/logs?limit=5").json()["logs"]

    assert logs[0]["type"] == "mapping"
    assert logs[0]["context"]["tiny_deposito_id"] == "unknown"


def test_references_endpoint(client):
    body = client.get("/api/references").json()

    assert body["deposits"] == [{"id": "D1", "nome": "Main"}]
    assert body["locations"][0]["numeric_id"] == "1"


# ==================== Shopify OAuth ====================

def test_oauth_status_and_start(client):
    status = client.get("/api/shopify/oauth/status").json()
    assert status["has_client_id"] is True

    body = client.get("/api/shopify/oauth/start", params={"store": "Other-Shop"}).json()
    assert body["ok"] is True
    assert urlparse(body["url"]).netloc == "other-shop.myshopify.com"

    redirect = client.get("/auth/shopify/start", follow_redirects=False)
    assert redirect.status_code == 302
    assert redirect.headers["location"].startswith("https://test-shop.myshopify.com/admin/oauth/authorize?")


def test_oauth_start_without_client_id(client, config_service):
    config_service.set(ConfigKey.SHOPIFY_CLIENT_ID, "")

    response = client.get("/api/shopify/oauth/start")

    assert response.status_code == 400
    assert "shopify_client_id" in response.json()["error"]


def test_oauth_callback_rejections(client):
    assert client.get("/auth/shopify/callback").status_code == 400
    assert client.get(
        "/auth/shopify/callback", params={"code": "c", "shop": "test-shop", "state": "never-issued"}
    ).status_code == 400


def _signed_query(query, secret="client-secret"):
    message = "&".join(f"{k}={query[k]}" for k in sorted(query))
    return {**query, "hmac": hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()}


def _issue_state(client) -> str:
    url = client.get("/api/shopify/oauth/start").json()["url"]
    return parse_qs(urlparse(url).query)["state"][0]


def test_oauth_callback_bad_hmac(client):
    state = _issue_state(client)
    query = {"code": "c", "shop": "test-shop.myshopify.com", "state": state, "hmac": "deadbeef"}

    response = client.get("/auth/shopify/callback", params=query)

    assert response.status_code == 401
    assert "HMAC" in response.text


def test_oauth_callback_non_ascii_hmac(client):
    state = _issue_state(client)
    query = {"code": "c", "shop": "test-shop.myshopify.com", "state": state, "hmac": "é"}

    response = client.get("/auth/shopify/callback", params=query)

    assert response.status_code == 401
    assert "HMAC" in response.text


def test_oauth_callback_success(client, app, config_service, session_factory, test_settings):
    token_http = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json={"access_token": "shpat_oauth", "scope": "write_inventory"})
    ))
    app.state.oauth = ShopifyOAuth(config_service, test_settings, http_client=token_http)

    state = _issue_state(client)
    query = _signed_query({"code": "c", "shop": "test-shop.myshopify.com", "state": state, "timestamp": "1"})

    response = client.get("/auth/shopify/callback", params=query)

    assert response.status_code == 200
    assert "Token saved for test-shop.myshopify.com" in response.text
    assert config_service.get(ConfigKey.SHOPIFY_ACCESS_TOKEN) == "shpat_oauth"
    assert config_service.get(ConfigKey.SHOPIFY_INSTALLED_SCOPES) == "write_inventory"
    assert logs_of(session_factory, "shopify_oauth")[0]["status"] == "ok"

    # The state was consumed
    assert client.get("/auth/shopify/callback", params=query).status_code == 400
