"""
Tiny API client and catalog normalization, against a mocked transport.
"""
from urllib.parse import parse_qs

import httpx
import pytest

from stock_bridge.constants.sync import ConfigKey
from stock_bridge.core.exceptions import (
    ConfigurationError,
    RemoteApplicationError,
    TinyAPIError,
    TransportError,
)
from stock_bridge.services.tiny import TinyCatalog, TinyClient, extract_deposits, normalize_tiny_response

BASE_URL = "https://api.tiny.test/api2"


def make_catalog(config_service, handler):
    calls = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        calls.append((request.url.path.rsplit("/", 1)[-1], form))
        return handler(request, form)

    http = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    client = TinyClient(config_service, base_url=BASE_URL, http_client=http)
    return TinyCatalog(client), calls


def ok(body) -> httpx.Response:
    return httpx.Response(200, json={"retorno": {"status": "OK", **body}})


def test_normalize_tiny_response_joins_errors():
    """Test: Errors inside a 200 response become TinyAPIError"""
    with pytest.raises(TinyAPIError) as exc:
        normalize_tiny_response({"retorno": {
            "status": "Erro",
            "codigo_erro": "2",
            "erros": [{"erro": "token invalido"}, {"erro": "outro"}],
        }})
    assert "token invalido; outro" in str(exc.value)
    assert exc.value.code == "2"
    assert isinstance(exc.value, RemoteApplicationError)


def test_normalize_tiny_response_rejects_non_object():
    with pytest.raises(TinyAPIError):
        normalize_tiny_response(["nope"])


@pytest.mark.parametrize("root", [
    {"produto": {"depositos": [{"deposito": {"id": "1", "nome": "A", "saldo": "5"}}]}},
    {"produto": {"deposito": {"idDeposito": "1", "nomeDeposito": "A", "saldoFisico": 5}}},
    {"depositos": {"deposito": {"id": 1, "nome": "A", "saldo": 5}}},
    {"deposito": [{"codigo": "1", "deposito": "A", "quantidade": "5.0"}]},
])
def test_extract_deposits_shapes(root):
    """Test: Every deposit layout Tiny uses yields the same record"""
    deposits = extract_deposits(root)
    assert len(deposits) == 1
    assert deposits[0].deposito_id == "1"
    assert deposits[0].deposito_nome == "A"
    assert deposits[0].saldo == 5


@pytest.mark.asyncio
async def test_call_sends_token_and_format(config_service):
    catalog, calls = make_catalog(
        config_service,
        lambda request, form: ok({"numero_paginas": 3, "produtos": [
            {"produto": {"id": 1, "codigo": "x", "sku": " A ", "nome": "Shirt"}},
            {"id": "2", "nome": "No sku"},
        ]}),
    )

    page = await catalog.list_products(2)

    endpoint, form = calls[0]
    assert endpoint == "produtos.pesquisa.php"
    assert form == {"token": "tiny-token", "formato": "json", "pagina": "2"}
    assert page.total_pages == 3
    assert [(p.id, p.sku, p.nome) for p in page.products] == [("1", "A", "Shirt"), ("2", "", "No sku")]


@pytest.mark.asyncio
async def test_missing_token_fails_before_any_request(config_service):
    """Test: No token configured raises ConfigurationError without I/O"""
    config_service.set(ConfigKey.TINY_API_TOKEN, "")
    catalog, calls = make_catalog(config_service, lambda request, form: ok({}))

    with pytest.raises(ConfigurationError):
        await catalog.list_products(1)
    assert calls == []


@pytest.mark.asyncio
async def test_http_error_is_transport_failure(config_service):
    catalog, _ = make_catalog(config_service, lambda request, form: httpx.Response(503, text="down"))

    with pytest.raises(TransportError) as exc:
        await catalog.get_product_stock("1")
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_error_payload_is_application_failure(config_service):
    catalog, _ = make_catalog(
        config_service,
        lambda request, form: ok({"status": "Erro", "erros": [{"erro": "API Bloqueada"}]}),
    )

    with pytest.raises(TinyAPIError, match="API Bloqueada"):
        await catalog.get_product_stock("1")


@pytest.mark.asyncio
async def test_no_records_error_is_an_empty_page(config_service):
    catalog, _ = make_catalog(
        config_service,
        lambda request, form: ok({"status": "Erro", "codigo_erro": 20, "erros": [{"erro": "sem registros"}]}),
    )

    page = await catalog.list_products(1)
    assert page.products == []


@pytest.mark.asyncio
async def test_irregular_product_fields_do_not_break_the_page(config_service):
    """Test: A numeric name or odd wrapper on one row keeps the rest of the page"""
    catalog, _ = make_catalog(
        config_service,
        lambda request, form: ok({"produtos": [
            {"produto": {"id": 1, "sku": "A", "nome": 123}},
            {"produto": "broken", "id": 3, "sku": "C"},
            {"produto": {"id": 2, "sku": "B", "nome": "Ok"}},
        ]}),
    )

    page = await catalog.list_products(1)

    assert [(p.id, p.sku, p.nome) for p in page.products] == [
        ("1", "A", "123"),
        ("3", "C", ""),
        ("2", "B", "Ok"),
    ]


@pytest.mark.asyncio
async def test_product_stock_with_numeric_name(config_service):
    catalog, _ = make_catalog(
        config_service,
        lambda request, form: ok({"produto": {"id": 9, "sku": "A", "nome": 42, "depositos": []}}),
    )

    stock = await catalog.get_product_stock("9")
    assert stock.nome == "42"
    assert stock.deposits == []


@pytest.mark.asyncio
async def test_non_object_envelope_is_application_failure(config_service):
    catalog, _ = make_catalog(config_service, lambda request, form: httpx.Response(200, json={"retorno": ["x"]}))

    with pytest.raises(TinyAPIError):
        await catalog.list_products(1)


@pytest.mark.asyncio
async def test_find_product_by_sku_scans_pages(config_service):
    pages = {
        "1": [{"produto": {"id": "1", "sku": "A"}}],
        "2": [{"produto": {"id": "2", "sku": "B"}}],
    }
    catalog, calls = make_catalog(
        config_service,
        lambda request, form: ok({"numero_paginas": 2, "produtos": pages[form["pagina"]]}),
    )

    found = await catalog.find_product_by_sku("B")
    assert found.id == "2"

    calls.clear()
    assert await catalog.find_product_by_sku("C") is None
    assert [form["pagina"] for _, form in calls] == ["1", "2"]

    calls.clear()
    assert await catalog.find_product_by_sku("") is None
    assert calls == []


@pytest.mark.asyncio
async def test_get_product_stock(config_service):
    catalog, calls = make_catalog(
        config_service,
        lambda request, form: ok({"produto": {
            "id": "9", "codigo": "A", "sku": "A", "nome": "Shirt",
            "depositos": [
                {"deposito": {"id": "1", "nome": "Main", "saldo": 4}},
                {"deposito": {"id": "2", "nome": "Outlet", "saldo": "1.5"}},
            ],
        }}),
    )

    stock = await catalog.get_product_stock("9")

    assert calls[0][0] == "produto.obter.estoque.php"
    assert calls[0][1]["id"] == "9"
    assert stock.sku == "A"
    assert stock.find_deposit("2").saldo == 1.5
    assert stock.find_deposit("3") is None


@pytest.mark.asyncio
async def test_discover_deposits_dedups_and_sorts(config_service):
    stock_by_id = {
        "1": [{"deposito": {"id": "20", "nome": "zeta", "saldo": 1}}, {"deposito": {"id": "10", "nome": "Alpha"}}],
        "2": [{"deposito": {"id": "20", "nome": "zeta"}}, {"deposito": {"id": "30", "nome": ""}}],
    }

    def handler(request, form):
        if request.url.path.endswith("produtos.pesquisa.php"):
            return ok({"numero_paginas": 1, "produtos": [
                {"produto": {"id": "1"}}, {"produto": {"id": ""}}, {"produto": {"id": "2"}},
            ]})
        return ok({"produto": {"id": form["id"], "depositos": stock_by_id[form["id"]]}})

    catalog, calls = make_catalog(config_service, handler)

    deposits = await catalog.discover_deposits()

    assert [(d.id, d.nome) for d in deposits] == [("10", "Alpha"), ("30", "Deposit 30"), ("20", "zeta")]
    # The product without an id is never fetched
    assert [form.get("id") for endpoint, form in calls if endpoint == "produto.obter.estoque.php"] == ["1", "2"]
