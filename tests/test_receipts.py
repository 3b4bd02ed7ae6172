import httpx

from app.core.config import Settings, get_settings
from app.main import app
from tests.conftest import TEST_SETTINGS, completion

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "POST, OPTIONS",
    "access-control-allow-headers": "Content-Type",
}


def _assert_cors(r):
    for header, value in CORS.items():
        assert r.headers[header] == value


def test_parse_receipt_end_to_end(client, groq):
    groq.queue(
        httpx.Response(
            200,
            json=completion(
                'Sure! [{"item":"Agua Luso 1.5L","price":"0,89","quantity":1}]'
            ),
        )
    )

    r = client.post("/", json={"prompt": "AGUA LUSO 1,5L\n1,000\n€ 0,89"})

    assert r.status_code == 200
    _assert_cors(r)
    data = r.json()
    assert data["success"] is True
    assert data["itemCount"] == 1
    assert data["totalAmount"] == 0.89
    assert data["items"] == [{"item": "Agua Luso 1.5L", "price": 0.89, "quantity": 1}]
    assert data["timestamp"].endswith("Z")
    assert len(groq.requests) == 1


def test_total_amount_uses_quantity(client, groq):
    groq.queue(
        httpx.Response(
            200,
            json=completion(
                '[{"item": "Milk", "price": 0.99, "quantity": 3},'
                ' {"item": "Bread", "price": "1,50"}]'
            ),
        )
    )

    r = client.post("/", json={"receiptText": "MILK 3x0,99\nBREAD 1,50"})

    assert r.status_code == 200
    data = r.json()
    assert data["itemCount"] == 2
    assert data["totalAmount"] == 4.47


def test_unusable_model_answer_is_an_empty_success(client, groq):
    groq.queue(httpx.Response(200, json=completion("I cannot read this receipt.")))

    r = client.post("/", json={"prompt": "@@@ ###"})

    assert r.status_code == 200
    data = r.json()
    assert data["itemCount"] == 0
    assert data["totalAmount"] == 0
    assert data["items"] == []


def test_missing_text_is_400(client, groq):
    r = client.post("/", json={"maxRetries": 1})
    assert r.status_code == 400
    _assert_cors(r)
    assert r.json()["error"] == "Missing required field 'prompt' or 'receiptText'"
    assert "timestamp" in r.json()
    assert groq.requests == []


def test_too_long_text_is_400(client, groq):
    r = client.post("/", json={"prompt": "x" * 10_001})
    assert r.status_code == 400
    assert "too long" in r.json()["error"]
    assert groq.requests == []


def test_non_object_body_is_400(client, groq):
    r = client.post("/", json=["BANANA 1,50"])
    assert r.status_code == 400
    assert r.json()["error"] == "Request body must be a JSON object"


def test_malformed_json_is_500(client, groq):
    r = client.post(
        "/", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 500
    assert r.json()["error"] == "Internal server error"


def test_invalid_provider_key_is_401(client, groq):
    groq.queue(httpx.Response(401, json={"error": {"message": "Invalid API Key"}}))

    r = client.post("/", json={"prompt": "BANANA 1,50"})

    assert r.status_code == 401
    assert r.json()["error"] == "Invalid or missing GROQ_API_KEY"
    assert len(groq.requests) == 1


def test_provider_outage_is_500_after_retries(client, groq):
    groq.queue(*[httpx.Response(500, text="down") for _ in range(3)])

    r = client.post("/", json={"prompt": "BANANA 1,50"})

    assert r.status_code == 500
    assert r.json()["error"] == "Internal server error"
    assert len(groq.requests) == 3
    assert groq.sleeps == [1.0, 2.0]


def test_max_retries_from_body(client, groq):
    groq.queue(httpx.Response(503), httpx.Response(503))

    r = client.post("/", json={"prompt": "BANANA 1,50", "maxRetries": 1})

    assert r.status_code == 500
    assert len(groq.requests) == 2


def test_missing_api_key_is_503(client, groq):
    app.dependency_overrides[get_settings] = lambda: Settings(GROQ_API_KEY=None)
    try:
        r = client.post("/", json={"prompt": "BANANA 1,50"})
    finally:
        app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS

    assert r.status_code == 503
    assert r.json()["error"] == "Server configuration error"
    assert groq.requests == []


def test_preflight(client):
    r = client.options("/")
    assert r.status_code == 204
    _assert_cors(r)


def test_other_methods_are_405(client):
    for method in ("GET", "PUT", "DELETE"):
        r = client.request(method, "/")
        assert r.status_code == 405
        _assert_cors(r)
        assert r.json()["error"] == "Method not allowed. Use POST."


def test_huge_quantity_falls_back_to_one(client, groq):
    groq.queue(
        httpx.Response(
            200, json=completion('[{"item":"A","price":"1.00","quantity":1e30}]')
        )
    )

    r = client.post("/", json={"prompt": "A 1.00"})

    assert r.status_code == 200
    data = r.json()
    assert data["items"] == [{"item": "A", "price": 1.0, "quantity": 1}]
    assert data["totalAmount"] == 1.0


def test_huge_prices_still_total(client, groq):
    price = "9" * 26 + ".99"
    groq.queue(
        httpx.Response(
            200,
            json=completion(
                f'[{{"item":"A","price":"{price}","quantity":10000}},'
                f' {{"item":"B","price":"{price}","quantity":10000}}]'
            ),
        )
    )

    r = client.post("/", json={"prompt": "A\nB"})

    assert r.status_code == 200
    _assert_cors(r)
    assert r.json()["itemCount"] == 2


def test_methods_without_a_route_are_405(client):
    for method in ("HEAD", "TRACE"):
        r = client.request(method, "/")
        assert r.status_code == 405
        _assert_cors(r)
