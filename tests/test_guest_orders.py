"""Guest checkout and token-plus-email order lookup."""

from datetime import timedelta

from cafeteria.core import security
from cafeteria.core.security import generate_guest_order_token


def _guest_payload(catalog, token: str, email: str = "visitor@example.com") -> dict:
    return {
        "location_id": catalog.location_id,
        "items": [{"menu_item_id": catalog.muffin_id, "quantity": 2}],
        "guest_info": {"email": email, "first_name": "Vera", "last_name": "Visitor"},
        "guest_token": token,
    }


def _checkout_token(client) -> str:
    response = client.post("/api/v1/orders/guest/token")
    assert response.status_code == 200
    assert response.json()["expires_in_seconds"] == 300
    return response.json()["token"]


def test_guest_can_order_and_reopen_with_token_and_email(client, catalog) -> None:
    created = client.post("/api/v1/orders/guest", json=_guest_payload(catalog, _checkout_token(client)))

    assert created.status_code == 201
    body = created.json()
    assert body["access_token"]
    assert body["order"]["guest_email"] == "visitor@example.com"
    assert body["order"]["user_id"] is None
    assert body["order"]["total_amount"] == "7.00"

    lookup = client.get(
        "/api/v1/orders/guest",
        params={"token": body["access_token"], "email": "Visitor@Example.com"},
    )
    assert lookup.status_code == 200
    assert lookup.json()["id"] == body["order"]["id"]


def test_guest_lookup_requires_matching_email(client, catalog) -> None:
    body = client.post("/api/v1/orders/guest", json=_guest_payload(catalog, _checkout_token(client))).json()

    response = client.get("/api/v1/orders/guest", params={"token": body["access_token"], "email": "someone@else.com"})
    assert response.status_code == 403
    assert response.json()["code"] == "OrderAccessDeniedError"


def test_guest_lookup_rejects_bad_and_expired_tokens(client, catalog, monkeypatch) -> None:
    body = client.post("/api/v1/orders/guest", json=_guest_payload(catalog, _checkout_token(client))).json()

    bad = client.get("/api/v1/orders/guest", params={"token": "not-a-token", "email": "visitor@example.com"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid order access link"

    expired_token = security._encode(
        {"order_id": body["order"]["id"], "type": security.GUEST_ORDER_TOKEN_TYPE},
        timedelta(seconds=-5),
    )
    expired = client.get("/api/v1/orders/guest", params={"token": expired_token, "email": "visitor@example.com"})
    assert expired.status_code == 401
    assert expired.json()["detail"] == "Order access link has expired"

    checkout_token = _checkout_token(client)
    wrong_type = client.get("/api/v1/orders/guest", params={"token": checkout_token, "email": "visitor@example.com"})
    assert wrong_type.json()["detail"] == "Invalid token type"


def test_guest_order_for_missing_order_is_not_found(client, catalog) -> None:
    token = generate_guest_order_token(4040)
    response = client.get("/api/v1/orders/guest", params={"token": token, "email": "visitor@example.com"})
    assert response.status_code == 404


def test_guest_checkout_requires_fresh_checkout_token(client, catalog) -> None:
    missing = client.post("/api/v1/orders/guest", json=_guest_payload(catalog, "garbage"))
    assert missing.status_code == 401

    access_token = generate_guest_order_token(1)
    wrong_kind = client.post("/api/v1/orders/guest", json=_guest_payload(catalog, access_token))
    assert wrong_kind.status_code == 401


def test_guest_checkout_with_member_email_is_conflict(client, catalog) -> None:
    response = client.post(
        "/api/v1/orders/guest",
        json=_guest_payload(catalog, _checkout_token(client), email="staff@example.com"),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "GuestEmailRegisteredError"


def test_guest_payload_validation(client, catalog) -> None:
    payload = _guest_payload(catalog, _checkout_token(client), email="not-an-email")
    assert client.post("/api/v1/orders/guest", json=payload).status_code == 422

    payload = _guest_payload(catalog, _checkout_token(client))
    payload["items"] = []
    assert client.post("/api/v1/orders/guest", json=payload).status_code == 422
