# tests/test_orders_api.py
import uuid

from jose import jwt

CART = "/api/v1/cart"
ORDERS = "/api/v1/orders"

ORDER_FORM = {
    "project_id": 42,
    "po_number": "PO-7781",
    "delivery_address": "12 Quarry Rd, Penrith NSW",
    "delivery_lat": -33.75,
    "delivery_long": 150.69,
    "delivery_date": "2025-03-01",
    "contact_person_name": "Site Foreman",
    "contact_person_number": "0400 000 000",
}


def fill_cart(client, headers):
    client.post(
        CART,
        json={"product_id": 1, "product_name": "Sand", "unit_of_measure": "tonnes", "quantity": 5},
        headers=headers,
    )
    client.post(
        CART,
        json={"product_id": 2, "product_name": "Gravel", "unit_of_measure": "tonnes", "quantity": 2},
        headers=headers,
    )
    client.post(f"{CART}/primary-date", json={"delivery_date": "2025-03-01"}, headers=headers)


class TestCheckout:
    def test_empty_cart_is_rejected(self, client, auth_headers):
        resp = client.post(f"{ORDERS}/checkout", json=ORDER_FORM, headers=auth_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cart is empty"

    def test_unbalanced_cart_is_rejected(self, client, auth_headers):
        fill_cart(client, auth_headers)
        client.post(f"{CART}/1/slots", params={"delivery_date": "2025-03-02"}, headers=auth_headers)

        resp = client.post(f"{ORDERS}/checkout", json=ORDER_FORM, headers=auth_headers)

        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["message"] == "Cart validation failed"
        assert list(detail["items"]) == ["1"]
        assert detail["items"]["1"][0]["kind"] == "over_allocated"
        # cart untouched
        assert len(client.get(CART, headers=auth_headers).json()["items"]) == 2

    def test_missing_slot_date_is_rejected(self, client, auth_headers):
        client.post(
            CART,
            json={"product_id": 1, "product_name": "Sand", "quantity": 5},
            headers=auth_headers,
        )

        resp = client.post(f"{ORDERS}/checkout", json=ORDER_FORM, headers=auth_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"]["items"]["1"][0]["kind"] == "incomplete_fields"

    def test_success_submits_payload_and_clears_cart(self, client, auth_headers, client_id):
        fill_cart(client, auth_headers)

        resp = client.post(f"{ORDERS}/checkout", json=ORDER_FORM, headers=auth_headers)

        assert resp.status_code == 200, resp.text
        order = resp.json()
        assert order["client_id"] == str(client_id)
        assert order["status"] == "pending"
        payload = order["payload"]
        assert payload["delivery_date"] == "2025-03-01"
        assert [i["product_id"] for i in payload["items"]] == [1, 2]
        slot = payload["items"][0]["delivery_slots"][0]
        assert slot == {
            "quantity": 5,
            "delivery_date": "2025-03-01",
            "delivery_time": "08:00",
            "truck_type": "tipper_light",
            "load_size": None,
            "time_interval": None,
        }
        assert client.get(CART, headers=auth_headers).json()["items"] == []

    def test_form_rejects_unknown_fields(self, client, auth_headers):
        fill_cart(client, auth_headers)

        resp = client.post(
            f"{ORDERS}/checkout",
            json=ORDER_FORM | {"items": []},
            headers=auth_headers,
        )

        assert resp.status_code == 422

    def test_preview_does_not_submit(self, client, auth_headers):
        fill_cart(client, auth_headers)

        resp = client.post(f"{ORDERS}/preview", json=ORDER_FORM, headers=auth_headers)

        assert resp.status_code == 200
        assert len(resp.json()["items"]) == 2
        assert len(client.get(CART, headers=auth_headers).json()["items"]) == 2
        assert client.get(f"{ORDERS}/me", headers=auth_headers).json() == []


class TestClientOrders:
    def test_list_and_get(self, client, auth_headers):
        fill_cart(client, auth_headers)
        order_id = client.post(f"{ORDERS}/checkout", json=ORDER_FORM, headers=auth_headers).json()["id"]

        listed = client.get(f"{ORDERS}/me", headers=auth_headers).json()
        single = client.get(f"{ORDERS}/me/{order_id}", headers=auth_headers)

        assert [o["id"] for o in listed] == [order_id]
        assert single.status_code == 200
        assert single.json()["payload"]["project_id"] == 42

    def test_other_clients_order_is_hidden(self, client, auth_headers):
        fill_cart(client, auth_headers)
        order_id = client.post(f"{ORDERS}/checkout", json=ORDER_FORM, headers=auth_headers).json()["id"]
        stranger = jwt.encode({"sub": str(uuid.uuid4())}, "test-secret", algorithm="HS256")
        headers = {"Authorization": f"Bearer {stranger}"}

        assert client.get(f"{ORDERS}/me/{order_id}", headers=headers).status_code == 404
        assert client.get(f"{ORDERS}/me", headers=headers).json() == []

    def test_orders_need_auth(self, client):
        assert client.get(f"{ORDERS}/me").status_code == 401
