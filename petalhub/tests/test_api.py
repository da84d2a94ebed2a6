from decimal import Decimal

from petalhub.app.db.models.core_types import Role


def auth(user) -> dict:
    return {"X-User-Id": str(user.id), "X-User-Role": user.role.value}


def _new_order(client, customer, *lines):
    resp = client.post("/v1/orders", json={}, headers=auth(customer))
    assert resp.status_code == 201, resp.text
    order_id = resp.json()["id"]
    for product, qty in lines:
        resp = client.post(
            f"/v1/orders/{order_id}/items",
            json={"product_id": product.id, "qty": qty},
            headers=auth(customer),
        )
        assert resp.status_code == 200, resp.text
    return order_id


def test_health(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200


def test_missing_identity_is_unauthorized(client, catalog):
    assert client.get("/v1/products").status_code == 401
    resp = client.get("/v1/products", headers={"X-User-Id": "1", "X-User-Role": "ADMIN"})
    assert resp.status_code == 401


def test_customer_order_flow_end_to_end(client, catalog):
    order_id = _new_order(client, catalog.customer, (catalog.rose, 60))

    body = client.get(f"/v1/orders/{order_id}", headers=auth(catalog.customer)).json()
    assert body["status"] == "DRAFT"
    assert Decimal(body["items"][0]["unit_price"]) == Decimal("2.25")
    assert Decimal(body["total"]) == Decimal("135.00")

    resp = client.patch(f"/v1/orders/{order_id}/submit", headers=auth(catalog.customer))
    assert resp.status_code == 200
    assert resp.json()["status"] == "PENDING_VALIDATION"

    resp = client.patch(f"/v1/orders/{order_id}/approve", headers=auth(catalog.employee))
    assert resp.json()["status"] == "VALIDATED"

    resp = client.patch(f"/v1/orders/{order_id}/complete", headers=auth(catalog.employee))
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"

    product = client.get(f"/v1/products/{catalog.rose.id}", headers=auth(catalog.customer)).json()
    assert product["stock"] == 440


def test_customer_cannot_review_orders(client, catalog):
    order_id = _new_order(client, catalog.customer, (catalog.rose, 5))
    client.patch(f"/v1/orders/{order_id}/submit", headers=auth(catalog.customer))

    for action in ("approve", "reject", "decline", "complete"):
        resp = client.patch(f"/v1/orders/{order_id}/{action}", headers=auth(catalog.customer))
        assert resp.status_code == 403, action


def test_customer_only_sees_own_orders(client, catalog):
    order_id = _new_order(client, catalog.customer, (catalog.rose, 5))

    resp = client.get(f"/v1/orders/{order_id}", headers=auth(catalog.other_customer))
    assert resp.status_code == 403
    resp = client.post(
        f"/v1/orders/{order_id}/items",
        json={"product_id": catalog.lily.id, "qty": 1},
        headers=auth(catalog.other_customer),
    )
    assert resp.status_code == 403

    listed = client.get("/v1/orders", headers=auth(catalog.other_customer)).json()
    assert listed == []


def test_submit_by_other_customer_maps_to_403(client, catalog):
    order_id = _new_order(client, catalog.customer, (catalog.rose, 5))

    resp = client.patch(f"/v1/orders/{order_id}/submit", headers=auth(catalog.other_customer))
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


def test_domain_errors_map_to_http_status(client, catalog):
    order_id = _new_order(client, catalog.customer)

    resp = client.patch(f"/v1/orders/{order_id}/submit", headers=auth(catalog.customer))
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Cannot submit empty order", "error": "invalid_state"}

    resp = client.get("/v1/orders/999999", headers=auth(catalog.employee))
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"

    resp = client.post(
        f"/v1/orders/{order_id}/items",
        json={"product_id": 999999, "qty": 1},
        headers=auth(catalog.customer),
    )
    assert resp.status_code == 404

    resp = client.post("/v1/orders", json={"customer_id": catalog.supplier.id}, headers=auth(catalog.employee))
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_argument"


def test_insufficient_stock_payload(client, catalog, make_order):
    order = make_order(catalog.customer, [(catalog.lily, 41)], status="validated")

    resp = client.patch(f"/v1/orders/{order.id}/complete", headers=auth(catalog.employee))

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "insufficient_stock"
    assert (body["product_id"], body["available"], body["required"]) == (catalog.lily.id, 40, 41)


def test_employee_creates_order_for_customer(client, catalog):
    resp = client.post("/v1/orders", json={"customer_id": catalog.customer.id}, headers=auth(catalog.employee))
    assert resp.status_code == 201
    assert resp.json()["customer_id"] == catalog.customer.id

    resp = client.post("/v1/orders", json={"customer_id": catalog.customer.id}, headers=auth(catalog.other_customer))
    assert resp.status_code == 403


def test_delete_order(client, catalog):
    order_id = _new_order(client, catalog.customer, (catalog.rose, 5))

    assert client.delete(f"/v1/orders/{order_id}", headers=auth(catalog.customer)).status_code == 204
    assert client.get(f"/v1/orders/{order_id}", headers=auth(catalog.employee)).status_code == 404


def test_consolidation_and_supplier_visibility(client, catalog, make_order):
    make_order(catalog.customer, [(catalog.carnation, 10), (catalog.lily, 1)], status="validated")
    make_order(catalog.other_customer, [(catalog.carnation, 20)], status="validated")

    assert client.post("/v1/consolidation/run", headers=auth(catalog.supplier)).status_code == 403

    resp = client.post("/v1/consolidation/run", headers=auth(catalog.employee))
    assert resp.status_code == 201
    run = resp.json()
    assert run["orders_processed"] == 2
    assert len(run["consolidated_orders"]) == 2

    own = client.get("/v1/consolidation", headers=auth(catalog.supplier)).json()
    assert len(own) == 1
    assert own[0]["supplier_id"] == catalog.supplier.id
    assert own[0]["items"][0]["total_qty"] == 30

    other_id = next(c["id"] for c in run["consolidated_orders"] if c["supplier_id"] == catalog.supplier_b.id)
    assert client.get(f"/v1/consolidation/{other_id}", headers=auth(catalog.supplier)).status_code == 403
    assert client.get(f"/v1/exports/consolidated-orders/{other_id}", headers=auth(catalog.supplier)).status_code == 403

    resp = client.get(f"/v1/exports/consolidated-orders/{own[0]['id']}", headers=auth(catalog.supplier))
    assert resp.status_code == 200
    assert resp.json()["data"]["totals"]["grandTotal"] == "60.00"

    resp = client.get(f"/v1/exports/consolidated-orders/{own[0]['id']}/pdf", headers=auth(catalog.supplier))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    resp = client.post("/v1/consolidation/run", headers=auth(catalog.employee))
    assert resp.status_code == 409


def test_exports_rbac(client, catalog, make_order):
    order = make_order(catalog.customer, [(catalog.rose, 60)], status="validated")

    assert client.get(f"/v1/exports/orders/{order.id}", headers=auth(catalog.customer)).status_code == 403
    assert client.get(f"/v1/exports/orders/{order.id}", headers=auth(catalog.supplier)).status_code == 403
    assert client.get(f"/v1/exports/orders/{order.id}", headers=auth(catalog.employee)).status_code == 200

    resp = client.get("/v1/exports/product-sales.csv", headers=auth(catalog.employee))
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.text.splitlines()[0] == "sku,name,supplier,basePrice,currentStock,totalQtySold,totalRevenue"

    assert client.get("/v1/exports/product-sales", headers=auth(catalog.customer)).status_code == 403


def test_catalog_management_requires_employee(client, catalog):
    payload = {"sku": "TUL-001", "name": "Tulipán", "base_price": "1.10", "stock": 10, "supplier_id": catalog.supplier.id}

    assert client.post("/v1/products", json=payload, headers=auth(catalog.supplier)).status_code == 403

    resp = client.post("/v1/products", json=payload, headers=auth(catalog.employee))
    assert resp.status_code == 201
    product_id = resp.json()["id"]

    resp = client.put(
        f"/v1/products/{product_id}/pricing-tiers",
        json=[{"min_qty": 20, "percent_off": "10"}],
        headers=auth(catalog.employee),
    )
    assert resp.status_code == 200
    assert [t["min_qty"] for t in resp.json()["pricing_tiers"]] == [20]

    resp = client.patch(f"/v1/products/{product_id}", json={"stock": 25}, headers=auth(catalog.employee))
    assert resp.json()["stock"] == 25

    assert client.delete(f"/v1/products/{product_id}", headers=auth(catalog.employee)).status_code == 204


def test_user_directory_endpoints(client, catalog):
    payload = {"email": "new@shop.test", "name": "Nueva", "role": "CUSTOMER"}
    assert client.post("/v1/users", json=payload, headers=auth(catalog.customer)).status_code == 403

    resp = client.post("/v1/users", json=payload, headers=auth(catalog.employee))
    assert resp.status_code == 201
    assert resp.json()["role"] == Role.customer.value

    assert client.post("/v1/users", json=payload, headers=auth(catalog.employee)).status_code == 400
    assert client.get(f"/v1/users/{catalog.customer.id}", headers=auth(catalog.customer)).status_code == 200
    assert client.get(f"/v1/users/{catalog.employee.id}", headers=auth(catalog.customer)).status_code == 403
