from decimal import Decimal
from io import BytesIO

import pandas as pd
import pytest


@pytest.fixture
def manifest(client, seed, staff_headers):
    resp = client.post(
        "/api/manifests/",
        json={
            "date": "2024-03-15",
            "awb_no": "AWB-778",
            "from": "KL",
            "to": "PEN",
            "manifest_lists": [
                {
                    "consignor_id": seed["acme_id"],
                    "consignee_name": "Receiver One",
                    "cn_no": "1001",
                    "pcs": 1,
                    "kg": "3.5",
                    "origin": "KL",
                    "destination": "PEN",
                    "total_price": "20.00",
                },
                {
                    "consignor_id": seed["acme_id"],
                    "consignee_name": "Receiver Two",
                    "cn_no": "1002",
                    "pcs": 3,
                    "kg": "1",
                    "origin": "KL",
                    "destination": "JHB",
                    "total_price": "12.00",
                },
            ],
        },
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _line_ids(manifest):
    return [line["id"] for line in manifest["manifest_lists"]]


def test_confirm_uses_today_by_default(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[0]
    resp = client.post(f"/api/manifest-lists/{line_id}/confirm", headers=staff_headers)
    assert resp.status_code == 200, resp.text
    line = resp.json()["manifest_list"]
    assert line["delivery_date"] == "2024-03-15"
    assert line["status"] == "delivered"


def test_confirm_with_explicit_date(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[1]
    resp = client.post(
        f"/api/manifest-lists/{line_id}/confirm",
        json={"delivery_date": "2024-03-18"},
        headers=staff_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["manifest_list"]["delivery_date"] == "2024-03-18"


def test_confirm_twice_keeps_first_date(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[0]
    assert client.post(f"/api/manifest-lists/{line_id}/confirm", headers=staff_headers).status_code == 200

    resp = client.post(
        f"/api/manifest-lists/{line_id}/confirm",
        json={"delivery_date": "2024-04-01"},
        headers=staff_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Shipment already confirmed"

    detail = client.get(f"/api/manifests/{manifest['manifest_info']['id']}", headers=staff_headers).json()
    assert detail["manifest_lists"][0]["delivery_date"] == "2024-03-15"


def test_confirm_unknown_line(client, manifest, staff_headers):
    resp = client.post("/api/manifest-lists/9999/confirm", headers=staff_headers)
    assert resp.status_code == 404


def test_update_line_reprices_on_weight_change(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[0]
    resp = client.put(f"/api/manifest-lists/{line_id}", json={"kg": "2.25"}, headers=staff_headers)
    assert resp.status_code == 200, resp.text
    line = resp.json()["manifest_list"]
    assert (line["kg"], line["gram"]) == (2, 250)
    assert Decimal(line["total_price"]) == Decimal("12.50")
    assert resp.json()["warnings"] == []


def test_update_line_without_price_fields_keeps_price(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[0]
    resp = client.put(f"/api/manifest-lists/{line_id}", json={"remarks": "fragile"}, headers=staff_headers)
    assert resp.status_code == 200
    line = resp.json()["manifest_list"]
    assert line["remarks"] == "fragile"
    assert Decimal(line["total_price"]) == Decimal("20.00")


def test_update_line_to_duplicate_cn_no(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[1]
    resp = client.put(f"/api/manifest-lists/{line_id}", json={"cn_no": "1001"}, headers=staff_headers)
    assert resp.status_code == 200
    assert Decimal(resp.json()["manifest_list"]["total_price"]) == Decimal("0")
    assert resp.json()["warnings"] == ["CN No: 1001 already exists, the total price will be set to 0"]


def test_update_line_to_unrated_route(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[0]
    resp = client.put(f"/api/manifest-lists/{line_id}", json={"destination": "kch"}, headers=staff_headers)
    assert resp.status_code == 400

    detail = client.get(f"/api/manifests/{manifest['manifest_info']['id']}", headers=staff_headers).json()
    assert detail["manifest_lists"][0]["destination"] == "PEN"


def test_delete_line(client, manifest, staff_headers):
    line_id = _line_ids(manifest)[1]
    assert client.delete(f"/api/manifest-lists/{line_id}", headers=staff_headers).status_code == 204
    assert client.delete(f"/api/manifest-lists/{line_id}", headers=staff_headers).status_code == 404

    detail = client.get(f"/api/manifests/{manifest['manifest_info']['id']}", headers=staff_headers).json()
    assert [line["cn_no"] for line in detail["manifest_lists"]] == ["1001"]


def test_statement(client, seed, manifest, staff_headers):
    resp = client.get(
        "/api/manifest-lists/statement",
        params={"consignor_id": seed["acme_id"]},
        headers=staff_headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert [row["description"] for row in body["data"]] == ["DCN KL-PEN", "DCN KL-JHB"]
    assert [row["consignment_note"] for row in body["data"]] == ["1001", "1002"]
    assert [row["qty"] for row in body["data"]] == [1, 3]
    assert Decimal(body["total_price"]) == Decimal("32.00")

    other = client.get(
        "/api/manifest-lists/statement",
        params={"consignor_id": seed["beta_id"]},
        headers=staff_headers,
    ).json()
    assert other["data"] == []
    assert Decimal(other["total_price"]) == Decimal("0")


def test_statement_date_range(client, seed, manifest, staff_headers):
    wide = client.get(
        "/api/manifest-lists/statement",
        params={"consignor_id": seed["acme_id"], "start_date": "2000-01-01", "end_date": "2100-01-01"},
        headers=staff_headers,
    ).json()
    assert len(wide["data"]) == 2

    past = client.get(
        "/api/manifest-lists/statement",
        params={"consignor_id": seed["acme_id"], "start_date": "2000-01-01", "end_date": "2000-01-31"},
        headers=staff_headers,
    ).json()
    assert past["data"] == []


def test_statement_unknown_consignor(client, seed, staff_headers):
    resp = client.get("/api/manifest-lists/statement", params={"consignor_id": 9999}, headers=staff_headers)
    assert resp.status_code == 400


def test_statement_excel(client, seed, manifest, staff_headers):
    resp = client.get(
        "/api/manifest-lists/statement/excel",
        params={"consignor_id": seed["acme_id"]},
        headers=staff_headers,
    )
    assert resp.status_code == 200
    frame = pd.read_excel(BytesIO(resp.content), sheet_name="Statement", dtype={"Consignment Note": str})
    assert list(frame["Consignment Note"]) == ["1001", "1002"]
    assert frame["Total RM"].sum() == pytest.approx(32.0)


def test_editing_first_line_of_duplicated_cn_no_keeps_it_billable(client, seed, manifest, staff_headers):
    original_id = _line_ids(manifest)[0]
    resp = client.post(
        f"/api/manifests/{manifest['manifest_info']['id']}/lists",
        json={
            "manifest_lists": [
                {
                    "consignor_id": seed["acme_id"],
                    "consignee_name": "Receiver Three",
                    "cn_no": "1001",
                    "pcs": 1,
                    "kg": "2",
                    "origin": "KL",
                    "destination": "PEN",
                }
            ]
        },
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    duplicate_id = resp.json()["manifest_lists"][0]["id"]

    resp = client.put(f"/api/manifest-lists/{original_id}", json={"kg": "3.5"}, headers=staff_headers)
    assert resp.status_code == 200, resp.text
    assert Decimal(resp.json()["manifest_list"]["total_price"]) == Decimal("15.00")
    assert resp.json()["warnings"] == []

    # The later line stays the unbillable copy
    resp = client.put(f"/api/manifest-lists/{duplicate_id}", json={"kg": "4"}, headers=staff_headers)
    assert Decimal(resp.json()["manifest_list"]["total_price"]) == Decimal("0")
    assert resp.json()["warnings"] == ["CN No: 1001 already exists, the total price will be set to 0"]


def test_appended_and_edited_lines_price_the_same_weight(client, seed, manifest, staff_headers):
    # 1.0016 kg is stored as 1 kg 2 g; KL -> JHB is 12.00 + 3.00 per kg above 1 kg
    resp = client.post(
        f"/api/manifests/{manifest['manifest_info']['id']}/lists",
        json={
            "manifest_lists": [
                {
                    "consignor_id": seed["acme_id"],
                    "consignee_name": "Receiver Four",
                    "cn_no": "3001",
                    "pcs": 1,
                    "kg": "1.0016",
                    "origin": "KL",
                    "destination": "JHB",
                }
            ]
        },
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    line = resp.json()["manifest_lists"][0]
    assert (line["kg"], line["gram"]) == (1, 2)
    assert Decimal(line["total_price"]) == Decimal("12.01")

    resp = client.put(f"/api/manifest-lists/{line['id']}", json={"discount": 0}, headers=staff_headers)
    assert Decimal(resp.json()["manifest_list"]["total_price"]) == Decimal("12.01")

    resp = client.post(
        "/api/manifests/estimate",
        json={"origin": "KL", "destination": "JHB", "consignor_id": seed["acme_id"], "kg": "1.0016", "cn_no": "3002"},
    )
    assert resp.json()["estimated_total_price"] == "12.01"
