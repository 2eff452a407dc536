from decimal import Decimal

from freightdesk.models import Client, ClientRole


def _line(consignor_id, cn_no, kg="3.5", total_price=None, **extra):
    line = {
        "consignor_id": consignor_id,
        "consignee_name": "Receiver Sdn Bhd",
        "cn_no": cn_no,
        "pcs": 2,
        "kg": kg,
        "origin": "kl",
        "destination": "pen",
    }
    if total_price is not None:
        line["total_price"] = total_price
    line.update(extra)
    return line


def _create(client, headers, lines, **header):
    payload = {
        "date": "2024-03-15",
        "awb_no": "AWB-778",
        "from": "kl",
        "to": "pen",
        "flt": "MH1432",
        "manifest_lists": lines,
    }
    payload.update(header)
    return client.post("/api/manifests/", json=payload, headers=headers)


def test_create_manifest_keeps_caller_prices(client, seed, staff_headers, staff_user):
    resp = _create(client, staff_headers, [_line(seed["acme_id"], "1001", kg="3.757", total_price="20.00")])
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["message"] == "Manifest created successfully"
    assert body["warnings"] == []

    info = body["manifest_info"]
    assert info["manifest_no"] == "202403001"
    assert info["from"] == "KL"
    assert info["to"] == "PEN"
    assert info["user_id"] == staff_user.id

    [line] = body["manifest_lists"]
    assert (line["kg"], line["gram"]) == (3, 757)
    assert Decimal(line["total_price"]) == Decimal("20.00")
    assert line["status"] == "pending"
    assert line["delivery_date"] is None


def test_manifest_numbers_increase(client, seed, staff_headers):
    first = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="1")]).json()
    second = _create(client, staff_headers, [_line(seed["acme_id"], "1002", total_price="1")]).json()
    assert first["manifest_info"]["manifest_no"] == "202403001"
    assert second["manifest_info"]["manifest_no"] == "202403002"


def test_create_without_header_is_rejected(client, seed, staff_headers):
    resp = client.post(
        "/api/manifests/",
        json={"manifest_lists": [_line(seed["acme_id"], "1001", total_price="5")]},
        headers=staff_headers,
    )
    assert resp.status_code == 422


def test_create_without_line_prices_is_rejected(client, seed, staff_headers):
    resp = _create(client, staff_headers, [_line(seed["acme_id"], "1001")])
    assert resp.status_code == 422


def test_create_rejects_bad_lines(client, seed, staff_headers):
    resp = _create(client, staff_headers, [_line(seed["acme_id"], "CN-1", total_price="5")])
    assert resp.status_code == 422
    resp = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="5", pcs=0)])
    assert resp.status_code == 422
    resp = _create(client, staff_headers, [])
    assert resp.status_code == 422


def test_numeric_cn_no_accepted(client, seed, staff_headers):
    resp = _create(client, staff_headers, [_line(seed["acme_id"], 4321, total_price="5")])
    assert resp.status_code == 201, resp.text
    assert resp.json()["manifest_lists"][0]["cn_no"] == "4321"


def test_create_with_unknown_consignor_writes_nothing(client, seed, staff_headers):
    resp = _create(client, staff_headers, [_line(9999, "1001", total_price="5")])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Consignor 9999 not found"
    assert client.get("/api/manifests/", headers=staff_headers).json() == []


def test_append_prices_lines_from_rate_tables(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    manifest_id = created["manifest_info"]["id"]

    resp = client.post(
        "/api/manifests/",
        json={
            "manifest_info_id": manifest_id,
            "manifest_lists": [
                _line(seed["acme_id"], "1002", kg="3.5"),
                _line(seed["beta_id"], "1003", kg="3.5", discount=10),
            ],
        },
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["message"] == "Manifest updated successfully"
    assert body["manifest_info"]["manifest_no"] == "202403001"
    prices = [Decimal(line["total_price"]) for line in body["manifest_lists"]]
    # Acme on the default table, Beta on its plan with 10% off 10.25
    assert prices == [Decimal("15.00"), Decimal("9.23")]

    detail = client.get(f"/api/manifests/{manifest_id}", headers=staff_headers).json()
    assert [line["cn_no"] for line in detail["manifest_lists"]] == ["1001", "1002", "1003"]
    assert Decimal(detail["total_price"]) == Decimal("44.23")


def test_append_through_lists_endpoint(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    manifest_id = created["manifest_info"]["id"]

    resp = client.post(
        f"/api/manifests/{manifest_id}/lists",
        json={"manifest_lists": [_line(seed["acme_id"], "1002", kg="0.5")]},
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    assert Decimal(resp.json()["manifest_lists"][0]["total_price"]) == Decimal("10.00")


def test_append_with_total_price_is_rejected(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    resp = client.post(
        "/api/manifests/",
        json={
            "manifest_info_id": created["manifest_info"]["id"],
            "manifest_lists": [_line(seed["acme_id"], "1002", total_price="99.00")],
        },
        headers=staff_headers,
    )
    assert resp.status_code == 422


def test_append_to_unknown_manifest(client, seed, staff_headers):
    resp = client.post(
        "/api/manifests/",
        json={"manifest_info_id": 4040, "manifest_lists": [_line(seed["acme_id"], "1002")]},
        headers=staff_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Manifest 4040 not found"


def test_duplicate_cn_no_is_stored_at_zero(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    resp = client.post(
        "/api/manifests/",
        json={"manifest_info_id": created["manifest_info"]["id"], "manifest_lists": [_line(seed["acme_id"], "1001")]},
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert Decimal(body["manifest_lists"][0]["total_price"]) == Decimal("0")
    assert body["warnings"] == ["CN No: 1001 already exists, the total price will be set to 0"]


def test_duplicate_cn_no_within_one_batch(client, seed, staff_headers):
    resp = _create(
        client,
        staff_headers,
        [
            _line(seed["acme_id"], "2001", total_price="20.00"),
            _line(seed["acme_id"], "2001", total_price="30.00"),
        ],
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    prices = [Decimal(line["total_price"]) for line in body["manifest_lists"]]
    assert prices == [Decimal("20.00"), Decimal("0")]
    assert body["warnings"] == ["CN No: 2001 already exists, the total price will be set to 0"]


def test_missing_rate_rolls_back_whole_append(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    manifest_id = created["manifest_info"]["id"]

    resp = client.post(
        f"/api/manifests/{manifest_id}/lists",
        json={
            "manifest_lists": [
                _line(seed["acme_id"], "1002"),
                _line(seed["acme_id"], "1003", destination="kch"),
            ]
        },
        headers=staff_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Shipping rate not found for route KL -> KCH"

    detail = client.get(f"/api/manifests/{manifest_id}", headers=staff_headers).json()
    assert [line["cn_no"] for line in detail["manifest_lists"]] == ["1001"]


def test_update_and_soft_delete_manifest(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    manifest_id = created["manifest_info"]["id"]

    resp = client.put(
        f"/api/manifests/{manifest_id}",
        json={"to": "jhb", "flt": "MH2000", "manifest_no": "999999999"},
        headers=staff_headers,
    )
    assert resp.status_code == 200, resp.text
    info = resp.json()
    assert info["to"] == "JHB"
    assert info["flt"] == "MH2000"
    assert info["manifest_no"] == "202403001"

    assert client.delete(f"/api/manifests/{manifest_id}", headers=staff_headers).status_code == 204
    assert client.get(f"/api/manifests/{manifest_id}", headers=staff_headers).status_code == 404
    assert client.get("/api/manifests/", headers=staff_headers).json() == []
    assert client.delete(f"/api/manifests/{manifest_id}", headers=staff_headers).status_code == 404

    # The deleted manifest keeps its number
    again = _create(client, staff_headers, [_line(seed["acme_id"], "1002", total_price="5")]).json()
    assert again["manifest_info"]["manifest_no"] == "202403002"


def test_list_manifests_filters(client, seed, staff_headers):
    _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="5")], date="2024-03-01")
    _create(client, staff_headers, [_line(seed["beta_id"], "1002", total_price="5")], date="2024-03-10")

    listed = client.get("/api/manifests/", headers=staff_headers).json()
    assert [row["date"] for row in listed] == ["2024-03-10", "2024-03-01"]

    by_consignor = client.get(
        "/api/manifests/", params={"consignor_id": seed["beta_id"]}, headers=staff_headers
    ).json()
    assert [row["date"] for row in by_consignor] == ["2024-03-10"]

    by_date = client.get(
        "/api/manifests/",
        params={"start_date": "2024-02-01", "end_date": "2024-03-05"},
        headers=staff_headers,
    ).json()
    assert [row["date"] for row in by_date] == ["2024-03-01"]


def test_form_data(client, db, seed):
    db.add(Client(company_name="Head Office", role=ClientRole.ADMIN))
    db.commit()

    resp = client.get("/api/manifests/form-data")
    assert resp.status_code == 200
    body = resp.json()
    assert [company["company_name"] for company in body["companies"]] == ["Acme Trading", "Beta Logistics"]
    assert body["origins"] == ["KL"]
    assert body["destinations"] == ["JHB", "PEN"]


def test_estimate(client, seed, staff_headers):
    payload = {
        "origin": "kl",
        "destination": "pen",
        "consignor_id": seed["acme_id"],
        "kg": "3.5",
        "cn_no": "5000",
        "discount": 10,
    }
    resp = client.post("/api/manifests/estimate", json=payload)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"estimated_total_price": "13.50", "message": None}

    _create(client, staff_headers, [_line(seed["acme_id"], "5000", total_price="5")])
    resp = client.post("/api/manifests/estimate", json=payload)
    assert resp.json() == {
        "estimated_total_price": "0.00",
        "message": "CN No: 5000 already exists, total price set to 0.",
    }


def test_client_cn_numbers(client, seed, staff_headers):
    _create(
        client,
        staff_headers,
        [
            _line(seed["acme_id"], "1001", total_price="5"),
            _line(seed["beta_id"], "1002", total_price="5"),
        ],
    )
    resp = client.get(f"/api/clients/{seed['beta_id']}/cn-numbers", headers=staff_headers)
    assert resp.status_code == 200
    assert [line["cn_no"] for line in resp.json()] == ["1002"]


def test_append_batch_with_one_stored_cn_no(client, seed, staff_headers):
    created = _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")]).json()
    resp = client.post(
        f"/api/manifests/{created['manifest_info']['id']}/lists",
        json={"manifest_lists": [_line(seed["acme_id"], "1001"), _line(seed["acme_id"], "1002")]},
        headers=staff_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    prices = [Decimal(line["total_price"]) for line in body["manifest_lists"]]
    assert prices == [Decimal("0"), Decimal("15.00")]
    assert body["warnings"] == ["CN No: 1001 already exists, the total price will be set to 0"]


def test_create_batch_with_one_stored_cn_no(client, seed, staff_headers):
    _create(client, staff_headers, [_line(seed["acme_id"], "1001", total_price="20.00")])
    resp = _create(
        client,
        staff_headers,
        [
            _line(seed["acme_id"], "3001", total_price="7.00"),
            _line(seed["acme_id"], "1001", total_price="20.00"),
        ],
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    prices = [Decimal(line["total_price"]) for line in body["manifest_lists"]]
    assert prices == [Decimal("7.00"), Decimal("0")]
    assert body["warnings"] == ["CN No: 1001 already exists, the total price will be set to 0"]
