from app.branchflow.core.error_catalog import ErrorCatalog

from tests.transfer_helpers import auth_headers, build_scenario, create_user


def _courier_scan(client, scenario, payload, user=None):
    return client.put(
        f"/transfers/{scenario.transfer['id']}/courier/items",
        json=payload,
        headers=auth_headers(user or scenario.courier),
    )


def test_courier_all_received_completes_transit(client, db_session):
    scenario = build_scenario(client, db_session)

    response = _courier_scan(client, scenario, {"allReceived": True, "observation": "boxed"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "All items marked as received"
    transfer = payload["transfer"]
    assert transfer["courierReceived"] == 3
    assert transfer["status"] == "in_transit_complete"
    assert transfer["revision"] == 2
    for item in transfer["items"]:
        assert item["courier"]["status"] == "received"
        assert item["courier"]["observation"] == "boxed"
        assert item["courier"]["by"]["id"] == str(scenario.courier.id)
        assert item["courier"]["at"] is not None


def test_courier_batch_actions_skip_bad_entries(client, db_session):
    scenario = build_scenario(client, db_session)
    first, second, third = (item.imei for item in scenario.equipment)

    response = _courier_scan(
        client,
        scenario,
        {
            "actions": [
                {"imei": first, "status": "received"},
                {"imei": second, "status": "NOT_RECEIVED", "observation": "screen cracked"},
                {"imei": "000000000000000", "status": "received"},
                {"imei": third, "status": "lost"},
                {"status": "received"},
            ]
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Items updated"
    items = {item["imei"]: item for item in payload["transfer"]["items"]}
    assert items[first]["courier"]["status"] == "received"
    assert items[second]["courier"]["status"] == "not_received"
    assert items[second]["courier"]["observation"] == "screen cracked"
    assert items[third]["courier"]["status"] == "pending"
    assert payload["transfer"]["status"] == "pending"
    assert payload["transfer"]["courierReceived"] == 1


def test_courier_batch_keeps_valid_entries_when_others_are_malformed(client, db_session):
    scenario = build_scenario(client, db_session)
    first, second, third = (item.imei for item in scenario.equipment)

    response = _courier_scan(
        client,
        scenario,
        {
            "actions": [
                {"imei": first, "status": "received"},
                {"imei": second, "status": 5},
                "garbage",
                {"imei": third, "status": "received", "observation": 42},
            ]
        },
    )

    assert response.status_code == 200
    items = {item["imei"]: item for item in response.json()["transfer"]["items"]}
    assert items[first]["courier"]["status"] == "received"
    assert items[second]["courier"]["status"] == "pending"
    assert items[third]["courier"]["status"] == "received"
    assert items[third]["courier"]["observation"] == "42"
    assert response.json()["transfer"]["courierReceived"] == 2


def test_courier_single_item_id_is_case_insensitive(client, db_session):
    scenario = build_scenario(client, db_session, items=2)
    first_id, second_id = (item["id"] for item in scenario.transfer["items"])

    response = _courier_scan(client, scenario, {"receivedItemId": f" {first_id.upper()} "})

    assert response.status_code == 200
    items = {item["id"]: item for item in response.json()["transfer"]["items"]}
    assert items[first_id]["courier"]["status"] == "received"
    assert items[second_id]["courier"]["status"] == "pending"

    response = _courier_scan(client, scenario, {"notReceivedItemId": "not-a-uuid"})
    assert response.status_code == 200
    assert response.json()["transfer"]["courierReceived"] == 1


def test_courier_single_item_shortcuts(client, db_session):
    scenario = build_scenario(client, db_session, items=2)
    first_id, second_id = (item["id"] for item in scenario.transfer["items"])

    response = _courier_scan(client, scenario, {"receivedItemId": first_id})
    assert response.json()["message"] == "Item marked as received"

    response = _courier_scan(client, scenario, {"notReceivedItemId": second_id, "observation": "missing"})
    payload = response.json()
    assert payload["message"] == "Item marked as not received"
    assert payload["transfer"]["status"] == "in_transit_partial"
    items = {item["id"]: item for item in payload["transfer"]["items"]}
    assert items[second_id]["courier"]["observation"] == "missing"


def test_courier_later_forms_win(client, db_session):
    scenario = build_scenario(client, db_session, items=2)
    first_id = scenario.transfer["items"][0]["id"]

    response = _courier_scan(
        client,
        scenario,
        {"allReceived": True, "notReceivedItemId": first_id},
    )

    payload = response.json()
    assert payload["message"] == "All items marked as received"
    items = {item["id"]: item for item in payload["transfer"]["items"]}
    assert items[first_id]["courier"]["status"] == "not_received"
    assert payload["transfer"]["courierReceived"] == 1
    assert payload["transfer"]["status"] == "in_transit_partial"


def test_courier_all_not_received_fails_transfer(client, db_session):
    scenario = build_scenario(client, db_session)

    response = _courier_scan(client, scenario, {"allNotReceived": True})

    payload = response.json()
    assert payload["message"] == "All items marked as not received"
    assert payload["transfer"]["status"] == "failed"


def test_courier_cannot_scan_transfer_assigned_to_someone_else(client, db_session):
    scenario = build_scenario(client, db_session)
    other_courier = create_user(db_session, role="DELIVERY")

    response = _courier_scan(client, scenario, {"allReceived": True}, user=other_courier)

    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.TRANSFER_NOT_FOUND.code


def test_courier_scan_requires_delivery_role(client, db_session):
    scenario = build_scenario(client, db_session)

    response = _courier_scan(client, scenario, {"allReceived": True}, user=scenario.seller)

    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code


def test_courier_scan_unknown_transfer(client, db_session):
    scenario = build_scenario(client, db_session)

    response = client.put(
        "/transfers/not-a-uuid/courier/items",
        json={"allReceived": True},
        headers=auth_headers(scenario.courier),
    )

    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.TRANSFER_NOT_FOUND.code
