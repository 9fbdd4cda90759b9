from datetime import datetime, timedelta
from uuid import UUID

from app.branchflow.core.error_catalog import ErrorCatalog
from app.branchflow.db.models import Transfer

from tests.transfer_helpers import (
    auth_headers,
    build_scenario,
    create_equipment,
    create_transfer,
    create_user,
)


def _list(client, user, params=None, **headers):
    response = client.get("/transfers", params=params or {}, headers=auth_headers(user, **headers))
    assert response.status_code == 200, response.text
    return response.json()["rows"]


def test_delivery_only_lists_assigned_transfers(client, db_session):
    scenario = build_scenario(client, db_session, items=1)
    other_courier = create_user(db_session, role="DELIVERY")
    extra = create_equipment(db_session, location=scenario.branches.maus)
    other = create_transfer(client, scenario.admin, [extra], to_branch="Hidalgo", courier=other_courier)

    rows = _list(client, scenario.courier)
    assert [row["id"] for row in rows] == [scenario.transfer["id"]]

    rows = _list(client, other_courier)
    assert [row["id"] for row in rows] == [other["id"]]

    response = client.get(f"/transfers/{other['id']}", headers=auth_headers(scenario.courier))
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.TRANSFER_NOT_FOUND.code


def test_store_sees_outgoing_always_and_incoming_once_moving(client, db_session):
    scenario = build_scenario(client, db_session, items=1)
    origin_seller = create_user(db_session, role="SELLER", location=scenario.branches.hidalgo)

    assert [row["id"] for row in _list(client, origin_seller)] == [scenario.transfer["id"]]
    assert _list(client, scenario.seller) == []

    client.put(
        f"/transfers/{scenario.transfer['id']}/courier/items",
        json={"allReceived": True},
        headers=auth_headers(scenario.courier),
    )

    rows = _list(client, scenario.seller)
    assert [row["id"] for row in rows] == [scenario.transfer["id"]]
    assert rows[0]["status"] == "in_transit_complete"
    assert rows[0]["totalItems"] == 1


def test_store_user_without_branch_sees_nothing(client, db_session):
    scenario = build_scenario(client, db_session, items=1)
    floating = create_user(db_session, role="CASHIER")

    assert _list(client, floating) == []
    assert _list(client, floating, **{"X-Branch-Id": str(scenario.branches.hidalgo.id)}) == []
    response = client.get(f"/transfers/{scenario.transfer['id']}", headers=auth_headers(floating))
    assert response.status_code == 404


def test_admin_list_is_newest_first_and_capped(client, db_session):
    scenario = build_scenario(client, db_session, items=1)
    base = datetime(2026, 1, 1, 9, 0, 0)
    for index in range(12):
        equipment = create_equipment(db_session, location=scenario.branches.hidalgo)
        created = create_transfer(client, scenario.admin, [equipment], to_branch="Maus")
        transfer = db_session.get(Transfer, UUID(created["id"]))
        transfer.created_at = base + timedelta(hours=index)
    db_session.commit()

    rows = _list(client, scenario.admin)

    assert len(rows) == 10
    created_at = [row["createdAt"] for row in rows]
    assert created_at == sorted(created_at, reverse=True)


def test_admin_filters_are_honored_and_uncapped(client, db_session):
    scenario = build_scenario(client, db_session, items=2)
    tracked_imei = scenario.equipment[0].imei
    for _ in range(11):
        equipment = create_equipment(db_session, location=scenario.branches.maus)
        create_transfer(client, scenario.admin, [equipment], to_branch="Hidalgo")

    rows = _list(client, scenario.admin, {"imei": tracked_imei})
    assert [row["id"] for row in rows] == [scenario.transfer["id"]]

    rows = _list(client, scenario.admin, {"fromBranch": "maus"})
    assert len(rows) == 11
    assert {row["fromBranch"] for row in rows} == {"Maus"}

    rows = _list(client, scenario.admin, {"toBranch": "MAUS HOME"})
    assert [row["id"] for row in rows] == [scenario.transfer["id"]]


def test_admin_date_filters(client, db_session):
    scenario = build_scenario(client, db_session, items=1)
    transfer = db_session.get(Transfer, UUID(scenario.transfer["id"]))
    transfer.created_at = datetime(2026, 3, 15, 18, 30)
    db_session.commit()

    assert len(_list(client, scenario.admin, {"date": "2026-03-15"})) == 1
    assert _list(client, scenario.admin, {"date": "2026-03-16"}) == []
    assert len(_list(client, scenario.admin, {"startDate": "2026-03-01", "endDate": "2026-03-15"})) == 1
    assert _list(client, scenario.admin, {"startDate": "2026-03-16"}) == []


def test_filters_from_scoped_roles_are_ignored(client, db_session):
    scenario = build_scenario(client, db_session, items=1)

    rows = _list(client, scenario.courier, {"imei": "does-not-exist"})

    assert [row["id"] for row in rows] == [scenario.transfer["id"]]


def test_detail_resolves_references(client, db_session):
    scenario = build_scenario(client, db_session, items=1)

    response = client.get(f"/transfers/{scenario.transfer['id']}", headers=auth_headers(scenario.admin))

    assert response.status_code == 200
    payload = response.json()
    assert payload["requestedBy"]["username"] == scenario.admin.username
    assert payload["assignedDeliveryUser"]["role"] == "DELIVERY"
    assert payload["receivedBy"] is None
    equipment = payload["items"][0]["equipment"]
    assert equipment["imei"] == scenario.equipment[0].imei
    assert equipment["brand"] == "Samsung"
    assert equipment["state"] == "New"
    assert equipment["location"]["name"] == "Hidalgo"
