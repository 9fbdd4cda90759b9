from datetime import datetime
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm.exc import StaleDataError

from app.branchflow.core.error_catalog import AppError, ErrorCatalog
from app.branchflow.core.errors import setup_exception_handlers
from app.branchflow.services.access_scope import SCOPE_ALL, TransferScope
from app.branchflow.services.transfers import TransferService

from tests.transfer_helpers import auth_headers, build_scenario


def test_stale_revision_is_reported_as_conflict(client, db_session):
    scenario = build_scenario(client, db_session)
    service = TransferService(db_session)
    transfer = service.repo.get_transfer(UUID(scenario.transfer["id"]), TransferScope(kind=SCOPE_ALL))
    assert transfer.revision == 1

    response = client.put(
        f"/transfers/{scenario.transfer['id']}/courier/items",
        json={"allReceived": True},
        headers=auth_headers(scenario.courier),
    )
    assert response.json()["transfer"]["revision"] == 2

    transfer.reason = "stale edit"
    transfer.updated_at = datetime.utcnow()
    with pytest.raises(AppError) as exc_info:
        service._commit_scan(transfer)

    assert exc_info.value.error is ErrorCatalog.TRANSFER_CONCURRENT_MODIFICATION
    db_session.expire_all()
    current = service.repo.get_transfer(UUID(scenario.transfer["id"]), TransferScope(kind=SCOPE_ALL))
    assert current.reason == ""
    assert current.revision == 2


def test_stale_data_error_maps_to_409():
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/stale")
    def stale():
        raise StaleDataError("UPDATE statement on table 'transfers' expected to update 1 row(s); 0 were matched.")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/stale")

    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.TRANSFER_CONCURRENT_MODIFICATION.code
