from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


_TRANSFER_CREATE_EXAMPLE = {
    "equipmentIds": ["1f0c6c52-6a4e-4c39-9a55-2f5b0d0c0f11"],
    "toBranch": "Maus Home",
    "reason": "Restock for weekend",
    "assignedDeliveryUser": "5b8d0f0e-1a75-4f65-9a3a-0a5e7c3d2b41",
}


class TransferCreateRequest(CamelModel):
    equipment_ids: list[UUID] = Field(default_factory=list)
    to_branch: str = Field(min_length=1)
    reason: str | None = None
    assigned_delivery_user: UUID | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": _TRANSFER_CREATE_EXAMPLE},
    )

    @field_validator("to_branch")
    @classmethod
    def _strip_branch(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("toBranch must not be blank")
        return value

    @field_validator("assigned_delivery_user", mode="before")
    @classmethod
    def _blank_courier_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


def _loose_text(value):
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class ScanAction(CamelModel):
    # Every field is optional: malformed entries are skipped, not rejected.
    imei: str | None = None
    status: str | None = None
    observation: str | None = None

    @field_validator("imei", "status", "observation", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _loose_text(value)


class ScanRequest(CamelModel):
    actions: list[ScanAction] = Field(default_factory=list)
    received_item_id: str | None = None
    not_received_item_id: str | None = None
    all_received: bool = False
    all_not_received: bool = False
    observation: str = ""

    @field_validator("actions", mode="before")
    @classmethod
    def _drop_non_objects(cls, value):
        if not isinstance(value, list):
            return []
        return [entry for entry in value if isinstance(entry, dict)]

    @field_validator("received_item_id", "not_received_item_id", mode="before")
    @classmethod
    def _coerce_item_id(cls, value):
        return _loose_text(value)

    @field_validator("observation", mode="before")
    @classmethod
    def _coerce_observation(cls, value):
        return _loose_text(value) or ""


class UserSummary(CamelModel):
    id: str
    username: str
    first_name: str
    last_name: str
    role: str


class LocationSummary(CamelModel):
    id: str
    name: str
    code: str


class EquipmentSummary(CamelModel):
    id: str
    imei: str
    brand: str | None
    model: str | None
    state: str
    location: LocationSummary | None


class ScanInfoResponse(CamelModel):
    status: str
    observation: str | None
    at: datetime | None
    by: UserSummary | None


class TransferItemResponse(CamelModel):
    id: str
    imei: str
    equipment: EquipmentSummary | None
    courier: ScanInfoResponse
    store: ScanInfoResponse


class TransferDetailResponse(CamelModel):
    id: str
    code: str
    from_branch: str
    to_branch: str
    from_location_id: str
    to_location_id: str
    status: str
    total_items: int
    courier_received: int
    store_received: int
    items: list[TransferItemResponse]
    requested_by: UserSummary | None
    assigned_delivery_user: UserSummary | None
    received_by: UserSummary | None
    reason: str
    revision: int
    created_at: datetime
    updated_at: datetime | None


class TransferSummaryResponse(CamelModel):
    id: str
    code: str
    from_branch: str
    to_branch: str
    status: str
    total_items: int
    courier_received: int
    store_received: int
    created_at: datetime
    assigned_delivery_user: str | None


class TransferListResponse(CamelModel):
    rows: list[TransferSummaryResponse]


class TransferMutationResponse(CamelModel):
    message: str
    transfer: TransferDetailResponse


class TransferDeleteResponse(CamelModel):
    message: str
    id: str
