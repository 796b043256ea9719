import datetime
from pydantic import BaseModel, ConfigDict, Field

class _Camel(BaseModel):
    # serializa con alias camelCase (contrato del dashboard)
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

class ServiceResult(_Camel):
    id: str
    name: str
    ok: bool
    status_code: int | None = Field(default=None, alias="statusCode")
    details: str | None = None

class SnapshotOut(_Camel):
    id: int
    healthy: int
    total: int
    all_healthy: bool = Field(alias="allHealthy")
    services: list[ServiceResult]
    created_at: datetime.datetime = Field(alias="createdAt")

class HistoryOut(BaseModel):
    data: list[SnapshotOut]
    count: int
