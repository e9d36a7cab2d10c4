"""
Request/response models for the search and ingest endpoints.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchRequest(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = None
    size: Optional[int] = None

    model_config = ConfigDict(protected_namespaces=())

    @field_validator('size')
    @classmethod
    def size_must_be_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError('size must be positive')
        return v


class GetMetadataRequest(BaseModel):
    cid: str

    @field_validator('cid')
    @classmethod
    def cid_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('cid cannot be empty')
        return v


class DeltaDocument(BaseModel):
    """Table delta as emitted by the chain indexer."""
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    code: str
    table: str
    scope: Optional[str] = None
    primary_key: Optional[Any] = None
    block_num: Optional[int] = None
    timestamp: Optional[str] = Field(default=None, alias='@timestamp')
    data: Dict[str, Any]

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ActionDocument(BaseModel):
    """Contract action as emitted by the chain indexer."""
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    trx_id: Optional[str] = None
    block_num: Optional[int] = None
    timestamp: Optional[str] = Field(default=None, alias='@timestamp')
    act: Dict[str, Any]

    @field_validator('act')
    @classmethod
    def act_must_name_action(cls, v):
        if not v.get('account') or not v.get('name'):
            raise ValueError('act must include account and name')
        return v

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class IngestResponse(BaseModel):
    indexed: bool
    row_id: Optional[int] = None
    request_hash: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    pending_count: int
    submissions: int
    confirmations: int


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)
