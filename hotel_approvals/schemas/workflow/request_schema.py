from pydantic import BaseModel, Field, AliasChoices, validator
from typing import Optional, Any, Dict, List
from datetime import datetime
from hotel_approvals.models.shared.enums import (
    RequestStatus, StepStatus, RequestAction, CommentVisibility, RequestEventType
)

class RequestSubmit(BaseModel):
    entity_type: str = Field(..., min_length=1, max_length=50)
    entity_id: str = Field(..., min_length=1, max_length=64)
    property_id: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @validator('entity_type')
    def normalize_entity_type(cls, v):
        return v.strip().lower()

class RequestStepInfo(BaseModel):
    id: int
    step_order: int
    assignee_id: Optional[int] = None
    assignee_role: Optional[str] = None
    status: StepStatus
    comment: Optional[str] = None
    acted_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RequestCommentInfo(BaseModel):
    id: int
    author_id: int
    comment: str
    visibility: CommentVisibility
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RequestAttachmentInfo(BaseModel):
    id: int
    uploaded_by: Optional[int] = None
    storage_bucket: str
    storage_path: str
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RequestEventInfo(BaseModel):
    id: int
    request_id: int
    actor_id: Optional[int] = None
    event_type: RequestEventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RequestSummary(BaseModel):
    id: int
    request_no: int
    entity_type: str
    entity_id: str
    requester_id: int
    supervisor_id: Optional[int] = None
    current_assignee_id: Optional[int] = None
    status: RequestStatus
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("request_metadata", "metadata"),
    )

    @validator("metadata", pre=True)
    def default_metadata(cls, v):
        return v or {}

    class Config:
        from_attributes = True

class RequestResponse(RequestSummary):
    steps: List[RequestStepInfo] = []
    comments: List[RequestCommentInfo] = []
    attachments: List[RequestAttachmentInfo] = []

class OverdueRequest(RequestSummary):
    hours_pending: int
    is_overdue: bool = True

class RequestActionRequest(BaseModel):
    action: str  # approve, reject, return, forward, add_comment, close
    comment: Optional[str] = None
    forward_to: Optional[int] = None
    visibility: CommentVisibility = CommentVisibility.ALL

class RequestMetadataUpdate(BaseModel):
    updates: Dict[str, Any] = Field(..., min_length=1)

class RequestAttachmentCreate(BaseModel):
    storage_path: str = Field(..., min_length=1, max_length=500)
    file_name: Optional[str] = Field(None, max_length=255)
    file_type: Optional[str] = Field(None, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)

class ActionResult(BaseModel):
    success: bool
    message: str
    code: Optional[str] = None
    request_id: Optional[int] = None
    action: Optional[RequestAction] = None
