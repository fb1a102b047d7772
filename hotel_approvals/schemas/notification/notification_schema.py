from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime

class NotificationResponse(BaseModel):
    id: int
    type: Optional[str] = None
    title: Optional[str] = None
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None
    read: bool = False
