from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.models.enums.artwork_status import ArtworkStatus
from app.models.enums.quote_status import QuoteStatus


class ArtworkUploadIn(BaseModel):
    url: str = Field(..., min_length=1, max_length=1024)
    file_name: Optional[str] = Field(None, max_length=255)


class ArtworkOut(BaseModel):
    quote_id: int
    quote_number: str
    quote_status: QuoteStatus

    artwork_url: Optional[str]
    artwork_file_name: Optional[str]
    artwork_version: int
    artwork_status: Optional[ArtworkStatus]
    artwork_required: bool

    sent_at: Optional[datetime]
    approved_at: Optional[datetime]
    declined_at: Optional[datetime]
    notes: Optional[str]

    response_state: str
    approval_url: Optional[str]


class ArtworkSendResult(BaseModel):
    artwork: ArtworkOut
    email_sent: bool
    message: str


class ArtworkVersionOut(BaseModel):
    id: Optional[int]
    version: int
    url: str
    file_name: Optional[str]
    status: ArtworkStatus
    sent_at: Optional[datetime]
    approved_at: Optional[datetime]
    declined_at: Optional[datetime]
    customer_notes: Optional[str]
    uploaded_by_name: Optional[str]
    uploaded_by_email: Optional[str]
    created_at: Optional[datetime]
    is_current: bool = False


class ArtworkVersionListData(BaseModel):
    total: int
    items: List[ArtworkVersionOut]
