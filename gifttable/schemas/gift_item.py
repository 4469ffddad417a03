"""
Gift item Pydantic schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

__all__ = ["GiftItemCreate", "GiftItemUpdate", "GiftItemResponse", "AttendeeGiftItemView"]

def clean_store_urls(urls: List[str]) -> List[str]:
    """Strip whitespace and drop blank entries, keeping order"""
    return [url.strip() for url in urls if url and url.strip()]

class GiftItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    store_urls: List[str] = []

    @field_validator("store_urls")
    @classmethod
    def normalize_store_urls(cls, urls: List[str]) -> List[str]:
        return clean_store_urls(urls)

class GiftItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    store_urls: Optional[List[str]] = None

    @field_validator("store_urls")
    @classmethod
    def normalize_store_urls(cls, urls: Optional[List[str]]) -> Optional[List[str]]:
        return None if urls is None else clean_store_urls(urls)

class GiftItemResponse(BaseModel):
    """Gift item as the organizer sees it, claim details included"""
    id: int
    event_id: int
    name: str
    price: Optional[Decimal] = None
    store_urls: List[str]
    claimed_by_attendee_id: Optional[int] = None
    claimed_by_name: Optional[str] = None
    claimed_by_email: Optional[str] = None
    claimed_at: Optional[datetime] = None
    created_at: datetime

class AttendeeGiftItemView(BaseModel):
    """Gift item as an attendee sees it"""
    id: int
    name: str
    price: Optional[Decimal] = None
    store_urls: List[str]
    claimed: bool
    claimed_by_name: Optional[str] = None
    claimed_by_me: bool
    claimed_at: Optional[datetime] = None
