"""
Booking Platform Schemas (MongoDB via Pydantic)
Request bodies for each collection; documents keep the same camelCase keys.
- Stay -> stay (reviews embedded)
- Order -> order
- Wishlist -> wishlist
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

class Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class MiniUser(Document):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(None, alias="_id")
    fullname: Optional[str] = None
    imgUrl: Optional[str] = None


class Location(BaseModel):
    model_config = ConfigDict(extra="allow")

    city: str = ""
    country: str = ""
    address: str = ""


class Review(Document):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    by: Optional[MiniUser] = None
    txt: str = ""
    createdAt: Optional[int] = None


class Stay(Document):
    id: Optional[str] = Field(None, alias="_id")
    name: Optional[str] = Field(None, max_length=200)
    type: Optional[str] = None
    summary: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    guests: Optional[int] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    beds: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0)
    roomType: Optional[str] = None
    imgUrls: Optional[List[str]] = None
    loc: Optional[Location] = None
    amenities: Optional[List[str]] = None
    availableFrom: Optional[str] = None
    availableUntil: Optional[str] = None
    host: Optional[MiniUser] = None
    reviews: Optional[List[Review]] = None
    likedByUsers: Optional[List[str]] = None


class ReviewRequest(BaseModel):
    txt: str = Field(..., min_length=1, max_length=2000)


class Order(Document):
    id: Optional[str] = Field(None, alias="_id")
    host: Optional[MiniUser] = None
    guest: Optional[MiniUser] = None
    totalPrice: Optional[float] = Field(None, ge=0)
    pricePerNight: Optional[float] = Field(None, ge=0)
    cleaningFee: Optional[float] = Field(None, ge=0)
    serviceFee: Optional[float] = Field(None, ge=0)
    numNights: Optional[int] = Field(None, ge=0)
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    guests: Optional[int] = Field(None, ge=0)
    stay: Optional[Dict[str, Any]] = None
    msgs: Optional[List[Dict[str, Any]]] = None
    status: Optional[str] = None  # pending | approved | declined
    bookedAt: Optional[str] = None


class Wishlist(Document):
    id: Optional[str] = Field(None, alias="_id")
    title: Optional[str] = Field(None, max_length=200)
    byUser: Optional[MiniUser] = None
    stays: Optional[List[str]] = None
    city: Optional[str] = None
    country: Optional[str] = None


class WishlistStayRequest(BaseModel):
    stayId: Optional[str] = None
