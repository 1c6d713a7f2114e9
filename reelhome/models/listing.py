"""Listing models."""

import math
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator

from reelhome.utils.errors import ListingValidationError
from reelhome.utils.video import is_valid_youtube_url


DISTRICTS: tuple[str, ...] = (
    "台北市中正區",
    "台北市大同區",
    "台北市中山區",
    "台北市松山區",
    "台北市大安區",
    "台北市萬華區",
    "台北市信義區",
    "台北市士林區",
    "台北市北投區",
    "台北市內湖區",
    "台北市南港區",
    "台北市文山區",
    "新北市板橋區",
    "新北市三重區",
    "新北市中和區",
    "新北市永和區",
    "新北市新莊區",
    "新北市新店區",
    "新北市土城區",
    "新北市蘆洲區",
    "新北市汐止區",
    "新北市樹林區",
    "新北市淡水區",
    "新北市林口區",
    "桃園市桃園區",
    "桃園市中壢區",
    "桃園市八德區",
    "桃園市龜山區",
)

ROOM_TYPES: tuple[str, ...] = (
    "套房",
    "1房1廳1衛",
    "2房1廳1衛",
    "2房2廳1衛",
    "2房2廳2衛",
    "3房2廳1衛",
    "3房2廳2衛",
    "4房2廳2衛",
)


def compute_price_per_ping(price: float, size: float) -> float:
    """Unit price (萬/坪) rounded half up to one decimal; 0 when size is not positive.

    31.25 becomes 31.3, not the banker's 31.2 that round() would give.
    """
    if not size or size <= 0:
        return 0
    return math.floor(price / size * 10 + 0.5) / 10


class Listing(BaseModel):
    """Published property listing with its video and contact details."""
    id: str = Field(..., description="Listing ID (uuid)")
    title: str = Field(..., description="Listing title")
    video_url: str = Field(..., description="YouTube or storage URL")
    community_name: Optional[str] = Field(None, description="Community/building name")
    district: str = Field(..., description="District, one of DISTRICTS")
    address: str = Field(..., description="Street address")
    price: float = Field(..., description="Total price in 萬")
    size: float = Field(..., description="Size in 坪")
    price_per_ping: float = Field(default=0, description="Derived unit price in 萬/坪")
    room_type: str = Field(..., description="Room layout, one of ROOM_TYPES")
    phone: str = Field(..., description="Contact phone")
    line_id: Optional[str] = Field(None, description="LINE messaging handle")
    created_at: Optional[str] = None
    is_published: bool = Field(default=True, description="Visible in feed and list")

    @model_validator(mode="after")
    def _derive_price_per_ping(self) -> "Listing":
        self.price_per_ping = compute_price_per_ping(self.price, self.size)
        return self


class ListingForm(BaseModel):
    """Agent submission for a new listing, validated before any network call."""
    title: str = ""
    video_url: str = ""
    community_name: str = ""
    district: str = ""
    address: str = ""
    price: float = 0
    size: float = 0
    room_type: str = ""
    phone: str = ""
    line_id: str = ""

    def validate_form(self) -> None:
        """Raise ListingValidationError for the first invalid field."""
        if not self.title.strip():
            raise ListingValidationError("請輸入標題", field="title")
        if not self.video_url.strip():
            raise ListingValidationError("請輸入 YouTube 網址", field="video_url")
        if not is_valid_youtube_url(self.video_url):
            raise ListingValidationError("請輸入有效的 YouTube 網址", field="video_url")
        if not self.district:
            raise ListingValidationError("請選擇地區", field="district")
        if self.district not in DISTRICTS:
            raise ListingValidationError("請選擇有效的地區", field="district")
        if not self.address.strip():
            raise ListingValidationError("請輸入地址", field="address")
        if self.price <= 0:
            raise ListingValidationError("請輸入有效的價格", field="price")
        if self.size <= 0:
            raise ListingValidationError("請輸入有效的坪數", field="size")
        if not self.room_type:
            raise ListingValidationError("請選擇房型", field="room_type")
        if self.room_type not in ROOM_TYPES:
            raise ListingValidationError("請選擇有效的房型", field="room_type")
        if not self.phone.strip():
            raise ListingValidationError("請輸入聯絡電話", field="phone")

    @property
    def price_per_ping(self) -> float:
        return compute_price_per_ping(self.price, self.size)

    def to_insert_payload(self) -> dict[str, Any]:
        """Row for the listings table: published immediately, blanks as null."""
        payload = self.model_dump()
        payload["community_name"] = self.community_name or None
        payload["line_id"] = self.line_id or None
        payload["price_per_ping"] = self.price_per_ping
        payload["is_published"] = True
        return payload


class ListingUpdate(BaseModel):
    """Partial agent edit; only fields that are set are sent."""
    title: Optional[str] = None
    video_url: Optional[str] = None
    community_name: Optional[str] = None
    district: Optional[str] = None
    address: Optional[str] = None
    price: Optional[float] = None
    size: Optional[float] = None
    room_type: Optional[str] = None
    phone: Optional[str] = None
    line_id: Optional[str] = None
    is_published: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)

    @property
    def touches_pricing(self) -> bool:
        changes = self.changes()
        return "price" in changes or "size" in changes


class FilterOptions(BaseModel):
    """Listing filter; an absent field imposes no constraint."""
    district: Optional[str] = None
    min_price: Optional[float] = Field(None, description="Inclusive lower price bound")
    max_price: Optional[float] = Field(None, description="Inclusive upper price bound")
    room_type: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.district or self.min_price or self.max_price or self.room_type)
