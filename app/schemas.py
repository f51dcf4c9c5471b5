from pydantic import BaseModel, Field
from typing import Optional

class RideCreate(BaseModel):
    provider_id: str = Field(min_length=1)
    date: str = Field(min_length=1)
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)
    start_location: str = Field(min_length=1)
    end_location: str = Field(min_length=1)
    # zero seats counts as missing on creation
    available_seats: int = Field(ge=1, strict=True)
    description: str = Field(min_length=1)

class RideUpdate(BaseModel):
    provider_id: Optional[str] = Field(default=None, min_length=1)
    date: Optional[str] = Field(default=None, min_length=1)
    start_time: Optional[str] = Field(default=None, min_length=1)
    end_time: Optional[str] = Field(default=None, min_length=1)
    start_location: Optional[str] = Field(default=None, min_length=1)
    end_location: Optional[str] = Field(default=None, min_length=1)
    available_seats: Optional[int] = Field(default=None, ge=0, strict=True)
    description: Optional[str] = Field(default=None, min_length=1)

class RideOut(BaseModel):
    id: str
    provider_id: str
    date: str
    start_time: str
    end_time: str
    start_location: str
    end_location: str
    available_seats: int
    description: str
    created_at: int
    updated_at: Optional[int] = None

    class Config:
        from_attributes = True

class RideFilter(BaseModel):
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    min_available_seats: Optional[int] = Field(default=None, ge=0)

class RideReviewCreate(BaseModel):
    ride_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5, strict=True)
    comment: str = Field(min_length=1)

class RideReviewOut(BaseModel):
    id: str
    ride_id: str
    user_id: str
    rating: int
    comment: str
    created_at: int

    class Config:
        from_attributes = True

class RideRatingOut(BaseModel):
    ride_id: str
    avg_rating: float
    count: int
