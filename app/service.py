import logging
import time
from typing import Any, Callable, List, Mapping, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from app.errors import InvalidPayload, NoReviews, NotFound
from app.models import Ride, RideReview
from app.schemas import (
    RideCreate,
    RideFilter,
    RideRatingOut,
    RideReviewCreate,
    RideUpdate,
)
from app.store import RecordStore

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseModel)
Payload = Union[BaseModel, Mapping[str, Any]]


def _validate(schema: Type[S], payload: Payload) -> S:
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise InvalidPayload(errors=e.errors(include_url=False)) from e


def _same_place(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class RideService:
    """
    Ride and review operations over two injected stores.

    Each call reads or writes the stores directly and leaves no state
    behind; the average rating is always computed from the reviews.
    """

    def __init__(
        self,
        rides: RecordStore[Ride],
        reviews: RecordStore[RideReview],
        new_id: Callable[[], str] = Ride.new_id,
        clock: Callable[[], int] = time.time_ns,
    ):
        self.rides = rides
        self.reviews = reviews
        self.new_id = new_id
        self.clock = clock

    # ─── Rides ────────────────────────────────────────────────────────────────

    def add_ride(self, payload: Payload) -> Ride:
        data = _validate(RideCreate, payload)
        ride = Ride(
            id=self.new_id(),
            created_at=self.clock(),
            updated_at=None,
            **data.model_dump(),
        )
        self.rides.insert(ride)
        logger.info(f"Ride {ride.id} created by provider {ride.provider_id}")
        return ride

    def get_ride(self, ride_id: str) -> Ride:
        ride = self.rides.get(ride_id)
        if ride is None:
            raise NotFound("Ride", ride_id)
        return ride

    def get_all_rides(self) -> List[Ride]:
        return list(self.rides.values())

    def update_ride(self, ride_id: str, payload: Payload) -> Ride:
        ride = self.get_ride(ride_id)
        data = _validate(RideUpdate, payload)
        changes = data.model_dump(exclude_unset=True)
        # an explicit null is not a value for a required field
        if any(v is None for v in changes.values()):
            raise InvalidPayload("Ride fields cannot be null")

        for field, value in changes.items():
            setattr(ride, field, value)
        ride.updated_at = self.clock()
        self.rides.insert(ride)
        logger.info(f"Ride {ride_id} updated: {sorted(changes)}")
        return ride

    def delete_ride(self, ride_id: str) -> Ride:
        ride = self.rides.remove(ride_id)
        if ride is None:
            raise NotFound("Ride", ride_id)
        # reviews are kept
        logger.info(f"Ride {ride_id} deleted")
        return ride

    def update_ride_start_location(self, ride_id: str, start_location: str) -> Ride:
        return self.update_ride(ride_id, {"start_location": start_location})

    def update_ride_end_location(self, ride_id: str, end_location: str) -> Ride:
        return self.update_ride(ride_id, {"end_location": end_location})

    def update_ride_date(self, ride_id: str, date: str) -> Ride:
        return self.update_ride(ride_id, {"date": date})

    def update_ride_start_time(self, ride_id: str, start_time: str) -> Ride:
        return self.update_ride(ride_id, {"start_time": start_time})

    def update_ride_end_time(self, ride_id: str, end_time: str) -> Ride:
        return self.update_ride(ride_id, {"end_time": end_time})

    def update_ride_available_seats(self, ride_id: str, available_seats: int) -> Ride:
        return self.update_ride(ride_id, {"available_seats": available_seats})

    # ─── Searches ─────────────────────────────────────────────────────────────

    def search_rides_by_start_location(self, location: str) -> List[Ride]:
        return [r for r in self.rides.values() if _same_place(r.start_location, location)]

    def search_rides_by_end_location(self, location: str) -> List[Ride]:
        return [r for r in self.rides.values() if _same_place(r.end_location, location)]

    def filter_rides_by_date_range(self, start_date: str, end_date: str) -> List[Ride]:
        # ISO dates sort as strings
        return [r for r in self.rides.values() if start_date <= r.date <= end_date]

    def filter_rides_by_available_seats(self, min_seats: int) -> List[Ride]:
        return [r for r in self.rides.values() if r.available_seats >= min_seats]

    def get_rides_by_provider(self, provider_id: str) -> List[Ride]:
        return [r for r in self.rides.values() if r.provider_id == provider_id]

    def filter_rides(self, criteria: Payload) -> List[Ride]:
        c = _validate(RideFilter, criteria)

        def matches(ride: Ride) -> bool:
            if c.start_location and not _same_place(ride.start_location, c.start_location):
                return False
            if c.end_location and not _same_place(ride.end_location, c.end_location):
                return False
            if c.start_date and c.end_date and not (c.start_date <= ride.date <= c.end_date):
                return False
            if c.min_available_seats is not None and ride.available_seats < c.min_available_seats:
                return False
            return True

        return [r for r in self.rides.values() if matches(r)]

    # ─── Reviews ──────────────────────────────────────────────────────────────

    def add_ride_review(self, payload: Payload) -> RideReview:
        data = _validate(RideReviewCreate, payload)
        if self.rides.get(data.ride_id) is None:
            logger.warning(f"Review rejected: ride {data.ride_id} does not exist")
            raise NotFound("Ride", data.ride_id)

        review = RideReview(id=self.new_id(), created_at=self.clock(), **data.model_dump())
        self.reviews.insert(review)
        logger.info(f"Review {review.id} added to ride {review.ride_id} (rating={review.rating})")
        return review

    def get_ride_reviews(self, ride_id: str) -> List[RideReview]:
        return [r for r in self.reviews.values() if r.ride_id == ride_id]

    def get_ride_average_rating(self, ride_id: str) -> RideRatingOut:
        ratings = [r.rating for r in self.get_ride_reviews(ride_id)]
        if not ratings:
            raise NoReviews(ride_id)
        return RideRatingOut(
            ride_id=ride_id,
            avg_rating=sum(ratings) / len(ratings),
            count=len(ratings),
        )
