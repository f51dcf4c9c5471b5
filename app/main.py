import logging

from fastapi import FastAPI, Depends, HTTPException, Body, Query, Request, status, APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import Any, Optional, List

from prometheus_fastapi_instrumentator import Instrumentator

from app.config import settings
from app.database import get_db, engine
from app.errors import ErrorCode, RideServiceError
from app.models import Base, Ride, RideReview
from app.schemas import (
    RideCreate,
    RideOut,
    RideFilter,
    RideReviewCreate,
    RideReviewOut,
    RideRatingOut,
)
from app.service import RideService
from app.store import RecordStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter()

Instrumentator().instrument(app).expose(app)

def get_ride_service(db: Session = Depends(get_db)) -> RideService:
    return RideService(RecordStore(db, Ride), RecordStore(db, RideReview))

@app.exception_handler(RideServiceError)
async def ride_service_error_handler(request: Request, exc: RideServiceError) -> JSONResponse:
    content = {"detail": exc.message, "error": exc.code}
    if getattr(exc, "errors", None):
        content["errors"] = jsonable_encoder(exc.errors)
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Invalid payload on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid input payload",
            "error": ErrorCode.INVALID_PAYLOAD,
            "errors": jsonable_encoder(exc.errors()),
        },
    )

@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)

# ─── Rides ────────────────────────────────────────────────────────────────────

@router.post("/rides", response_model=RideOut, status_code=201)
def add_ride(payload: RideCreate, service: RideService = Depends(get_ride_service)):
    return service.add_ride(payload)

@router.get("/rides", response_model=List[RideOut])
def get_all_rides(service: RideService = Depends(get_ride_service)):
    return service.get_all_rides()

@router.get("/rides/filter", response_model=List[RideOut])
def filter_rides(
    start_location: Optional[str] = None,
    end_location: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    min_available_seats: Optional[int] = Query(None, ge=0),
    service: RideService = Depends(get_ride_service),
):
    criteria = RideFilter(
        start_location=start_location,
        end_location=end_location,
        start_date=start_date,
        end_date=end_date,
        min_available_seats=min_available_seats,
    )
    return service.filter_rides(criteria)

@router.get("/rides/search/start-location", response_model=List[RideOut])
def search_rides_by_start_location(location: str, service: RideService = Depends(get_ride_service)):
    return service.search_rides_by_start_location(location)

@router.get("/rides/search/end-location", response_model=List[RideOut])
def search_rides_by_end_location(location: str, service: RideService = Depends(get_ride_service)):
    return service.search_rides_by_end_location(location)

@router.get("/rides/search/date-range", response_model=List[RideOut])
def filter_rides_by_date_range(
    start_date: str,
    end_date: str,
    service: RideService = Depends(get_ride_service),
):
    return service.filter_rides_by_date_range(start_date, end_date)

@router.get("/rides/search/available-seats", response_model=List[RideOut])
def filter_rides_by_available_seats(
    min_seats: int = Query(..., ge=0),
    service: RideService = Depends(get_ride_service),
):
    return service.filter_rides_by_available_seats(min_seats)

@router.get("/providers/{provider_id}/rides", response_model=List[RideOut])
def get_rides_by_provider(provider_id: str, service: RideService = Depends(get_ride_service)):
    return service.get_rides_by_provider(provider_id)

@router.get("/rides/{ride_id}", response_model=RideOut)
def get_ride(ride_id: str, service: RideService = Depends(get_ride_service)):
    return service.get_ride(ride_id)

@router.put("/rides/{ride_id}", response_model=RideOut)
def update_ride(ride_id: str, payload: dict = Body(...), service: RideService = Depends(get_ride_service)):
    return service.update_ride(ride_id, payload)

@router.delete("/rides/{ride_id}", response_model=RideOut)
def delete_ride(ride_id: str, service: RideService = Depends(get_ride_service)):
    return service.delete_ride(ride_id)

@router.patch("/rides/{ride_id}/start-location", response_model=RideOut)
def update_ride_start_location(
    ride_id: str,
    start_location: Any = Body(..., embed=True),
    service: RideService = Depends(get_ride_service),
):
    return service.update_ride_start_location(ride_id, start_location)

@router.patch("/rides/{ride_id}/end-location", response_model=RideOut)
def update_ride_end_location(
    ride_id: str,
    end_location: Any = Body(..., embed=True),
    service: RideService = Depends(get_ride_service),
):
    return service.update_ride_end_location(ride_id, end_location)

@router.patch("/rides/{ride_id}/date", response_model=RideOut)
def update_ride_date(
    ride_id: str,
    date: Any = Body(..., embed=True),
    service: RideService = Depends(get_ride_service),
):
    return service.update_ride_date(ride_id, date)

@router.patch("/rides/{ride_id}/start-time", response_model=RideOut)
def update_ride_start_time(
    ride_id: str,
    start_time: Any = Body(..., embed=True),
    service: RideService = Depends(get_ride_service),
):
    return service.update_ride_start_time(ride_id, start_time)

@router.patch("/rides/{ride_id}/end-time", response_model=RideOut)
def update_ride_end_time(
    ride_id: str,
    end_time: Any = Body(..., embed=True),
    service: RideService = Depends(get_ride_service),
):
    return service.update_ride_end_time(ride_id, end_time)

@router.patch("/rides/{ride_id}/available-seats", response_model=RideOut)
def update_ride_available_seats(
    ride_id: str,
    available_seats: Any = Body(..., embed=True),
    service: RideService = Depends(get_ride_service),
):
    return service.update_ride_available_seats(ride_id, available_seats)

# ─── Reviews ──────────────────────────────────────────────────────────────────

@router.post("/reviews", response_model=RideReviewOut, status_code=201)
def add_ride_review(payload: RideReviewCreate, service: RideService = Depends(get_ride_service)):
    return service.add_ride_review(payload)

@router.get("/rides/{ride_id}/reviews", response_model=List[RideReviewOut])
def get_ride_reviews(ride_id: str, service: RideService = Depends(get_ride_service)):
    return service.get_ride_reviews(ride_id)

@router.get("/rides/{ride_id}/rating", response_model=RideRatingOut)
def get_ride_average_rating(ride_id: str, service: RideService = Depends(get_ride_service)):
    return service.get_ride_average_rating(ride_id)

@router.get("/health", tags=["health"])
def health(db: Session = Depends(get_db)):
    try:
        db.execute(select(1))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database unavailable: {e}",
        )
    return {"status": "ok", "db": "ok"}

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
