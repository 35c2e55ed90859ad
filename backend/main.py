from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from database import get_db, init_db, Person, Attendance
from directory import PersonDirectory
from errors import AttendanceError, StorageFailure
from filters import build_attendance_filter, parse_person_id
from ledger import AttendanceLedger
from logger_helper import setup_logger, create_logging_middleware
from photo_store import PhotoStore
from stats import StatisticsAggregator

logger = setup_logger()

# Request Models
class CheckInRequest(BaseModel):
    name: Optional[str] = None

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    images: List[str] = []


def get_photo_store() -> PhotoStore:
    return PhotoStore(config.LABELED_IMAGES_DIR)


def person_to_dict(person: Person) -> dict:
    return {
        "id": person.id,
        "name": person.name,
        "photoCount": person.photo_count,
        "createdAt": person.created_at.isoformat(),
    }


def attendance_to_dict(record: Attendance) -> dict:
    return {
        "id": record.id,
        "name": record.name,
        "timestamp": record.timestamp.isoformat(),
        "status": record.status,
    }


def storage_failure(db: Session, message: str) -> StorageFailure:
    """Roll back, log the active exception and build the caller-facing error."""
    db.rollback()
    logger.exception(message)
    return StorageFailure(message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup."""
    init_db()
    logger.info("Database initialized (%s)", config.DATABASE_URL)
    yield
    logger.info("Shutting down...")

app = FastAPI(
    title="Face Attendance",
    description="Check-in ledger, person registry and statistics for browser-side face recognition",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

create_logging_middleware(app, logger)

# Reference photos are read by the recognition client to build its matcher
app.mount(
    "/labeled_images",
    StaticFiles(directory=config.LABELED_IMAGES_DIR, check_dir=False),
    name="labeled_images"
)


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check query failed")
        database = "error"
    return {"status": "running", "database": database}

# Attendance Endpoints

@app.get("/attendance")
def list_attendance(
    search: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List attendance records, optionally filtered by name and day range."""
    filters = build_attendance_filter(search, startDate, endDate)
    try:
        records = AttendanceLedger(db).list(filters)
    except SQLAlchemyError:
        raise storage_failure(db, "Failed to fetch attendance records")

    return {
        "success": True,
        "count": len(records),
        "data": [attendance_to_dict(r) for r in records],
    }

@app.post("/check-in")
def check_in(request: CheckInRequest, db: Session = Depends(get_db)):
    """Record a check-in for a recognized identity."""
    try:
        result = AttendanceLedger(db).check_in(request.name)
    except SQLAlchemyError:
        raise storage_failure(db, "Internal Server Error")

    if not result.created:
        return {"message": "Already checked in recently", "status": result.status}
    return {
        "message": "Check-in successful",
        "status": result.status,
        "data": attendance_to_dict(result.record),
    }

# People Endpoints

@app.get("/people")
def list_people(
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store)
):
    """List registered people, newest first."""
    try:
        people = PersonDirectory(db, photos).list()
    except SQLAlchemyError:
        raise storage_failure(db, "Failed to fetch people")
    return {"success": True, "data": [person_to_dict(p) for p in people]}

@app.post("/register")
def register_person(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store)
):
    """Register a new person with reference photos (base64 or data URLs)."""
    try:
        person = PersonDirectory(db, photos).register(request.name, request.images)
    except (SQLAlchemyError, OSError):
        raise storage_failure(db, "Failed to register person")

    return {
        "success": True,
        "message": "Person registered successfully",
        "data": person_to_dict(person),
    }

@app.delete("/people/{person_id}")
def delete_person(
    person_id: str,
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store)
):
    """Delete a person, their attendance history and their photos."""
    pid = parse_person_id(person_id)
    try:
        name = PersonDirectory(db, photos).delete(pid)
    except SQLAlchemyError:
        raise storage_failure(db, "Failed to delete person")

    return {"success": True, "message": f"Person {name} deleted successfully"}

# Statistics

@app.get("/stats")
def get_stats(db: Session = Depends(get_db)):
    """Dashboard statistics."""
    try:
        data = StatisticsAggregator(db).compute()
    except SQLAlchemyError:
        raise storage_failure(db, "Failed to fetch statistics")

    data["recentCheckIns"] = [attendance_to_dict(r) for r in data["recentCheckIns"]]
    return {"success": True, "data": data}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
