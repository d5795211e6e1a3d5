"""FastAPI REST API server for wei.

Thin presentation layer over the contact store and the reminder scheduler:
list people, add someone (which schedules their reminder), mark someone as
reached out to, remove someone.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

import database
import schemas
from config import settings
from contact_store import ContactStore, ErrorKind, Result
from logger_config import setup_logger
from notifications import NotificationCenter
from reminder_scheduler import ReminderScheduler

logger = setup_logger(__name__, 'api.log')


def _attach_services(app: FastAPI, session_factory: sessionmaker,
                     notification_center: Optional[NotificationCenter] = None,
                     scheduler: Optional[ReminderScheduler] = None) -> None:
    center = notification_center or NotificationCenter(session_factory)
    app.state.store = ContactStore(session_factory)
    app.state.notification_center = center
    app.state.scheduler = scheduler or ReminderScheduler(center)


def create_app(
    session_factory: Optional[sessionmaker] = None,
    notification_center: Optional[NotificationCenter] = None,
    scheduler: Optional[ReminderScheduler] = None,
) -> FastAPI:
    """Build the application.

    Without a session factory, one is built from settings.DATABASE_URL at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not hasattr(app.state, "store"):
            _attach_services(app, database.build_session_factory())
            logger.info(f"Database ready: {settings.DATABASE_URL.split('://')[0]}")
        yield

    app = FastAPI(
        title="wei API",
        description="Keep a list of people and get reminded to reach out to them",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if session_factory is not None:
        _attach_services(app, session_factory, notification_center, scheduler)

    _register_routes(app)
    return app


def get_store(request: Request) -> ContactStore:
    return request.app.state.store


def get_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.scheduler


def get_notification_center(request: Request) -> NotificationCenter:
    return request.app.state.notification_center


def _raise_for_failure(result: Result) -> None:
    if result.ok:
        return
    if result.kind is ErrorKind.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Person not found")
    raise HTTPException(status_code=500, detail=result.error or "Storage error")


def _register_routes(app: FastAPI) -> None:

    @app.get("/")
    def root():
        """Root endpoint - service information"""
        return {
            "service": "wei API",
            "version": "1.0.0",
            "status": "healthy",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "help": "/help",
                "people": "/people",
                "pending": "/notifications/pending"
            }
        }

    @app.get("/health")
    def health_check(store: ContactStore = Depends(get_store)):
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "service": "wei",
            "people": store.count()
        }

    @app.get("/help", response_model=schemas.HelpResponse)
    def help_text():
        return schemas.HelpResponse()

    @app.get("/people", response_model=List[schemas.PersonResponse])
    def list_people(store: ContactStore = Depends(get_store)):
        """List people, the one contacted longest ago first."""
        return store.list()

    @app.post("/people", response_model=schemas.PersonCreatedResponse, status_code=201)
    def add_person(
        payload: schemas.PersonCreate,
        store: ContactStore = Depends(get_store),
        scheduler: ReminderScheduler = Depends(get_scheduler),
    ):
        """Add a person and schedule a weekly reminder to reach out to them.

        Request body example:
        ```json
        {"name": "Alice"}
        ```
        """
        result = store.create(payload.name)
        _raise_for_failure(result)

        request = scheduler.schedule_reminder(payload.name)
        reminder = None
        if request is not None:
            reminder = schemas.ScheduledReminder(
                identifier=request.identifier,
                trigger=request.trigger.model_dump(),
            )
        return schemas.PersonCreatedResponse(
            person=schemas.PersonResponse.model_validate(result.value),
            reminder=reminder,
        )

    @app.get("/people/{person_id}", response_model=schemas.PersonResponse)
    def get_person(person_id: str, store: ContactStore = Depends(get_store)):
        person = store.get(person_id)
        if person is None:
            raise HTTPException(status_code=404, detail="Person not found")
        return person

    @app.post("/people/{person_id}/touch", response_model=schemas.PersonResponse)
    def touch_person(person_id: str, store: ContactStore = Depends(get_store)):
        """Mark a person as reached out to; they move to the bottom of the list."""
        result = store.touch(person_id)
        _raise_for_failure(result)
        return result.value

    @app.delete("/people/{person_id}", response_model=schemas.DeleteResponse)
    def delete_person(person_id: str, store: ContactStore = Depends(get_store)):
        """Remove a person. Removing someone already gone is not an error."""
        result = store.delete(person_id)
        _raise_for_failure(result)
        message = "Person deleted successfully" if result.value else "Person already deleted"
        return schemas.DeleteResponse(message=message, person_id=person_id, deleted=result.value)

    @app.get("/notifications/pending", response_model=List[schemas.PendingNotificationResponse])
    def pending_notifications(center: NotificationCenter = Depends(get_notification_center)):
        return center.pending_requests()

    @app.delete("/notifications/pending")
    def clear_pending_notifications(center: NotificationCenter = Depends(get_notification_center)):
        removed = center.remove_all_pending()
        return {"message": "Pending reminders removed", "removed": removed}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
