"""Scheduling repository - service types, availability windows and bookings"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import AvailabilitySchedule, Booking, ServiceType


class SchedulingRepository:
    """Repository for scheduling database operations"""

    @staticmethod
    def get_service_type(db: Session, workspace_id: str, service_type_id: str) -> Optional[ServiceType]:
        return (
            db.query(ServiceType)
            .filter(ServiceType.id == service_type_id, ServiceType.workspace_id == workspace_id)
            .first()
        )

    @staticmethod
    def get_active_service_types(db: Session, workspace_id: str) -> list[ServiceType]:
        return (
            db.query(ServiceType)
            .filter(ServiceType.workspace_id == workspace_id, ServiceType.is_active.is_(True))
            .order_by(ServiceType.name)
            .all()
        )

    @staticmethod
    def get_active_schedules(db: Session, workspace_id: str) -> list[AvailabilitySchedule]:
        return (
            db.query(AvailabilitySchedule)
            .filter(
                AvailabilitySchedule.workspace_id == workspace_id,
                AvailabilitySchedule.is_active.is_(True),
            )
            .order_by(AvailabilitySchedule.day_of_week, AvailabilitySchedule.start_time)
            .all()
        )

    @staticmethod
    def get_bookings(db: Session, workspace_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.contact), joinedload(Booking.service_type))
            .filter(Booking.workspace_id == workspace_id)
            .order_by(Booking.booking_date.desc(), Booking.booking_time.desc())
            .all()
        )

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_bookings_on(db: Session, day: date, statuses: tuple[str, ...]) -> list[Booking]:
        """Bookings across all workspaces on `day` in one of `statuses`"""
        return (
            db.query(Booking)
            .options(joinedload(Booking.contact), joinedload(Booking.service_type))
            .filter(Booking.booking_date == day, Booking.status.in_(statuses))
            .order_by(Booking.booking_time)
            .all()
        )

    @staticmethod
    def apply_booking_update(db: Session, booking: Booking, **updates) -> Booking:
        """Apply already-validated field updates; only the keys given are written"""
        for key, value in updates.items():
            setattr(booking, key, value)

        db.commit()
        db.refresh(booking)
        return booking
