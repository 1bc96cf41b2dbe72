"""Scheduling service - public booking page projections and booking status changes"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from ...auth import require_workspace_member
from ...exceptions import Conflict, Forbidden, NotFound
from ...models import Booking, ServiceType, Workspace
from ..workspaces.repository import WorkspaceRepository
from .planner import DAY_NAMES, compute_slots, format_slot
from .repository import SchedulingRepository
from .schemas import BookingUpdate

logger = logging.getLogger(__name__)

TERMINAL_BOOKING_STATUSES = frozenset({"completed", "no_show", "cancelled"})

BOOKING_TRANSITIONS = {
    "pending": frozenset({"pending", "confirmed", "completed", "no_show", "cancelled"}),
    "confirmed": frozenset({"confirmed", "completed", "no_show", "cancelled"}),
    "completed": frozenset({"completed"}),
    "no_show": frozenset({"no_show"}),
    "cancelled": frozenset({"cancelled"}),
}


def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, frozenset())


class SchedulingService:
    """Service layer for scheduling read models and booking lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def get_public_workspace(self, workspace_id: str) -> Workspace:
        workspace = WorkspaceRepository.get_workspace(self.db, workspace_id)
        if not workspace:
            raise NotFound("Workspace not found")
        if not workspace.is_active:
            raise Forbidden("This booking page is not currently active")
        return workspace

    def get_bookable_service_type(self, workspace_id: str, service_type_id: str) -> ServiceType:
        service_type = self.repo.get_service_type(self.db, workspace_id, service_type_id)
        if not service_type:
            raise NotFound("Service type not found")
        if not service_type.is_active:
            raise Forbidden("This service is not currently available for booking")
        return service_type

    def get_booking_page(self, workspace_id: str) -> dict:
        """Public booking page data: workspace, active services, weekly windows"""
        workspace = self.get_public_workspace(workspace_id)
        service_types = self.repo.get_active_service_types(self.db, workspace_id)
        schedules = self.repo.get_active_schedules(self.db, workspace_id)

        return {
            "workspace": {
                "id": workspace.id,
                "business_name": workspace.business_name,
                "address": workspace.address,
                "timezone": workspace.timezone,
            },
            "service_types": service_types,
            "availability": [
                {
                    "day_of_week": s.day_of_week,
                    "day_name": DAY_NAMES[s.day_of_week],
                    "start_time": format_slot(s.start_time),
                    "end_time": format_slot(s.end_time),
                }
                for s in schedules
            ],
        }

    def get_slots(self, workspace_id: str, service_type_id: str, day: date) -> list[str]:
        """Slots are always recomputed from the stored windows"""
        self.get_public_workspace(workspace_id)
        service_type = self.get_bookable_service_type(workspace_id, service_type_id)
        schedules = self.repo.get_active_schedules(self.db, workspace_id)
        return compute_slots(schedules, day, service_type.duration_minutes).as_strings()

    def get_schedules(self, workspace_id: str, user_id: str) -> list:
        require_workspace_member(self.db, workspace_id, user_id)
        return self.repo.get_active_schedules(self.db, workspace_id)

    def get_bookings(self, workspace_id: str, user_id: str) -> list[Booking]:
        require_workspace_member(self.db, workspace_id, user_id)
        return self.repo.get_bookings(self.db, workspace_id)

    def update_booking(self, booking_id: str, update: BookingUpdate, user_id: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFound("Booking not found")
        require_workspace_member(self.db, booking.workspace_id, user_id)

        changes = update.changes()
        target = changes.get("status")
        if target is None:
            changes.pop("status", None)
        elif not can_transition(booking.status, target):
            raise Conflict(f"Booking is already {booking.status} and cannot become {target}")

        if not changes:
            return booking

        logger.info(f"📅 Updating booking {booking.id}: {booking.status} -> {changes}")
        return self.repo.apply_booking_update(self.db, booking, **changes)
