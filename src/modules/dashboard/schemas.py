"""Schemas for dashboard API (main page summary for Admin/SuperAdmin)."""

from src.shared.schemas.base import BaseSchema


class DashboardResponse(BaseSchema):
    """Summary data for main page: cards, key metrics, alerts."""

    # Items
    items_total: int = 0
    items_in_warehouses: int = 0
    items_with_people: int = 0

    # Holders
    warehouses_count: int = 0
    active_people_count: int = 0
    inactive_people_count: int = 0

    # Activity
    active_adjustments_count: int = 0
    active_grants_count: int = 0
    purchases_by_status: dict[str, int] = {}

    # Alerts: both should be 0, otherwise run the repairs
    location_mismatch_count: int = 0
    untracked_assignments_count: int = 0

    # Offboarding
    open_offboarding_tasks_count: int = 0
    contracts_expiring_count: int = 0  # Active people, contract ends within the alert window
