# purvita/admin_dashboard/event_bus.py
"""Dashboard lifecycle events."""
from core.event_bus import EventBus


class AdminDashboardEvents:
    REFRESH_REQUESTED = "dashboard.refresh_requested"
    LOADED = "dashboard.loaded"
    FAILED = "dashboard.failed"
    PERIOD_CHANGED = "dashboard.period_changed"


class AdminDashboardEventBus(EventBus):

    def __init__(self):
        super().__init__(name="admin_dashboard")


adminDashboardEventBus = AdminDashboardEventBus()
