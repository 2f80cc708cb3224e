from taskmanager.ports.clock import Clock
from taskmanager.domain.task import utc_now
from datetime import datetime

class SystemClock(Clock):
    """Adapter systemowy korzystający z bieżącego czasu UTC."""

    def now(self) -> datetime:
        """Zwraca aktualny czas w strefie UTC (aware)."""
        return utc_now()
