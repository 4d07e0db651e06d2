"""Real-time bus registry — the process-wide bus collaborator."""

from notifications.realtime.bus_port import RealtimeBusPort

_bus: RealtimeBusPort | None = None


def get_bus() -> RealtimeBusPort:
    """Return the configured bus, defaulting to an in-memory one."""
    global _bus
    if _bus is None:
        from notifications.realtime.memory_bus import InMemoryBus

        _bus = InMemoryBus()
    return _bus


def set_bus(bus: RealtimeBusPort) -> None:
    global _bus
    _bus = bus


def reset_bus() -> None:
    """Drop the configured bus (useful for testing)."""
    global _bus
    _bus = None
