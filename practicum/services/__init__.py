"""Services - the units of work behind the API routes."""

from practicum.services.cycles import CycleManager
from practicum.services.container import ServiceContainer, build_services

__all__ = [
    "CycleManager",
    "ServiceContainer",
    "build_services",
]
