"""Services package - Business logic layer."""
from .appointment_service import AppointmentService, parse_appointment_date
from .catalog_service import CatalogService
from .principal_service import PrincipalService

__all__ = [
    "AppointmentService",
    "CatalogService",
    "PrincipalService",
    "parse_appointment_date",
]
