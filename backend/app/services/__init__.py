from app.services.email_service import EmailService, email_service
from app.services.maintenance_service import MaintenanceService, maintenance_service
from app.services.payment_gateway import PaymentGateway, get_payment_gateway

__all__ = [
    "EmailService",
    "email_service",
    "MaintenanceService",
    "maintenance_service",
    "PaymentGateway",
    "get_payment_gateway",
]
