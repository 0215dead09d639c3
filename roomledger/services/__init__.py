"""
Services - booking engine, payment ledger, audit trail and reports
"""
from roomledger.services.audit_service import AuditService, BookingSnapshot
from roomledger.services.booking_service import BookingService
from roomledger.services.payment_service import PaymentService
from roomledger.services.report_service import ReportService

__all__ = [
    "AuditService", "BookingSnapshot", "BookingService", "PaymentService", "ReportService",
]
