from nanoflows.services.email_service import EmailService, email_service
from nanoflows.services.certificate_service import CertificateService, certificate_service
from nanoflows.services.notification_service import NotificationService, notification_service
from nanoflows.services.payment_service import PaymentService, payment_service
from nanoflows.services.progress_service import ProgressService, progress_service
from nanoflows.services.upload_service import UploadService, upload_service

__all__ = [
    "EmailService",
    "email_service",
    "CertificateService",
    "certificate_service",
    "NotificationService",
    "notification_service",
    "PaymentService",
    "payment_service",
    "ProgressService",
    "progress_service",
    "UploadService",
    "upload_service",
]
