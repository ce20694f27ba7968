"""
Certificate Service - issue course completion certificates and render them as PDF
"""

from typing import Optional
from datetime import datetime
from pathlib import Path
import io
import secrets
import uuid

import aiofiles
from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch, cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.enums import TA_CENTER

from nanoflows.core.config import settings
from nanoflows.core.database import execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models.course import Course
from nanoflows.models.learning import Certificate
from nanoflows.models.notification import NotificationType
from nanoflows.models.user import User
from nanoflows.services.email_service import email_service
from nanoflows.services.notification_service import notification_service


class CertificateService:
    """Generate PDF completion certificates for finished courses"""

    def generate_certificate_id(self) -> str:
        """NFC-<12 upper hex>-<6 digits>"""
        unique_part = uuid.uuid4().hex[:12].upper()
        return f"NFC-{unique_part}-{secrets.randbelow(1_000_000):06d}"

    def certificate_path(self, certificate_id: str) -> Path:
        return settings.CERTIFICATES_DIR / f"{certificate_id}.pdf"

    def certificate_url(self, certificate_id: str) -> str:
        return f"/uploads/certificates/{certificate_id}.pdf"

    def render_pdf(
        self,
        student_name: str,
        course_title: str,
        instructor_name: Optional[str],
        certificate_id: str,
        issue_date: str,
    ) -> bytes:
        """Landscape A4 certificate"""
        buffer = io.BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=1*cm,
            leftMargin=1*cm,
            topMargin=1.5*cm,
            bottomMargin=1*cm
        )

        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            'CertTitle',
            parent=styles['Heading1'],
            fontSize=30,
            textColor=colors.HexColor('#1e3a8a'),
            alignment=TA_CENTER,
            spaceAfter=10
        )

        subtitle_style = ParagraphStyle(
            'CertSubtitle',
            parent=styles['Heading2'],
            fontSize=16,
            textColor=colors.HexColor('#4a5568'),
            alignment=TA_CENTER,
            spaceAfter=20
        )

        name_style = ParagraphStyle(
            'StudentName',
            parent=styles['Heading1'],
            fontSize=26,
            textColor=colors.HexColor('#2d3748'),
            alignment=TA_CENTER,
            spaceBefore=10,
            spaceAfter=10
        )

        course_style = ParagraphStyle(
            'CourseTitle',
            parent=styles['Heading2'],
            fontSize=20,
            textColor=colors.HexColor('#4f46e5'),
            alignment=TA_CENTER,
            spaceBefore=10,
            spaceAfter=20
        )

        body_style = ParagraphStyle(
            'CertBody',
            parent=styles['Normal'],
            fontSize=12,
            textColor=colors.HexColor('#4a5568'),
            alignment=TA_CENTER,
            spaceAfter=6
        )

        small_style = ParagraphStyle(
            'CertSmall',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#718096'),
            alignment=TA_CENTER,
            spaceAfter=4
        )

        content = []

        content.append(Paragraph("NANOFLOWS ACADEMY", title_style))
        content.append(Paragraph("Certificate of Completion", subtitle_style))
        content.append(Spacer(1, 20))

        content.append(Paragraph("This is to certify that", body_style))
        content.append(Spacer(1, 10))
        content.append(Paragraph(f"<b>{student_name}</b>", name_style))
        content.append(Spacer(1, 10))
        content.append(Paragraph("has successfully completed the course", body_style))
        content.append(Spacer(1, 10))
        content.append(Paragraph(f"<b>{course_title}</b>", course_style))
        content.append(Spacer(1, 20))

        details = Table(
            [
                ['Instructor', 'Issued On'],
                [instructor_name or 'NanoFlows Academy', issue_date],
            ],
            colWidths=[3*inch, 3*inch]
        )
        details.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 11),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor('#2d3748')),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 11),
            ('TEXTCOLOR', (0, 1), (-1, -1), colors.HexColor('#4a5568')),
            ('LINEABOVE', (0, 1), (-1, 1), 1, colors.HexColor('#cbd5e0')),
            ('TOPPADDING', (0, 1), (-1, -1), 8),
        ]))

        content.append(details)
        content.append(Spacer(1, 30))

        content.append(Paragraph(f"Certificate ID: <b>{certificate_id}</b>", small_style))
        content.append(Spacer(1, 6))
        content.append(Paragraph(
            f"Verify this certificate at: <font color='#4f46e5'>{settings.get_certificate_verify_url(certificate_id)}</font>",
            small_style
        ))

        doc.build(content)

        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes

    async def _store_pdf(self, certificate_id: str, **details) -> Optional[str]:
        """Render and save the PDF; returns its public URL or None on failure"""
        try:
            pdf_bytes = self.render_pdf(certificate_id=certificate_id, **details)
            async with aiofiles.open(self.certificate_path(certificate_id), "wb") as f:
                await f.write(pdf_bytes)
            return self.certificate_url(certificate_id)
        except Exception as e:
            logger.error(f"[CertificateService] Error generating PDF for {certificate_id}: {e}", exc_info=True)
            return None

    async def ensure_pdf(self, certificate: Certificate, instructor_name: Optional[str] = None) -> Optional[Path]:
        """Path of the stored PDF, re-rendering it if the file has gone missing"""
        path = self.certificate_path(certificate.certificate_id)
        if path.exists():
            return path

        url = await self._store_pdf(
            certificate.certificate_id,
            student_name=certificate.student_name,
            course_title=certificate.course_title,
            instructor_name=instructor_name,
            issue_date=certificate.issued_at.strftime("%B %d, %Y"),
        )
        return path if url else None

    async def get_for_user(self, db: AsyncSession, user_id: str, course_id: str) -> Optional[Certificate]:
        result = await execute_with_retry(
            db,
            select(Certificate).where(
                Certificate.user_id == str(user_id),
                Certificate.course_id == str(course_id),
            )
        )
        return result.scalar_one_or_none()

    async def issue(
        self,
        db: AsyncSession,
        user: User,
        course: Course,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Certificate:
        """
        Return the user's certificate for the course, issuing it if needed.

        A new certificate also records a certificate_issued notification and
        schedules the email when background_tasks is given.
        """
        existing = await self.get_for_user(db, user.id, course.id)
        if existing:
            return existing

        certificate_id = self.generate_certificate_id()
        issued_at = datetime.utcnow()

        certificate_url = await self._store_pdf(
            certificate_id,
            student_name=user.name,
            course_title=course.title,
            instructor_name=course.instructor_name,
            issue_date=issued_at.strftime("%B %d, %Y"),
        )

        certificate = Certificate(
            certificate_id=certificate_id,
            user_id=str(user.id),
            course_id=str(course.id),
            student_name=user.name,
            course_title=course.title,
            certificate_url=certificate_url,
            issued_at=issued_at,
        )
        db.add(certificate)

        await notification_service.create(
            db,
            user_id=user.id,
            notification_type=NotificationType.CERTIFICATE_ISSUED,
            title="Your certificate is ready",
            message=f"Congratulations on completing {course.title}!",
            data={"course_id": str(course.id), "certificate_id": certificate_id},
        )

        if background_tasks is not None:
            background_tasks.add_task(
                email_service.send_certificate_email,
                user.email,
                user.name,
                course.title,
                certificate_id,
                certificate_url,
            )

        logger.info(f"[CertificateService] Issued {certificate_id} to user {user.id} for course {course.id}")
        return certificate


# Singleton instance
certificate_service = CertificateService()
