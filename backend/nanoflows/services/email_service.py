"""
Email Service for NanoFlows
===========================
Handles all email sending functionality including:
- Welcome emails on signup
- Payment receipts
- Certificate notifications
- Course update announcements to enrolled students
- Storefront order confirmations

Sending is best effort: every method returns False instead of raising, so
a mail outage never fails the request that triggered it.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Dict, Any
from datetime import datetime
import asyncio

from nanoflows.core.config import settings
from nanoflows.core.logging_config import logger


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL.rstrip('/')

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning(f"[Email] Email service not configured, skipping '{subject}' to {to_email}")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Add plain text version (fallback)
            if text_content:
                message.attach(MIMEText(text_content, "plain"))

            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_bulk_email(
        self,
        recipients: List[Dict[str, str]],  # [{"email": "...", "name": "..."}]
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send the same email to many recipients ({{name}} is personalised).

        Returns:
            Dict with 'success_count', 'failed_count', 'failed_emails'
        """
        success_count = 0
        failed_count = 0
        failed_emails = []

        for recipient in recipients:
            email = recipient.get("email")
            name = recipient.get("name") or "Student"

            if not email:
                continue

            personalized_html = html_content.replace("{{name}}", name)
            personalized_text = text_content.replace("{{name}}", name) if text_content else None

            if await self.send_email(email, subject, personalized_html, personalized_text):
                success_count += 1
            else:
                failed_count += 1
                failed_emails.append(email)

            # Small delay to avoid SMTP throttling
            if self.is_configured:
                await asyncio.sleep(0.1)

        logger.info(f"[Email] Bulk send complete: {success_count} success, {failed_count} failed")

        return {
            "success_count": success_count,
            "failed_count": failed_count,
            "failed_emails": failed_emails
        }

    def _layout(self, heading: str, body: str) -> str:
        """Wrap body HTML in the branded email shell"""
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: linear-gradient(135deg, #0ea5e9 0%, #6366f1 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
                .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }}
                .button {{ display: inline-block; background: #6366f1; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
                .footer {{ text-align: center; margin-top: 30px; font-size: 12px; color: #6b7280; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>{heading}</h1>
                </div>
                <div class="content">
                    {body}
                </div>
                <div class="footer">
                    <p>&copy; {datetime.utcnow().year} NanoFlows. All rights reserved.</p>
                </div>
            </div>
        </body>
        </html>
        """

    async def send_welcome_email(self, to_email: str, user_name: str) -> bool:
        """Send welcome email after signup"""
        subject = "Welcome to NanoFlows Academy!"
        html_content = self._layout("Welcome to NanoFlows Academy!", f"""
            <p>Hi {user_name or 'there'},</p>
            <p>Your account is ready. Browse our courses, learn at your own pace and earn certificates as you go.</p>
            <p style="text-align: center;">
                <a href="{self.frontend_url}/elearning" class="button">Start Learning</a>
            </p>
        """)
        text_content = f"Hi {user_name or 'there'},\n\nYour NanoFlows Academy account is ready.\nStart learning: {self.frontend_url}/elearning\n"
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_payment_success_email(
        self,
        to_email: str,
        user_name: str,
        course_title: str,
        amount: float,
        payment_id: str
    ) -> bool:
        """Send receipt after a verified course payment (amount in rupees)"""
        subject = "Payment Successful - NanoFlows Academy"
        html_content = self._layout("Payment Successful", f"""
            <p>Hi {user_name or 'there'},</p>
            <p>Thank you for your purchase. You now have full access to <strong>{course_title}</strong>.</p>
            <table style="width: 100%; margin: 20px 0;">
                <tr><td>Course</td><td style="text-align: right;">{course_title}</td></tr>
                <tr><td>Amount</td><td style="text-align: right;">₹{amount:,.2f}</td></tr>
                <tr><td>Payment ID</td><td style="text-align: right;"><code>{payment_id}</code></td></tr>
            </table>
            <p style="text-align: center;">
                <a href="{self.frontend_url}/elearning/my-courses" class="button">Go to My Courses</a>
            </p>
        """)
        text_content = f"Payment received for {course_title}: ₹{amount:,.2f} (payment {payment_id})"
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_certificate_email(
        self,
        to_email: str,
        user_name: str,
        course_title: str,
        certificate_id: str,
        certificate_url: Optional[str] = None
    ) -> bool:
        """Tell a student their completion certificate is ready"""
        subject = "Congratulations! Your Certificate is Ready - NanoFlows Academy"
        verify_url = settings.get_certificate_verify_url(certificate_id)
        download = (
            f'<p style="text-align: center;"><a href="{certificate_url}" class="button">Download Certificate</a></p>'
            if certificate_url else ''
        )
        html_content = self._layout("Congratulations!", f"""
            <p>Hi {user_name or 'there'},</p>
            <p>You have completed <strong>{course_title}</strong>. Your certificate ID is <code>{certificate_id}</code>.</p>
            {download}
            <p style="font-size: 14px; color: #6b7280;">Anyone can verify it at {verify_url}</p>
        """)
        text_content = f"You completed {course_title}. Certificate {certificate_id}: {verify_url}"
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_course_update_email(
        self,
        students: List[Dict[str, str]],
        course_title: str,
        update_message: str
    ) -> Dict[str, Any]:
        """Announce new course content to every enrolled student"""
        subject = "Course Update - NanoFlows Academy"
        html_content = self._layout("New Content Available", f"""
            <p>Hi {{{{name}}}},</p>
            <p>There is something new in <strong>{course_title}</strong>:</p>
            <p>{update_message}</p>
            <p style="text-align: center;">
                <a href="{self.frontend_url}/elearning/my-courses" class="button">Continue Learning</a>
            </p>
        """)
        text_content = f"Hi {{{{name}}}},\n\n{course_title}: {update_message}\n"
        return await self.send_bulk_email(students, subject, html_content, text_content)

    async def send_order_confirmation_email(
        self,
        to_email: str,
        user_name: str,
        order_number: str,
        total: float,
        items: List[Dict[str, Any]]
    ) -> bool:
        """Storefront order confirmation"""
        subject = f"Order {order_number} confirmed - NanoFlows Store"
        rows = "".join(
            f"<tr><td>{item['name']} × {item['quantity']}</td>"
            f"<td style=\"text-align: right;\">${item['total']:,.2f}</td></tr>"
            for item in items
        )
        html_content = self._layout("Thanks for your order!", f"""
            <p>Hi {user_name or 'there'},</p>
            <p>We received order <strong>{order_number}</strong>.</p>
            <table style="width: 100%; margin: 20px 0;">{rows}
                <tr><td><strong>Total</strong></td><td style="text-align: right;"><strong>${total:,.2f}</strong></td></tr>
            </table>
        """)
        return await self.send_email(to_email, subject, html_content)


# Singleton instance
email_service = EmailService()
