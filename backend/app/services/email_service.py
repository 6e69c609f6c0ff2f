"""
Email Service for SocietyPro
============================
Handles all email sending functionality:
- OTP delivery for account verification
- Maintenance bill notifications

Supports both SMTP (aiosmtplib) and SendGrid.
"""

import aiosmtplib
from email.mime.text import MIMEText
from html import escape
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime
import asyncio

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from app.core.config import settings
from app.core.logging_config import logger


_BASE_STYLE = """
    body { font-family: Arial, sans-serif; background: #f0f0f0; margin: 0; padding: 20px; }
    .email-container { max-width: 500px; margin: 0 auto; background: white; border-radius: 8px; padding: 20px; border: 2px solid #000000; }
    .header { text-align: center; color: #000000; margin-bottom: 20px; }
    .content { color: #333333; line-height: 1.5; }
    .otp-container { background: #000000; color: #00ff00; padding: 25px; text-align: center; margin: 25px 0; border-radius: 8px; border: 2px solid #00ff00; font-size: 32px; font-weight: bold; letter-spacing: 8px; }
    .note { background: #f8f8f8; padding: 15px; border-radius: 5px; border-left: 4px solid #00ff00; margin: 15px 0; font-size: 14px; }
    .footer { text-align: center; color: #666666; margin-top: 20px; font-size: 12px; }
    table.bill td { padding: 6px 12px; }
"""


def _wrap(subject: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head><style>{_BASE_STYLE}</style></head>
    <body>
        <div class="email-container">
            <div class="header">
                <h2>SocietyPro</h2>
                <h3>{escape(subject)}</h3>
            </div>
            <div class="content">
                {body}
            </div>
            <div class="footer">
                <p>&copy; {datetime.utcnow().year} SocietyPro</p>
                <p>This is an automated message</p>
            </div>
        </div>
    </body>
    </html>
    """


class EmailService:
    """Async email service using SMTP or SendGrid"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL
        self.sendgrid_api_key = settings.SENDGRID_API_KEY
        self.use_sendgrid = settings.USE_SENDGRID and bool(self.sendgrid_api_key)

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        if self.use_sendgrid:
            return bool(self.sendgrid_api_key)
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
            logger.warning(f"[Email] Email service not configured, skipping email to {to_email}")
            return False

        if self.use_sendgrid:
            return await self._send_via_sendgrid(to_email, subject, html_content, text_content)
        return await self._send_via_smtp(to_email, subject, html_content, text_content)

    async def _send_via_sendgrid(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email via SendGrid API"""
        try:
            message = Mail(
                from_email=Email(self.from_email, self.from_name),
                to_emails=To(to_email),
                subject=subject,
            )
            if text_content:
                message.add_content(Content("text/plain", text_content))
            message.add_content(Content("text/html", html_content))

            sg = SendGridAPIClient(self.sendgrid_api_key)
            # Run synchronous SendGrid call in thread pool
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, sg.send, message)

            if response.status_code in (200, 201, 202):
                logger.info(f"[Email/SendGrid] Sent email to {to_email}: {subject}")
                return True

            logger.error(f"[Email/SendGrid] Failed with status {response.status_code}: {response.body}")
            return False

        except Exception as e:
            logger.error(f"[Email/SendGrid] Failed to send email to {to_email}: {e}")
            return False

    async def _send_via_smtp(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email via SMTP"""
        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Plain text first so clients prefer the HTML part
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

            logger.info(f"[Email/SMTP] Sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_otp_email(self, to_email: str, full_name: str, otp: str) -> bool:
        """Send the account verification OTP"""
        subject = "Email Verification OTP - SocietyPro"
        minutes = settings.OTP_EXPIRE_MINUTES

        body = f"""
            <p>Hello {escape(full_name or 'there')},</p>
            <p>Your OTP for email verification is:</p>
            <div class="otp-container">{otp}</div>
            <div class="note">
                <strong>Note:</strong> This OTP is valid for {minutes} minutes. Do not share it with anyone.
            </div>
        """
        text_content = (
            f"Hello {full_name or 'there'},\n\n"
            f"Your OTP for email verification is: {otp}\n\n"
            f"This OTP is valid for {minutes} minutes. Do not share it with anyone.\n\n"
            "- SocietyPro"
        )
        return await self.send_email(to_email, subject, _wrap(subject, body), text_content)

    async def send_bill_email(
        self,
        to_email: str,
        full_name: str,
        wing: str,
        flat_no: str,
        amount: float,
        month: str,
        year: int,
        due_date: datetime,
    ) -> bool:
        """Notify a resident that a maintenance bill was generated"""
        subject = f"Maintenance bill for {month} {year} - SocietyPro"
        due = due_date.strftime("%d %b %Y")
        pay_link = f"{self.frontend_url}/maintenance"

        body = f"""
            <p>Hello {escape(full_name or 'there')},</p>
            <p>A maintenance bill has been generated for flat <strong>{escape(wing)}-{escape(flat_no)}</strong>.</p>
            <table class="bill">
                <tr><td>Period</td><td>{escape(month)} {year}</td></tr>
                <tr><td>Amount</td><td>&#8377;{amount:,.2f}</td></tr>
                <tr><td>Due date</td><td>{due}</td></tr>
            </table>
            <p style="text-align: center;"><a href="{pay_link}">Pay online</a></p>
            <div class="note">Bills not paid by the due date are marked overdue.</div>
        """
        text_content = (
            f"Hello {full_name or 'there'},\n\n"
            f"A maintenance bill has been generated for flat {wing}-{flat_no}.\n"
            f"Period: {month} {year}\nAmount: Rs. {amount:,.2f}\nDue date: {due}\n\n"
            f"Pay online at: {pay_link}\n\n- SocietyPro"
        )
        return await self.send_email(to_email, subject, _wrap(subject, body), text_content)


# Singleton instance
email_service = EmailService()
