"""Transactional email through fastapi-mail."""

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema
from fastapi_mail.errors import ConnectionErrors
from fastapi_mail.schemas import MessageType, MultipartSubtypeEnum

from otakusensei.config import Settings, settings as default_settings

logger = structlog.get_logger()

_BOX_STYLE = (
    "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; "
    "padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;"
)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the SMTP server."""


@dataclass
class Mailer:
    """Sends OtakuSensei notification emails.

    When ``host`` is empty, messages are logged instead of sent so local
    development works without an SMTP account.
    """

    host: str
    port: int
    username: str
    password: str
    sender: str
    sender_name: str = "OtakuSensei"
    starttls: bool = True
    ssl_tls: bool = False
    frontend_base_url: str = "http://localhost:5173"
    timeout: int = 30
    _client: FastMail | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "Mailer":
        cfg = cfg or default_settings
        return cls(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            username=cfg.smtp_user,
            password=cfg.smtp_password,
            sender=cfg.email_from,
            sender_name=cfg.email_from_name,
            starttls=cfg.smtp_starttls,
            ssl_tls=cfg.smtp_ssl_tls,
            frontend_base_url=cfg.frontend_base_url,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            MAIL_USERNAME=self.username,
            MAIL_PASSWORD=self.password,
            MAIL_FROM=self.sender,
            MAIL_FROM_NAME=self.sender_name,
            MAIL_PORT=self.port,
            MAIL_SERVER=self.host,
            MAIL_STARTTLS=self.starttls,
            MAIL_SSL_TLS=self.ssl_tls,
            USE_CREDENTIALS=bool(self.username),
            TIMEOUT=self.timeout,
        )

    @property
    def client(self) -> FastMail:
        if self._client is None:
            self._client = FastMail(self.connection_config())
        return self._client

    async def send(self, to: str, subject: str, text: str, html: str) -> None:
        if not self.enabled:
            logger.warning("SMTP not configured, email not sent", to=to, subject=subject)
            return

        message = MessageSchema(
            subject=subject,
            recipients=[to],
            body=html,
            subtype=MessageType.html,
            alternative_body=text,
            multipart_subtype=MultipartSubtypeEnum.alternative,
        )
        try:
            await self.client.send_message(message)
        except ConnectionErrors as e:
            logger.error("Email delivery failed", to=to, subject=subject, error=str(e))
            raise EmailDeliveryError(f"Failed to send email to {to}") from e

        logger.info("Email sent", to=to, subject=subject)

    async def send_otp_email(self, email: str, otp: str, ttl_minutes: int = 5) -> None:
        html = f"""
    <div style="{_BOX_STYLE}">
        <h2 style="color: #333; text-align: center;">Welcome to OtakuSensei!</h2>
        <p>Please use the following OTP to verify your email and complete your registration:</p>
        <div style="background-color: #f7f7f7; padding: 10px; text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 5px; margin: 20px 0;">
            {otp}
        </div>
        <p>This OTP will expire in {ttl_minutes} minutes.</p>
        <p>If you did not request this signup, please ignore this email.</p>
        <p>Best regards,<br>OtakuSensei Team</p>
    </div>"""
        await self.send(
            email,
            "OtakuSensei Signup OTP",
            f"Your OTP for signup is: {otp}. It will expire in {ttl_minutes} minutes.",
            html,
        )

    def reset_url(self, token: str) -> str:
        return f"{self.frontend_base_url.rstrip('/')}/reset-password/{token}"

    async def send_reset_password_email(self, email: str, token: str, ttl_minutes: int = 15) -> None:
        url = self.reset_url(token)
        html = f"""
    <div style="{_BOX_STYLE}">
        <h2 style="color: #333; text-align: center;">Password Reset Request</h2>
        <p>We received a request to reset the password for your OtakuSensei account.</p>
        <div style="text-align: center; margin: 20px 0;">
            <a href="{url}" style="background-color: #E8B5B8; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Reset Password</a>
        </div>
        <p>This link will expire in {ttl_minutes} minutes.</p>
        <p>If you did not request a password reset, please ignore this email.</p>
        <p>Best regards,<br>OtakuSensei Team</p>
    </div>"""
        await self.send(
            email,
            "OtakuSensei Password Reset",
            f"Click the following link to reset your password: {url}\n"
            f"This link will expire in {ttl_minutes} minutes.",
            html,
        )

    async def send_subscription_confirmation_email(
        self, email: str, plan_type: str, start: datetime, end: datetime
    ) -> None:
        period = f"{start:%Y-%m-%d} to {end:%Y-%m-%d}"
        html = f"""
    <div style="{_BOX_STYLE}">
        <h2 style="color: #333; text-align: center;">You are now Premium!</h2>
        <p>Thank you for subscribing to the <strong>{plan_type}</strong> plan.</p>
        <p>Your premium access is active from {period}.</p>
        <p>Best regards,<br>OtakuSensei Team</p>
    </div>"""
        await self.send(
            email,
            "OtakuSensei Subscription Confirmed",
            f"Your {plan_type} subscription is active from {period}.",
            html,
        )

    async def send_subscription_reminder_email(self, email: str, plan: str, end: datetime) -> None:
        html = f"""
    <div style="{_BOX_STYLE}">
        <h2 style="color: #333; text-align: center;">Your subscription is ending soon</h2>
        <p>Your <strong>{plan}</strong> subscription expires on {end:%Y-%m-%d %H:%M} UTC.</p>
        <p>Renew now to keep reading premium chapters without interruption.</p>
        <p>Best regards,<br>OtakuSensei Team</p>
    </div>"""
        await self.send(
            email,
            "OtakuSensei Subscription Reminder",
            f"Your {plan} subscription expires on {end:%Y-%m-%d %H:%M} UTC. Renew to keep premium access.",
            html,
        )
