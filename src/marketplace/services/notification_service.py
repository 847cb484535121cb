import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from marketplace.core.config import MailConfig
from marketplace.utils.retry import smtp_retry

logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Sends one plain-text email. Implementations raise on failure."""

    def __init__(self, config: MailConfig):
        self.config = config

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> None:
        pass


class ConsoleMailer(Mailer):
    """Writes emails to the log instead of sending them (development)."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info(f"[MAIL] from={self.config.sender} to={to} subject={subject!r}\n{body}")


class SmtpMailer(Mailer):
    """
    Delivers through an SMTP relay.

    Transient connection errors are retried with exponential backoff
    (MAIL_SEND_ATTEMPTS tries); anything else propagates at once.
    """

    def __init__(self, config: MailConfig, timeout: float = 10.0):
        super().__init__(config)
        self.timeout = timeout
        self._deliver = smtp_retry(config.send_attempts)(self._deliver_once)

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver_once(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=self.timeout) as smtp:
            if self.config.use_tls:
                smtp.starttls()
            if self.config.smtp_user and self.config.smtp_password:
                smtp.login(self.config.smtp_user, self.config.smtp_password)
            smtp.send_message(message)

    def send(self, to: str, subject: str, body: str) -> None:
        self._deliver(self._build_message(to, subject, body))
        logger.info(f"Message sent to {to}: {subject!r}")


def build_mailer(config: MailConfig) -> Mailer:
    if config.backend == "smtp":
        return SmtpMailer(config)
    if config.backend == "console":
        return ConsoleMailer(config)
    raise ValueError(f"Unsupported MAIL_BACKEND: {config.backend}")
