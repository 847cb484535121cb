import smtplib

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

# Connection level failures worth another try; auth and recipient errors are not.
TRANSIENT_SMTP_ERRORS = (
    smtplib.SMTPServerDisconnected,
    smtplib.SMTPConnectError,
    ConnectionError,
    TimeoutError,
)


def smtp_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(TRANSIENT_SMTP_ERRORS),
    )
