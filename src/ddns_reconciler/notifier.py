"""
SMTP notification of applied record updates.

Delivery uses the blocking smtplib client in a worker thread so a slow mail
server never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from string import Template
from typing import TYPE_CHECKING

from ddns_reconciler.errors import NotificationError

if TYPE_CHECKING:
    from typing import Final

    from ddns_reconciler.config import NotifyConfig


SUBJECT: Final[str] = "DDNS Reconciler Notification"

# SMTP timeout in seconds
SMTP_TIMEOUT: Final[float] = 30.0

MAIL_TEMPLATE: Final[Template] = Template(
    """\
<html>
  <body>
    <h3>DNS record updated</h3>
    <p>The IP address of <b>$domain</b> has been updated to <b>$current_ip</b>.</p>
    <p style="color: #888888">Sent by DDNS Reconciler.</p>
  </body>
</html>
""",
)


logger = logging.getLogger(__name__)


def build_body(domain: str, current_ip: str) -> str:
    """
    Render the HTML notification body.

    Parameters
    ----------
    domain : str
        The fully qualified domain that was updated.
    current_ip : str
        The new IP address.

    Returns
    -------
    str
        The HTML body.
    """
    return MAIL_TEMPLATE.substitute(
        domain=html.escape(domain),
        current_ip=html.escape(current_ip),
    )


class Notifier:
    """
    Sends a mail when a record has been updated.

    Parameters
    ----------
    settings : NotifyConfig
        SMTP settings.
    """

    def __init__(self, settings: NotifyConfig) -> None:
        self._settings = settings

    async def notify(self, domain: str, current_ip: str) -> None:
        """
        Notify the configured recipient about an update.

        Parameters
        ----------
        domain : str
            The fully qualified domain that was updated.
        current_ip : str
            The new IP address.

        Raises
        ------
        NotificationError
            If the mail could not be delivered.
        """
        logger.info(
            "Sending notification for %s (%s) to %s.",
            domain,
            current_ip,
            self._settings.send_to,
        )
        await asyncio.to_thread(
            self.send,
            self._settings.smtp_username,
            self._settings.send_to,
            SUBJECT,
            build_body(domain, current_ip),
        )

    def send(self, from_address: str, to_address: str, subject: str, html_body: str) -> None:
        """
        Deliver one HTML mail through the configured SMTP server.

        Parameters
        ----------
        from_address : str
            Sender address.
        to_address : str
            Recipient address.
        subject : str
            Mail subject.
        html_body : str
            HTML content.

        Raises
        ------
        NotificationError
            If connecting, authenticating or sending fails.
        """
        message = EmailMessage()
        message["From"] = from_address
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content("An HTML-capable mail client is required.")
        message.add_alternative(html_body, subtype="html")

        settings = self._settings
        try:
            if settings.security == "ssl":
                server = smtplib.SMTP_SSL(
                    settings.smtp_server,
                    settings.smtp_port,
                    timeout=SMTP_TIMEOUT,
                    context=ssl.create_default_context(),
                )
            else:
                server = smtplib.SMTP(
                    settings.smtp_server,
                    settings.smtp_port,
                    timeout=SMTP_TIMEOUT,
                )
            with server:
                server.ehlo()
                if settings.security == "starttls":
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                if settings.smtp_username and settings.smtp_password:
                    server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            msg = f"Send email notification with error: {e}"
            raise NotificationError(msg) from e
