"""
E-mail delivery for run reports and emergency error alerts.
"""

import smtplib
import traceback
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Optional, Union

from loguru import logger

SENDER_NAME = "FS <--> ADO Sync"
XLSX_MIME = ("application", "vnd.openxmlformats-officedocument.spreadsheetml.sheet")


class ReportEmailer:
    """
    Sends the run report and error alerts over SMTP.

    Args:
        host: SMTP host; sending is skipped when empty
        port: SMTP port
        user: Login user, also used as the sender address
        password: Login password
        cc: Optional comma separated CC list
        use_tls: Upgrade the connection with STARTTLS
    """

    def __init__(self, host: str, port: int = 587, user: str = "", password: str = "",
                 cc: str = "", use_tls: bool = True, timeout: int = 30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.cc = cc
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f'"{SENDER_NAME}" <{self.user}>'
        message["To"] = to
        if self.cc:
            message["Cc"] = self.cc
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send(self, message: EmailMessage) -> bool:
        if not self.host:
            logger.warning("SMTP_HOST is not set. Skipping e-mail '{}'.", message["Subject"])
            return False

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

        logger.info("Sent e-mail '{}' to {}", message["Subject"], message["To"])
        return True

    def send_report_email(self, to: Optional[str], file_path: Union[str, Path]) -> bool:
        """
        E-mail the report workbook.

        Returns:
            bool: True if the message was handed to the SMTP server
        """
        if not to:
            logger.warning("No report recipient configured. Skipping report e-mail.")
            return False

        path = Path(file_path)
        subject = f"FS <--> ADO Sync Report ({datetime.now():%Y-%m-%d %H:%M})"
        message = self._build_message(to, subject, "Attached is the latest sync report.")
        message.add_attachment(path.read_bytes(), maintype=XLSX_MIME[0], subtype=XLSX_MIME[1], filename=path.name)
        return self._send(message)

    def send_error_report(self, to: Optional[str], error: BaseException) -> bool:
        """E-mail an alert for a fault that escaped the sync run."""
        if not to:
            logger.warning("No alert recipient configured. Skipping error e-mail.")
            return False

        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        subject = f"FS <--> ADO Sync Error Report ({datetime.now():%Y-%m-%d %H:%M})"
        body = (
            "An error occurred during the FS <--> ADO sync process:\n\n"
            f"{error}\n\nStack Trace:\n{stack}"
        )
        return self._send(self._build_message(to, subject, body))
