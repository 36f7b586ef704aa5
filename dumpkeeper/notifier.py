"""
Failure notifications by email through the local ``mail`` client.
"""

import logging
import subprocess

logger = logging.getLogger(__name__)

MAIL_SUBJECT = 'Something goes wrong with MySQL backup on host: {hostname}'
MAIL_TEXT_LIMIT = 300
TRUNCATION_NOTICE = ' ...\n\n[The output has reached the limit of {limit} characters and was truncated]'


class Notifier:
    """
    Sends one email per failure to the operator.

    No retries: a failed send is logged and the run carries on to its exit.
    """

    def __init__(self, recipient: str, sender: str, hostname: str, limit: int = MAIL_TEXT_LIMIT, timeout: int = None):
        self.recipient = recipient
        self.sender = sender
        self.hostname = hostname
        self.limit = limit
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            recipient=config.mail_rec,
            sender=config.mail_sender,
            hostname=config.hostname,
            limit=config.mail_text_limit,
            timeout=config.command_timeout
        )

    @property
    def subject(self) -> str:
        return MAIL_SUBJECT.format(hostname=self.hostname)

    def format_body(self, message: str) -> str:
        """
        Cap a message at the character limit.

        Longer messages keep their first ``limit`` characters followed by the
        truncation notice; shorter ones are returned unchanged.
        """
        if len(message) <= self.limit:
            return message
        return message[:self.limit] + TRUNCATION_NOTICE.format(limit=self.limit)

    def send(self, message: str) -> bool:
        """
        Email a message to the operator.

        Args:
            message: Notification text

        Returns:
            True if the mail client accepted the message
        """
        if not self.recipient:
            logger.warning(f"No notification recipient configured, not sending: {message}")
            return False

        cmd = ['mail', '-a', f'From: {self.sender}', '-s', self.subject, self.recipient]

        try:
            result = subprocess.run(
                cmd,
                input=self.format_body(message),
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"ERROR: failed to send notification to {self.recipient}: {e}")
            return False

        if result.returncode != 0:
            logger.error(
                f"ERROR: failed to send notification to {self.recipient}: "
                f"{result.stderr.strip() or f'exit code {result.returncode}'}"
            )
            return False

        logger.debug(f"Notification sent to {self.recipient}")
        return True
