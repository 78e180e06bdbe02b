"""
Console email sender - Development stand-in for the Resend adapter.

Selected with EMAIL_BACKEND=console (the default). Codes go to the
application log so a local run can complete verification without an
email provider.
"""

import logging

logger = logging.getLogger(__name__)

LOG_FORMAT = "[VERIFICATION] Email: %s Code: %s Expires in: %d min"


class ConsoleEmailSender:
    """EmailSender that writes the code to the log; delivery never fails."""

    def send_verification_code(self, email: str, code: str, valid_minutes: int) -> bool:
        logger.info(LOG_FORMAT, email, code, valid_minutes)
        return True
