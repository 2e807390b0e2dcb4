"""One-time codes for email verification.

Delivery is left to the sender object stored in
``app.extensions['otp_sender']``: anything with a ``send(email, otp)`` method.
"""
import logging
import secrets

from flask import current_app

logger = logging.getLogger(__name__)

OTP_DIGITS = 6


def generate_otp():
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


class LoggingOtpSender:
    """Writes codes to the log instead of mailing them."""

    def send(self, email, otp):
        logger.info("Verification code for %s: %s", email, otp)


def get_sender():
    return current_app.extensions['otp_sender']
