import hmac
import logging

logger = logging.getLogger(__name__)

SUBSCRIBE_MODE = "subscribe"


class VerificationError(Exception):
    pass


class MissingVerificationParams(VerificationError):
    pass


class VerificationFailed(VerificationError):
    pass


def verify(
    mode: str | None, token: str | None, challenge: str | None, expected_token: str | None
) -> str:
    """
    Check a subscription handshake and return the challenge to echo back.

    Raise MissingVerificationParams if mode or token is absent and
    VerificationFailed if they do not match the configured token.
    """
    logger.info(
        "Verification details: "
        f"mode={mode}, token={'**redacted**' if token else None}, "
        f"challenge={challenge}, "
        f"expectedToken={'**configured**' if expected_token else '**missing**'}"
    )

    if not mode or not token:
        logger.warning("WEBHOOK_VERIFICATION_FAILED - Missing mode or token")
        raise MissingVerificationParams("Missing verification parameters")

    token_ok = bool(expected_token) and hmac.compare_digest(
        token.encode("utf-8"), expected_token.encode("utf-8")
    )
    if mode != SUBSCRIBE_MODE or not token_ok:
        logger.warning("WEBHOOK_VERIFICATION_FAILED - Token mismatch or invalid mode")
        raise VerificationFailed("Verification failed")

    logger.info("WEBHOOK_VERIFIED - Sending challenge response")
    return challenge or ""
