"""
Failure handler: retire tokens the gateway reports as permanently undeliverable.

Only DeviceNotRegistered (app uninstalled / token revoked) deactivates a token. Transient
errors (rate limits, gateway outages, exhausted retries) never touch the directory, so a bad
minute at the gateway cannot cost users their devices.
"""
import logging

from sqlalchemy.orm import Session

from notifier.core.constants import PERMANENT_TOKEN_ERRORS, TOKEN_LOG_PREFIX
from notifier.services.devices import deactivate_tokens
from notifier.services.push import DeliveryResult

logger = logging.getLogger(__name__)


def tokens_to_retire(results: list[DeliveryResult]) -> list[str]:
    tokens: list[str] = []
    for r in results:
        if not r.ticket.ok and r.ticket.error in PERMANENT_TOKEN_ERRORS and r.token not in tokens:
            tokens.append(r.token)
    return tokens


def handle_failures(db: Session, results: list[DeliveryResult]) -> list[str]:
    """Deactivate permanently failed tokens; returns the retired tokens. Caller commits."""
    retire = tokens_to_retire(results)
    for token in retire:
        logger.info("Marking token as inactive: %s...", token[:TOKEN_LOG_PREFIX])
    if retire:
        n = deactivate_tokens(db, retire)
        logger.info("Deactivated %s invalid tokens", n)
    return retire
