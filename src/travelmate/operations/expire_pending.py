"""Cancel pending reservations abandoned before payment.

Run periodically (cron or a scheduled job):

    python -m travelmate.operations.expire_pending

Exit code 0 on success, 1 if the store could not be reached.
"""

import sys

from travelmate.api.deps import build_lifecycle
from travelmate.domain.errors import StoreUnavailableError
from travelmate.infra.config import load_settings
from travelmate.observability.correlation import correlation_scope
from travelmate.observability.logging import configure_logging, get_logger
from travelmate.stripe.client import StripeClient

logger = get_logger(__name__)


def main() -> int:
    configure_logging()
    settings = load_settings()
    gateway = StripeClient(
        settings.stripe_secret_key,
        timeout=settings.http_timeout_seconds,
    )
    lifecycle = build_lifecycle(settings, gateway)

    with correlation_scope() as cid:
        try:
            expired = lifecycle.expire_abandoned()
        except StoreUnavailableError:
            logger.exception("expire run failed", extra={"extra_fields": {"correlationId": cid}})
            return 1

    print(f"expired {len(expired)} pending reservation(s)", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
