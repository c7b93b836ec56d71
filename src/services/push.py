"""Browser push notifications via the Web Push protocol."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

from pywebpush import WebPushException, webpush

from config import PushConfig

logger = logging.getLogger(__name__)


class PushClient:
    """Sends web push payloads to stored browser subscriptions."""

    def __init__(
        self,
        config: PushConfig,
        *,
        sender: Callable[..., Any] = webpush,
    ) -> None:
        self._config = config
        self._sender = sender

    @property
    def enabled(self) -> bool:
        """Return True when VAPID credentials are configured."""
        return bool(self._config.vapid_private_key)

    async def send(self, subscription: dict[str, Any], payload: dict[str, Any]) -> bool:
        """Deliver one payload; returns False on any delivery failure."""
        if not self.enabled:
            logger.warning("Web push skipped: no VAPID private key configured.")
            return False
        try:
            await asyncio.to_thread(
                self._sender,
                subscription_info=subscription,
                data=json.dumps(payload),
                vapid_private_key=self._config.vapid_private_key,
                vapid_claims={"sub": self._config.vapid_subject},
            )
        except WebPushException as exc:
            logger.error("Web push rejected: %s", exc)
            return False
        except Exception:
            logger.exception("Web push delivery failed unexpectedly.")
            return False
        return True

    def build_alert_payload(self, alert_id: int, message: str) -> dict[str, Any]:
        """Render the notification payload for a due alert."""
        return {
            "title": message,
            "body": message,
            "url": self._config.click_url,
            "tag": f"new-alert-{alert_id}",
        }
