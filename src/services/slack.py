"""Slack messaging integration via the Slack Web API."""

import logging
from typing import Any

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

logger = logging.getLogger(__name__)


def create_slack_client(token: str | None) -> AsyncWebClient:
    return AsyncWebClient(token=token)


class SlackClient:
    """Posts assistant and alert messages to Slack channels."""

    def __init__(self, web_client: AsyncWebClient):
        self._web_client = web_client

    async def post_message(
        self,
        channel: str,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Send a message to a Slack channel.

        Args:
            channel: Slack channel (or DM) id
            text: Fallback text shown in notifications
            blocks: Optional Block Kit payload

        Returns:
            True if the message was accepted, False otherwise
        """
        try:
            kwargs: dict[str, Any] = {"channel": channel, "text": text}
            if blocks:
                kwargs["blocks"] = blocks
            response = await self._web_client.chat_postMessage(**kwargs)
            if not response.get("ok", False):
                logger.error("Slack rejected message to %s: %s", channel, response.get("error"))
                return False
            logger.info("Sent Slack message to %s", channel)
            return True

        except SlackApiError as e:
            logger.error(f"Slack API error: {e.response.get('error')}")
            return False
        except Exception as e:
            logger.error(f"Error posting Slack message: {e}")
            return False
