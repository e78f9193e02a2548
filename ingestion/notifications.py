"""
Slack webhook summary of a runner pass (best-effort)
"""

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)


def build_payload(success: Sequence[str], failures: Sequence[str]) -> Dict[str, Any]:
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "📄 Report Generation Completed!", "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*✅ Success:*\n" + ", ".join(success)},
        },
    ]
    if failures:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*❌ Fails:*\n" + ", ".join(failures)},
        })
    return {"blocks": blocks}


class SlackNotifier:
    def __init__(self, http: httpx.AsyncClient, webhook_url: Optional[str], timeout: float = 10.0):
        self.http = http
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def notify(self, success: Sequence[str], failures: Sequence[str]) -> bool:
        """Post the summary; returns whether a message was delivered"""
        if not self.webhook_url:
            logger.debug("SLACK_WEBHOOK_URL not set, skipping notification")
            return False
        try:
            response = await self.http.post(
                self.webhook_url, json=build_payload(success, failures), timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack notification: {e}")
            return False
        logger.info("Slack notification sent")
        return True
