"""HTTP client for the Slack Web API calls Standup Pulse makes."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

SLACK_API_BASE = "https://slack.com/api"


class SlackApiError(RuntimeError):
    """Raised when Slack returns an error response."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack API error for {method}: {error}")
        self.method = method
        self.error = error


class SlackClient:
    """Async wrapper used to sync display names and post daily summaries."""

    def __init__(
        self,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=SLACK_API_BASE,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _check(self, method: str, response: httpx.Response) -> Dict[str, Any]:
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            raise SlackApiError(method, data.get("error", "unknown_error"))
        return data

    async def fetch_users(self) -> list[dict[str, Any]]:
        """Return every non-deleted workspace member, following pagination."""

        method = "users.list"
        members: list[dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"limit": 200}
            if cursor:
                params["cursor"] = cursor
            data = self._check(method, await self._client.get(method, params=params))
            members.extend(m for m in data.get("members", []) if not m.get("deleted"))
            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break
        return members

    async def post_message(self, channel_id: str, text: str) -> str:
        """Post ``text`` to ``channel_id`` and return the message timestamp."""

        method = "chat.postMessage"
        response = await self._client.post(
            method,
            json={"channel": channel_id, "text": text, "mrkdwn": True},
        )
        data = self._check(method, response)
        return data.get("ts", "")


__all__ = ["SlackClient", "SlackApiError"]
