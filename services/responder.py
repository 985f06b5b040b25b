"""Generative fallback for the booking assistant.

Talks to a chat function that accepts ``{"messages": [...], "systemPrompt": str}``
and answers ``{"message": str}``. Best effort only: any failure turns into the
apology text and is logged, never raised.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

APOLOGY = "Oops! Had a little stumble there. Try again? ⚽"

SYSTEM_PROMPT = """You are a friendly, enthusiastic football pitch booking assistant.

Current user: {player_name} (Skill Level: {player_level})
Current date/time: {now}

Upcoming bookings:
{bookings}

Your job:
1. Help users find the best time to play based on their preferences
2. Recommend joining open sessions if they want to meet other players
3. Suggest booking their own session if they want private time

Booking rules:
- Hours: {open_time} - {close_time}
- Duration: 1 or 2 hours
- Session types: OPEN (others can join) or CLOSED (private)
- Open sessions show available spots

You cannot make or change bookings yourself. Keep responses short and ask ONE follow-up question."""


class ResponderError(Exception):
    """Raised internally when the chat function gives an unusable answer."""


def build_system_prompt(context: Dict[str, Any]) -> str:
    return SYSTEM_PROMPT.format(
        player_name=context.get("player_name") or "there",
        player_level=context.get("player_level") or "?",
        now=context.get("now") or "",
        bookings=json.dumps(context.get("bookings") or [], indent=2),
        open_time=context.get("open_time") or "08:00",
        close_time=context.get("close_time") or "20:00",
    )


class ChatResponder:
    def __init__(
        self,
        url: Optional[str],
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._http = http

    @classmethod
    def from_config(cls, config) -> "ChatResponder":
        return cls(
            url=config.get("CHAT_FUNCTION_URL"),
            api_key=config.get("CHAT_API_KEY"),
            timeout=float(config.get("CHAT_TIMEOUT_SECONDS", 15)),
        )

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def complete(self, conversation_tail: List[Dict[str, str]], grounding_context: Dict[str, Any]) -> str:
        if not self.configured:
            return APOLOGY
        try:
            return self._request(conversation_tail, grounding_context)
        except (httpx.HTTPError, ResponderError, ValueError) as exc:
            logger.warning("Chat responder failed: %s", exc)
            return APOLOGY

    def _request(self, conversation_tail, grounding_context) -> str:
        payload = {
            "messages": [
                {"role": m.get("role"), "content": m.get("content")}
                for m in conversation_tail
            ],
            "systemPrompt": build_system_prompt(grounding_context),
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        if self._http is not None:
            response = self._http.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()

        data = response.json()
        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, str) or not message.strip():
            raise ResponderError("chat function returned no message")
        return message.strip()
