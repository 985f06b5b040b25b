import json

import httpx

from services.responder import APOLOGY, ChatResponder, build_system_prompt

CONTEXT = {
    "player_name": "Ana",
    "player_level": "300",
    "now": "2026-03-02 09:30 (Monday)",
    "open_time": "08:00",
    "close_time": "20:00",
    "bookings": [{"date": "2026-03-03 (Tuesday)", "time": "10:00", "spotsLeft": 3}],
}
TAIL = [{"role": "user", "content": "who's playing tonight?"}]


def _responder(handler, api_key="secret"):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return ChatResponder("https://chat.example.test/fn", api_key=api_key, http=http)


def test_posts_messages_and_system_prompt():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": "  Tuesday at 10 has room!  "})

    answer = _responder(handler).complete(TAIL, CONTEXT)

    assert answer == "Tuesday at 10 has room!"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["messages"] == TAIL
    assert "Current user: Ana (Skill Level: 300)" in seen["body"]["systemPrompt"]
    assert '"spotsLeft": 3' in seen["body"]["systemPrompt"]


def test_no_api_key_sends_no_auth_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"message": "ok"})

    assert _responder(handler, api_key=None).complete(TAIL, CONTEXT) == "ok"
    assert seen["auth"] is None


def test_http_error_degrades_to_apology():
    def handler(request):
        return httpx.Response(500, json={"error": "boom"})

    assert _responder(handler).complete(TAIL, CONTEXT) == APOLOGY


def test_transport_failure_degrades_to_apology():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    assert _responder(handler).complete(TAIL, CONTEXT) == APOLOGY


def test_malformed_reply_degrades_to_apology():
    assert _responder(lambda r: httpx.Response(200, text="not json")).complete(TAIL, CONTEXT) == APOLOGY
    assert _responder(lambda r: httpx.Response(200, json={"message": ""})).complete(TAIL, CONTEXT) == APOLOGY
    assert _responder(lambda r: httpx.Response(200, json=["message"])).complete(TAIL, CONTEXT) == APOLOGY


def test_unconfigured_responder_never_calls_out():
    responder = ChatResponder(None)
    assert responder.configured is False
    assert responder.complete(TAIL, CONTEXT) == APOLOGY


def test_from_config():
    responder = ChatResponder.from_config(
        {"CHAT_FUNCTION_URL": "https://x.test", "CHAT_API_KEY": "k", "CHAT_TIMEOUT_SECONDS": "3"}
    )
    assert responder.configured
    assert responder.timeout == 3.0


def test_system_prompt_defaults():
    prompt = build_system_prompt({})
    assert "Current user: there" in prompt
    assert "Hours: 08:00 - 20:00" in prompt
