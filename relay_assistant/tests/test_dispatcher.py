"""
End-to-end dispatcher tests over the real wiring.

Provider HTTP goes through httpx.MockTransport; Telegram goes through the
recording transport from the root conftest.
"""

import json
import time

import httpx
import pytest

from relay_assistant.config.settings import Settings
from relay_assistant.i18n import t
from relay_assistant.orchestration.types import DispatchStatus
from relay_assistant.orchestration.wiring import create_assistant
from relay_assistant.prompts.personas import PERSONAS

CHAT_ID = 4242
USER_ID = 7
GOOD_KEY = "sk-or-good-0123456789"


def sse_body(*pieces):
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": p}}]}) + "\n\n"
        for p in pieces
    ]
    return ("".join(lines) + "data: [DONE]\n\n").encode()


class FakeProviders:
    """Routes OpenRouter and Google requests by host and path."""

    def __init__(self):
        self.requests = []
        self.answer = ("Hi", " there")
        self.search_items = [
            {"title": "Jakarta weather", "link": "https://weather.example/jkt", "snippet": "Hot, 33C"},
        ]
        self.models = ["openai/gpt-4o", "anthropic/claude-3-haiku"]

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.path
        if request.url.host == "www.googleapis.com":
            return httpx.Response(200, json={"items": self.search_items})
        if path == "/api/v1/auth/key":
            ok = request.headers.get("Authorization") == f"Bearer {GOOD_KEY}"
            return httpx.Response(200 if ok else 401, json={"data": {}})
        if path == "/api/v1/chat/completions":
            return httpx.Response(200, content=sse_body(*self.answer))
        if path == "/api/v1/models":
            return httpx.Response(200, json={"data": [{"id": m} for m in self.models]})
        if path.startswith("/api/v1/models/"):
            model_id = path[len("/api/v1/models/"):]
            if model_id in self.models:
                return httpx.Response(200, json={"data": {"id": model_id}})
            return httpx.Response(404, json={"error": {"message": "not found"}})
        return httpx.Response(404)

    def paths(self):
        return [r.url.path for r in self.requests]

    def chat_payloads(self):
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/chat/completions")]


def message_update(text, user_id=USER_ID, message_id=10):
    return {
        "update_id": 1,
        "message": {
            "message_id": message_id,
            "from": {"id": user_id},
            "chat": {"id": CHAT_ID},
            "text": text,
        },
    }


def callback_update(data, user_id=USER_ID):
    return {
        "update_id": 2,
        "callback_query": {
            "id": "cb-1",
            "from": {"id": user_id},
            "message": {"message_id": 50, "chat": {"id": CHAT_ID}},
            "data": data,
        },
    }


@pytest.fixture
def providers():
    return FakeProviders()


@pytest.fixture
def search_settings():
    return Settings(telegram_bot_token="123:abc", google_api_key="gkey", google_cx="cx")


@pytest.fixture
def assistant(search_settings, memory_kv, recording_transport, providers, mock_logger):
    return create_assistant(
        search_settings,
        kv=memory_kv,
        transport=recording_transport,
        http_transport=httpx.MockTransport(providers),
        logger=mock_logger,
    )


@pytest.fixture
def dispatch(assistant):
    async def run(update):
        status = await assistant.dispatcher.handle_update(update)
        await assistant.tasks.drain(timeout=5)
        return status
    return run


async def give_key(assistant, **fields):
    def mutate(session):
        session.api_key = GOOD_KEY
        for name, value in fields.items():
            setattr(session, name, value)
    await assistant.store.update(USER_ID, mutate)


# =============================================================================
# ROUTING AND AUTHORIZATION
# =============================================================================

class TestRouting:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("update", [
        {},
        {"update_id": 3, "edited_message": {"text": "hi"}},
        {"update_id": 4, "message": {"message_id": 1, "from": {"id": USER_ID}, "chat": {"id": CHAT_ID}}},
        {"update_id": 5, "message": {"text": "no sender"}},
    ])
    async def test_ignored_updates(self, dispatch, recording_transport, update):
        assert await dispatch(update) == DispatchStatus.IGNORED
        assert recording_transport.sent == []

    @pytest.mark.asyncio
    async def test_unauthorized_user_gets_notice_and_no_session(
        self, memory_kv, recording_transport, providers, mock_logger
    ):
        settings = Settings(telegram_bot_token="t", allowed_user_ids=frozenset({"1"}))
        assistant = create_assistant(
            settings,
            kv=memory_kv,
            transport=recording_transport,
            http_transport=httpx.MockTransport(providers),
            logger=mock_logger,
        )

        status = await assistant.dispatcher.handle_update(message_update("/ask hi", user_id=2))

        assert status == DispatchStatus.UNAUTHORIZED
        assert recording_transport.sent_texts == [t("en", "unauthorized")]
        assert memory_kv._data == {}
        assert providers.requests == []

    @pytest.mark.asyncio
    async def test_unrecognized_command_shows_help(self, dispatch, recording_transport):
        assert await dispatch(message_update("/xyzzyq")) == DispatchStatus.HANDLED
        assert recording_transport.sent_texts == [t("en", "help")]

    @pytest.mark.asyncio
    async def test_typo_resolves_to_help_with_settings(self, dispatch, recording_transport, search_settings):
        await dispatch(message_update("/helo"))
        text = recording_transport.sent_texts[0]
        assert text.startswith(t("en", "help"))
        assert search_settings.default_model in text

    @pytest.mark.asyncio
    async def test_start_without_and_with_key(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/start"))
        await give_key(assistant)
        await dispatch(message_update("/start"))

        assert recording_transport.sent_texts[0] == t("en", "start_welcome")
        assert recording_transport.sent_texts[1].startswith(t("en", "start_welcome_authorized"))
        assert "Current model" in recording_transport.sent_texts[1]


# =============================================================================
# ASK
# =============================================================================

class TestAsk:
    @pytest.mark.asyncio
    async def test_ask_without_key_makes_no_provider_call(self, dispatch, recording_transport, providers):
        await dispatch(message_update("/ask hello"))
        assert recording_transport.sent_texts == [t("en", "key_required")]
        assert providers.requests == []

    @pytest.mark.asyncio
    async def test_ask_without_question(self, dispatch, recording_transport):
        await dispatch(message_update("/ask"))
        assert recording_transport.sent_texts == [t("en", "ask_invalid")]

    @pytest.mark.asyncio
    async def test_implicit_ask_streams_answer(self, dispatch, assistant, recording_transport, providers):
        await give_key(assistant)

        assert await dispatch(message_update("hello there")) == DispatchStatus.HANDLED

        assert recording_transport.sent_texts == [t("en", "ask_thinking")]
        assert recording_transport.edit_texts[-1] == "Hi there"
        payload = providers.chat_payloads()[0]
        assert payload["stream"] is True
        assert payload["messages"][-1] == {"role": "user", "content": "hello there"}

        session = await assistant.store.get(USER_ID)
        assert [(e.role.value, e.content) for e in session.history] == [
            ("user", "hello there"),
            ("assistant", "Hi there"),
        ]

    @pytest.mark.asyncio
    async def test_placeholder_failure_sends_generic_error(self, dispatch, assistant, recording_transport, providers):
        await give_key(assistant)
        recording_transport.fail_send = True

        await dispatch(message_update("/ask hi"))

        assert recording_transport.sent_texts == [t("en", "generic_error")]
        assert providers.chat_payloads() == []

    @pytest.mark.asyncio
    async def test_followup_prefixes_recent_search_topic(self, dispatch, assistant, providers):
        await give_key(assistant, last_search_query="jakarta weather", last_search_timestamp=time.time() - 60)

        await dispatch(message_update("why is it so hot"))

        prompt = providers.chat_payloads()[0]["messages"][-1]["content"]
        assert prompt == 'Regarding my earlier search about "jakarta weather": why is it so hot'
        session = await assistant.store.get(USER_ID)
        assert session.history[0].content == "why is it so hot"

    @pytest.mark.asyncio
    async def test_stale_search_is_not_a_followup(self, dispatch, assistant, providers):
        await give_key(assistant, last_search_query="jakarta weather", last_search_timestamp=time.time() - 7200)

        await dispatch(message_update("why is it so hot"))

        assert providers.chat_payloads()[0]["messages"][-1]["content"] == "why is it so hot"


# =============================================================================
# SEARCH
# =============================================================================

class TestSearch:
    @pytest.mark.asyncio
    async def test_search_summarizes_results_and_records_context(
        self, dispatch, assistant, recording_transport, providers
    ):
        await give_key(assistant)
        providers.answer = ("It is hot [1]",)

        await dispatch(message_update("/search jakarta weather"))

        assert recording_transport.sent_texts == [t("en", "search_thinking")]
        assert recording_transport.edit_texts[-1] == "It is hot [1]"
        prompt = providers.chat_payloads()[0]["messages"][-1]["content"]
        assert "https://weather.example/jkt" in prompt
        assert "jakarta weather" in prompt

        session = await assistant.store.get(USER_ID)
        assert session.last_search_query == "jakarta weather"
        assert abs(session.last_search_timestamp - time.time()) < 60
        assert session.history[0].content == "jakarta weather"

    @pytest.mark.asyncio
    async def test_search_requires_query_key_and_toggle(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/search"))
        await dispatch(message_update("/search cats"))
        await give_key(assistant, search_enabled=False)
        await dispatch(message_update("/search cats"))

        assert recording_transport.sent_texts == [
            t("en", "search_invalid"),
            t("en", "key_required"),
            t("en", "search_disabled"),
        ]

    @pytest.mark.asyncio
    async def test_search_no_results(self, dispatch, assistant, recording_transport, providers):
        await give_key(assistant)
        providers.search_items = []

        await dispatch(message_update("/search zzzz"))

        assert recording_transport.edit_texts == [t("en", "search_no_results", query="zzzz")]
        assert providers.chat_payloads() == []

    @pytest.mark.asyncio
    async def test_search_unavailable_without_providers(self, memory_kv, recording_transport, providers, mock_logger):
        assistant = create_assistant(
            Settings(telegram_bot_token="t"),
            kv=memory_kv,
            transport=recording_transport,
            http_transport=httpx.MockTransport(providers),
            logger=mock_logger,
        )
        await give_key(assistant)

        await assistant.dispatcher.handle_update(message_update("/search cats"))

        assert recording_transport.sent_texts == [t("en", "search_unavailable")]
        assert recording_transport.edit_texts == []
        assert not any(r.url.host == "www.googleapis.com" for r in providers.requests)


# =============================================================================
# KEY AND MODEL COMMANDS
# =============================================================================

class TestKeyAndModels:
    @pytest.mark.asyncio
    async def test_setkey_verifies_stores_and_deletes_message(self, dispatch, assistant, recording_transport):
        await dispatch(message_update(f"/setkey {GOOD_KEY}", message_id=33))

        assert recording_transport.deleted == [(CHAT_ID, 33)]
        assert recording_transport.sent_texts == [t("en", "key_set_success")]
        assert (await assistant.store.get(USER_ID)).api_key == GOOD_KEY

    @pytest.mark.asyncio
    async def test_setkey_rejected(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/setkey sk-wrong"))

        assert recording_transport.sent_texts == [t("en", "key_verification_failed")]
        assert (await assistant.store.get(USER_ID)).api_key is None

    @pytest.mark.asyncio
    async def test_setkey_without_argument(self, dispatch, recording_transport, providers):
        await dispatch(message_update("/setkey"))
        assert recording_transport.sent_texts == [t("en", "key_set_invalid")]
        assert providers.requests == []

    @pytest.mark.asyncio
    async def test_key_menu(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/key"))
        await give_key(assistant)
        await dispatch(message_update("/key"))

        assert recording_transport.sent[0][1] == t("en", "key_none")
        text, markup = recording_transport.sent[1][1], recording_transport.sent[1][2]
        assert GOOD_KEY not in text
        assert markup["inline_keyboard"][0][0]["callback_data"] == "deletekey_"

    @pytest.mark.asyncio
    async def test_models_keyboard(self, dispatch, assistant, recording_transport):
        await give_key(assistant)

        await dispatch(message_update("/models"))

        _, text, markup = recording_transport.sent[0]
        assert text == t("en", "models_header", page=1, pages=1)
        data = [row[0]["callback_data"] for row in markup["inline_keyboard"]]
        assert data == ["setmodel_anthropic/claude-3-haiku", "setmodel_openai/gpt-4o"]

    @pytest.mark.asyncio
    async def test_models_requires_key(self, dispatch, recording_transport):
        await dispatch(message_update("/models"))
        assert recording_transport.sent_texts == [t("en", "key_required")]

    @pytest.mark.asyncio
    async def test_setmodel_checks_model(self, dispatch, assistant, recording_transport):
        await give_key(assistant)

        await dispatch(message_update("/setmodel openai/gpt-4o"))
        await dispatch(message_update("/setmodel nope/none"))

        assert recording_transport.sent_texts == [
            t("en", "model_set_success", model="openai/gpt-4o"),
            t("en", "model_fetch_error"),
        ]
        assert (await assistant.store.get(USER_ID)).model == "openai/gpt-4o"

    @pytest.mark.asyncio
    async def test_setmodel_without_id_shows_keyboard(self, dispatch, assistant, recording_transport):
        await give_key(assistant)
        await dispatch(message_update("/setmodel"))
        assert recording_transport.sent[0][2] is not None


# =============================================================================
# SETTINGS COMMANDS
# =============================================================================

class TestSettings:
    @pytest.mark.asyncio
    async def test_persona(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/persona coder"))
        await dispatch(message_update("/persona pirate"))
        await dispatch(message_update("/persona"))

        assert recording_transport.sent_texts[0] == t("en", "persona_set_success", persona="coder")
        assert recording_transport.sent_texts[1].startswith("Unknown persona")
        assert recording_transport.sent[2][2]["inline_keyboard"]
        assert (await assistant.store.get(USER_ID)).system_prompt == PERSONAS["coder"]

    @pytest.mark.asyncio
    async def test_setlang(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/setlang id"))
        await dispatch(message_update("/setlang fr"))

        assert recording_transport.sent_texts[0] == t("id", "language_set_success")
        assert recording_transport.sent_texts[1] == t("id", "language_prompt")
        assert (await assistant.store.get(USER_ID)).language == "id"

    @pytest.mark.asyncio
    async def test_setsystemprompt_and_reset_to_default(self, dispatch, assistant, search_settings):
        await dispatch(message_update("/setsystemprompt Talk like a pirate"))
        assert (await assistant.store.get(USER_ID)).system_prompt == "Talk like a pirate"

        await dispatch(message_update("/setsystemprompt"))
        assert (await assistant.store.get(USER_ID)).system_prompt == search_settings.default_system_prompt

    @pytest.mark.asyncio
    async def test_clear_history(self, dispatch, assistant, recording_transport):
        await give_key(assistant)
        await dispatch(message_update("hello"))
        assert (await assistant.store.get(USER_ID)).history

        await dispatch(message_update("/clear"))

        assert (await assistant.store.get(USER_ID)).history == []
        assert recording_transport.sent_texts[-1] == t("en", "history_cleared")

    @pytest.mark.asyncio
    async def test_settings_summary(self, dispatch, assistant, recording_transport):
        await give_key(assistant)
        await dispatch(message_update("/settings"))

        _, text, markup = recording_transport.sent[0]
        assert "Search: on" in text
        assert "Persona: default" in text
        assert GOOD_KEY not in text
        assert markup["inline_keyboard"][0][0]["callback_data"] == "clearhistory_"

    @pytest.mark.asyncio
    async def test_settings_summary_names_active_persona(self, dispatch, assistant, recording_transport):
        await dispatch(message_update("/persona coder"))
        await dispatch(message_update("/setsystemprompt Talk like a pirate"))
        await dispatch(message_update("/settings"))
        await dispatch(message_update("/persona summarizer"))
        await dispatch(message_update("/settings"))

        custom, named = recording_transport.sent_texts[2], recording_transport.sent_texts[4]
        assert "Persona: custom" in custom
        assert "Talk like a pirate" in custom
        assert "Persona: summarizer" in named

    @pytest.mark.asyncio
    async def test_resetsettings_keeps_language(self, dispatch, assistant, recording_transport):
        await give_key(assistant, language="id", model="x/y")

        await dispatch(message_update("/resetsettings"))

        session = await assistant.store.get(USER_ID)
        assert session.language == "id"
        assert session.api_key is None
        assert session.model != "x/y"
        assert recording_transport.sent_texts == [t("id", "settings_reset_success")]

    @pytest.mark.asyncio
    async def test_togglesearch_keyboard(self, dispatch, recording_transport):
        await dispatch(message_update("/togglesearch"))

        _, text, markup = recording_transport.sent[0]
        assert text == t("en", "search_toggle_prompt", state="on")
        assert markup["inline_keyboard"][0][0]["callback_data"] == "togglesearch_off"


# =============================================================================
# CALLBACKS
# =============================================================================

class TestCallbacks:
    @pytest.mark.asyncio
    async def test_toggle_search_off(self, dispatch, assistant, recording_transport):
        assert await dispatch(callback_update("togglesearch_off")) == DispatchStatus.HANDLED

        assert (await assistant.store.get(USER_ID)).search_enabled is False
        assert recording_transport.answers == [("cb-1", None)]
        assert recording_transport.edits == [(CHAT_ID, 50, t("en", "search_disabled_now"), None)]

    @pytest.mark.asyncio
    async def test_invalid_callback_answered_with_error(self, dispatch, recording_transport):
        assert await dispatch(callback_update("bogus_data")) == DispatchStatus.HANDLED
        assert recording_transport.answers == [("cb-1", t("en", "generic_error"))]
        assert recording_transport.edits == []

    @pytest.mark.asyncio
    async def test_delete_key(self, dispatch, assistant, recording_transport):
        await give_key(assistant)
        await dispatch(callback_update("deletekey_"))
        assert (await assistant.store.get(USER_ID)).api_key is None
        assert recording_transport.edit_texts == [t("en", "key_deleted")]

    @pytest.mark.asyncio
    async def test_set_language_and_persona(self, dispatch, assistant):
        await dispatch(callback_update("setlang_id"))
        await dispatch(callback_update("setpersona_translator"))

        session = await assistant.store.get(USER_ID)
        assert session.language == "id"
        assert session.system_prompt == PERSONAS["translator"]

    @pytest.mark.asyncio
    async def test_model_page_and_select(self, dispatch, assistant, recording_transport):
        await give_key(assistant)

        await dispatch(callback_update("modelpage_0"))
        await dispatch(callback_update("setmodel_openai/gpt-4o"))

        assert recording_transport.edits[0][3]["inline_keyboard"]
        assert (await assistant.store.get(USER_ID)).model == "openai/gpt-4o"

    @pytest.mark.asyncio
    async def test_clear_history_callback(self, dispatch, assistant):
        await give_key(assistant)
        await dispatch(message_update("hello"))

        await dispatch(callback_update("clearhistory_"))

        assert (await assistant.store.get(USER_ID)).history == []

    @pytest.mark.asyncio
    async def test_unauthorized_callback(self, memory_kv, recording_transport, providers, mock_logger):
        assistant = create_assistant(
            Settings(telegram_bot_token="t", allowed_user_ids=frozenset({"1"})),
            kv=memory_kv,
            transport=recording_transport,
            http_transport=httpx.MockTransport(providers),
            logger=mock_logger,
        )
        status = await assistant.dispatcher.handle_update(callback_update("deletekey_", user_id=3))
        assert status == DispatchStatus.UNAUTHORIZED
        assert recording_transport.answers == [("cb-1", t("en", "unauthorized"))]
