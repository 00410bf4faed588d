"""Dispatcher: routes inbound updates to command handlers.

Flow for a chat message:

    authorize -> read session -> match command -> handler
                                  (plain text -> implicit ask)

Completions are not awaited here. Handlers send a placeholder message and
hand a StreamJob to the BackgroundTaskRegistry, so the webhook request
returns while the answer streams in.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from relay_assistant._logging import get_component_logger
from relay_assistant.commands.callbacks import (
    CallbackAction,
    CallbackData,
    CallbackDecodeError,
)
from relay_assistant.commands.matcher import is_command, match_command, split_command
from relay_assistant.config.settings import SUPPORTED_LANGUAGES, Settings
from relay_assistant.config.thresholds import FOLLOWUP_WINDOW_SECONDS
from relay_assistant.i18n import t
from relay_assistant.orchestration.tasks import BackgroundTaskRegistry
from relay_assistant.orchestration.types import (
    DispatchStatus,
    InboundCallback,
    InboundMessage,
    StreamJob,
    UserSession,
)
from relay_assistant.prompts.personas import get_persona, persona_for_prompt, persona_names
from relay_assistant.prompts.search import followup_prompt, search_summary_prompt
from relay_assistant.services.model_catalog import ModelCatalog
from relay_assistant.services.search_aggregator import SearchAggregator, SearchUnavailableError
from relay_assistant.services.session_store import SessionStore
from relay_assistant.services.streaming import StreamingCompletionEngine
from relay_assistant.transport import keyboards
from relay_assistant.transport.telegram import MessagingTransport, TransportError
from relayframe.client import RelayframeClient
from relayframe.types import RelayframeError

Keyboard = Optional[Dict[str, Any]]
Handler = Callable[[InboundMessage, UserSession, str], Awaitable[None]]


def mask_key(api_key: str) -> str:
    if len(api_key) <= 12:
        return "****"
    return f"{api_key[:6]}…{api_key[-4:]}"


class Dispatcher:
    def __init__(
        self,
        settings: Settings,
        store: SessionStore,
        transport: MessagingTransport,
        engine: StreamingCompletionEngine,
        aggregator: SearchAggregator,
        catalog: ModelCatalog,
        client: RelayframeClient,
        tasks: BackgroundTaskRegistry,
        log: Optional[Any] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.store = store
        self.transport = transport
        self.engine = engine
        self.aggregator = aggregator
        self.catalog = catalog
        self.client = client
        self.tasks = tasks
        self.clock = clock
        self.logger = get_component_logger("dispatcher", log)

        self._commands: Dict[str, Handler] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "ask": self._cmd_ask,
            "search": self._cmd_search,
            "setkey": self._cmd_setkey,
            "key": self._cmd_key,
            "models": self._cmd_models,
            "setmodel": self._cmd_setmodel,
            "setsystemprompt": self._cmd_setsystemprompt,
            "persona": self._cmd_persona,
            "setlang": self._cmd_setlang,
            "togglesearch": self._cmd_togglesearch,
            "clear": self._cmd_clear,
            "settings": self._cmd_settings,
            "resetsettings": self._cmd_resetsettings,
        }

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def handle_update(self, update: Dict[str, Any]) -> DispatchStatus:
        """Dispatch one webhook update."""
        query = update.get("callback_query")
        if isinstance(query, dict):
            callback = InboundCallback.from_update(query)
            if callback is None:
                return DispatchStatus.IGNORED
            return await self.handle_callback(callback)

        message = update.get("message")
        if not isinstance(message, dict):
            return DispatchStatus.IGNORED
        inbound = InboundMessage.from_update(message)
        if inbound is None or not inbound.text.strip():
            return DispatchStatus.IGNORED
        return await self.handle_message(inbound)

    async def handle_message(self, msg: InboundMessage) -> DispatchStatus:
        if not self.settings.is_user_allowed(msg.user_id):
            self.logger.warning("user_unauthorized", user_id=str(msg.user_id))
            await self._reply(msg.chat_id, t(self.settings.default_language, "unauthorized"))
            return DispatchStatus.UNAUTHORIZED

        session = await self.store.get(msg.user_id)

        if not is_command(msg.text):
            await self._ask(msg, session, msg.text.strip())
            return DispatchStatus.HANDLED

        command = match_command(msg.text)
        _, args = split_command(msg.text)
        self.logger.info("command_received", user_id=str(msg.user_id), command=command)
        if command is None:
            await self._reply(msg.chat_id, t(session.language, "help"))
            return DispatchStatus.HANDLED

        await self._commands[command](msg, session, args)
        return DispatchStatus.HANDLED

    async def handle_callback(self, cb: InboundCallback) -> DispatchStatus:
        if not self.settings.is_user_allowed(cb.user_id):
            self.logger.warning("user_unauthorized", user_id=str(cb.user_id))
            await self._answer(cb.callback_id, t(self.settings.default_language, "unauthorized"))
            return DispatchStatus.UNAUTHORIZED

        session = await self.store.get(cb.user_id)
        try:
            data = CallbackData.decode(cb.data)
        except CallbackDecodeError as e:
            self.logger.warning("callback_invalid", user_id=str(cb.user_id), error=str(e))
            await self._answer(cb.callback_id, t(session.language, "generic_error"))
            return DispatchStatus.HANDLED

        self.logger.info("callback_received", user_id=str(cb.user_id), action=data.action.value)
        text, markup = await self._apply_callback(cb.user_id, session, data)
        await self._answer(cb.callback_id)
        if cb.chat_id is not None and cb.message_id is not None:
            await self._edit(cb.chat_id, cb.message_id, text, markup)
        return DispatchStatus.HANDLED

    # =========================================================================
    # COMPLETION COMMANDS
    # =========================================================================

    async def _cmd_ask(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        if not args:
            await self._reply(msg.chat_id, t(session.language, "ask_invalid"))
            return
        await self._ask(msg, session, args)

    async def _ask(self, msg: InboundMessage, session: UserSession, text: str) -> None:
        lang = session.language
        if not session.has_credential:
            await self._reply(msg.chat_id, t(lang, "key_required"))
            return

        prompt = followup_prompt(
            text,
            session.last_search_query,
            session.last_search_timestamp,
            now=self.clock(),
            window=FOLLOWUP_WINDOW_SECONDS,
        )
        placeholder = await self._reply(msg.chat_id, t(lang, "ask_thinking"))
        if placeholder is None:
            await self._reply(msg.chat_id, t(lang, "generic_error"))
            return

        self._spawn(StreamJob(
            user_id=msg.user_id,
            chat_id=msg.chat_id,
            message_id=placeholder,
            session=session,
            prompt=prompt,
            history_prompt=text,
        ))

    async def _cmd_search(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        if not args:
            await self._reply(msg.chat_id, t(lang, "search_invalid"))
            return
        if not session.has_credential:
            await self._reply(msg.chat_id, t(lang, "key_required"))
            return
        if not session.search_enabled:
            await self._reply(msg.chat_id, t(lang, "search_disabled"))
            return
        if not self.aggregator.available:
            await self._reply(msg.chat_id, t(lang, "search_unavailable"))
            return

        placeholder = await self._reply(msg.chat_id, t(lang, "search_thinking"))
        if placeholder is None:
            await self._reply(msg.chat_id, t(lang, "generic_error"))
            return

        try:
            results = await self.aggregator.search(args)
        except SearchUnavailableError:
            await self._edit(msg.chat_id, placeholder, t(lang, "search_unavailable"))
            return
        if not results:
            await self._edit(msg.chat_id, placeholder, t(lang, "search_no_results", query=args))
            return

        self._spawn(StreamJob(
            user_id=msg.user_id,
            chat_id=msg.chat_id,
            message_id=placeholder,
            session=session,
            prompt=search_summary_prompt(args, results),
            session_updates={"last_search_query": args, "last_search_timestamp": self.clock()},
            history_prompt=args,
        ))

    def _spawn(self, job: StreamJob) -> None:
        self.tasks.spawn(f"stream:{job.user_id}", self.engine.run(job))

    # =========================================================================
    # KEY AND MODEL COMMANDS
    # =========================================================================

    async def _cmd_setkey(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        api_key = args.strip()
        if not api_key:
            await self._reply(msg.chat_id, t(lang, "key_set_invalid"))
            return

        if msg.message_id is not None:
            try:
                await self.transport.delete_message(msg.chat_id, msg.message_id)
            except TransportError as e:
                self.logger.warning("key_message_delete_failed", user_id=str(msg.user_id), error=str(e))

        state = await self.client.verify_key(api_key)
        if not state.valid:
            self.logger.info("key_rejected", user_id=str(msg.user_id), detail=state.detail)
            await self._reply(msg.chat_id, t(lang, "key_verification_failed"))
            return

        await self._set(msg.user_id, api_key=api_key)
        await self._reply(msg.chat_id, t(lang, "key_set_success"))

    async def _cmd_key(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        if not session.api_key:
            await self._reply(msg.chat_id, t(lang, "key_none"))
            return
        await self._reply(
            msg.chat_id,
            t(lang, "key_menu", masked=mask_key(session.api_key)),
            keyboards.key_management_keyboard(lang),
        )

    async def _cmd_models(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        if not session.has_credential:
            await self._reply(msg.chat_id, t(session.language, "key_required"))
            return
        text, markup = await self._models_page(session, 0)
        await self._reply(msg.chat_id, text, markup)

    async def _cmd_setmodel(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        if not session.api_key:
            await self._reply(msg.chat_id, t(lang, "key_required"))
            return
        model_id = args.strip()
        if not model_id:
            text, markup = await self._models_page(session, 0)
            await self._reply(msg.chat_id, text, markup)
            return

        if not await self.client.check_model(session.api_key, model_id):
            await self._reply(msg.chat_id, t(lang, "model_fetch_error"))
            return
        await self._set(msg.user_id, model=model_id)
        await self._reply(msg.chat_id, t(lang, "model_set_success", model=model_id))

    async def _models_page(self, session: UserSession, page: int) -> Tuple[str, Keyboard]:
        lang = session.language
        try:
            model_ids = await self.catalog.model_ids(session.api_key or "")
        except RelayframeError as e:
            self.logger.warning("model_catalog_failed", error=e.message, status_code=e.status_code)
            return t(lang, "model_fetch_error"), None
        if not model_ids:
            return t(lang, "models_empty"), None
        markup, page, pages = keyboards.models_keyboard(model_ids, page, lang)
        return t(lang, "models_header", page=page + 1, pages=pages), markup

    # =========================================================================
    # SETTING COMMANDS
    # =========================================================================

    async def _cmd_start(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        if not session.has_credential:
            await self._reply(msg.chat_id, t(lang, "start_welcome"))
            return
        text = "\n\n".join([t(lang, "start_welcome_authorized"), self._current_settings(session)])
        await self._reply(msg.chat_id, text)

    async def _cmd_help(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        text = "\n\n".join([t(session.language, "help"), self._current_settings(session)])
        await self._reply(msg.chat_id, text)

    async def _cmd_setsystemprompt(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        prompt = args.strip()
        if not prompt:
            await self._set(msg.user_id, system_prompt=self.settings.default_system_prompt)
            await self._reply(msg.chat_id, t(lang, "system_prompt_reset_success"))
            return
        await self._set(msg.user_id, system_prompt=prompt)
        await self._reply(msg.chat_id, t(lang, "system_prompt_set_success"))

    async def _cmd_persona(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        name = args.strip().lower()
        if not name:
            await self._reply(msg.chat_id, t(lang, "persona_prompt"), keyboards.persona_keyboard())
            return
        prompt = get_persona(name)
        if prompt is None:
            await self._reply(msg.chat_id, t(lang, "persona_unknown", personas=", ".join(persona_names())))
            return
        await self._set(msg.user_id, system_prompt=prompt)
        await self._reply(msg.chat_id, t(lang, "persona_set_success", persona=name))

    async def _cmd_setlang(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        code = args.strip().lower()
        if code not in SUPPORTED_LANGUAGES:
            await self._reply(msg.chat_id, t(session.language, "language_prompt"), keyboards.language_keyboard())
            return
        await self._set(msg.user_id, language=code)
        await self._reply(msg.chat_id, t(code, "language_set_success"))

    async def _cmd_togglesearch(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        state = t(lang, "search_state_on" if session.search_enabled else "search_state_off")
        await self._reply(
            msg.chat_id,
            t(lang, "search_toggle_prompt", state=state),
            keyboards.search_toggle_keyboard(session.search_enabled, lang),
        )

    async def _cmd_clear(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        await self._set(msg.user_id, history=[])
        await self._reply(msg.chat_id, t(session.language, "history_cleared"))

    async def _cmd_settings(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        lang = session.language
        text = t(
            lang,
            "settings_summary",
            model=session.model,
            persona=persona_for_prompt(session.system_prompt) or t(lang, "persona_custom"),
            systemPrompt=session.system_prompt,
            language=session.language,
            search=t(lang, "search_state_on" if session.search_enabled else "search_state_off"),
            key=mask_key(session.api_key) if session.api_key else "-",
            history=len(session.history),
        )
        await self._reply(msg.chat_id, text, keyboards.settings_keyboard(lang))

    async def _cmd_resetsettings(self, msg: InboundMessage, session: UserSession, args: str) -> None:
        fresh = await self.store.reset(msg.user_id)
        await self._reply(msg.chat_id, t(fresh.language, "settings_reset_success"))

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    async def _apply_callback(
        self, user_id: int, session: UserSession, data: CallbackData
    ) -> Tuple[str, Keyboard]:
        lang = session.language
        action = data.action

        if action == CallbackAction.MODEL_PAGE:
            if not session.has_credential:
                return t(lang, "key_required"), None
            return await self._models_page(session, int(data.value or 0))

        if action == CallbackAction.SET_MODEL:
            if not session.has_credential:
                return t(lang, "key_required"), None
            await self._set(user_id, model=str(data.value))
            return t(lang, "model_set_success", model=data.value), None

        if action == CallbackAction.SET_LANG:
            code = str(data.value)
            await self._set(user_id, language=code)
            return t(code, "language_set_success"), None

        if action == CallbackAction.SET_PERSONA:
            name = str(data.value)
            await self._set(user_id, system_prompt=get_persona(name))
            return t(lang, "persona_set_success", persona=name), None

        if action == CallbackAction.TOGGLE_SEARCH:
            enabled = bool(data.value)
            await self._set(user_id, search_enabled=enabled)
            return t(lang, "search_enabled" if enabled else "search_disabled_now"), None

        if action == CallbackAction.DELETE_KEY:
            await self._set(user_id, api_key=None)
            return t(lang, "key_deleted"), None

        await self._set(user_id, history=[])
        return t(lang, "history_cleared"), None

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _current_settings(self, session: UserSession) -> str:
        return t(
            session.language,
            "current_settings",
            model=session.model,
            systemPrompt=session.system_prompt,
        )

    async def _set(self, user_id: int, **fields: Any) -> UserSession:
        def mutate(session: UserSession) -> None:
            for name, value in fields.items():
                setattr(session, name, value)

        return await self.store.update(user_id, mutate)

    async def _reply(self, chat_id: int, text: str, reply_markup: Keyboard = None) -> Optional[int]:
        """Send a message; None when the transport failed."""
        try:
            return await self.transport.send_message(chat_id, text, reply_markup)
        except TransportError as e:
            self.logger.error("reply_failed", chat_id=chat_id, error=str(e), status_code=e.status_code)
            return None

    async def _edit(self, chat_id: int, message_id: int, text: str, reply_markup: Keyboard = None) -> None:
        try:
            await self.transport.edit_message_text(chat_id, message_id, text, reply_markup)
        except TransportError as e:
            self.logger.error("edit_failed", chat_id=chat_id, error=str(e), status_code=e.status_code)

    async def _answer(self, callback_id: str, text: Optional[str] = None) -> None:
        try:
            await self.transport.answer_callback_query(callback_id, text)
        except TransportError as e:
            self.logger.warning("callback_answer_failed", error=str(e))
