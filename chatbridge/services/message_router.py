"""Routing of inbound chat messages according to session phase."""

from enum import StrEnum

import structlog

from chatbridge.core.exceptions import (
    CredentialRejectedError,
    InvalidSessionStateError,
    SessionAlreadyExistsError,
    SessionNotFoundError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRateLimitError,
)
from chatbridge.models.chat_session import ChatId, ChatSession, Role, Turn
from chatbridge.repositories.session_store import SessionStore
from chatbridge.schemas.telegram_schema import TelegramMessage
from chatbridge.services.completion_service import CompletionService
from chatbridge.services.credential_service import CredentialValidator
from chatbridge.services.telegram_service import TelegramClient, split_message

logger = structlog.get_logger()

PROVIDER_NAMES = {"openai": "OpenAI", "anthropic": "Anthropic"}

HELP_TEXT = (
    "This bot relays your messages to an AI assistant using your own API key.\n\n"
    "Commands:\n"
    "/start - Start a conversation\n"
    "/end - End the current conversation\n"
    "/stop - Same as /end\n"
    "/help - This help message\n"
    "/echo [text] - Echo your message\n"
    "/info - Get chat information\n\n"
    "Without a running conversation, any other message is echoed back."
)

WELCOME_TEXT = (
    "Welcome to the bot! 👋\n\n"
    "Please send your {provider} API key to start the conversation. "
    "It is kept in memory only and forgotten when the conversation ends.\n\n"
    "Type /help to see available commands."
)
ALREADY_RUNNING_TEXT = "A conversation is already running. Send /end to finish it first."
ENDED_TEXT = "Conversation ended. Send /start to begin a new one."
NOT_RUNNING_TEXT = "There is no conversation to end. Send /start to begin one."
REPROMPT_TEXT = (
    "That does not look like a valid {provider} API key. "
    "Please send the key exactly as issued, starting with \"{prefix}\"."
)
KEY_ACCEPTED_TEXT = "API key accepted ✅ You can start chatting now."
KEY_ALREADY_SET_TEXT = "This conversation already has an API key. You can keep chatting."
KEY_REJECTED_TEXT = (
    "The API key was rejected, so the conversation was closed. "
    "Check the key and send /start to try again."
)
KEY_REVOKED_TEXT = (
    "Your API key is no longer valid. The conversation was closed; "
    "send /start to begin a new one with a working key."
)
RATE_LIMITED_TEXT = "The AI service is busy right now. Please try again in a moment."
FAILURE_TEXT = "Sorry, something went wrong while getting a reply. Please try again."
ECHO_USAGE_TEXT = "Please provide some text to echo. Example: /echo Hello World"


class RouteOutcome(StrEnum):
    """What the router did with an inbound text."""

    ECHOED = "echoed"
    CREDENTIAL_REPROMPTED = "credential_reprompted"
    CREDENTIAL_ACCEPTED = "credential_accepted"
    CREDENTIAL_REJECTED = "credential_rejected"
    REPLIED = "replied"
    UPSTREAM_AUTH_FAILED = "upstream_auth_failed"
    UPSTREAM_RATE_LIMITED = "upstream_rate_limited"
    UPSTREAM_FAILED = "upstream_failed"
    IGNORED = "ignored"


def parse_command(text: str) -> tuple[str, str] | None:
    """Split ``/cmd@BotName args`` into ``("cmd", "args")``."""
    if not text.startswith("/"):
        return None
    head, *rest = text.split(maxsplit=1)
    args = rest[0] if rest else ""
    command = head[1:].split("@", 1)[0].lower()
    if not command:
        return None
    return command, args.strip()


def format_echo(text: str) -> str:
    return f'You said: "{text}"\n\nType /help to see available commands.'


def format_info(message: TelegramMessage, session: ChatSession | None) -> str:
    """Chat, user and session details for the /info command."""
    lines = [
        "Chat Information:",
        f"Chat ID: {message.chat.id}",
        f"Chat Type: {message.chat.type}",
    ]
    user = message.from_user
    if user is not None:
        lines += [
            "",
            "User Information:",
            f"User ID: {user.id}",
            f"Username: {user.username or 'Not set'}",
            f"First Name: {user.first_name or 'Not set'}",
            f"Last Name: {user.last_name or 'Not set'}",
            f"Is Bot: {str(user.is_bot).lower()}",
        ]
    lines += ["", "Conversation:"]
    if session is None:
        lines.append("Status: none")
    else:
        lines.append(f"Status: {session.phase.value}")
        lines.append(f"Started: {session.created_at:%Y-%m-%d %H:%M:%S} UTC")
        lines.append(f"Turns: {session.turn_count}")
    return "\n".join(lines)


class MessageRouter:
    """Decides how each inbound message is handled based on session phase.

    Store access happens only around state reads and writes; credential
    validation and completion calls run without the store lock held.
    """

    def __init__(
        self,
        store: SessionStore,
        validator: CredentialValidator,
        completion: CompletionService,
        telegram: TelegramClient,
        provider: str = "openai",
        credential_prefix: str = "sk-",
    ) -> None:
        self._store = store
        self._validator = validator
        self._completion = completion
        self._telegram = telegram
        self._provider_name = PROVIDER_NAMES.get(provider, provider)
        self._credential_prefix = credential_prefix

    async def reply(self, chat_id: ChatId, text: str) -> None:
        """Send text in order as chunks within the transport size limit."""
        for chunk in split_message(text, self._telegram.max_message_length):
            await self._telegram.send_message(chat_id, chunk)

    # --- Entry point ---

    async def handle_message(self, message: TelegramMessage) -> RouteOutcome:
        """Dispatch a text message to a command handler or the text router."""
        if not message.text:
            return RouteOutcome.IGNORED
        if message.from_user is not None and message.from_user.is_bot:
            return RouteOutcome.IGNORED

        chat_id = message.chat.id
        parsed = parse_command(message.text) if message.is_command else None
        if parsed is None:
            return await self.route_text(chat_id, message.text)

        command, args = parsed
        match command:
            case "start":
                await self.start_conversation(chat_id)
            case "end" | "stop":
                await self.end_conversation(chat_id)
            case "help":
                await self.reply(chat_id, HELP_TEXT)
            case "echo":
                await self.reply(chat_id, f"Echo: {args}" if args else ECHO_USAGE_TEXT)
            case "info":
                await self.reply(chat_id, format_info(message, await self._store.get(chat_id)))
            case _:
                logger.debug("Unknown command ignored", chat_id=chat_id, command=command)
        return RouteOutcome.IGNORED

    # --- Commands ---

    async def start_conversation(self, chat_id: ChatId) -> bool:
        """Create a session and ask for a key. Returns whether one was created."""
        try:
            await self._store.create(chat_id)
        except SessionAlreadyExistsError:
            await self.reply(chat_id, ALREADY_RUNNING_TEXT)
            return False
        await self.reply(chat_id, WELCOME_TEXT.format(provider=self._provider_name))
        return True

    async def end_conversation(self, chat_id: ChatId) -> bool:
        removed = await self._store.delete(chat_id)
        await self.reply(chat_id, ENDED_TEXT if removed else NOT_RUNNING_TEXT)
        return removed

    # --- Text routing ---

    async def route_text(self, chat_id: ChatId, text: str) -> RouteOutcome:
        session = await self._store.get(chat_id)
        if session is None:
            await self.reply(chat_id, format_echo(text))
            return RouteOutcome.ECHOED
        if session.is_active:
            return await self._converse(session, text)
        return await self._accept_credential(session, text)

    async def _accept_credential(self, session: ChatSession, text: str) -> RouteOutcome:
        chat_id = session.chat_id
        if not self._validator.looks_like_credential(text):
            await self.reply(
                chat_id,
                REPROMPT_TEXT.format(
                    provider=self._provider_name, prefix=self._credential_prefix
                ),
            )
            return RouteOutcome.CREDENTIAL_REPROMPTED

        credential = text.strip()
        try:
            await self._validator.ensure_valid(credential)
        except CredentialRejectedError:
            # a session restarted during validation is not the one rejected
            await self._store.delete(chat_id, created_at=session.created_at)
            await self.reply(chat_id, KEY_REJECTED_TEXT)
            return RouteOutcome.CREDENTIAL_REJECTED

        try:
            await self._store.set_credential(chat_id, credential)
        except SessionNotFoundError:
            # ended or expired while the key was being validated
            await self.reply(chat_id, NOT_RUNNING_TEXT)
            return RouteOutcome.IGNORED
        except InvalidSessionStateError:
            # a concurrent message activated the session first
            await self.reply(chat_id, KEY_ALREADY_SET_TEXT)
            return RouteOutcome.IGNORED
        await self.reply(chat_id, KEY_ACCEPTED_TEXT)
        return RouteOutcome.CREDENTIAL_ACCEPTED

    async def _converse(self, session: ChatSession, text: str) -> RouteOutcome:
        """Run one user/assistant exchange.

        The user turn is stored together with the assistant turn once the
        completion succeeds, so a failed call leaves the history untouched and
        the roles keep alternating.
        """
        chat_id = session.chat_id
        await self._store.touch(chat_id)
        history = (*session.history, Turn(Role.USER, text))

        log = logger.bind(chat_id=chat_id, turns=len(history))
        try:
            answer = await self._completion.complete(session.credential, history)
        except UpstreamAuthError:
            await self._store.delete(chat_id)
            await self.reply(chat_id, KEY_REVOKED_TEXT)
            log.info("Session closed after upstream auth failure")
            return RouteOutcome.UPSTREAM_AUTH_FAILED
        except UpstreamRateLimitError:
            await self.reply(chat_id, RATE_LIMITED_TEXT)
            return RouteOutcome.UPSTREAM_RATE_LIMITED
        except UpstreamError:
            await self.reply(chat_id, FAILURE_TEXT)
            return RouteOutcome.UPSTREAM_FAILED

        try:
            await self._store.append_turn(chat_id, Role.USER, text)
            await self._store.append_turn(chat_id, Role.ASSISTANT, answer)
        except SessionNotFoundError:
            log.info("Session ended before the exchange was stored")
        await self.reply(chat_id, answer or FAILURE_TEXT)
        log.info("Reply relayed", reply_length=len(answer))
        return RouteOutcome.REPLIED
