"""ChatEngine: run one prompt-file exchange end to end.

Parse the prompt file, assemble the context files it references, stream the
reply back into the file, then reconcile usage and cost.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from gb9k.chat.stream import StreamingExchange
from gb9k.chat.usage import reconcile
from gb9k.context.assembler import ContextBundle, assemble_context
from gb9k.context.discovery import FileDiscovery
from gb9k.core.config import Settings
from gb9k.core.credentials import CredentialStore
from gb9k.core.models import Conversation, StreamState, UsageReport
from gb9k.llm.directory import ModelDirectory
from gb9k.llm.openrouter import OpenRouterClient, OpenRouterError
from gb9k.prompt.document import PromptFile
from gb9k.prompt.parser import parse_prompt

log = logging.getLogger(__name__)


class ChatError(Exception):
    """Base error for a run that cannot proceed."""


class MissingCredentialError(ChatError):
    """No API key configured."""


class NoMessagesError(ChatError):
    """The prompt file has no conversation to send."""


@dataclass
class RunResult:
    """Everything a finished run produced."""

    conversation: Conversation
    context: ContextBundle
    state: StreamState
    report: UsageReport


class ChatEngine:
    """Orchestrate parser, context assembler, streaming exchange and reconciler."""

    def __init__(
        self,
        settings: Settings,
        client: OpenRouterClient | None = None,
        directory: ModelDirectory | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self.settings = settings
        self._client = client
        self._directory = directory or ModelDirectory(settings)
        self._echo = echo
        self._discovery = FileDiscovery.from_settings(settings)

    def _get_client(self) -> OpenRouterClient:
        if self._client is not None:
            return self._client
        api_key = CredentialStore(self.settings.api_key_path).get()
        if not api_key:
            raise MissingCredentialError(
                "API key not set. Please run `gb9k set-key` first."
            )
        self._client = OpenRouterClient(api_key, self.settings)
        return self._client

    def _read_prompt(self, prompt_path: Path) -> str:
        try:
            return PromptFile(prompt_path).read()
        except FileNotFoundError as e:
            raise ChatError(f"Prompt file not found: {prompt_path}. Run `gb9k init` first.") from e
        except UnicodeDecodeError as e:
            raise ChatError(f"{prompt_path.name} is not valid UTF-8 text: {e}") from e
        except OSError as e:
            raise ChatError(f"Failed to read {prompt_path}: {e}") from e

    def _parse(self, text: str, prompt_path: Path, models: list[dict]) -> Conversation:
        conversation = parse_prompt(
            text,
            known_models=self._directory.known_model_ids(models),
            default_model=self.settings.default_model,
        )
        if not conversation.messages:
            raise NoMessagesError(
                f"No messages found in {prompt_path.name}. "
                "Write your message under the last '### User' header."
            )
        return conversation

    def _models_for_run(self, client: OpenRouterClient) -> list[dict]:
        """Cached model entries, or a fresh in-memory list when there is no cache.

        The cache itself is never written here.
        """
        models = self._directory.cached_models()
        if models:
            return models
        try:
            models = client.list_models()
        except OpenRouterError as e:
            log.warning(
                "Could not fetch the model list (%s); only built-in models are known. "
                "Run `gb9k models` to cache it.",
                e,
            )
            return []
        log.debug("Fetched %d models for this run (not cached)", len(models))
        return models

    def load_conversation(self, prompt_path: Path) -> Conversation:
        """Read and parse the prompt file against the cached model list.

        Raises:
            ChatError: The file is missing, unreadable or not UTF-8.
            MalformedFileError: No conversation marker.
            NoMessagesError: No non-empty turns.
        """
        text = self._read_prompt(prompt_path)
        return self._parse(text, prompt_path, self._directory.cached_models())

    def run(self, prompt_path: Path) -> RunResult:
        """Send the conversation in prompt_path and stream the reply into it.

        Raises:
            ChatError: See load_conversation; also raised when the prompt
                file cannot be written while the reply streams in.
            MalformedFileError: No conversation marker.
            OpenRouterError: The request failed or the stream broke off.
        """
        client = self._get_client()
        prompt_path = prompt_path.resolve()
        text = self._read_prompt(prompt_path)
        models = self._models_for_run(client)
        conversation = self._parse(text, prompt_path, models)

        context = assemble_context(
            conversation.context_refs,
            prompt_path.parent,
            discovery=self._discovery,
        )

        log.info(
            "Sending %d messages (%d context files) to %s",
            len(conversation.messages),
            len(context.files),
            conversation.model_id,
        )

        exchange = StreamingExchange(client, PromptFile(prompt_path), echo=self._echo)
        try:
            result = exchange.run(
                conversation.model_id,
                self.settings.system_prompt,
                context.text,
                conversation.messages,
            )
        except (OSError, UnicodeDecodeError) as e:
            raise ChatError(f"Failed to update {prompt_path.name}: {e}") from e

        quote = self._directory.get_quote(conversation.model_id, models)
        report = reconcile(result.state, result.request_messages, quote)
        return RunResult(
            conversation=conversation,
            context=context,
            state=result.state,
            report=report,
        )
