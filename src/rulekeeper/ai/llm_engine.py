"""Answer rule questions with retrieved rule text and an OpenAI-compatible API.

Flow for one question:

1. Resolve the question against the current rule index. A critical mapping
   hit is answered directly with its pinned verdict.
2. Otherwise render the retrieved rules, and any compound violations, into
   the system prompt template.
3. Send the conversation to the chat completions endpoint.
4. Map API failures to short user-facing messages.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import openai
from openai import AsyncOpenAI

from rulekeeper.configuration.app_configuration import app_config
from rulekeeper.datatypes.rule_datatypes import SearchResponse
from rulekeeper.rules.compound_rules import render_compound_answer
from rulekeeper.rules.critical_mappings import render_decisive_answer
from rulekeeper.rules.rule_index import NO_CONTEXT_NOTICE, RulesService, rules_service
from rulekeeper.util.logger import get_logger

logger = get_logger("llm_engine")

NEW_CONVERSATION_STATE = "This is the start of a new conversation. Greet the member briefly before answering."
ONGOING_CONVERSATION_STATE = "Continue the ongoing conversation."

AMBIGUOUS_PHRASES = (
    "could be seen as",
    "might be considered",
    "may be viewed as",
    "potentially violates",
    "depending on the circumstances",
    "it would depend",
    "could be considered",
    "might violate",
)

QUOTA_MESSAGE = "I am temporarily unavailable due to API limits. Contact staff directly for assistance."
AUTH_MESSAGE = "I am experiencing configuration issues. Contact an administrator or reach out to staff for help."
BUSY_MESSAGE = "I am currently busy helping other community members. Try asking your question again in a moment."
GENERIC_MESSAGE = (
    "I am experiencing technical difficulties. You can try asking again, "
    "or contact staff directly if you need immediate help."
)
AI_DISABLED_MESSAGE = "AI answers are disabled. Here is what the rule documents say:"


def contains_ambiguous_language(text: str) -> bool:
    """True when ``text`` hedges with phrases like "might violate"."""
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in AMBIGUOUS_PHRASES)


def error_response(exc: openai.APIError) -> str:
    """Map an API failure to a member-facing message."""
    code = getattr(exc, "code", None)
    if code == "insufficient_quota":
        return QUOTA_MESSAGE
    if code == "invalid_api_key" or isinstance(exc, openai.AuthenticationError):
        return AUTH_MESSAGE
    if getattr(exc, "status_code", None) == 429:
        return BUSY_MESSAGE
    return GENERIC_MESSAGE


def render_search_answer(response: SearchResponse) -> str:
    """Plain answer built from search hits, used when completions are disabled."""
    compound = render_compound_answer(response.meta.get("compound_violations", ()))
    if not response.found:
        return compound or NO_CONTEXT_NOTICE
    lines = [AI_DISABLED_MESSAGE]
    for hit in response.primary[:3]:
        lines.append(f"**{hit.rule.heading}**: {hit.rule.description}")
    text = "\n".join(lines)
    return f"{compound}\n\n{text}" if compound else text


class LLMEngine:
    """
    Build prompts from retrieved rules and request completions.

    The client and rules service can be injected; by default the engine
    builds an ``AsyncOpenAI`` client from ``ai_settings`` and reads the shared
    :data:`rules_service`.
    """

    def __init__(self, client: AsyncOpenAI | None = None, service: RulesService | None = None) -> None:
        ai_settings = app_config.ai_settings
        self._settings = ai_settings
        self._service = service or rules_service
        self._client = client
        if self._client is None and ai_settings.enabled:
            if ai_settings.api_key:
                self._client = AsyncOpenAI(api_key=ai_settings.api_key, base_url=ai_settings.base_url)
            else:
                logger.warning("[LLM ENGINE] No API key configured; answering from rule search only")
        self._model_name = ai_settings.model_name
        self._base_system_prompt = app_config.system_prompt_template
        logger.info(
            "[LLM ENGINE] Initialized with base_url=%s, model=%s, enabled=%s",
            ai_settings.base_url,
            self._model_name,
            ai_settings.enabled,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def generate_system_prompt(
        self,
        rules_context: str,
        user_name: str = "",
        guild_name: str = "",
        is_new_conversation: bool = False,
    ) -> str:
        """Fill the configured template's ``<|...|>`` placeholders."""
        state = NEW_CONVERSATION_STATE if is_new_conversation else ONGOING_CONVERSATION_STATE
        prompt = self._base_system_prompt or ""
        prompt = prompt.replace("<|RULES_CONTEXT_INJECT|>", rules_context.strip())
        prompt = prompt.replace("<|USER_NAME|>", user_name or "a community member")
        prompt = prompt.replace("<|GUILD_NAME|>", guild_name or "the community")
        prompt = prompt.replace("<|CONVERSATION_STATE|>", state)
        return prompt

    def build_messages(
        self,
        system_prompt: str,
        question: str,
        history: Sequence[Dict[str, str]] = (),
    ) -> List[Dict[str, str]]:
        return [{"role": "system", "content": system_prompt}, *history, {"role": "user", "content": question}]

    async def answer(
        self,
        question: str,
        history: Sequence[Dict[str, str]] = (),
        user_name: str = "",
        guild_name: str = "",
    ) -> str:
        """
        Answer a member's rule question.

        Args:
            question: Raw message text.
            history: Prior messages of this conversation, oldest first.
            user_name: Display name injected into the prompt.
            guild_name: Server name injected into the prompt.

        Returns:
            str: The decisive answer for critical scenarios, the completion
            text otherwise, or a fallback message when the API call fails.

        Raises:
            IndexNotReadyError: If the rule index has not been built yet.
        """
        response, rules_context = self._service.answer_context(
            question,
            app_config.search_options,
            app_config.context_char_budget,
        )

        if response.critical:
            match = response.meta["critical_match"]
            logger.info("[LLM ENGINE] Critical mapping %s answered query directly", match.code)
            return render_decisive_answer(match)

        if not self.enabled:
            return render_search_answer(response)

        system_prompt = self.generate_system_prompt(
            rules_context,
            user_name=user_name,
            guild_name=guild_name,
            is_new_conversation=not history,
        )
        messages = self.build_messages(system_prompt, question, history)
        request: Dict[str, Any] = {
            "model": self._model_name,
            "messages": messages,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            **self._settings.sampling_parameters,
        }

        try:
            completion = await self._client.chat.completions.create(**request)
        except openai.APIError as exc:
            logger.error("[LLM ENGINE] API request failed: %s", exc)
            return error_response(exc)

        if not completion.choices:
            logger.error("[LLM ENGINE] Completion returned no choices")
            return GENERIC_MESSAGE
        text = completion.choices[0].message.content or ""
        if contains_ambiguous_language(text):
            logger.warning("[LLM ENGINE] Completion contains hedging language: %.120s", text)

        logger.debug(
            "[LLM ENGINE] Answered with %d context rules (found=%s)",
            len(response.primary),
            response.found,
        )
        return text.strip() or GENERIC_MESSAGE
