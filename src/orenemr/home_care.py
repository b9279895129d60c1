"""AI home-care suggestions for follow-up visits.

Sends the follow-up form to Claude (through LangChain's ChatAnthropic) and
gets back a short Markdown summary with four sections: Exercises,
Ergonomic Tips, Pain Relief, and Follow-up & Safety. The doctor reviews the
text in the form before it is saved as the visit's home care.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import anthropic
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import SecretStr

from orenemr.config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL

logger = logging.getLogger(__name__)


class HomeCareUnavailableError(Exception):
    """Suggestions cannot be produced (no API key, or the model call failed)."""


SYSTEM_PROMPT = """\
You are a clinical therapist assistant.

Based on the patient's follow-up visit data, return a short home care \
summary in Markdown using exactly these sections:

### Exercises
### Ergonomic Tips
### Pain Relief
### Follow-up & Safety

RULES:
- Each section is a bulleted list with at most 3 bullets.
- Bold the name of each exercise, e.g. "**Neck Retractions** - 10 reps, 3x/day".
- No paragraphs, no extra commentary, under 250 words in total.
"""

# Built on first use so importing this module works without an API key.
_model: ChatAnthropic | None = None


def _get_model() -> ChatAnthropic:
    global _model  # noqa: PLW0603
    if _model is None:
        _model = ChatAnthropic(
            model_name=ANTHROPIC_MODEL,  # type: ignore[call-arg]
            anthropic_api_key=SecretStr(ANTHROPIC_API_KEY),  # type: ignore[call-arg]
            temperature=0.3,
            max_tokens=400,  # type: ignore[call-arg]
        )
    return _model


def _reply_text(content: str | list[Any]) -> str:
    """Text of a chat reply whose content is a string or a list of blocks."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


async def suggest_home_care(form: dict[str, Any]) -> str:
    """Generate home-care suggestions from a follow-up form.

    Args:
        form: The follow-up form as entered so far (camelCase dict).

    Returns:
        The Markdown summary.

    Raises:
        HomeCareUnavailableError: If ANTHROPIC_API_KEY is not set or the
            model call fails.
    """
    if not ANTHROPIC_API_KEY:
        raise HomeCareUnavailableError(
            "AI suggestions are not configured (ANTHROPIC_API_KEY is not set)."
        )

    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=json.dumps(form, indent=2, default=str)),
    ]
    try:
        result = await _get_model().ainvoke(messages)
    except anthropic.APIError as exc:
        logger.error("Home care suggestion request failed: %s", exc)
        raise HomeCareUnavailableError("Failed to fetch AI suggestions.") from exc

    text = _reply_text(result.content).strip()
    if not text:
        raise HomeCareUnavailableError("No suggestions returned by AI.")
    return text
