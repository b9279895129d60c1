"""Tests for AI home-care suggestions.

The chat model is patched out; no request ever reaches Anthropic.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from orenemr import home_care
from orenemr.home_care import HomeCareUnavailableError, suggest_home_care

FORM = {"areas": "Neck", "painRadiating": "Left arm", "notes": "Desk job"}


def _model(reply: object) -> MagicMock:
    model = MagicMock()
    model.ainvoke = AsyncMock(return_value=reply)
    return model


@pytest.mark.asyncio
@patch("orenemr.home_care.ANTHROPIC_API_KEY", "")
async def test_missing_api_key_raises() -> None:
    with pytest.raises(HomeCareUnavailableError, match="ANTHROPIC_API_KEY"):
        await suggest_home_care(FORM)


@pytest.mark.asyncio
@patch("orenemr.home_care.ANTHROPIC_API_KEY", "sk-test")
async def test_returns_model_markdown() -> None:
    model = _model(AIMessage(content="### Exercises\n- **Chin Tucks** - 10 reps\n"))

    with patch.object(home_care, "_get_model", return_value=model):
        text = await suggest_home_care(FORM)

    assert text == "### Exercises\n- **Chin Tucks** - 10 reps"
    messages = model.ainvoke.await_args.args[0]
    assert isinstance(messages[0], SystemMessage)
    assert "### Follow-up & Safety" in messages[0].content
    assert isinstance(messages[1], HumanMessage)
    assert '"painRadiating": "Left arm"' in messages[1].content


@pytest.mark.asyncio
@patch("orenemr.home_care.ANTHROPIC_API_KEY", "sk-test")
async def test_empty_reply_raises() -> None:
    model = _model(AIMessage(content=" "))

    with patch.object(home_care, "_get_model", return_value=model):
        with pytest.raises(HomeCareUnavailableError, match="No suggestions"):
            await suggest_home_care(FORM)


@pytest.mark.asyncio
@patch("orenemr.home_care.ANTHROPIC_API_KEY", "sk-test")
async def test_api_failure_raises_unavailable() -> None:
    model = MagicMock()
    model.ainvoke = AsyncMock(
        side_effect=anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
    )

    with patch.object(home_care, "_get_model", return_value=model):
        with pytest.raises(HomeCareUnavailableError, match="Failed to fetch"):
            await suggest_home_care(FORM)


@pytest.mark.asyncio
@patch("orenemr.home_care.ANTHROPIC_API_KEY", "sk-test")
async def test_block_content_is_joined_as_text() -> None:
    """Replies may arrive as a list of content blocks."""
    reply = AIMessage(
        content=[
            {"type": "text", "text": "### Pain Relief\n"},
            {"type": "text", "text": "- Ice 20 minutes"},
        ]
    )

    with patch.object(home_care, "_get_model", return_value=_model(reply)):
        text = await suggest_home_care(FORM)

    assert text == "### Pain Relief\n- Ice 20 minutes"
