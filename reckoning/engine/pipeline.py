"""Content pipeline: game state -> prompt -> provider -> GeneratedContent.

The provider is asked for the game_content schema:

    {"event_type": "...", "content": "...", "speaker": "...|null",
     "suggested_actions": ["..."]}

camelCase keys (eventType, suggestedActions) are accepted too. JSON may be
wrapped in a fenced code block or surrounded by prose. When no usable JSON
is found the whole reply is taken as plain text, with the event type derived
from the generation type.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, get_args

from reckoning.llm import AIProvider, AIRequest, OutputSchema
from reckoning.models import EventType, GeneratedContent, GenerationMetadata, GenerationType, new_id
from reckoning.prompts import build_context, build_prompt
from reckoning.storage import Storage

from .errors import GameNotFoundError

logger = logging.getLogger(__name__)

# The AI never classifies its own output as a DM injection.
GENERATED_EVENT_TYPES = tuple(t for t in get_args(EventType) if t != "dm_injection")

GAME_CONTENT_SCHEMA = OutputSchema(
    name="game_content",
    json_schema={
        "type": "object",
        "properties": {
            "event_type": {"type": "string", "enum": list(GENERATED_EVENT_TYPES)},
            "content": {"type": "string"},
            "speaker": {"type": ["string", "null"]},
            "suggested_actions": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["event_type", "content"],
    },
)

_FALLBACK_EVENT_TYPES: dict[GenerationType, EventType] = {
    "narration": "narration",
    "npc_response": "npc_dialogue",
    "environment_reaction": "environment",
    "dm_continuation": "narration",
}

_CODE_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_SPEAKER = re.compile(r"^(?:\[([^\]]+)\]|([^:\n]+):)")
_ACTION_LINE = re.compile(r"^\* (.+)$", re.MULTILINE)
_TRAILING_ACTIONS = re.compile(r"(\n\* .+)+$")


class ContentPipeline:
    def __init__(self, storage: Storage, provider: AIProvider, recent_history: int = 10) -> None:
        self._storage = storage
        self._provider = provider
        self._recent_history = recent_history

    def build_prompt(
        self, game_id: str, generation_type: GenerationType, dm_guidance: str | None = None
    ) -> str:
        game = self._storage.games.find_by_id(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        context = build_context(
            game=game,
            area=self._storage.world.get_area(game_id, game.current_area_id),
            npcs=self._storage.world.get_npcs(game_id, area_id=game.current_area_id),
            characters=self._storage.world.get_characters(game_id),
            recent_events=self._storage.events.find_recent(game_id, self._recent_history),
            dm_guidance=dm_guidance,
        )
        return build_prompt(generation_type, context)

    async def generate(
        self,
        game_id: str,
        generation_type: GenerationType = "narration",
        dm_guidance: str | None = None,
        generation_id: str | None = None,
    ) -> GeneratedContent:
        """Run one generation. Provider failures propagate as AIError."""
        prompt = self.build_prompt(game_id, generation_type, dm_guidance)
        logger.debug("generate game=%s type=%s prompt_len=%d", game_id, generation_type, len(prompt))
        response = await self._provider.execute(
            AIRequest(prompt=prompt, output_schema=GAME_CONTENT_SCHEMA, stage=generation_type)
        )
        return parse_response(response.content, generation_type, generation_id or new_id())


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _extract_json(text: str) -> dict[str, Any] | None:
    stripped = text.strip()
    candidate = stripped
    block = _CODE_BLOCK.search(stripped)
    if block:
        candidate = block.group(1).strip()
    else:
        obj = _JSON_OBJECT.search(stripped)
        if obj:
            candidate = obj.group(0)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _from_json(
    data: dict[str, Any], generation_type: GenerationType, generation_id: str
) -> GeneratedContent | None:
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        logger.warning("AI JSON has no content field; treating reply as plain text")
        return None

    raw_type = data.get("event_type", data.get("eventType"))
    event_type: EventType = "narration"
    if raw_type in GENERATED_EVENT_TYPES:
        event_type = raw_type
    elif raw_type is not None:
        logger.warning("Unknown event_type %r from AI, using narration", raw_type)

    speaker = data.get("speaker")
    actions = data.get("suggested_actions", data.get("suggestedActions")) or []
    return GeneratedContent(
        id=generation_id,
        generation_type=generation_type,
        event_type=event_type,
        content=content.strip(),
        metadata=GenerationMetadata(
            speaker=speaker if isinstance(speaker, str) else None,
            suggested_actions=[a for a in actions if isinstance(a, str)] if isinstance(actions, list) else [],
        ),
    )


def _from_text(text: str, generation_type: GenerationType, generation_id: str) -> GeneratedContent:
    speaker = None
    if generation_type == "npc_response":
        match = _SPEAKER.match(text.strip())
        if match:
            speaker = (match.group(1) or match.group(2)).strip()
    return GeneratedContent(
        id=generation_id,
        generation_type=generation_type,
        event_type=_FALLBACK_EVENT_TYPES[generation_type],
        content=_TRAILING_ACTIONS.sub("", text.strip()).strip(),
        metadata=GenerationMetadata(speaker=speaker, suggested_actions=_ACTION_LINE.findall(text)),
    )


def parse_response(text: str, generation_type: GenerationType, generation_id: str) -> GeneratedContent:
    data = _extract_json(text)
    if data is not None:
        parsed = _from_json(data, generation_type, generation_id)
        if parsed is not None:
            return parsed
    else:
        logger.warning("AI reply is not JSON; treating it as plain text")
    return _from_text(text, generation_type, generation_id)
