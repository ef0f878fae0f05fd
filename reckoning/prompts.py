"""Handlebars prompt rendering for content generation."""

from collections.abc import Callable
from typing import Any

import pybars

from reckoning.models import NPC, Area, CanonicalEvent, Character, Game, GenerationType

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

_PREAMBLE = """You are the narrator of a tabletop role-playing game. A human Game Master reviews everything you write before the players see it.

Location: {{{area.name}}}
{{{area.description}}}
{{#if npcs}}
Present:
{{#each npcs}}- {{{name}}}: {{{description}}}
{{/each}}{{/if}}{{#if party}}
Party:
{{#each party}}- {{{name}}} ({{{character_class}}})
{{/each}}{{/if}}{{#if history}}
Recent events:
{{#each history}}[{{{event_type}}}] {{#if speaker}}{{{speaker}}}: {{/if}}{{{content}}}
{{/each}}{{/if}}
"""

_GUIDANCE = """{{#if dm_guidance}}
Game Master guidance: {{{dm_guidance}}}
{{/if}}"""

DEFAULT_TEMPLATES: dict[GenerationType, str] = {
    "narration": _PREAMBLE + """
{{#if first_visit}}The party has just arrived. Describe the scene as they first see it.{{else}}Continue the story from the most recent event.{{/if}}
Write two or three vivid paragraphs of narration in the second person plural.
""" + _GUIDANCE,
    "npc_response": _PREAMBLE + """
{{#if npc}}Write how {{{npc.name}}} responds to what just happened, in character.{{else}}Write how the people present respond to what just happened.{{/if}}
Keep it to a few lines of dialogue and action.
""" + _GUIDANCE,
    "environment_reaction": _PREAMBLE + """
Describe how the surroundings react or change: weather, sounds, light, the mood of the place.
Keep it short and atmospheric.
""" + _GUIDANCE,
    "dm_continuation": _PREAMBLE + """
Continue the narrative in the direction the Game Master asks for.
""" + _GUIDANCE,
}


def build_context(
    game: Game,
    area: Area | None,
    npcs: list[NPC],
    characters: list[Character],
    recent_events: list[CanonicalEvent],
    dm_guidance: str | None = None,
) -> dict[str, Any]:
    """Assemble template variables from game state.

    Returns a dict suitable for passing to render_prompt(). NPC notes stay
    out of the context.
    """
    return {
        "turn": game.turn,
        "area": {
            "id": area.id if area else game.current_area_id,
            "name": area.name if area else "Unknown place",
            "description": area.description if area else "",
        },
        "npcs": [{"name": n.name, "description": n.description, "disposition": n.disposition} for n in npcs],
        "npc": {"name": npcs[0].name, "description": npcs[0].description} if npcs else None,
        "party": [{"name": c.name, "character_class": c.character_class} for c in characters],
        "history": [
            {"event_type": e.event_type, "speaker": e.speaker, "content": e.content}
            for e in recent_events
        ],
        "first_visit": not recent_events,
        "dm_guidance": dm_guidance,
    }


def build_prompt(generation_type: GenerationType, context: dict[str, Any]) -> str:
    return render_prompt(DEFAULT_TEMPLATES[generation_type], context).strip()
