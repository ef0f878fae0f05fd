"""Create a demo game for development/testing."""

import shutil

from reckoning.engine import GameEngine
from reckoning.models import NPC, Area, Character, Entity, Game, Known, Scene, Unknown
from reckoning.storage import Storage

DEMO_AREA = Area(
    name="Dragon's Hollow",
    description="A mountain village half in charred ruins. The townsfolk eye strangers "
    "from behind shuttered windows, and smoke curls from only a handful of chimneys.",
    tags=["village", "mountains"],
)


def create_demo_data(storage: Storage, engine: GameEngine) -> Game:
    """Wipe existing games and create one populated demo game."""
    if storage.store.games_root.exists():
        shutil.rmtree(storage.store.games_root)
    storage.store.games_root.mkdir(parents=True, exist_ok=True)

    area = DEMO_AREA.model_copy()
    game = engine.start_game("Aria", "A wandering bard with a borrowed sword", area=area)
    gid = game.id
    player_id = game.player_id

    gareth = storage.world.save_character(gid, Character(
        name="Gareth", description="Former captain of the King's guard",
        character_class="Fighter", role="companion", stats={"health": 120, "max_health": 120},
    ))
    elena = storage.world.save_character(gid, Character(
        name="Elena", description="A healer who asks too many questions",
        character_class="Cleric", role="companion", stats={"health": 80, "max_health": 80},
    ))

    mayor = storage.world.save_npc(gid, NPC(
        name="Mayor Holt", description="A nervous man in a soot-stained coat",
        current_area_id=area.id, disposition="friendly",
        notes="Struck a bargain with the dragon and hides it from the village.",
    ))
    smith = storage.world.save_npc(gid, NPC(
        name="Bryn the Smith", description="Broad-shouldered and silent",
        current_area_id=area.id, disposition="unfriendly",
        notes="Lost her forge to the fire; blames outsiders.",
    ))

    scene = storage.world.save_scene(gid, Scene(
        game_id=gid, name="Arrival at Dusk", scene_type="exploration", mood="tense",
        location_id=area.id, stakes="If the mayor's secret comes out, the village turns on him.",
    ))
    storage.games.set_current_scene(gid, scene.id)

    player = Entity(type="character", id=player_id)
    rels = storage.relationships
    rels.upsert(gid, Entity(type="npc", id=mayor.id), player, 0,
                {"trust": 0.35, "respect": 0.6, "affection": 0.5, "fear": 0.4})
    rels.upsert(gid, Entity(type="npc", id=smith.id), player, 0,
                {"trust": 0.2, "respect": 0.3, "affection": 0.2, "fear": 0.65, "resentment": 0.7})
    rels.upsert(gid, player, Entity(type="character", id=gareth.id), 0,
                {"trust": 0.85, "respect": 0.8, "affection": 0.7})
    rels.upsert(gid, player, Entity(type="npc", id=mayor.id), 0,
                {"trust": 0.6, "respect": 0.5, "affection": 0.55})
    rels.upsert(gid, player, Entity(type="npc", id=smith.id), 0,
                {"trust": 0.4, "respect": 0.6, "affection": 0.4, "fear": 0.1})

    # Aria thinks the mayor is warm toward her; she has no read on the smith.
    storage.perceived.upsert(gid, player_id, mayor.id, 0,
                             perceived_trust=Known(value=0.7), perceived_affection=Known(value=0.75))
    storage.perceived.upsert(gid, player_id, smith.id, 0, perceived_trust=Unknown())

    storage.traits.add(gid, "character", gareth.id, "legendary", 0)
    storage.traits.add(gid, "character", gareth.id, "haunted", 0)
    storage.traits.add(gid, "character", player_id, "curious", 0)
    storage.traits.add(gid, "npc", mayor.id, "secretive", 0)
    return storage.games.find_by_id(gid)
