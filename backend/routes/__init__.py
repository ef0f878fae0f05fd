"""FastAPI API endpoints under /api.

Endpoint groups: settings, game (lifecycle, editorial actions, playback,
SSE), scenes, party members, views (dm/party/player), relationships
(dimensions, labels, perceived overlay) and evolution (DM review of
proposed changes, emergence).
"""

from fastapi import APIRouter

from .evolution import router as evolution_router
from .game import router as game_router
from .party import router as party_router
from .relationships import router as relationships_router
from .scene import router as scene_router
from .settings import router as settings_router
from .view import router as view_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(game_router)
router.include_router(scene_router)
router.include_router(party_router)
router.include_router(view_router)
router.include_router(relationships_router)
router.include_router(evolution_router)
