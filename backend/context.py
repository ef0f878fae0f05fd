"""Per-process application context.

Everything a request handler needs is built once by create_app() and kept on
app.state.ctx; nothing is held in module globals.
"""

from dataclasses import dataclass
from pathlib import Path

from fastapi import Request

from reckoning.broadcast import Broadcaster
from reckoning.engine import GameEngine
from reckoning.evolution import EmergenceObserver, EvolutionService, EvolutionWorker
from reckoning.llm import AIProvider, provider_from_config
from reckoning.storage import Storage


@dataclass
class AppContext:
    storage: Storage
    broadcaster: Broadcaster
    engine: GameEngine
    evolution: EvolutionService
    worker: EvolutionWorker

    @property
    def recent_history(self) -> int:
        return int(self.storage.get_config()["recent_history"])


def build_context(data_dir: Path, provider: AIProvider | None = None, use_mock: bool = False) -> AppContext:
    """Wire storage, provider, broadcaster, engine and evolution worker."""
    storage = Storage(data_dir)
    config = storage.get_config()
    evo = config["evolution"]

    observer = EmergenceObserver(storage, thresholds={
        k: v for k, v in evo.items() if k != "queue_size"
    })
    worker = EvolutionWorker(storage, observer, queue_size=int(evo["queue_size"]))
    broadcaster = Broadcaster()
    engine = GameEngine(
        storage,
        provider or provider_from_config(config["ai"], use_mock=use_mock),
        broadcaster,
        generation_timeout=float(config["generation_timeout"]),
        recent_history=int(config["recent_history"]),
        event_sink=worker.submit_event,
    )
    return AppContext(
        storage=storage,
        broadcaster=broadcaster,
        engine=engine,
        evolution=EvolutionService(storage),
        worker=worker,
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the app's context."""
    return request.app.state.ctx
