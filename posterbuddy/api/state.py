"""Application state built at startup from AppConfig (injected into routes)."""
import logging
from typing import Optional

from fastapi import Request

from posterbuddy.config import AppConfig
from posterbuddy.core.adapter import DataStoreAdapter
from posterbuddy.core.firestore_rest import FirestoreRestStore, build_session
from posterbuddy.core.json_store import JsonPosterStore
from posterbuddy.core.rotation import RotationController, TimerFactory
from posterbuddy.core.samples import sample_posters
from posterbuddy.core.store import MemoryPosterStore, PosterStore

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> PosterStore:
    """Pick the store backend named by config.store_backend."""
    if config.store_backend == "memory":
        return MemoryPosterStore(sample_posters() if config.seed_samples else ())
    if config.store_backend == "firestore":
        return FirestoreRestStore(
            config.firestore_project,
            database=config.firestore_database,
            endpoint=config.firestore_endpoint,
            token=config.firestore_token or None,
            session=build_session(config.http_retry_total, config.http_backoff_factor),
            timeout=(config.http_connect_timeout, config.http_read_timeout),
        )
    config.ensure_data_dir()
    return JsonPosterStore(config.posters_path)


class AppState:
    def __init__(
        self,
        config: AppConfig,
        *,
        store: Optional[PosterStore] = None,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self.config = config
        self.store = store if store is not None else build_store(config)
        self.adapter = DataStoreAdapter(
            self.store,
            default_cycle_speed=config.default_cycle_speed,
            max_workers=config.upload_workers,
        )
        self.controller = RotationController(
            self.adapter,
            default_cycle_speed=config.default_cycle_speed,
            poll_interval_sec=config.poll_interval_sec,
            retry_max_interval_sec=config.retry_max_interval_sec,
            follow_new_posters=config.follow_new_posters,
            timer_factory=timer_factory,
        )

    def start(self) -> None:
        logger.info("Using %s store", type(self.store).__name__)
        self.controller.start()

    def stop(self) -> None:
        self.controller.stop()
        self.adapter.close()


def get_state(request: Request) -> AppState:
    return request.app.state.posterbuddy
