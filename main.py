"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from personalizer.clock import Clock, SystemClock
from personalizer.composer import RecommendationComposer
from personalizer.context_store import VisitorRegistry
from personalizer.repositories import ContentRepository, StoreRepository
from personalizer.sample_data import build_repositories
from personalizer.scorer import ResonanceScorer
from personalizer.service import PersonalizationServicer, add_personalization_service_to_server
from personalizer.strategies.engagement import EngagementStrategy
from personalizer.strategies.interest import InterestStrategy
from personalizer.strategies.journey import JourneyStrategy
from personalizer.strategies.location import LocationStrategy
from personalizer.strategies.temporal import TemporalStrategy

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_composer(
    content_repository: ContentRepository,
    store_repository: StoreRepository,
    scorer: ResonanceScorer,
    clock: Clock,
) -> RecommendationComposer:
    """Assemble the five strategies in tie-break order."""
    return RecommendationComposer(
        strategies=[
            JourneyStrategy(content_repository, store_repository),
            InterestStrategy(content_repository, scorer),
            EngagementStrategy(content_repository),
            LocationStrategy(store_repository),
            TemporalStrategy(),
        ],
        clock=clock,
    )


def build_server(
    content_repository: ContentRepository,
    store_repository: StoreRepository,
    registry: VisitorRegistry,
    clock: Clock | None = None,
) -> grpc.Server:
    """Construct and configure the gRPC server with all dependencies wired.

    Args:
        content_repository: Content lookups for the strategies.
        store_repository: Store lookups for the strategies.
        registry: Per-visitor context stores.
        clock: Site clock; defaults to the system clock at the site offset.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    clock = clock or SystemClock(config.SITE_UTC_OFFSET_HOURS)
    scorer = ResonanceScorer(clock=clock)
    composer = build_composer(content_repository, store_repository, scorer, clock)
    servicer = PersonalizationServicer(registry, composer, scorer, clock)

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    add_personalization_service_to_server(servicer, server)
    server.add_insecure_port(
        f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server


def main() -> None:
    """Load the catalogue, build the server and serve until signalled."""
    content_repository, store_repository = build_repositories()
    registry = VisitorRegistry()
    server = build_server(content_repository, store_repository, registry)

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down.", sig_name)
        server.stop(grace=5)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "Personalization gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
