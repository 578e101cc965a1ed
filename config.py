"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.  The scoring
constants at the bottom are hand-tuned and kept here so they can be adjusted
without touching the scoring code.
"""

import os

# ---------------------------------------------------------------------------
# gRPC server (the site front end connects to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50051"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# ---------------------------------------------------------------------------
# Recommendation composer
# ---------------------------------------------------------------------------

# Per-strategy budget; a strategy that overruns contributes nothing.
STRATEGY_TIMEOUT_SECONDS: float = float(os.getenv("STRATEGY_TIMEOUT_SECONDS", "0.3"))

# GetRecommendations latency target, used only for the slow-call warning.
RECOMMENDATION_SLA_MS: int = int(os.getenv("RECOMMENDATION_SLA_MS", "500"))

NEXT_ACTIONS_LIMIT: int = 5

# Wall-clock rules (business hours, weekends, evenings) use the site's local
# time, not the server's.
SITE_UTC_OFFSET_HOURS: int = int(os.getenv("SITE_UTC_OFFSET_HOURS", "8"))

HOTLINE: str = os.getenv("HOTLINE", "17787147147")
CONTACT_WORKING_HOURS: str = "09:00-18:00"

# ---------------------------------------------------------------------------
# Behavior aggregation
# ---------------------------------------------------------------------------

DEFAULT_INTEREST_LEVEL: int = 5
SCROLL_INTEREST_THRESHOLD: float = 50.0   # percent
CLICK_RESONANCE_DELTA: float = 0.05
HOVER_MIN_DURATION_MS: int = 1000
HOVER_INTERACTION_WEIGHT: float = 0.5

# ---------------------------------------------------------------------------
# Resonance scoring
# ---------------------------------------------------------------------------

RESONANCE_WEIGHTS: dict[str, float] = {
    "interest": 0.35,
    "location": 0.20,
    "behavior": 0.20,
    "temporal": 0.10,
    "journey": 0.15,
}

# (upper bound in km, score); first band whose bound exceeds the distance wins.
DISTANCE_BANDS_KM: list[tuple[float, float]] = [
    (1.0, 1.0),
    (3.0, 0.8),
    (5.0, 0.6),
    (10.0, 0.4),
    (20.0, 0.2),
]
FAR_DISTANCE_SCORE: float = 0.1

BUSINESS_OPEN_HOUR: int = 10
BUSINESS_CLOSE_HOUR: int = 22
EVENING_START_HOUR: int = 18
TRAINING_LOOKAHEAD_DAYS: int = 30

# Minimum interest level for each interest-driven pick.
INTEREST_THRESHOLDS: dict[str, int] = {
    "franchise": 7,
    "training": 5,
    "products": 6,
    "stores": 8,
}

# Nearest-store distances (km) for the location strategy.
NAVIGATE_DISTANCE_KM: float = 5.0
NEARBY_DISTANCE_KM: float = 20.0
