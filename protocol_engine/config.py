"""
Engine configuration.

Game-rule constants are module level. Runtime settings (seed, control
mechanic, automated sides, log level) live in EngineConfig and can be
read from the environment.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os


LANE_COUNT = 3
HAND_SIZE = 5  # Opening hand and refresh target
HAND_LIMIT = 5  # Checked in the hand_limit phase
COMPILE_THRESHOLD = 10
FACE_DOWN_VALUE = 2
RECOMPILE_DRAW = 1


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class EngineConfig:
    """Runtime settings for a match."""
    random_seed: int = 0
    use_control_mechanic: bool = False
    starting_player: str = "player"
    automated: tuple[str, ...] = field(default_factory=lambda: ("opponent",))
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from PROTOCOL_ENGINE_* environment variables."""
        automated_raw = os.getenv("PROTOCOL_ENGINE_AUTOMATED", "opponent")
        automated = tuple(
            side.strip() for side in automated_raw.split(",") if side.strip()
        )
        return cls(
            random_seed=int(os.getenv("PROTOCOL_ENGINE_SEED", "0")),
            use_control_mechanic=_env_bool("PROTOCOL_ENGINE_CONTROL", False),
            starting_player=os.getenv("PROTOCOL_ENGINE_STARTING_PLAYER", "player"),
            automated=automated,
            log_level=os.getenv("PROTOCOL_ENGINE_LOG_LEVEL", "WARNING").upper(),
        )
