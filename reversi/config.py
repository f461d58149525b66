# reversi/config.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import os
import tomllib  # python >=3.11

# Positional weights, indexed [row][col]
POSITION_WEIGHTS = [
    [100, -20, 10, 5, 5, 10, -20, 100],
    [-20, -50, -2, -2, -2, -2, -50, -20],
    [10, -2, -1, -1, -1, -1, -2, 10],
    [5, -2, -1, -1, -1, -1, -2, 5],
    [5, -2, -1, -1, -1, -1, -2, 5],
    [10, -2, -1, -1, -1, -1, -2, 10],
    [-20, -50, -2, -2, -2, -2, -50, -20],
    [100, -20, 10, 5, 5, 10, -20, 100],
]

# Greedy (medium) heuristic
MEDIUM_WEIGHTS = {
    "corner": 100,
    "edge": 10,
    "near_corner": -50,
    "flip": 1,
    "opponent_mobility": -5,
}

@dataclass
class SearchConfig:
    depth: int = 4
    use_alpha_beta: bool = True
    time_limit_ms: Optional[int] = None  # None means depth-only

@dataclass
class EvalConfig:
    position_weights: List[List[int]] = field(
        default_factory=lambda: [row[:] for row in POSITION_WEIGHTS])
    medium_weights: Dict[str, int] = field(default_factory=lambda: MEDIUM_WEIGHTS.copy())

@dataclass
class AIConfig:
    difficulty: str = "medium"
    easy_corner_probability: float = 0.2
    seed: Optional[int] = None  # None means unseeded

@dataclass
class GameConfig:
    mode: str = "human_vs_ai"
    ai_side: str = "black"  # the AI opens the game by default
    show_hints: bool = False

@dataclass
class UIConfig:
    engine_name: str = "Reversi"

@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    game: GameConfig = field(default_factory=GameConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "ai", "game", "ui"):
            if section not in raw:
                continue
            target = getattr(cfg, section)
            for k, v in raw[section].items():
                if hasattr(target, k):
                    setattr(target, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"])
        return cfg

# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("REVERSI_CONFIG_TOML", "config.toml"))
# allow env overrides for quick debugging
override_depth = os.environ.get("REVERSI_SEARCH_DEPTH")
if override_depth and override_depth.isdigit():
    CONFIG.search.depth = int(override_depth)
override_level = os.environ.get("REVERSI_LOG_LEVEL")
if override_level:
    CONFIG.log_level = override_level.upper()
