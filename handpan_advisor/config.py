"""Analyzer configuration.

Each stage owns a small dataclass config; AnalyzerConfig groups them and
can be loaded from a JSON file of overrides:

    {
        "classifier": {"polyphony_threshold": 1.8},
        "matching": {"folded_weight": 0.7},
        "ranking": {"tier_margin": 5.0},
        "loader": {"max_notes_per_track": 20000}
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

from .inference import ClassifierConfig, MatchConfig, RankerConfig
from .input import LoaderConfig

logger = logging.getLogger(__name__)


def _apply_overrides(section: str, base, overrides: Dict[str, Any]):
    if not isinstance(overrides, dict):
        raise ValueError(f"Config section '{section}' must be an object")

    known = {f.name: f for f in fields(base)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ValueError(f"Unknown option '{section}.{key}'")
        if isinstance(getattr(base, key), tuple) and isinstance(value, list):
            value = tuple(value)
        changes[key] = value
    return replace(base, **changes)


@dataclass
class AnalyzerConfig:
    """All tunable thresholds of the analysis pipeline."""

    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    matching: MatchConfig = field(default_factory=MatchConfig)
    ranking: RankerConfig = field(default_factory=RankerConfig)
    loader: LoaderConfig = field(default_factory=LoaderConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, Any]]) -> "AnalyzerConfig":
        """
        Build a config from per-section overrides.

        Raises:
            ValueError: on unknown sections or options
        """
        config = cls()
        for section, overrides in data.items():
            if section not in ("classifier", "matching", "ranking", "loader"):
                raise ValueError(f"Unknown config section '{section}'")
            current = getattr(config, section)
            setattr(config, section, _apply_overrides(section, current, overrides))
        return config

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "AnalyzerConfig":
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Config file must hold a JSON object: {path}")
        logger.debug("Loaded analyzer config overrides from %s", path)
        return cls.from_dict(data)
