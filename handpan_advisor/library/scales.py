"""Handpan scale catalogue.

A scale is a ding (root) plus top and bottom tone fields. The catalogue is
static, read-only data: it is loaded once and shared by every analysis.
"""

import json
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

from ..core import (
    InvalidNoteError,
    ScaleLibraryError,
    normalize_note_name,
    pitch_class_of,
)

logger = logging.getLogger(__name__)

DEFAULT_CATALOGUE = "handpan_scales.json"


@dataclass(frozen=True)
class ScaleDefinition:
    """A playable handpan scale.

    Note names are stored in canonical sharp spelling.
    """

    id: str
    name: str
    root: str  # Ding, e.g. "D3"
    top_notes: Tuple[str, ...] = ()
    bottom_notes: Tuple[str, ...] = ()
    popularity_score: float = 0.0  # 0.0 rare - 1.0 popular
    total_note_count: int = 0  # 0 = derive from the note lists
    mood: float = 0.0  # -1.0 minor - 1.0 major
    tone: float = 0.0  # 0.0 pure - 1.0 spicy
    tags: Tuple[str, ...] = ()
    description: str = ""
    playable_notes: FrozenSet[str] = field(init=False, repr=False, compare=False)
    pitch_classes: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            root = normalize_note_name(self.root)
            top = tuple(normalize_note_name(n) for n in self.top_notes)
            bottom = tuple(normalize_note_name(n) for n in self.bottom_notes)
        except InvalidNoteError as e:
            raise ScaleLibraryError(f"Scale {self.id!r}: {e}") from e

        object.__setattr__(self, "root", root)
        object.__setattr__(self, "top_notes", top)
        object.__setattr__(self, "bottom_notes", bottom)
        object.__setattr__(self, "tags", tuple(self.tags))
        if not self.total_note_count:
            object.__setattr__(self, "total_note_count", 1 + len(top) + len(bottom))

        playable = frozenset((root,) + top + bottom)
        object.__setattr__(self, "playable_notes", playable)
        object.__setattr__(
            self, "pitch_classes", frozenset(pitch_class_of(n) for n in playable)
        )

    @property
    def root_pitch_class(self) -> str:
        return pitch_class_of(self.root)

    @classmethod
    def from_dict(cls, data: Dict) -> "ScaleDefinition":
        """Build a scale from a catalogue record.

        Accepts both the bundled catalogue keys (``root``, ``top``,
        ``bottom``, ``popularity``) and the data-model names
        (``topNotes``, ``bottomNotes``, ``popularityScore``,
        ``totalNoteCount``).
        """
        if not isinstance(data, dict):
            raise ScaleLibraryError(f"Scale record must be an object: {data!r}")
        try:
            scale_id = data["id"]
            root = data.get("root") or data["ding"]
        except KeyError as e:
            raise ScaleLibraryError(f"Scale record missing field {e}: {data!r}") from e

        try:
            return cls(
                id=scale_id,
                name=data.get("name", scale_id),
                root=root,
                top_notes=tuple(data.get("top", data.get("topNotes", ()))),
                bottom_notes=tuple(data.get("bottom", data.get("bottomNotes", ()))),
                popularity_score=float(data.get("popularity", data.get("popularityScore", 0.0))),
                total_note_count=int(data.get("totalNoteCount", 0)),
                mood=float(data.get("mood", 0.0)),
                tone=float(data.get("tone", 0.0)),
                tags=tuple(data.get("tags", ())),
                description=data.get("description", ""),
            )
        except (TypeError, ValueError) as e:
            raise ScaleLibraryError(f"Scale {scale_id!r} has a malformed field: {e}") from e

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "root": self.root,
            "topNotes": list(self.top_notes),
            "bottomNotes": list(self.bottom_notes),
            "popularityScore": self.popularity_score,
            "totalNoteCount": self.total_note_count,
            "mood": self.mood,
            "tone": self.tone,
            "tags": list(self.tags),
            "description": self.description,
        }


class ScaleLibrary:
    """Read-only, ordered collection of scales.

    Iteration order is catalogue order, which is also the final
    tie-break when ranking.
    """

    def __init__(self, scales: Iterable[ScaleDefinition], version: str = ""):
        self._scales: Tuple[ScaleDefinition, ...] = tuple(scales)
        self._by_id: Dict[str, ScaleDefinition] = {}
        for scale in self._scales:
            if scale.id in self._by_id:
                raise ScaleLibraryError(f"Duplicate scale id: {scale.id!r}")
            self._by_id[scale.id] = scale
        self.version = version

    @classmethod
    def from_dicts(cls, records: Iterable[Dict], version: str = "") -> "ScaleLibrary":
        return cls((ScaleDefinition.from_dict(r) for r in records), version=version)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ScaleLibrary":
        """
        Load a catalogue from a JSON file.

        The file holds either a list of scale records or an object with
        ``scales`` (and optionally ``version``).

        Raises:
            ScaleLibraryError: if the file is missing or malformed
        """
        path = Path(path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ScaleLibraryError(f"Scale catalogue not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ScaleLibraryError(f"Scale catalogue is not valid JSON: {path}: {e}") from e
        return cls._from_payload(payload, source=str(path))

    @classmethod
    def load_default(cls) -> "ScaleLibrary":
        """Load the catalogue bundled with the package."""
        text = (
            resources.files("handpan_advisor.library")
            .joinpath("data")
            .joinpath(DEFAULT_CATALOGUE)
            .read_text(encoding="utf-8")
        )
        return cls._from_payload(json.loads(text), source=DEFAULT_CATALOGUE)

    @classmethod
    def _from_payload(cls, payload, source: str) -> "ScaleLibrary":
        if isinstance(payload, list):
            records, version = payload, ""
        elif isinstance(payload, dict) and isinstance(payload.get("scales"), list):
            records, version = payload["scales"], str(payload.get("version", ""))
        else:
            raise ScaleLibraryError(f"Unrecognized scale catalogue layout in {source}")

        library = cls.from_dicts(records, version=version)
        if not len(library):
            logger.warning("Scale catalogue %s is empty", source)
        logger.debug("Loaded %d scales from %s", len(library), source)
        return library

    def get(self, scale_id: str) -> ScaleDefinition:
        return self._by_id[scale_id]

    def find(self, scale_id: Optional[str]) -> Optional[ScaleDefinition]:
        if scale_id is None:
            return None
        return self._by_id.get(scale_id)

    @property
    def ids(self) -> List[str]:
        return [s.id for s in self._scales]

    def __iter__(self) -> Iterator[ScaleDefinition]:
        return iter(self._scales)

    def __len__(self) -> int:
        return len(self._scales)

    def __contains__(self, scale_id: object) -> bool:
        return scale_id in self._by_id


_default_library: Optional[ScaleLibrary] = None


def default_library() -> ScaleLibrary:
    """Bundled catalogue, loaded on first use."""
    global _default_library
    if _default_library is None:
        _default_library = ScaleLibrary.load_default()
    return _default_library
