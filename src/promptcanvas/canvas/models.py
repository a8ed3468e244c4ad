"""Data models for the canvas: tiles, positions and session UI state."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class GenerationState(str, Enum):
    """Lifecycle phase of a tile's image content.

    ``FAILED`` completes the vocabulary but never appears in a live
    collection: a failed generation removes its tile.
    """

    IDLE = "idle"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class CommandOutcome(str, Enum):
    """How an asynchronous canvas command ended."""

    COMMITTED = "committed"  # confirmed by the backend and applied
    ROLLED_BACK = "rolled_back"  # backend failed, optimistic change reverted
    IGNORED = "ignored"  # gated, invalid target, or target vanished mid-flight


@dataclass(frozen=True)
class Position:
    """A point in canvas coordinate space."""

    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Position":
        """Return a new position shifted by ``(dx, dy)``."""
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class CanvasSize:
    """Visible canvas area as last reported by the UI layer."""

    width: float
    height: float


@dataclass
class Tile:
    """One image-generation unit shown on the canvas.

    Invariants
    ----------
    - ``GENERATING`` tiles have an empty ``image_url``.
    - ``READY`` tiles have a non-empty ``image_url``.
    """

    id: str
    prompt: str
    position: Position
    image_url: str = ""
    generation_state: GenerationState = GenerationState.IDLE
    variations: list[str] = field(default_factory=list)
    is_favorite: bool = False

    @property
    def is_ready(self) -> bool:
        return self.generation_state is GenerationState.READY

    @property
    def is_generating(self) -> bool:
        return self.generation_state is GenerationState.GENERATING

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape kept in the local store."""
        return {
            "id": self.id,
            "prompt": self.prompt,
            "imageUrl": self.image_url,
            "position": {"x": self.position.x, "y": self.position.y},
            "generationState": self.generation_state.value,
            "variations": list(self.variations),
            "isFavorite": self.is_favorite,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tile":
        """Build a tile from its stored JSON shape.

        Raises:
            ValueError: If a required field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Tile entry must be an object, got {type(data).__name__}")

        tile_id = data.get("id")
        if not isinstance(tile_id, str) or not tile_id:
            raise ValueError(f"Tile entry has no usable id: {tile_id!r}")

        raw_position = data.get("position") or {}
        try:
            position = Position(float(raw_position["x"]), float(raw_position["y"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Tile {tile_id} has an invalid position: {raw_position!r}") from e

        image_url = data.get("imageUrl") or ""
        raw_state = data.get("generationState")
        if raw_state is None:
            # Older saves only carried an isGenerating flag
            if data.get("isGenerating"):
                state = GenerationState.GENERATING
            else:
                state = GenerationState.READY if image_url else GenerationState.IDLE
        else:
            state = GenerationState(raw_state)

        variations = data.get("variations") or []
        if not isinstance(variations, list) or not all(isinstance(v, str) for v in variations):
            raise ValueError(f"Tile {tile_id} has invalid variations: {variations!r}")

        return cls(
            id=tile_id,
            prompt=str(data.get("prompt") or ""),
            position=position,
            image_url=str(image_url),
            generation_state=state,
            variations=list(variations),
            is_favorite=bool(data.get("isFavorite", False)),
        )


@dataclass
class CommandResult:
    """Result of an asynchronous canvas command.

    Attributes
    ----------
    outcome : CommandOutcome
        Whether the change was confirmed, reverted, or never attempted
    tile_id : str | None
        Tile the command targeted, when one was resolved
    error : Exception | None
        The failure that caused a rollback
    """

    outcome: CommandOutcome
    tile_id: str | None = None
    error: Exception | None = None

    @property
    def committed(self) -> bool:
        return self.outcome is CommandOutcome.COMMITTED


@dataclass
class CanvasUIState:
    """Ancillary UI state persisted alongside the tiles.

    ``selected_tile_id`` is a weak reference: always resolve it through
    ``CanvasStateMachine.selected_tile()`` since the tile may be gone.
    """

    current_prompt: str = ""
    selected_tile_id: str | None = None
    prompt_history: list[str] = field(default_factory=list)
    generation_enabled: bool = False  # set by edits, cleared by selection
    is_generating: bool = False  # a submit_prompt request is in flight


# Canvas constants
DEFAULT_TILE_POSITION = Position(50, 50)
FAVORITE_LOAD_POSITION = Position(300, 200)
DUPLICATE_OFFSET = (20, 20)
MAX_PROMPT_HISTORY = 10
MIN_HISTORY_PROMPT_LENGTH = 3
