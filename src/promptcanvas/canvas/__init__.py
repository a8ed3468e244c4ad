"""The canvas: tiles, layout, state machine, persistence and input handling.

Architecture Overview
---------------------
1. **Models** (models.py): tiles, positions, UI state and command results
2. **Layout** (layout.py): pure grid arithmetic
3. **State machine** (state_machine.py): owns the tile collection and
   mediates every mutation, optimistic async commands included
4. **Persistence** (persistence.py, local_store.py): JSON snapshots of the
   canvas and the prompt history in a local key-value store
5. **Input** (debounce.py): quiet-period debouncing of prompt edits
6. **Session** (session.py): wires the above to the backend clients

Usage Example
-------------
    from promptcanvas.canvas import initialize_session, close_session

    session = initialize_session()
    session.debouncer.on_input("a lighthouse at dusk")
    await session.debouncer.flush()
    print(session.canvas.tiles)
    await close_session(session)
"""

from promptcanvas.canvas.debounce import PromptDebouncer
from promptcanvas.canvas.local_store import LocalStore, MemoryStore
from promptcanvas.canvas.models import (
    CanvasSize,
    CanvasUIState,
    CommandOutcome,
    CommandResult,
    GenerationState,
    Position,
    Tile,
)
from promptcanvas.canvas.persistence import PersistenceBridge, RestoredCanvas
from promptcanvas.canvas.session import CanvasSession, close_session, initialize_session
from promptcanvas.canvas.state_machine import CanvasStateMachine

__all__ = [
    "CanvasSession",
    "CanvasSize",
    "CanvasStateMachine",
    "CanvasUIState",
    "CommandOutcome",
    "CommandResult",
    "GenerationState",
    "LocalStore",
    "MemoryStore",
    "PersistenceBridge",
    "Position",
    "PromptDebouncer",
    "RestoredCanvas",
    "Tile",
    "close_session",
    "initialize_session",
]
