"""Runtime state containers used by the Card Manager UI."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - imported for static type checking only
    from .manager import ContactManager
    from .models import Contact
    from .session import Session

VIEW_GRID = "grid"
VIEW_LIST = "list"
VIEW_CARDS = "cards"
VIEW_TABLE = "table"

VIEW_TYPES = (VIEW_GRID, VIEW_LIST, VIEW_CARDS, VIEW_TABLE)


@dataclass(slots=True)
class AppState:
    """Mutable state shared between UI components."""

    session: Optional["Session"] = None
    contacts: Optional["ContactManager"] = None
    selected_contact: Optional["Contact"] = None
    view_type: str = VIEW_GRID
    is_online: bool = False
    camera_available: bool = False
    qr_available: bool = False

    def set_view_type(self, view_type: str) -> None:
        if view_type not in VIEW_TYPES:
            raise ValueError(f"Unknown view type: {view_type}")
        self.view_type = view_type

    def reset(self) -> None:
        """Forget everything tied to the signed-in user."""

        self.contacts = None
        self.selected_contact = None


__all__ = ["AppState", "VIEW_CARDS", "VIEW_GRID", "VIEW_LIST", "VIEW_TABLE", "VIEW_TYPES"]
