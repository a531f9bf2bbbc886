"""Keyboard shortcut table and dispatch onto the AppStore."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from promption.clipboard import Clipboard, copy_sync_agents_command, copy_sync_command
from promption.models import ItemType, ViewMode
from promption.state.app_store import AppStore

logger = logging.getLogger(__name__)


class Action(StrEnum):
    CREATE_SKILL = "create-skill"
    CREATE_RULE = "create-rule"
    CREATE_WORKFLOW = "create-workflow"
    SELECT_ALL = "select-all"
    DESELECT_ALL = "deselect-all"
    COPY_COMMAND = "copy-command"
    EXPORT_AGENTS = "export-agents"
    FOCUS_SEARCH = "focus-search"
    CLOSE_DIALOG = "close-dialog"


@dataclass(frozen=True)
class KeyChord:
    key: str
    mod: bool = False  # Ctrl on Linux/Windows, Cmd on macOS
    shift: bool = False

    def normalized(self) -> KeyChord:
        key = self.key if len(self.key) > 1 else self.key.lower()
        return KeyChord(key, self.mod, self.shift)

    def label(self) -> str:
        parts = []
        if self.mod:
            parts.append("Ctrl/Cmd")
        if self.shift:
            parts.append("Shift")
        parts.append(self.key.upper() if len(self.key) == 1 else self.key)
        return " + ".join(parts)


@dataclass(frozen=True)
class Shortcut:
    chord: KeyChord
    action: Action
    description: str
    view: ViewMode | None = None  # None: active in every view


SHORTCUTS: tuple[Shortcut, ...] = (
    Shortcut(KeyChord("n", mod=True), Action.CREATE_SKILL, "New item", ViewMode.ITEMS),
    Shortcut(KeyChord("s", mod=True, shift=True), Action.CREATE_SKILL, "New skill", ViewMode.ITEMS),
    Shortcut(KeyChord("r", mod=True, shift=True), Action.CREATE_RULE, "New rule", ViewMode.ITEMS),
    Shortcut(
        KeyChord("w", mod=True, shift=True), Action.CREATE_WORKFLOW, "New workflow", ViewMode.ITEMS
    ),
    Shortcut(KeyChord("a", mod=True), Action.SELECT_ALL, "Select all"),
    Shortcut(KeyChord("d", mod=True), Action.DESELECT_ALL, "Deselect all"),
    Shortcut(KeyChord("c", mod=True), Action.COPY_COMMAND, "Copy sync command", ViewMode.ITEMS),
    Shortcut(
        KeyChord("e", mod=True), Action.EXPORT_AGENTS, "Copy agent sync command", ViewMode.AGENTS
    ),
    Shortcut(KeyChord("f", mod=True), Action.FOCUS_SEARCH, "Focus search"),
    Shortcut(KeyChord("Escape"), Action.CLOSE_DIALOG, "Close dialog / deselect all"),
)

_CREATE_TYPES = {
    Action.CREATE_SKILL: ItemType.SKILL,
    Action.CREATE_RULE: ItemType.RULE,
    Action.CREATE_WORKFLOW: ItemType.WORKFLOW,
}


@dataclass(frozen=True)
class ShortcutContext:
    view_mode: ViewMode = ViewMode.ITEMS
    in_input: bool = False
    dialog_open: bool = False
    has_item_selection: bool = False
    has_agent_selection: bool = False

    @classmethod
    def from_store(cls, store: AppStore, *, in_input: bool = False) -> ShortcutContext:
        return cls(
            view_mode=store.view_mode,
            in_input=in_input,
            dialog_open=bool(store.editing_item or store.editing_agent or store.is_creating),
            has_item_selection=len(store.selected_items) > 0,
            has_agent_selection=len(store.selected_agents) > 0,
        )


def _resolve_escape(ctx: ShortcutContext) -> Action | None:
    if ctx.dialog_open:
        return Action.CLOSE_DIALOG
    if ctx.in_input:
        return None
    if ctx.view_mode == ViewMode.AGENTS:
        return Action.DESELECT_ALL if ctx.has_agent_selection else None
    return Action.DESELECT_ALL if ctx.has_item_selection else None


def resolve(chord: KeyChord, ctx: ShortcutContext) -> Action | None:
    """Map a key chord to an action, or None when nothing should happen.

    Inside a text input only Escape is honoured, and only to close a dialog.
    """
    chord = chord.normalized()
    if chord.key == "Escape":
        return _resolve_escape(ctx)
    if ctx.in_input:
        return None

    for shortcut in SHORTCUTS:
        if shortcut.chord != chord:
            continue
        if shortcut.view is not None and shortcut.view != ctx.view_mode:
            continue
        if shortcut.action == Action.COPY_COMMAND and not ctx.has_item_selection:
            return None
        if shortcut.action == Action.EXPORT_AGENTS and not ctx.has_agent_selection:
            return None
        return shortcut.action
    return None


def dispatch(store: AppStore, action: Action, clipboard: Clipboard | None = None) -> bool:
    """Apply a store-level action. Returns False for actions left to the UI."""
    if action in _CREATE_TYPES:
        store.set_creating(True, _CREATE_TYPES[action])
    elif action == Action.SELECT_ALL:
        if store.view_mode == ViewMode.AGENTS:
            store.select_all_agents()
        else:
            store.select_all()
    elif action == Action.DESELECT_ALL:
        if store.view_mode == ViewMode.AGENTS:
            store.deselect_all_agents()
        else:
            store.deselect_all()
    elif action == Action.CLOSE_DIALOG:
        store.set_editing(None)
        store.set_editing_agent(None)
        store.set_creating(False)
    elif action == Action.COPY_COMMAND and clipboard is not None:
        copy_sync_command(clipboard, store.selected_items_data())
    elif action == Action.EXPORT_AGENTS and clipboard is not None:
        copy_sync_agents_command(clipboard, store.selected_agents_data())
    else:
        return False
    logger.debug("Dispatched shortcut action: %s", action)
    return True


def shortcut_table() -> list[dict[str, str | None]]:
    """Rows for the keyboard shortcuts help dialog."""
    return [
        {
            "keys": s.chord.label(),
            "action": s.action.value,
            "description": s.description,
            "view": s.view.value if s.view else None,
        }
        for s in SHORTCUTS
    ]
