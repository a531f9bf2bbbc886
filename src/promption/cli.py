"""CLI entry point for promption."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, cast

from pydantic import ValidationError

from promption import __version__
from promption.config import Config, load_config
from promption.errors import PromptionError, describe_error
from promption.export.agents import sync_agents_to_opencode
from promption.export.files import ExportResult, SyncTarget, export_items, sync_items
from promption.models import (
    Agent,
    AgentForm,
    AgentMode,
    AgentUpdate,
    Item,
    ItemType,
    PermissionLevel,
)
from promption.server.runner import fetch_server_state, read_port_lock, run_server
from promption.store.database import Database
from promption.store.seed import seed_system_tags

logger = logging.getLogger(__name__)

_ROW = "{:<36}  {:<10}  {}"


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _db_path(args: argparse.Namespace, config: Config) -> Path:
    return cast(Path | None, args.db) or config.db_path


def _open_db(args: argparse.Namespace, config: Config) -> Database:
    path = _db_path(args, config)
    if not path.exists():
        print(f"Error: Promption database not found at {path}", file=sys.stderr)
        print("Run 'promption init' or start the app at least once.", file=sys.stderr)
        sys.exit(1)
    try:
        return Database(str(path))
    except PromptionError as e:
        _fail(f"Could not open database: {e}")


def _split_ids(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _split_multi(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated option values."""
    out: list[str] = []
    for value in values or []:
        out.extend(_split_ids(value))
    return out


def _parse_tools(values: list[str] | None) -> dict[str, bool | str] | None:
    tools = _split_multi(values)
    if not tools:
        return None
    return {tool: True for tool in tools}


def _parse_permissions(values: list[str] | None) -> dict[str, PermissionLevel] | None:
    """Parse ``name:level`` pairs; malformed entries are skipped with a warning."""
    perms: dict[str, PermissionLevel] = {}
    for entry in _split_multi(values):
        parts = entry.split(":")
        if len(parts) != 2:
            print(
                f"Warning: Invalid permission format '{entry}', skipping. "
                "Use 'name:value' format.",
                file=sys.stderr,
            )
            continue
        key, value = parts
        try:
            perms[key] = PermissionLevel(value)
        except ValueError:
            print(
                f"Warning: Invalid permission value '{value}' for '{key}', skipping. "
                "Use 'ask', 'allow', or 'deny'.",
                file=sys.stderr,
            )
    return perms or None


def _read_prompt(args: argparse.Namespace) -> str | None:
    prompt = cast(str | None, args.prompt)
    if prompt is None or not args.prompt_file:
        return prompt
    try:
        return Path(prompt).read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Could not read prompt file '{prompt}': {e}")


def _print_written(result: ExportResult, root: Path) -> None:
    for path in result.written:
        try:
            shown = Path(path).relative_to(root)
        except ValueError:
            shown = Path(path)
        print(f"  + {shown}")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def _cmd_init(args: argparse.Namespace, config: Config) -> None:
    path = _db_path(args, config)
    path.parent.mkdir(parents=True, exist_ok=True)
    db = Database(str(path))
    try:
        created = seed_system_tags(db)
    finally:
        db.close()
    print(f"Database ready at {path}")
    print(f"Seeded {len(created)} system tag(s)")


def _cmd_serve(args: argparse.Namespace, config: Config) -> None:
    if args.port is not None:
        config.port = cast(int, args.port)
    run_server(config)


def _cmd_status(args: argparse.Namespace, config: Config) -> None:
    lock = read_port_lock()
    port = int(lock.get("port", config.port))
    state = fetch_server_state(port)
    if state is None:
        print(f"Server not running (port {port})")
        sys.exit(1)
    pid = lock.get("pid", "?")
    print(f"Server running on 127.0.0.1:{port} (pid {pid})")
    print(f"  Items: {state['filtered_items']} shown of {state['total_items']}")
    print(f"  Tags: {state['total_tags']}")
    print(f"  Agents: {state['total_agents']}")
    print(f"  View: {state['view_mode']}")


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def _cmd_list(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        tag_ids: list[str] = []
        for name in _split_multi(args.tag):
            tag = db.find_tag_by_name(name)
            if tag is None:
                _fail(f"Tag '{name}' not found")
            tag_ids.append(tag.id)
        items = db.search_items(args.search or "", args.type, tag_ids or None)
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()

    if not items:
        print("No items found.")
        return
    print(_ROW.format("ID", "TYPE", "NAME"))
    print("-" * 70)
    for item in items:
        print(_ROW.format(item.id, item.item_type.value, item.name))


def _load_items(db: Database, raw_ids: str | None) -> list[Item]:
    ids = _split_ids(raw_ids)
    if not ids:
        _fail("No item IDs provided. Use --ids=id1,id2,id3")
    items = db.get_items(ids)
    if not items:
        _fail("No items found with the provided IDs")
    if len(items) < len(ids):
        print(f"Warning: Only found {len(items)} of {len(ids)} requested items", file=sys.stderr)
    return items


def _cmd_sync(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        items = _load_items(db, args.ids)
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()

    root = cast(Path | None, args.dest) or Path.cwd()
    target = SyncTarget(args.target)
    print(f"Syncing {len(items)} item(s) to {target.value}...")
    try:
        result = sync_items(items, target, root)
    except OSError as e:
        _fail(f"Could not write files: {e}")
    _print_written(result, root)
    print(f"\nDone! {len(items)} item(s) synced.")


def _cmd_export(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        items = _load_items(db, args.ids)
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()

    dest = cast(Path | None, args.dest) or Path.cwd() / config.export_dir
    try:
        result = export_items(items, dest)
    except OSError as e:
        _fail(f"Could not write files: {e}")
    _print_written(result, dest)
    print(f"\nDone! {result.count} file(s) written to {dest}")


def _cmd_tags(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        tags = db.list_tags()
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()

    if not tags:
        print("No tags found.")
        return
    print(f"{'NAME':<24}  {'COLOR':<9}  SYSTEM")
    print("-" * 44)
    for tag in tags:
        print(f"{tag.name:<24}  {tag.color:<9}  {'yes' if tag.is_system else ''}")


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


def _print_agent(agent: Agent, fmt: str) -> None:
    if fmt == "json":
        data = agent.model_dump(
            mode="json",
            include={"id", "name", "mode", "model", "prompt_content", "tools_config",
                     "permissions_config"},
            exclude_none=True,
        )
        print(json.dumps(data, indent=2))
        return
    print(f"Agent: {agent.name}")
    print(f"  ID: {agent.id}")
    print(f"  Mode: {agent.mode.value}")
    if agent.model:
        print(f"  Model: {agent.model}")
    if agent.prompt_content:
        print(f"  Prompt: {len(agent.prompt_content)} characters")
    if agent.tools_config:
        print(f"  Tools: {json.dumps(agent.tools_config, indent=2)}")
    if agent.permissions_config:
        perms = {k: v.value for k, v in agent.permissions_config.items()}
        print(f"  Permissions: {json.dumps(perms, indent=2)}")


def _cmd_list_agents(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        agents = db.list_agents()
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()

    if not agents:
        print("No agents found.")
        return
    print(_ROW.format("ID", "MODE", "NAME"))
    print("-" * 70)
    for agent in agents:
        print(_ROW.format(agent.id, agent.mode.value, agent.name))


def _cmd_create_agent(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        form = AgentForm(
            name=args.name,
            mode=args.mode,
            model=args.model,
            prompt_content=_read_prompt(args),
            tools_config=_parse_tools(args.tools),
            permissions_config=_parse_permissions(args.permissions),
        )
        if db.find_agent(form.name) is not None:
            _fail(f"Agent with name '{form.name}' already exists")
        agent = db.create_agent(form)
    except (ValidationError, PromptionError) as e:
        _fail(describe_error(e))
    finally:
        db.close()

    if args.format == "json":
        _print_agent(agent, "json")
        return
    print("Agent created successfully!")
    _print_agent(agent, "text")
    print("\nTo sync to opencode.json, run:")
    print(f"  promption sync-agents --ids={agent.id}")


def _cmd_get_agent(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        agent = db.find_agent(args.id)
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()
    if agent is None:
        _fail(f"Agent '{args.id}' not found")
    _print_agent(agent, args.format)


def _cmd_update_agent(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        agent = db.find_agent(args.id)
        if agent is None:
            _fail(f"Agent '{args.id}' not found")
        update = AgentUpdate(
            name=args.name,
            mode=args.mode,
            model=args.model,
            prompt_content=_read_prompt(args),
            tools_config=_parse_tools(args.tools),
            permissions_config=_parse_permissions(args.permissions),
            clear_model=args.clear_model,
            clear_prompt=args.clear_prompt,
            clear_tools=args.clear_tools,
            clear_permissions=args.clear_permissions,
        )
        if update.name is not None and update.name != agent.name:
            if db.find_agent(update.name) is not None:
                _fail(f"Agent with name '{update.name}' already exists")
        updated = db.update_agent(agent.id, update)
    except (ValidationError, PromptionError) as e:
        _fail(describe_error(e))
    finally:
        db.close()
    print(f"Agent '{updated.name}' updated successfully!")


def _cmd_delete_agent(args: argparse.Namespace, config: Config) -> None:
    db = _open_db(args, config)
    try:
        agent = db.find_agent(args.id)
        if agent is None:
            _fail(f"Agent '{args.id}' not found")
        db.delete_agent(agent.id)
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()
    print(f"Agent '{agent.name}' deleted successfully")


def _cmd_sync_agents(args: argparse.Namespace, config: Config) -> None:
    ids = _split_ids(args.ids)
    if not ids:
        _fail("No agent IDs provided. Use --ids=id1,id2,id3")
    db = _open_db(args, config)
    try:
        agents = db.get_agents(ids)
    except PromptionError as e:
        _fail(str(e))
    finally:
        db.close()
    if not agents:
        _fail("No agents found with the provided IDs")
    if len(agents) < len(ids):
        print(f"Warning: Only found {len(agents)} of {len(ids)} requested agents", file=sys.stderr)

    root = cast(Path | None, args.dest) or Path.cwd()
    print(f"Syncing {len(agents)} agent(s) to opencode.json...")
    try:
        result = sync_agents_to_opencode(agents, root)
    except OSError as e:
        _fail(f"Could not write opencode.json: {e}")
    _print_written(result, root)
    print(f"\nDone! {len(agents)} agent(s) synced to opencode.json.")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_agent_fields(p: argparse.ArgumentParser, *, creating: bool) -> None:
    _ = p.add_argument(
        "--mode",
        choices=[m.value for m in AgentMode],
        default=AgentMode.SUBAGENT.value if creating else None,
        help="Agent mode",
    )
    _ = p.add_argument("--model", help="Model identifier, e.g. anthropic/claude-sonnet")
    _ = p.add_argument("--prompt", help="System prompt text (or a path with --prompt-file)")
    _ = p.add_argument(
        "--prompt-file",
        action="store_true",
        dest="prompt_file",
        help="Treat --prompt as a path to read the prompt from",
    )
    _ = p.add_argument(
        "--tools", action="append", help="Enabled tools, comma-separated (repeatable)"
    )
    _ = p.add_argument(
        "--permissions",
        action="append",
        help="Permissions as name:ask|allow|deny, comma-separated (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promption",
        description="Manage reusable prompts, rules, workflows and agent configs",
    )
    _ = parser.add_argument(
        "-V", "--version", action="version", version=f"promption {__version__}"
    )
    _ = parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    _ = parser.add_argument("--db", type=Path, help="Path to the database file")
    subparsers = parser.add_subparsers(dest="command")

    _ = subparsers.add_parser("init", help="Create the database and seed system tags")

    serve_p = subparsers.add_parser("serve", help="Start the local HTTP API")
    _ = serve_p.add_argument("--port", type=int, help="Port to listen on")

    _ = subparsers.add_parser("status", help="Check whether the local API is running")

    list_p = subparsers.add_parser("list", help="List items")
    _ = list_p.add_argument("--type", choices=[t.value for t in ItemType], help="Item type")
    _ = list_p.add_argument("--search", help="Substring to match in name or content")
    _ = list_p.add_argument("--tag", action="append", help="Tag name (repeatable)")

    sync_p = subparsers.add_parser("sync", help="Sync items into a project for an agent tool")
    _ = sync_p.add_argument("--ids", help="Comma-separated item IDs")
    _ = sync_p.add_argument(
        "--target",
        choices=[t.value for t in SyncTarget],
        default=SyncTarget.ANTIGRAVITY.value,
        help="Target tool layout (default: antigravity)",
    )
    _ = sync_p.add_argument("--dest", type=Path, help="Project root (default: cwd)")

    export_p = subparsers.add_parser("export", help="Export items to a directory")
    _ = export_p.add_argument("--ids", help="Comma-separated item IDs")
    _ = export_p.add_argument("--dest", type=Path, help="Destination directory")

    _ = subparsers.add_parser("tags", help="List tags")
    _ = subparsers.add_parser("list-agents", help="List agents")

    create_p = subparsers.add_parser("create-agent", help="Create an agent")
    _ = create_p.add_argument("--name", required=True, help="Agent name (kebab-case)")
    _add_agent_fields(create_p, creating=True)
    _ = create_p.add_argument("--format", choices=["text", "json"], default="text")

    get_p = subparsers.add_parser("get-agent", help="Show an agent")
    _ = get_p.add_argument("--id", required=True, help="Agent ID or name")
    _ = get_p.add_argument("--format", choices=["text", "json"], default="text")

    update_p = subparsers.add_parser("update-agent", help="Update an agent")
    _ = update_p.add_argument("--id", required=True, help="Agent ID or name")
    _ = update_p.add_argument("--name", help="New name (kebab-case)")
    _add_agent_fields(update_p, creating=False)
    for flag in ("model", "prompt", "tools", "permissions"):
        _ = update_p.add_argument(
            f"--clear-{flag}", action="store_true", dest=f"clear_{flag}", help=f"Remove {flag}"
        )

    delete_p = subparsers.add_parser("delete-agent", help="Delete an agent")
    _ = delete_p.add_argument("--id", required=True, help="Agent ID or name")

    sync_agents_p = subparsers.add_parser(
        "sync-agents", help="Merge agents into opencode.json"
    )
    _ = sync_agents_p.add_argument("--ids", help="Comma-separated agent IDs")
    _ = sync_agents_p.add_argument("--dest", type=Path, help="Project root (default: cwd)")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    config = load_config()

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    dispatch = {
        "init": _cmd_init,
        "serve": _cmd_serve,
        "status": _cmd_status,
        "list": _cmd_list,
        "sync": _cmd_sync,
        "export": _cmd_export,
        "tags": _cmd_tags,
        "list-agents": _cmd_list_agents,
        "create-agent": _cmd_create_agent,
        "get-agent": _cmd_get_agent,
        "update-agent": _cmd_update_agent,
        "delete-agent": _cmd_delete_agent,
        "sync-agents": _cmd_sync_agents,
    }
    command = cast(str | None, args.command)
    handler = dispatch.get(command) if command is not None else None
    if handler:
        handler(args, config)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
