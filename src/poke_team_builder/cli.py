"""Command line interface for the local Pokédex cache and team scoring."""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional, Sequence

from .config import load_settings
from .errors import PokeTeamBuilderError
from .fetchers import DirectoryFetcher
from .models import SyncProgress, TeamSummary, display_name
from .observability import configure_logging, generate_trace_id, get_logger
from .service import PokedexService
from .team_builder import Roster


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Browse cached Pokémon, sync the cache and score teams"
    )
    parser.add_argument("--cache-dir", help="Cache directory (default: $POKE_TEAM_BUILDER_CACHE_DIR)")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument("--output", choices=["text", "json"], default="text")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Fill the cache from a local PokeAPI dump")
    sync_parser.add_argument("--source", required=True, help="Directory holding pokemon/<id>.json files")
    sync_parser.add_argument("--limit", type=int, help="Highest id to sync")
    sync_parser.add_argument("--delay", type=float, help="Seconds to wait between fetches")

    subparsers.add_parser("status", help="Report whether a full sync pass has completed")

    reset_parser = subparsers.add_parser("reset", help="Force the next sync to run a full pass")
    reset_parser.add_argument("--purge", action="store_true", help="Also delete cached records and sprites")

    show_parser = subparsers.add_parser("show", help="Show one cached record by name or id")
    show_parser.add_argument("key")

    index_parser = subparsers.add_parser("index", help="List or filter the species index")
    index_parser.add_argument("--generation", type=int)
    index_parser.add_argument("--type", dest="type_name")
    index_parser.add_argument("--legendary", action="store_true", default=None)
    index_parser.add_argument("--mythical", action="store_true", default=None)
    index_parser.add_argument("--search", metavar="PREFIX")
    index_parser.add_argument("--rebuild", action="store_true", help="Invalidate before reading")

    favorite_parser = subparsers.add_parser("favorite", help="Toggle a favorite")
    favorite_parser.add_argument("name")

    score_parser = subparsers.add_parser("score", help="Score an ad-hoc team of cached Pokémon")
    score_parser.add_argument("members", nargs="+")

    team_parser = subparsers.add_parser("team", help="Manage saved teams")
    team_subparsers = team_parser.add_subparsers(dest="team_command", required=True)
    create_parser = team_subparsers.add_parser("create", help="Create a new team")
    create_parser.add_argument("name")
    add_parser = team_subparsers.add_parser("add", help="Add a cached Pokémon to a team")
    add_parser.add_argument("name", help="Team name")
    add_parser.add_argument("--species", required=True)
    add_parser.add_argument("--level", type=int, default=50)
    remove_parser = team_subparsers.add_parser("remove", help="Remove a Pokémon from a team")
    remove_parser.add_argument("name", help="Team name")
    remove_parser.add_argument("--species", required=True)
    team_show = team_subparsers.add_parser("show", help="Show a team and its summary")
    team_show.add_argument("name")

    return parser


def _print_summary(summary: TeamSummary) -> None:
    print(f"Team score: {summary.total_score}/1000")
    print("Strengths: " + ", ".join(summary.strengths or ["None"]))
    print("Weaknesses: " + ", ".join(summary.weaknesses or ["None"]))


def _progress_printer(event: SyncProgress) -> None:
    if event.is_complete:
        print(f"Sync finished: {event.current}/{event.total} cached, {event.failed} failed.")
    elif event.current_id % 50 == 0:
        print(f"#{event.current_id}: {event.percentage:.1f}% ({event.failed} failed)", file=sys.stderr)


def _emit(args: argparse.Namespace, payload: Any, text: Optional[str] = None) -> None:
    if args.output == "json":
        print(json.dumps(payload, indent=2, default=str))
    elif text is not None:
        print(text)


def _run(args: argparse.Namespace, service: PokedexService) -> int:
    if args.command == "sync":
        if args.limit is not None or args.delay is not None:
            service = PokedexService(
                load_settings(
                    cache_dir=service.settings.cache_dir,
                    sync_limit=args.limit,
                    sync_delay=args.delay,
                )
            )
        progress = None if args.output == "json" else _progress_printer
        final = service.start_bulk_sync(DirectoryFetcher(args.source), progress)
        _emit(args, final.to_dict())
        return 0 if final.failed == 0 else 1

    if args.command == "status":
        complete = service.is_sync_complete()
        _emit(
            args,
            {"sync_complete": complete, "cache_dir": str(service.store.cache_dir)},
            "Full sync has completed." if complete else "No completed sync pass recorded.",
        )
        return 0

    if args.command == "reset":
        service.reset_sync(purge=args.purge)
        _emit(args, {"reset": True, "purged": args.purge}, "Sync state reset.")
        return 0

    if args.command == "show":
        species = service.get(args.key)
        if species is None:
            _emit(args, {"found": False, "key": args.key}, f"'{args.key}' is not cached.")
            return 1
        types = "/".join(display_name(kind) for kind in species.types)
        _emit(
            args,
            species.to_dict(),
            f"#{species.id} {display_name(species.name)} [{types}] BST {species.total_base_stats}",
        )
        return 0

    if args.command == "index":
        if args.rebuild:
            service.invalidate_index()
        if args.search:
            entries = service.index.search(args.search)
        else:
            entries = service.index.filter(
                generation=args.generation,
                type_name=args.type_name,
                legendary=args.legendary,
                mythical=args.mythical,
            )
        lines = [
            f"#{entry.id:>4} {display_name(entry.name)} ({'/'.join(entry.types)})" for entry in entries
        ]
        _emit(args, [entry.to_dict() for entry in entries], "\n".join(lines) or "No matches.")
        return 0

    if args.command == "favorite":
        now_favorite = service.toggle_favorite(args.name)
        _emit(
            args,
            {"name": args.name, "favorite": now_favorite},
            f"{display_name(args.name)} {'added to' if now_favorite else 'removed from'} favorites.",
        )
        return 0

    if args.command == "score":
        summary = service.compute_team_summary(args.members)
        if args.output == "json":
            _emit(args, summary.to_dict())
        else:
            _print_summary(summary)
        return 0

    if args.command == "team":
        roster = Roster.load(service.settings.teams_file)
        if args.team_command == "create":
            team = roster.create_team(args.name)
            _emit(args, team.to_dict(), f"Created team '{args.name}'.")
        elif args.team_command == "add":
            member = roster.add_member(args.name, service.store, args.species, level=args.level)
            _emit(args, member.to_dict(), f"Added {display_name(member.name)} to team '{args.name}'.")
        elif args.team_command == "remove":
            member = roster.remove_member(args.name, args.species)
            _emit(args, member.to_dict(), f"Removed {display_name(member.name)} from team '{args.name}'.")
        elif args.team_command == "show":
            team = roster.get_team(args.name)
            summary = roster.summary(args.name, service.store)
            if args.output == "json":
                _emit(args, {"team": team.to_dict(), "summary": summary.to_dict()})
            else:
                names = ", ".join(display_name(member.name) for member in team.members) or "(empty)"
                print(f"{team.name}: {names}")
                _print_summary(summary)
        return 0

    raise AssertionError(f"unhandled command {args.command}")  # pragma: no cover


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(cache_dir=args.cache_dir, log_level=args.log_level)
    configure_logging(settings.log_level)
    logger = get_logger(__name__)
    trace_id = generate_trace_id()
    extra = {"trace_id": trace_id, "command": args.command}

    try:
        code = _run(args, PokedexService(settings))
    except PokeTeamBuilderError as exc:
        logger.error(
            "cli_command_failed",
            extra={"event": "cli_command_failed", **extra, "error": exc.to_payload()},
        )
        parser.error(f"{exc.message} (trace: {trace_id})")
    except Exception as exc:  # pragma: no cover - unexpected failure
        logger.exception("cli_unhandled_error", extra={"event": "cli_unhandled_error", **extra})
        parser.error(f"Unexpected error: {exc}. Reference trace {trace_id}.")
    logger.info("cli_command_completed", extra={"event": "cli_command_completed", **extra})
    return code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
