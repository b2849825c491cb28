"""
Command-line interface for parley.

Main entry point. Each subcommand runs one negotiation operation and
renders the result with rich. Pass --player to act as a non-GM viewer
and see exactly what players see.
"""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from ..profiles import get_rules_profile, list_profile_ids
from ..state import Viewer
from ..state.manager import NegotiationManager
from ..systems import NegotiationError, NegotiationSystem
from ..tools import roll_power
from .config import DEFAULT_CONFIG, load_config, set_config_value
from .headless import run_headless
from .renderer import (
    format_effects,
    format_roll,
    show_error,
    show_info,
    show_negotiation_list,
    show_state,
    show_summary,
    show_timeline,
)

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _target_npc(system: NegotiationSystem, negotiation_id: str, npc_id: str | None) -> str:
    """Explicit NPC id, or the negotiation's NPC."""
    if npc_id:
        return npc_id
    npcs = system.load(negotiation_id).npc_participants()
    if not npcs:
        raise NegotiationError("Negotiation has no NPC; add one with add-npc")
    return npcs[0].id


def _show_entry(system: NegotiationSystem, args, viewer: Viewer, entry_id: str):
    view = system.view(args.id, viewer)
    for entry in view.iter_entries():
        if entry.id == entry_id:
            parts = [entry.entry_type]
            roll = format_roll(entry.roll)
            if roll:
                parts.append(roll)
            effects = format_effects(entry.effects)
            if effects:
                parts.append(effects)
            show_info(" | ".join(parts))
            return
    show_info(f"Recorded {entry_id} (hidden from players)")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_list(system: NegotiationSystem, args, viewer: Viewer):
    show_negotiation_list(system.list_negotiations())


def cmd_new(system: NegotiationSystem, args, viewer: Viewer):
    negotiation_id = system.create(viewer, title=args.title, rules_profile_id=args.rules)
    show_info(f"Created negotiation {negotiation_id}")


def cmd_delete(system: NegotiationSystem, args, viewer: Viewer):
    system.delete(args.id, viewer)
    show_info(f"Deleted negotiation {args.id}")


def cmd_show(system: NegotiationSystem, args, viewer: Viewer):
    state = system.view(args.id, viewer)
    rules = get_rules_profile(state.setup.rules_profile_id)
    show_state(state, rules)
    if args.timeline:
        show_timeline(state)


def cmd_summary(system: NegotiationSystem, args, viewer: Viewer):
    show_summary(system.summary(args.id, viewer), title="GM summary" if viewer.is_gm else "Summary")


def cmd_setup(system: NegotiationSystem, args, viewer: Viewer):
    changes: dict = {}
    if args.overview is not None:
        changes["overview"] = args.overview
    if args.context is not None:
        changes["context_gm"] = args.context
    if args.structure is not None:
        changes["structure"] = {"kind": args.structure, "max_rounds": args.max_rounds}

    visibility: dict = {}
    if args.names is not None:
        visibility["show_npc_names"] = args.names == "show"
    if args.interest is not None:
        visibility["show_interest"] = args.interest
    if args.patience is not None:
        visibility["show_patience"] = args.patience
    if args.details is not None:
        visibility["show_argument_details"] = args.details == "show"
    if args.totals is not None:
        visibility["show_roll_totals"] = args.totals == "show"
    if visibility:
        changes["visibility"] = visibility

    system.update_setup(args.id, viewer, changes)
    show_info("Setup updated")


def cmd_add_pc(system: NegotiationSystem, args, viewer: Viewer):
    participant = system.add_participant(args.id, viewer, {"display_name": args.name, "kind": "pc", "id": args.pid})
    show_info(f"Added PC {participant.display_name} ({participant.id})")


def cmd_add_npc(system: NegotiationSystem, args, viewer: Viewer):
    participant = system.add_participant(
        args.id,
        viewer,
        {"display_name": args.name, "kind": "npc", "id": args.pid, "notes_gm": args.notes},
        starting_attitude_id=args.attitude,
    )
    show_info(f"Added NPC {participant.display_name} ({participant.id})")


def cmd_remove(system: NegotiationSystem, args, viewer: Viewer):
    system.remove_participant(args.id, viewer, args.participant)
    show_info(f"Removed {args.participant}")


def cmd_detail(system: NegotiationSystem, args, viewer: Viewer):
    npc_id = _target_npc(system, args.id, args.npc)
    if args.remove:
        system.remove_npc_detail(args.id, viewer, npc_id, args.kind, args.detail)
        show_info(f"Removed {args.kind} {args.detail}")
        return
    system.add_npc_detail(args.id, viewer, npc_id, args.kind, args.detail)
    if args.reveal is not None:
        system.set_detail_revealed(args.id, viewer, npc_id, args.kind, args.detail, args.reveal)
    show_info(f"Updated {args.kind} {args.detail}")


def cmd_start(system: NegotiationSystem, args, viewer: Viewer):
    system.start(args.id, viewer)
    show_info("Negotiation started")


def cmd_stop(system: NegotiationSystem, args, viewer: Viewer):
    system.stop(args.id, viewer)
    show_info("Negotiation stopped")


def cmd_advance(system: NegotiationSystem, args, viewer: Viewer):
    state = system.advance(args.id, viewer)
    segment = state.current_segment
    show_info(f"Now in: {segment.label}" if segment else "Nothing to advance")


def cmd_argue(system: NegotiationSystem, args, viewer: Viewer):
    roll: dict = {"mode": "none"}
    natural19or20 = args.natural
    if args.roll:
        result = roll_power(args.modifier, args.edges, args.banes)
        roll = result.to_roll_input(visible_to_players=True).model_dump()
        natural19or20 = natural19or20 or result.natural19or20
        show_info(f"Rolled {result.rolls} {result.formula} = {result.total}")
    elif args.total is not None:
        roll = {"mode": "manualTotal", "total": args.total, "visible_to_players": True}

    payload = {
        "actor_participant_id": args.actor,
        "target_npc_participant_id": _target_npc(system, args.id, args.npc),
        "argument_type_id": args.type,
        "claimed_motivation_id": args.motivation,
        "triggered_pitfall_id": args.pitfall,
        "summary": args.summary,
        "tier": args.tier,
        "roll": roll,
        "caught_in_lie": args.lie,
        "natural19or20": natural19or20,
        "is_revealed_to_players": not args.secret,
    }
    if args.preview:
        preview = system.preview_argument(args.id, viewer, payload)
        key = preview.profile_key.value if preview.profile_key else "-"
        show_info(f"Preview: tier {preview.tier} ({key}) {format_effects(preview.effects_applied)}")
        return
    result = system.add_argument(args.id, viewer, payload)
    _show_entry(system, args, viewer, result.entry.id)


def cmd_test(system: NegotiationSystem, args, viewer: Viewer):
    payload = {
        "actor_participant_id": args.actor,
        "target_npc_participant_id": _target_npc(system, args.id, args.npc),
        "summary": args.summary,
        "interest_delta": args.interest,
        "patience_delta": args.patience,
        "roll_total": args.total,
        "roll_visible_to_players": True,
        "is_revealed_to_players": not args.secret,
    }
    result = system.add_test(args.id, viewer, payload)
    _show_entry(system, args, viewer, result.entry.id)


def cmd_note(system: NegotiationSystem, args, viewer: Viewer):
    payload = {
        "actor_participant_id": args.actor or "",
        "summary": args.summary,
        "details_gm": args.gm or "",
        "is_revealed_to_players": not args.secret,
    }
    result = system.add_note(args.id, viewer, payload)
    show_info(f"Noted ({result.entry.id})")


def cmd_adjust(system: NegotiationSystem, args, viewer: Viewer):
    payload = {
        "target_npc_participant_id": _target_npc(system, args.id, args.npc),
        "summary": args.summary,
        "interest_delta": args.interest,
        "patience_delta": args.patience,
        "is_revealed_to_players": not args.secret,
    }
    result = system.add_adjustment(args.id, viewer, payload)
    _show_entry(system, args, viewer, result.entry.id)


def cmd_discover(system: NegotiationSystem, args, viewer: Viewer):
    payload = {
        "actor_participant_id": args.actor,
        "target_npc_participant_id": _target_npc(system, args.id, args.npc),
        "roll_total": args.total,
        "tier": args.tier,
        "kind": args.kind or "",
        "detail_id": args.detail or "",
        "reveal_to_players": args.reveal,
        "is_revealed_to_players": not args.secret,
    }
    result = system.add_discovery(args.id, viewer, payload)
    reveal = result.entry.reveal
    if reveal.id:
        show_info(f"Discovered {reveal.kind}: {reveal.label}")
    else:
        show_info("Nothing discovered")


def cmd_resolve(system: NegotiationSystem, args, viewer: Viewer):
    state = system.resolve(args.id, viewer)
    resolution = state.resolution
    show_summary(resolution.summary_gm, title=f"Resolved: {resolution.status} {resolution.outcome_id}".strip())


def cmd_roll(system: NegotiationSystem, args, viewer: Viewer):
    result = roll_power(args.modifier, args.edges, args.banes)
    natural = " (natural 19/20)" if result.natural19or20 else ""
    show_info(f"{result.rolls} {result.formula} = {result.total}{natural}")


def cmd_profiles(system: NegotiationSystem, args, viewer: Viewer):
    for profile_id in list_profile_ids():
        profile = get_rules_profile(profile_id)
        show_info(f"{profile.id}  {profile.label}")


def cmd_config(system: NegotiationSystem, args, viewer: Viewer):
    if args.key is None:
        for key, value in load_config(args.data_dir).items():
            show_info(f"{key} = {value}")
        return
    if not set_config_value(args.key, args.value, args.data_dir):
        raise NegotiationError(f"Unknown or unwritable setting: {args.key}")
    show_info(f"{args.key} = {args.value}")


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------

def _add_entry_flags(p: argparse.ArgumentParser, actor: bool = True):
    if actor:
        p.add_argument("actor", help="Acting participant id")
    p.add_argument("--npc", help="Target NPC id (default: the negotiation's NPC)")
    p.add_argument("--secret", action="store_true", help="Hide the entry from players")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parley", description="Negotiation tracker for tabletop play")
    parser.add_argument("--data-dir", default=".", help="Directory holding .parley_config.json")
    parser.add_argument("--dir", help="Negotiations directory (overrides config)")
    parser.add_argument("--player", action="store_true", help="Act as a player instead of the GM")
    parser.add_argument("--user", default="", help="User id recorded on new negotiations")
    parser.add_argument("--log-level", help="Logging level (overrides config)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List negotiations")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("new", help="Create a negotiation")
    p.add_argument("title", nargs="?", default="")
    p.add_argument("--rules", help="Rules profile id")
    p.set_defaults(func=cmd_new)

    p = sub.add_parser("delete", help="Delete a negotiation")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("show", help="Show a negotiation")
    p.add_argument("id")
    p.add_argument("--timeline", "-t", action="store_true", help="Include the timeline")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("summary", help="Print the summary")
    p.add_argument("id")
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser("setup", help="Change overview, GM context, structure or visibility")
    p.add_argument("id")
    p.add_argument("--overview")
    p.add_argument("--context", help="GM-only context")
    p.add_argument("--structure", choices=["freeform", "rounds", "stages"])
    p.add_argument("--max-rounds", type=int)
    p.add_argument("--names", choices=["show", "hide"], help="NPC names for players")
    p.add_argument("--interest", choices=["hidden", "value", "range"])
    p.add_argument("--patience", choices=["hidden", "value", "range"])
    p.add_argument("--details", choices=["show", "hide"], help="Argument details for players")
    p.add_argument("--totals", choices=["show", "hide"], help="Roll totals for players")
    p.set_defaults(func=cmd_setup)

    p = sub.add_parser("add-pc", help="Add a player character")
    p.add_argument("id")
    p.add_argument("name")
    p.add_argument("--pid", help="Participant id (generated if omitted)")
    p.set_defaults(func=cmd_add_pc)

    p = sub.add_parser("add-npc", help="Add the NPC")
    p.add_argument("id")
    p.add_argument("name")
    p.add_argument("--pid", help="Participant id (generated if omitted)")
    p.add_argument("--attitude", help="Starting attitude (hostile ... trusting)")
    p.add_argument("--notes", default="", help="GM-only notes")
    p.set_defaults(func=cmd_add_npc)

    p = sub.add_parser("remove", help="Remove a participant")
    p.add_argument("id")
    p.add_argument("participant")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("detail", help="Attach, reveal or remove a motivation/pitfall")
    p.add_argument("id")
    p.add_argument("kind", choices=["motivation", "pitfall"])
    p.add_argument("detail", help="Motivation/pitfall id, e.g. power")
    p.add_argument("--npc")
    p.add_argument("--reveal", action="store_true", default=None)
    p.add_argument("--hide", dest="reveal", action="store_false", default=None)
    p.add_argument("--remove", action="store_true")
    p.set_defaults(func=cmd_detail)

    for name, func, help_text in (
        ("start", cmd_start, "Start the negotiation"),
        ("stop", cmd_stop, "Return to not started"),
        ("advance", cmd_advance, "Open the next round or stage"),
        ("resolve", cmd_resolve, "End the negotiation and record the outcome"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("id")
        p.set_defaults(func=func)

    p = sub.add_parser("argue", help="Record an argument")
    p.add_argument("id")
    _add_entry_flags(p)
    p.add_argument("--type", default="noMotivation",
                   choices=["appealMotivation", "noMotivation", "pitfallUsed", "custom"])
    p.add_argument("--motivation", help="Claimed motivation id")
    p.add_argument("--pitfall", help="Triggered pitfall id")
    p.add_argument("--summary", default="")
    p.add_argument("--total", type=int, help="Roll total from the table")
    p.add_argument("--roll", action="store_true", help="Roll 2d10 here")
    p.add_argument("--modifier", type=int, default=0)
    p.add_argument("--edges", type=int, default=0)
    p.add_argument("--banes", type=int, default=0)
    p.add_argument("--tier", type=int, help="Explicit tier")
    p.add_argument("--lie", action="store_true", help="Caught in a lie")
    p.add_argument("--natural", action="store_true", help="Natural 19 or 20")
    p.add_argument("--preview", action="store_true", help="Show the outcome without recording it")
    p.set_defaults(func=cmd_argue)

    p = sub.add_parser("test", help="Record a GM-declared test")
    p.add_argument("id")
    _add_entry_flags(p)
    p.add_argument("--summary", default="")
    p.add_argument("--interest", type=int, default=0)
    p.add_argument("--patience", type=int, default=0)
    p.add_argument("--total", type=int)
    p.set_defaults(func=cmd_test)

    p = sub.add_parser("note", help="Add a note")
    p.add_argument("id")
    p.add_argument("summary")
    p.add_argument("--actor")
    p.add_argument("--gm", help="GM-only details")
    p.add_argument("--secret", action="store_true")
    p.set_defaults(func=cmd_note)

    p = sub.add_parser("adjust", help="Adjust interest/patience directly")
    p.add_argument("id")
    _add_entry_flags(p, actor=False)
    p.add_argument("--summary", default="")
    p.add_argument("--interest", type=int, default=0)
    p.add_argument("--patience", type=int, default=0)
    p.set_defaults(func=cmd_adjust)

    p = sub.add_parser("discover", help="Resolve a discovery test")
    p.add_argument("id")
    _add_entry_flags(p)
    p.add_argument("--total", type=int)
    p.add_argument("--tier", type=int, help="Tier when no total is given")
    p.add_argument("--kind", choices=["motivation", "pitfall"])
    p.add_argument("--detail", help="Specific motivation/pitfall id")
    p.add_argument("--reveal", action="store_true", help="Reveal the discovery to players")
    p.set_defaults(func=cmd_discover)

    p = sub.add_parser("roll", help="Roll a power roll")
    p.add_argument("--modifier", type=int, default=0)
    p.add_argument("--edges", type=int, default=0)
    p.add_argument("--banes", type=int, default=0)
    p.set_defaults(func=cmd_roll)

    p = sub.add_parser("profiles", help="List rules profiles")
    p.set_defaults(func=cmd_profiles)

    p = sub.add_parser("config", help="Show or change a setting")
    p.add_argument("key", nargs="?", choices=sorted(DEFAULT_CONFIG))
    p.add_argument("value", nargs="?")
    p.set_defaults(func=cmd_config)

    p = sub.add_parser("headless", help="JSON commands on stdin, JSON on stdout")
    p.set_defaults(func=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.data_dir)
    level = (args.log_level or config["log_level"]).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    negotiations_dir = Path(args.dir) if args.dir else Path(args.data_dir) / config["negotiations_dir"]
    viewer = Viewer(is_gm=not args.player, user_id=args.user)
    logger.debug(f"Running {args.command} as {'GM' if viewer.is_gm else 'player'}")

    if args.command == "headless":
        run_headless(negotiations_dir=negotiations_dir, gm=viewer.is_gm, user_id=viewer.user_id, data_dir=args.data_dir)
        return 0

    if args.command == "config" and args.key is not None and args.value is None:
        parser.error("config needs both a key and a value")

    manager = NegotiationManager(negotiations_dir, default_profile_id=config["rules_profile"])
    system = NegotiationSystem(manager)

    try:
        args.func(system, args, viewer)
    except NegotiationError as e:
        show_error(str(e))
        return 1
    except ValidationError as e:
        show_error(f"Invalid input: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
