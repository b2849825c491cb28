"""
Headless runner for parley.

Provides JSON I/O interface for programmatic control.
Input: JSON commands via stdin, one object per line
Output: JSON responses and events via stdout

This lets other processes (chat bots, VTT bridges, tests) drive
negotiations without the CLI.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Callable, TextIO

from pydantic import ValidationError

from ..state import GameEvent, EventType, Viewer, get_event_bus
from ..state.manager import NegotiationManager
from ..systems import NegotiationError, NegotiationSystem
from ..tools import roll_power
from .config import load_config

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


class HeadlessRunner:
    """
    Headless parley runner with JSON I/O.

    Commands are read from stdin as JSON objects.
    Events and responses are written to stdout as JSON.

    Each command acts as the runner's viewer unless it carries its own
    "viewer" object ({"is_gm": bool, "user_id": str}).
    """

    def __init__(
        self,
        negotiations_dir: Path | None = None,
        gm: bool = True,
        user_id: str = "",
        output: TextIO = sys.stdout,
        system: NegotiationSystem | None = None,
        data_dir: Path | str = ".",
    ):
        config = load_config(data_dir)
        self.negotiations_dir = negotiations_dir or Path(data_dir) / config["negotiations_dir"]
        self.output = output
        self.viewer = Viewer(is_gm=gm, user_id=user_id)

        if system is None:
            manager = NegotiationManager(self.negotiations_dir, default_profile_id=config["rules_profile"])
            system = NegotiationSystem(manager)
        self.system = system

        self._handlers: dict[str, Callable[[dict, Viewer], dict]] = {
            "list": self._cmd_list,
            "create": self._cmd_create,
            "delete": self._cmd_delete,
            "view": self._cmd_view,
            "summary": self._cmd_summary,
            "setup": self._cmd_setup,
            "add_participant": self._cmd_add_participant,
            "remove_participant": self._cmd_remove_participant,
            "add_detail": self._cmd_add_detail,
            "remove_detail": self._cmd_remove_detail,
            "reveal_detail": self._cmd_reveal_detail,
            "start": self._cmd_start,
            "stop": self._cmd_stop,
            "advance": self._cmd_advance,
            "argument": self._cmd_argument,
            "preview": self._cmd_preview,
            "test": self._cmd_test,
            "note": self._cmd_note,
            "adjustment": self._cmd_adjustment,
            "discovery": self._cmd_discovery,
            "evaluate": self._cmd_evaluate,
            "resolve": self._cmd_resolve,
            "roll": self._cmd_roll,
        }

        self._subscribe_to_events()

    def _subscribe_to_events(self):
        """Subscribe to all events and emit them as JSON."""
        get_event_bus().on_all(self._emit_event)

    def _emit_event(self, event: GameEvent):
        """Emit a negotiation event as JSON to stdout."""
        self._write_json({
            "type": "event",
            "event_type": event.type.value,
            "data": event.data,
            "negotiation_id": event.negotiation_id,
            "timestamp": event.timestamp.isoformat(),
        })

    def _write_json(self, obj: dict):
        """Write a JSON object to output followed by newline."""
        json.dump(obj, self.output)
        self.output.write("\n")
        self.output.flush()

    def _emit_response(self, response_type: str, **data):
        self._write_json({"type": response_type, **data})

    def close(self) -> None:
        """Stop forwarding events."""
        bus = get_event_bus()
        for event_type in EventType:
            bus.off(event_type, self._emit_event)

    def handle_command(self, cmd: dict) -> dict:
        """
        Handle a JSON command.

        Commands:
            {"cmd": "list"} - List negotiations
            {"cmd": "create", "title": "...", "rules_profile_id": "..."}
            {"cmd": "view", "negotiation_id": "..."} - State as the viewer sees it
            {"cmd": "summary", "negotiation_id": "..."}
            {"cmd": "add_participant", "negotiation_id": "...", "participant": {...}}
            {"cmd": "argument", "negotiation_id": "...", "payload": {...}}
            {"cmd": "roll", "modifier": 2, "edges": 1}
            {"cmd": "quit"} - Exit

        Returns:
            Response dict
        """
        cmd_type = cmd.get("cmd", "")
        if cmd_type == "quit":
            return {"ok": True, "action": "quit"}

        handler = self._handlers.get(cmd_type)
        if handler is None:
            logger.debug(f"Unknown command: {cmd_type!r}")
            return {"ok": False, "error": f"Unknown command: {cmd_type}"}

        try:
            viewer = Viewer.model_validate(cmd["viewer"]) if "viewer" in cmd else self.viewer
            return handler(cmd, viewer)
        except NegotiationError as e:
            return {"ok": False, "error": str(e)}
        except ValidationError as e:
            return {"ok": False, "error": f"Invalid payload: {e.error_count()} error(s)", "details": e.errors(include_url=False)}
        except KeyError as e:
            return {"ok": False, "error": f"Missing field: {e.args[0]}"}

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _cmd_list(self, cmd: dict, viewer: Viewer) -> dict:
        negotiations = self.system.list_negotiations()
        for n in negotiations:
            n["updated_at"] = n["updated_at"].isoformat()
        return {"ok": True, "negotiations": negotiations}

    def _cmd_create(self, cmd: dict, viewer: Viewer) -> dict:
        negotiation_id = self.system.create(viewer, cmd.get("title", ""), cmd.get("rules_profile_id"))
        return {"ok": True, "negotiation_id": negotiation_id}

    def _cmd_delete(self, cmd: dict, viewer: Viewer) -> dict:
        self.system.delete(cmd["negotiation_id"], viewer)
        return {"ok": True}

    def _cmd_view(self, cmd: dict, viewer: Viewer) -> dict:
        state = self.system.view(cmd["negotiation_id"], viewer)
        return {"ok": True, "state": state.to_document()}

    def _cmd_summary(self, cmd: dict, viewer: Viewer) -> dict:
        return {"ok": True, "summary": self.system.summary(cmd["negotiation_id"], viewer)}

    def _cmd_setup(self, cmd: dict, viewer: Viewer) -> dict:
        setup = self.system.update_setup(cmd["negotiation_id"], viewer, cmd.get("changes", {}))
        return {"ok": True, "setup": setup.to_document()}

    def _cmd_add_participant(self, cmd: dict, viewer: Viewer) -> dict:
        participant = self.system.add_participant(
            cmd["negotiation_id"],
            viewer,
            cmd.get("participant", {}),
            cmd.get("starting_attitude_id"),
        )
        return {"ok": True, "participant_id": participant.id}

    def _cmd_remove_participant(self, cmd: dict, viewer: Viewer) -> dict:
        self.system.remove_participant(cmd["negotiation_id"], viewer, cmd["participant_id"])
        return {"ok": True}

    def _cmd_add_detail(self, cmd: dict, viewer: Viewer) -> dict:
        self.system.add_npc_detail(
            cmd["negotiation_id"], viewer, cmd["npc_participant_id"], cmd["kind"], cmd["detail_id"],
        )
        return {"ok": True}

    def _cmd_remove_detail(self, cmd: dict, viewer: Viewer) -> dict:
        self.system.remove_npc_detail(
            cmd["negotiation_id"], viewer, cmd["npc_participant_id"], cmd["kind"], cmd["detail_id"],
        )
        return {"ok": True}

    def _cmd_reveal_detail(self, cmd: dict, viewer: Viewer) -> dict:
        self.system.set_detail_revealed(
            cmd["negotiation_id"],
            viewer,
            cmd["npc_participant_id"],
            cmd["kind"],
            cmd["detail_id"],
            cmd.get("revealed", True),
        )
        return {"ok": True}

    def _cmd_start(self, cmd: dict, viewer: Viewer) -> dict:
        state = self.system.start(cmd["negotiation_id"], viewer)
        return {"ok": True, "status": state.resolution.status}

    def _cmd_stop(self, cmd: dict, viewer: Viewer) -> dict:
        state = self.system.stop(cmd["negotiation_id"], viewer)
        return {"ok": True, "status": state.resolution.status}

    def _cmd_advance(self, cmd: dict, viewer: Viewer) -> dict:
        state = self.system.advance(cmd["negotiation_id"], viewer)
        segment = state.current_segment
        return {"ok": True, "segments": len(state.timeline), "label": segment.label if segment else ""}

    def _entry_response(self, negotiation_id: str, viewer: Viewer, entry_id: str) -> dict:
        """The new entry as this viewer may see it (None if hidden from them)."""
        view = self.system.view(negotiation_id, viewer)
        for entry in view.iter_entries():
            if entry.id == entry_id:
                return {"ok": True, "entry_id": entry_id, "entry": entry.to_document()}
        return {"ok": True, "entry_id": entry_id, "entry": None}

    def _cmd_argument(self, cmd: dict, viewer: Viewer) -> dict:
        result = self.system.add_argument(cmd["negotiation_id"], viewer, cmd.get("payload", {}))
        return self._entry_response(cmd["negotiation_id"], viewer, result.entry.id)

    def _cmd_preview(self, cmd: dict, viewer: Viewer) -> dict:
        preview = self.system.preview_argument(cmd["negotiation_id"], viewer, cmd.get("payload", {}))
        return {
            "ok": True,
            "tier": preview.tier,
            "profile_key": preview.profile_key.value if preview.profile_key else None,
            "effects": [e.to_document() for e in preview.effects_applied],
        }

    def _cmd_test(self, cmd: dict, viewer: Viewer) -> dict:
        result = self.system.add_test(cmd["negotiation_id"], viewer, cmd.get("payload", {}))
        return self._entry_response(cmd["negotiation_id"], viewer, result.entry.id)

    def _cmd_note(self, cmd: dict, viewer: Viewer) -> dict:
        result = self.system.add_note(cmd["negotiation_id"], viewer, cmd.get("payload", {}))
        return self._entry_response(cmd["negotiation_id"], viewer, result.entry.id)

    def _cmd_adjustment(self, cmd: dict, viewer: Viewer) -> dict:
        result = self.system.add_adjustment(cmd["negotiation_id"], viewer, cmd.get("payload", {}))
        return self._entry_response(cmd["negotiation_id"], viewer, result.entry.id)

    def _cmd_discovery(self, cmd: dict, viewer: Viewer) -> dict:
        result = self.system.add_discovery(cmd["negotiation_id"], viewer, cmd.get("payload", {}))
        return self._entry_response(cmd["negotiation_id"], viewer, result.entry.id)

    def _cmd_evaluate(self, cmd: dict, viewer: Viewer) -> dict:
        result = self.system.evaluate(cmd["negotiation_id"], cmd.get("npc_participant_id"))
        if result is None:
            return {"ok": True, "ended": False}
        return {"ok": True, "ended": True, "status": result.status, "outcome_id": result.outcome_id}

    def _cmd_resolve(self, cmd: dict, viewer: Viewer) -> dict:
        state = self.system.resolve(cmd["negotiation_id"], viewer)
        resolution = state.resolution
        return {
            "ok": True,
            "status": resolution.status,
            "outcome_id": resolution.outcome_id,
            "summary": resolution.summary_gm if viewer.is_gm else resolution.summary_public,
        }

    def _cmd_roll(self, cmd: dict, viewer: Viewer) -> dict:
        result = roll_power(cmd.get("modifier", 0), cmd.get("edges", 0), cmd.get("banes", 0))
        return {
            "ok": True,
            "rolls": result.rolls,
            "formula": result.formula,
            "total": result.total,
            "natural19or20": result.natural19or20,
        }

    def run(self, input_stream: TextIO = sys.stdin):
        """
        Main loop: read JSON commands, write responses.

        One JSON object per line. Exit on EOF or quit command.
        """
        self._emit_response("ready", version=VERSION)

        for line in input_stream:
            line = line.strip()
            if not line:
                continue

            try:
                cmd = json.loads(line)
            except json.JSONDecodeError as e:
                self._emit_response("error", error=f"Invalid JSON: {e}")
                continue

            if not isinstance(cmd, dict):
                self._emit_response("error", error="Command must be a JSON object")
                continue

            result = self.handle_command(cmd)
            self._emit_response("result", **result)

            if result.get("action") == "quit":
                break

        self.close()


def run_headless(
    negotiations_dir: Path | None = None,
    gm: bool = True,
    user_id: str = "",
    data_dir: Path | str = ".",
):
    """Entry point for headless mode."""
    runner = HeadlessRunner(negotiations_dir=negotiations_dir, gm=gm, user_id=user_id, data_dir=data_dir)
    runner.run()
