"""
Display and rendering helpers for the parley CLI.

Renders viewer-appropriate (already redacted) state; nothing here
decides what a viewer may see.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.box import ROUNDED

from ..profiles import RulesProfile
from ..state.schema import Effect, NegotiationState, Roll, StatTrack


# Shared console instance
console = Console()

# -----------------------------------------------------------------------------
# Theme
# -----------------------------------------------------------------------------

THEME = {
    "primary": "steel_blue",
    "secondary": "grey70",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "accent": "cyan",
    "dim": "dim",
    "text": "grey85",
}

STATUS_COLORS = {
    "notStarted": THEME["dim"],
    "inProgress": THEME["accent"],
    "success": "green3",
    "failure": THEME["danger"],
    "ended": THEME["warning"],
}

ENTRY_LABELS = {
    "argument": "Argument",
    "test": "Test",
    "note": "Note",
    "adjustment": "Adjustment",
    "reveal": "Discovery",
}


def pip_bar(track: StatTrack, width: int | None = None) -> str:
    """Filled/empty pips for a track, e.g. ●●○○○."""
    width = width or (track.max - track.min)
    filled = max(0, min(width, track.value - track.min))
    return "●" * filled + "○" * (width - filled)


def format_track(track: StatTrack | None) -> str:
    """Track as this viewer may see it: hidden, a range label, or pips."""
    if track is None:
        return f"[{THEME['dim']}]hidden[/{THEME['dim']}]"
    if track.display:
        return track.display
    return f"{pip_bar(track)} {track.value}/{track.max}"


def format_effects(effects: list[Effect]) -> str:
    return ", ".join(f"{e.stat} {e.delta:+d}" for e in effects)


def format_roll(roll: Roll | None) -> str:
    if roll is None:
        return ""
    parts = []
    if roll.total is not None:
        parts.append(f"{roll.formula} = {roll.total}" if roll.formula else f"{roll.total}")
    if roll.tier is not None:
        parts.append(f"T{roll.tier}")
    return " ".join(parts)


# -----------------------------------------------------------------------------
# Panels
# -----------------------------------------------------------------------------

def show_state(state: NegotiationState, rules: RulesProfile):
    """Header panel: status, participants and NPC tracks."""
    status = state.resolution.status
    color = STATUS_COLORS.get(status, THEME["secondary"])

    table = Table(show_header=False, box=None)
    table.add_column("Key", style=THEME["dim"])
    table.add_column("Value", style=THEME["secondary"])
    table.add_row("Status", f"[{color}]{status}[/{color}]")
    table.add_row("Rules", rules.label or rules.id)
    table.add_row("Structure", state.setup.structure.kind)
    if state.setup.overview:
        table.add_row("Overview", state.setup.overview)
    if state.setup.context_gm:
        table.add_row("GM context", f"[{THEME['warning']}]{state.setup.context_gm}[/{THEME['warning']}]")

    pcs = [p.display_name for p in state.participants if p.kind == "pc"]
    if pcs:
        table.add_row("PCs", ", ".join(pcs))

    for participant in state.npc_participants():
        npc = state.get_npc_state(participant.id)
        if npc is None:
            continue
        table.add_row("NPC", f"[bold]{participant.display_name}[/bold] [{THEME['dim']}]{participant.id}[/{THEME['dim']}]")
        table.add_row("  Interest", format_track(npc.interest))
        table.add_row("  Patience", format_track(npc.patience))
        if npc.interest is not None and not npc.interest.display:
            offer = rules.get_offer(npc.interest.value)
            if offer:
                table.add_row("  Offer", offer.label)
        for kind, details in (("Motivations", npc.motivations), ("Pitfalls", npc.pitfalls)):
            if details:
                labels = [d.label if d.is_revealed else f"[{THEME['dim']}]{d.label} (hidden)[/{THEME['dim']}]" for d in details]
                table.add_row(f"  {kind}", ", ".join(labels))

    console.print(Panel(
        table,
        title=f"[bold {THEME['primary']}]{state.title or 'Negotiation'}[/bold {THEME['primary']}]",
        box=ROUNDED,
        border_style=THEME["primary"],
    ))


def show_timeline(state: NegotiationState):
    """One table per segment, one row per entry."""
    if not state.timeline:
        console.print(f"[{THEME['dim']}]No entries yet[/{THEME['dim']}]")
        return

    names = {p.id: p.display_name for p in state.participants}
    for segment in state.timeline:
        table = Table(
            title=f"[{THEME['primary']}]{segment.index}. {segment.label}[/{THEME['primary']}]",
            box=ROUNDED,
            border_style=THEME["dim"],
        )
        table.add_column("Type", style=THEME["accent"])
        table.add_column("Who")
        table.add_column("Summary", style=THEME["text"])
        table.add_column("Roll")
        table.add_column("Effects")

        for entry in segment.entries:
            detail = entry.detail
            if entry.entry_type == "reveal":
                summary = f"{detail.kind}: {detail.label}" if detail.label else ""
            else:
                summary = detail.summary
            who = names.get(entry.actor_participant_id, "")
            target = names.get(entry.target_npc_participant_id, "")
            if target:
                who = f"{who} → {target}" if who else target
            table.add_row(
                ENTRY_LABELS.get(entry.entry_type, entry.entry_type),
                who,
                summary,
                format_roll(entry.roll),
                format_effects(entry.effects),
            )

        console.print(table)


def show_summary(text: str, title: str = "Summary"):
    console.print(Panel(Text(text), title=title, box=ROUNDED, border_style=THEME["secondary"]))


def show_negotiation_list(negotiations: list[dict]):
    if not negotiations:
        console.print(f"[{THEME['dim']}]No negotiations found[/{THEME['dim']}]")
        return

    table = Table(box=ROUNDED, border_style=THEME["dim"])
    table.add_column("#", style=THEME["dim"])
    table.add_column("ID", style=THEME["accent"])
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Participants", justify="right")
    table.add_column("Updated", style=THEME["dim"])
    for i, n in enumerate(negotiations, 1):
        color = STATUS_COLORS.get(n["status"], THEME["secondary"])
        table.add_row(
            str(i),
            n["id"],
            n["title"],
            f"[{color}]{n['status']}[/{color}]",
            str(n["participants"]),
            n["updated_at"].strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def show_error(message: str):
    console.print(f"[{THEME['danger']}]{message}[/{THEME['danger']}]")


def show_info(message: str):
    console.print(f"[{THEME['secondary']}]{message}[/{THEME['secondary']}]")
