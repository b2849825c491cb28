"""
Tests for the command-line interface.

Commands run against a temporary data directory; results are checked
through the stored documents and the printed output.
"""

import pytest

from parley.interface.cli import build_parser, main
from parley.state.manager import NegotiationManager


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path


def run(data_dir, *argv):
    return main(["--data-dir", str(data_dir), *argv])


def only_negotiation(data_dir):
    manager = NegotiationManager(data_dir / "negotiations")
    negotiation_id = manager.list_negotiations()[0]["id"]
    return negotiation_id, manager


@pytest.fixture
def negotiation(data_dir):
    """A negotiation with Vex (pc1) facing the Countess (npc1)."""
    assert run(data_dir, "new", "The Countess") == 0
    negotiation_id, _ = only_negotiation(data_dir)
    assert run(data_dir, "add-pc", negotiation_id, "Vex", "--pid", "pc1") == 0
    assert run(data_dir, "add-npc", negotiation_id, "Countess", "--pid", "npc1", "--notes", "Owes the guild") == 0
    assert run(data_dir, "start", negotiation_id) == 0
    return negotiation_id


class TestCliCommands:
    """Subcommands persist through the system."""

    def test_new_creates_document(self, data_dir):
        assert run(data_dir, "new", "Parley") == 0

        _, manager = only_negotiation(data_dir)
        assert manager.list_negotiations()[0]["title"] == "Parley"

    def test_argue_with_total(self, data_dir, negotiation):
        assert run(data_dir, "argue", negotiation, "pc1", "--total", "10", "--summary", "Please") == 0

        _, manager = only_negotiation(data_dir)
        npc = manager.load_negotiation(negotiation).get_npc_state("npc1")
        assert (npc.interest.value, npc.patience.value) == (1, 2)

    def test_argue_preview_records_nothing(self, data_dir, negotiation, capsys):
        assert run(data_dir, "argue", negotiation, "pc1", "--tier", "3", "--preview") == 0

        _, manager = only_negotiation(data_dir)
        assert list(manager.load_negotiation(negotiation).iter_entries()) == []
        assert "tier 3" in capsys.readouterr().out

    def test_detail_and_discover(self, data_dir, negotiation, capsys):
        assert run(data_dir, "detail", negotiation, "motivation", "power") == 0
        assert run(data_dir, "discover", negotiation, "pc1", "--total", "17", "--reveal") == 0

        assert "Discovered motivation: Power" in capsys.readouterr().out

    def test_adjust_and_resolve(self, data_dir, negotiation, capsys):
        assert run(data_dir, "adjust", negotiation, "--interest", "3") == 0
        assert run(data_dir, "resolve", negotiation) == 0

        _, manager = only_negotiation(data_dir)
        resolution = manager.load_negotiation(negotiation).resolution
        assert (resolution.status, resolution.outcome_id) == ("success", "offer5")

    def test_show_renders_for_gm(self, data_dir, negotiation, capsys):
        run(data_dir, "setup", negotiation, "--context", "Blackmail")

        assert run(data_dir, "show", negotiation, "-t") == 0

        assert "Blackmail" in capsys.readouterr().out

    def test_player_view_hides_gm_context(self, data_dir, negotiation, capsys):
        run(data_dir, "setup", negotiation, "--context", "Blackmail")
        capsys.readouterr()

        assert run(data_dir, "--player", "show", negotiation) == 0

        assert "Blackmail" not in capsys.readouterr().out


class TestCliErrors:
    """Errors are printed and exit non-zero."""

    def test_player_cannot_create(self, data_dir, capsys):
        assert run(data_dir, "--player", "new", "Parley") == 1

        assert "Only the GM" in capsys.readouterr().out

    def test_missing_negotiation(self, data_dir):
        assert run(data_dir, "show", "nope") == 1

    def test_second_npc(self, data_dir, negotiation):
        assert run(data_dir, "add-npc", negotiation, "Guard") == 1

    def test_rejected_argument(self, data_dir, negotiation, capsys):
        assert run(data_dir, "argue", negotiation, "ghost", "--total", "10") == 1

        assert "unknown_actor" in capsys.readouterr().out


class TestCliConfig:
    """The config subcommand."""

    def test_set_and_show(self, data_dir, capsys):
        assert run(data_dir, "config", "log_level", "WARNING") == 0
        capsys.readouterr()

        assert run(data_dir, "config") == 0

        assert "log_level = WARNING" in capsys.readouterr().out

    def test_unknown_key_is_a_parse_error(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["config", "theme", "dark"])
