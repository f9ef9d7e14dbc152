"""
test_visualize.py

Tests for the console front end: Trace playback, rendering and the CLI.
"""

import json

import pytest
from memory_model import initial_state, render_config
from visualize import SAMPLE_CODE, Trace, main, render_trace, step_title


@pytest.fixture
def sample_trace():
    """Trace of the built-in sample program."""
    return Trace(SAMPLE_CODE)


@pytest.fixture(autouse=True)
def reset_render_config():
    """Restore rendering defaults after each test."""
    yield
    render_config.pointer_arrow = "→"
    render_config.cycle_arrow = "↩"
    render_config.show_orphans = True
    render_config.compact_mode = False


# ============================================================
# Trace Tests
# ============================================================

class TestTrace:
    """Tests for the playback cursor."""

    def test_sample_parses_cleanly(self, sample_trace):
        """Test the sample program has seven steps and no errors."""
        assert sample_trace.total_steps == 7
        assert sample_trace.errors == []

    def test_starts_at_final_state(self, sample_trace):
        """Test a new trace shows every step applied."""
        assert sample_trace.current_step == 6
        assert sample_trace.at_end()
        snapshot = sample_trace.snapshot()
        assert list(snapshot.stack) == ["first", "sec", "thir", "head", "tail"]

    def test_reset_and_step(self, sample_trace):
        """Test stepping forward from the initial state."""
        sample_trace.reset()
        assert sample_trace.active_step is None
        assert sample_trace.active_line_index == -1
        assert sample_trace.snapshot() == initial_state()

        assert sample_trace.step_forward()
        assert sample_trace.active_line_index == 15
        assert sample_trace.snapshot().stack == {"first": "0x100"}

    def test_step_forward_stops_at_end(self, sample_trace):
        """Test stepping past the last step is refused."""
        assert not sample_trace.step_forward()
        assert sample_trace.current_step == 6

    def test_seek_clamps(self, sample_trace):
        """Test seek stays within range."""
        sample_trace.seek(100)
        assert sample_trace.current_step == 6
        sample_trace.seek(-7)
        assert sample_trace.current_step == -1
        sample_trace.run_all()
        assert sample_trace.current_step == 6

    def test_empty_code(self):
        """Test a trace with no steps."""
        trace = Trace("")
        assert trace.current_step == -1
        assert not trace.step_forward()
        assert trace.snapshot() == initial_state()

    def test_to_json(self):
        """Test the JSON export."""
        data = json.loads(Trace("Node a = new Node(5);\nhello").to_json())
        assert data["steps"][0]["kind"] == "CREATE_NODE"
        assert data["errors"] == [{"line_index": 1, "message": 'Unrecognized syntax: "hello"'}]
        assert data["snapshot"]["heap"] == {"0x100": {"data": 5, "next": None}}


# ============================================================
# Rendering Tests
# ============================================================

class TestRenderTrace:
    """Tests for render_trace."""

    def test_step_title(self, sample_trace):
        """Test the heading names the step and line."""
        assert step_title(sample_trace) == (
            "Step 7/7 (line 26): Declare `tail` → points to same node as `thir`"
        )
        sample_trace.reset()
        assert step_title(sample_trace) == "Initial state"

    def test_final_state(self, sample_trace):
        """Test the default rendering shows the full list."""
        output = render_trace(sample_trace)
        assert "[0x100: 10] (first, head) → [0x101: 20] (sec)" in output
        assert "=== Errors ===" not in output

    def test_show_all(self, sample_trace):
        """Test every step is rendered with its diff."""
        output = render_trace(sample_trace, show_all=True)
        assert output.count("=== Changes ===") == 7
        assert "Initial state" in output
        assert sample_trace.current_step == 6

    def test_errors_listed(self):
        """Test parse errors are shown first."""
        output = render_trace(Trace("foo bar baz"))
        assert output.startswith("=== Errors ===\nLine 1: Unrecognized syntax")


# ============================================================
# CLI Tests
# ============================================================

class TestMain:
    """Tests for the command line entry point."""

    def test_sample(self, capsys):
        """Test running without a file uses the sample program."""
        assert main([]) == 0
        assert "=== Linked List ===" in capsys.readouterr().out

    def test_file_and_step(self, tmp_path, capsys):
        """Test reading a file and selecting a step."""
        source = tmp_path / "List.java"
        source.write_text("Node a = new Node(1);\nNode b = new Node(2);\na.next = b;\n")
        assert main([str(source), "--step", "2", "--ascii"]) == 0
        out = capsys.readouterr().out
        assert "Step 2/3" in out
        assert "-> null" in out

    def test_json(self, tmp_path, capsys):
        """Test --json output."""
        source = tmp_path / "List.java"
        source.write_text("Node a = new Node(1);\n")
        assert main([str(source), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["snapshot"]["stack"] == {"a": "0x100"}

    def test_missing_file(self, tmp_path):
        """Test an unreadable file exits with status 1."""
        assert main([str(tmp_path / "missing.java")]) == 1

    def test_unknown_log_level(self, capsys):
        """Test an unknown logging level is rejected by argparse."""
        with pytest.raises(SystemExit) as exc:
            main(["--log-level", "VERBOSE"])
        assert exc.value.code == 2
        assert "invalid choice" in capsys.readouterr().err

    def test_log_level_case_insensitive(self):
        """Test lower case level names are accepted."""
        assert main(["--log-level", "error"]) == 0

    def test_render_options_restored(self, tmp_path, capsys):
        """Test flags from one call do not leak into the next."""
        source = tmp_path / "List.java"
        source.write_text("Node a = new Node(1);\n")
        assert main([str(source), "--ascii", "--compact", "--no-orphans"]) == 0
        assert "-> null" in capsys.readouterr().out
        assert render_config.pointer_arrow == "→"
        assert render_config.cycle_arrow == "↩"
        assert not render_config.compact_mode
        assert render_config.show_orphans

        assert main([str(source)]) == 0
        out = capsys.readouterr().out
        assert "→ null" in out
        assert "-> null" not in out

    def test_strict(self, tmp_path):
        """Test --strict fails on parse errors."""
        source = tmp_path / "List.java"
        source.write_text("Node a = new Node(1);\nnot java\n")
        assert main([str(source)]) == 0
        assert main([str(source), "--strict"]) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
