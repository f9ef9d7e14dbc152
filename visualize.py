"""
visualize.py

Console front end for the linked list visualizer.

Parses a Java source file (or the built-in sample program), replays the
steps and prints the stack, heap and linked list to the console.

Usage:
    python visualize.py                 # sample program, final state
    python visualize.py List.java --all # every step with its diff
    python visualize.py List.java --step 2
    python visualize.py List.java --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from memory_model import (
    MemorySnapshot,
    diff_snapshots,
    initial_state,
    render_config,
    replay_steps,
)
from step_parser import ParseError, Step, parse_code

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


SAMPLE_CODE = """\
// Node class definition
class Node {
    int data;
    Node next;
    Node(int data) {
        this.data = data;
        this.next = null;
    }
}

// Main class
class Main {
    public static void main(String[] args) {

        // Create nodes
        Node first = new Node(10);
        Node sec = new Node(20);
        Node thir = new Node(30);

        // Link nodes
        first.next = sec;
        sec.next = thir;

        // Head and tail pointers
        Node head = first;
        Node tail = thir;

    }
}"""


# ============================================================
#  Trace
# ============================================================

class Trace:
    """Parsed program plus a playback cursor.

    ``current_step`` is the index of the last applied step; -1 is the
    initial state before any step. The snapshot is always recomputed by
    replaying from the start, so moving the cursor has no side effects.
    """

    def __init__(self, code: str) -> None:
        self.code = code
        self.steps, self.errors = parse_code(code)
        self.current_step = len(self.steps) - 1
        logger.info("parsed %d step(s), %d error(s)", len(self.steps), len(self.errors))

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def active_step(self) -> Optional[Step]:
        """The step applied last, or None in the initial state."""
        if self.current_step < 0:
            return None
        return self.steps[self.current_step]

    @property
    def active_line_index(self) -> int:
        """Source line of the active step, -1 if there is none."""
        step = self.active_step
        return step.line_index if step is not None else -1

    def at_end(self) -> bool:
        return self.current_step >= len(self.steps) - 1

    def reset(self) -> None:
        """Move the cursor back to the initial state."""
        self.current_step = -1

    def step_forward(self) -> bool:
        """Advance by one step.

        Returns:
            False if already at the last step
        """
        if self.at_end():
            return False
        self.current_step += 1
        return True

    def run_all(self) -> None:
        """Jump to the state after the last step."""
        self.current_step = len(self.steps) - 1

    def seek(self, step_index: int) -> None:
        """Move the cursor, clamped to [-1, total_steps - 1]."""
        self.current_step = max(-1, min(step_index, len(self.steps) - 1))

    def snapshot(self) -> MemorySnapshot:
        """Memory state at the cursor."""
        if self.current_step < 0:
            return initial_state()
        return replay_steps(self.steps, self.current_step)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "errors": [error.to_dict() for error in self.errors],
            "current_step": self.current_step,
            "snapshot": self.snapshot().to_dict(),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


# ============================================================
#  Rendering
# ============================================================

def step_title(trace: Trace) -> str:
    """Heading for the snapshot at the trace cursor."""
    step = trace.active_step
    if step is None:
        return "Initial state"
    return (f"Step {trace.current_step + 1}/{trace.total_steps} "
            f"(line {step.line_index + 1}): {step.description}")


def render_errors(errors: Sequence[ParseError]) -> str:
    lines = ["=== Errors ==="]
    lines.extend(str(error) for error in errors)
    return "\n".join(lines)


def render_trace(trace: Trace, show_all: bool = False) -> str:
    """Render the trace to console format.

    Args:
        trace: Parsed program; its cursor selects the snapshot to render
        show_all: Render every snapshot from the initial state up to the
            cursor, each followed by the diff from the previous one
    """
    blocks: List[str] = []
    if trace.errors:
        blocks.append(render_errors(trace.errors))

    if show_all:
        last = trace.current_step
        trace.reset()
        previous = trace.snapshot()
        blocks.append(previous.to_console(title=step_title(trace)))
        while trace.current_step < last and trace.step_forward():
            current = trace.snapshot()
            blocks.append(current.to_console(title=step_title(trace)))
            blocks.append(diff_snapshots(previous, current))
            previous = current
    else:
        blocks.append(trace.snapshot().to_console(title=step_title(trace)))

    return "\n\n".join(blocks)


# ============================================================
#  CLI
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llviz",
        description="Visualize linked list manipulation in simplified Java code.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="Java source file ('-' for stdin); defaults to a sample program",
    )
    position = parser.add_mutually_exclusive_group()
    position.add_argument(
        "--step",
        type=int,
        help="show the state after step N (1-based, 0 = initial state)",
    )
    position.add_argument("--all", action="store_true", help="show every step with its diff")
    parser.add_argument("--json", action="store_true", help="print steps, errors and snapshot as JSON")
    parser.add_argument("--strict", action="store_true", help="exit with status 2 on parse errors")
    parser.add_argument("--ascii", action="store_true", help="use ASCII arrows")
    parser.add_argument("--compact", action="store_true", help="compact output")
    parser.add_argument("--no-orphans", action="store_true", help="hide nodes not on the head chain")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging level (default: WARNING)",
    )
    return parser


def read_source(path: Optional[str]) -> str:
    """Read the program text; None selects the sample program."""
    if path is None:
        return SAMPLE_CODE
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


@contextmanager
def render_options(**overrides: Any) -> Iterator[None]:
    """Temporarily override fields of the global render_config."""
    saved = {name: getattr(render_config, name) for name in overrides}
    for name, value in overrides.items():
        setattr(render_config, name, value)
    try:
        yield
    finally:
        for name, value in saved.items():
            setattr(render_config, name, value)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: Dict[str, Any] = {
        "compact_mode": args.compact,
        "show_orphans": not args.no_orphans,
    }
    if args.ascii:
        overrides.update(pointer_arrow="->", cycle_arrow="<-")

    try:
        code = read_source(args.file)
    except OSError as e:
        logger.error("Cannot read %s: %s", args.file, e)
        return 1

    trace = Trace(code)
    if args.step is not None:
        trace.seek(args.step - 1)

    with render_options(**overrides):
        if args.json:
            print(trace.to_json())
        else:
            print(render_trace(trace, show_all=args.all))

    if args.strict and trace.errors:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
