"""
step_parser.py

Parser for simplified Java linked-list code.

Turns a source string into an ordered list of steps that the memory model
can replay. Only a handful of statement shapes are understood:

    Node varName = new Node(value);
    varName.next = otherVar;
    varName.next = null;
    Node varName = otherVar;
    varName = otherVar;

Java boilerplate around those lines (class declarations, fields,
constructors, braces, comments, ...) is skipped silently. Anything else is
reported as an error for that line and parsing continues.

Example:
    >>> from step_parser import parse_code
    >>> steps, errors = parse_code("Node a = new Node(5);\\na.next = null;")
    >>> [s.kind.name for s in steps]
    ['CREATE_NODE', 'SET_NULL']
    >>> errors
    []
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# ============================================================
#  Step records
# ============================================================

class StepKind(Enum):
    """Kind of memory mutation described by a step."""
    CREATE_NODE = "CREATE_NODE"   # Node x = new Node(val)
    SET_NEXT = "SET_NEXT"         # x.next = y
    SET_NULL = "SET_NULL"         # x.next = null
    ASSIGN_VAR = "ASSIGN_VAR"     # x = y  (reference copy)


@dataclass(frozen=True)
class Step:
    """One recognized source line and its effect on memory.

    Attributes:
        kind: What the line does
        line_index: Zero-based line number in the source text
        var_name: Variable being declared, linked or reassigned
        description: Human-readable summary for display
        value: Node value (CREATE_NODE only)
        target_var: Variable whose node becomes ``next`` (SET_NEXT only)
        source_var: Variable whose address is copied (ASSIGN_VAR only)
    """
    kind: StepKind
    line_index: int
    var_name: str
    description: str
    value: Optional[int] = None
    target_var: Optional[str] = None
    source_var: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly dictionary of the populated fields."""
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "line_index": self.line_index,
            "var_name": self.var_name,
        }
        if self.value is not None:
            data["value"] = self.value
        if self.target_var is not None:
            data["target_var"] = self.target_var
        if self.source_var is not None:
            data["source_var"] = self.source_var
        data["description"] = self.description
        return data


@dataclass(frozen=True)
class ParseError:
    """A line that matched neither boilerplate nor a known statement.

    Attributes:
        line_index: Zero-based line number in the source text
        message: Error message including the offending text
    """
    line_index: int
    message: str

    def __str__(self) -> str:
        return f"Line {self.line_index + 1}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly dictionary."""
        return {"line_index": self.line_index, "message": self.message}


# ============================================================
#  Patterns
# ============================================================

# Identifiers and digits are ASCII; \s stays Unicode-aware so indentation
# with non-breaking or other Unicode spaces is tolerated.

# Java boilerplate that carries no linked-list logic.
SKIP_PATTERNS: List[re.Pattern[str]] = [
    re.compile(r"^\s*(//.*)?$"),                                   # blank or comment
    re.compile(r"^\s*\{?\s*\}?\s*$"),                              # lone braces
    re.compile(r"^\s*class\s+[A-Za-z0-9_]+"),                      # class Node {
    re.compile(r"^\s*(public|private|protected)\s+(static\s+)?"),  # public static void main(...)
    re.compile(r"^\s*(int|String|Node|void|boolean)\s+[A-Za-z0-9_]+\s*;"),  # int data;
    re.compile(r"^\s*[A-Za-z0-9_]+\s*\(\s*(int|String|Node)\s+[A-Za-z0-9_]+\s*\)"),  # Node(int data)
    re.compile(r"^\s*this\.[A-Za-z0-9_]+\s*="),                    # this.data = data;
    re.compile(r"^\s*return\b"),
    re.compile(r"^\s*import\s+"),
    re.compile(r"^\s*package\s+"),
]


def _create_node(match: re.Match[str], line_index: int) -> Step:
    name, literal = match.group(1), match.group(2)
    return Step(
        kind=StepKind.CREATE_NODE,
        line_index=line_index,
        var_name=name,
        value=int(literal),
        description=f"Create Node({literal}) → assign to `{name}`",
    )


def _set_null(match: re.Match[str], line_index: int) -> Step:
    name = match.group(1)
    return Step(
        kind=StepKind.SET_NULL,
        line_index=line_index,
        var_name=name,
        description=f"Set `{name}.next` = null",
    )


def _set_next(match: re.Match[str], line_index: int) -> Step:
    name, target = match.group(1), match.group(2)
    return Step(
        kind=StepKind.SET_NEXT,
        line_index=line_index,
        var_name=name,
        target_var=target,
        description=f"Link `{name}.next` → `{target}`",
    )


def _declare_alias(match: re.Match[str], line_index: int) -> Step:
    name, source = match.group(1), match.group(2)
    return Step(
        kind=StepKind.ASSIGN_VAR,
        line_index=line_index,
        var_name=name,
        source_var=source,
        description=f"Declare `{name}` → points to same node as `{source}`",
    )


def _reassign(match: re.Match[str], line_index: int) -> Step:
    name, source = match.group(1), match.group(2)
    return Step(
        kind=StepKind.ASSIGN_VAR,
        line_index=line_index,
        var_name=name,
        source_var=source,
        description=f"Reassign `{name}` → points to same node as `{source}`",
    )


# Tried in order, first match wins. SET_NULL must precede SET_NEXT since
# ``null`` is itself a valid identifier.
STATEMENT_PATTERNS: List[Tuple[re.Pattern[str], Callable[[re.Match[str], int], Step]]] = [
    (re.compile(r"^\s*Node\s+([A-Za-z0-9_]+)\s*=\s*new\s+Node\s*\(\s*(-?[0-9]+)\s*\)\s*;?\s*$"),
     _create_node),
    (re.compile(r"^\s*([A-Za-z0-9_]+)\.next\s*=\s*null\s*;?\s*$"), _set_null),
    (re.compile(r"^\s*([A-Za-z0-9_]+)\.next\s*=\s*([A-Za-z0-9_]+)\s*;?\s*$"), _set_next),
    (re.compile(r"^\s*Node\s+([A-Za-z0-9_]+)\s*=\s*([A-Za-z0-9_]+)\s*;?\s*$"), _declare_alias),
    (re.compile(r"^\s*([A-Za-z0-9_]+)\s*=\s*([A-Za-z0-9_]+)\s*;?\s*$"), _reassign),
]


# ============================================================
#  Parsing
# ============================================================

def is_boilerplate(line: str) -> bool:
    """Return True if the line should be skipped without producing a step."""
    return any(pattern.match(line) for pattern in SKIP_PATTERNS)


def parse_line(line: str, line_index: int) -> Optional[Step]:
    """Match a single line against the statement shapes.

    Returns:
        The step for the first matching shape, or None if nothing matches
    """
    for pattern, make_step in STATEMENT_PATTERNS:
        match = pattern.match(line)
        if match:
            return make_step(match, line_index)
    return None


def parse_code(code: str) -> Tuple[List[Step], List[ParseError]]:
    """Parse Java code into steps and per-line errors.

    Never raises for malformed input: each unrecognized line becomes a
    ParseError and the remaining lines are still parsed.

    Args:
        code: Source text, split into lines on ``\\n``

    Returns:
        Tuple of (steps, errors), both in ascending line order
    """
    steps: List[Step] = []
    errors: List[ParseError] = []

    for line_index, line in enumerate(code.split("\n")):
        if is_boilerplate(line):
            continue

        step = parse_line(line, line_index)
        if step is not None:
            steps.append(step)
            continue

        message = f'Unrecognized syntax: "{line.strip()}"'
        logger.debug("line %d: %s", line_index + 1, message)
        errors.append(ParseError(line_index=line_index, message=message))

    return steps, errors
