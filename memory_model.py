"""
memory_model.py

Library for modeling the stack and heap of a linked-list program with
console rendering.

This library provides:
- Data structures for the Stack (variable -> address) and Heap (address -> Node)
- SnapshotBuilder for creating memory state transitions without mutating
  earlier snapshots
- apply_step / replay_steps to fold parsed steps into snapshots
- Chain building with cycle detection, head inference and alias lookup
- Console rendering with configurable output and snapshot diffs

Example:
    >>> from step_parser import parse_code
    >>> from memory_model import *
    >>>
    >>> steps, errors = parse_code("Node a = new Node(1);\\nNode b = new Node(2);\\na.next = b;")
    >>> state = replay_steps(steps, len(steps) - 1)
    >>> build_chain(state.heap, find_head_address(state))
    ['0x100', '0x101']
    >>> state.print()
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from step_parser import Step, StepKind

logger = logging.getLogger(__name__)

# First minted address is 0x100
HEAP_BASE_ADDRESS = 0x100

# Chain entries carrying this prefix close a cycle back to an earlier node
CYCLE_PREFIX = "CYCLE:"


# ============================================================
#  Console render configuration
# ============================================================

@dataclass
class ConsoleRenderConfig:
    """Configuration for console rendering output.

    Attributes:
        pointer_arrow: Symbol drawn between linked nodes (→ or ->)
        cycle_arrow: Symbol drawn before the node that closes a cycle
        null_label: Text used for an absent address
        active_marker: Suffix flagging the node touched by the last step
        show_orphans: List heap nodes that are not on the head chain
        compact_mode: Use more compact output format
    """
    pointer_arrow: str = "→"
    cycle_arrow: str = "↩"
    null_label: str = "null"
    active_marker: str = "*"
    show_orphans: bool = True
    compact_mode: bool = False


# Global configuration instance
render_config = ConsoleRenderConfig()


def format_address(address: Optional[str]) -> str:
    """Format an address, or the null label if there is none."""
    return address if address is not None else render_config.null_label


def make_address(counter: int) -> str:
    """Mint the address label for the given counter value."""
    return f"0x{HEAP_BASE_ADDRESS + counter:X}"


# ============================================================
#  Heap nodes & snapshots
# ============================================================

@dataclass
class HeapNode:
    """A Node object living on the heap.

    Attributes:
        data: Integer value of the node
        next: Address of the next node, or None
    """
    data: int
    next: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data, "next": self.next}

    def __deepcopy__(self, memo: Dict[int, Any]) -> HeapNode:
        """Create a copy of the node."""
        return HeapNode(data=self.data, next=self.next)


@dataclass
class MemorySnapshot:
    """Memory of the program after replaying a prefix of steps.

    Attributes:
        stack: Variable name -> address (or None); insertion ordered
        heap: Address -> node; nodes are never removed
        next_addr: Counter used to mint the next address
        last_modified: Address touched by the most recent step, for highlighting
    """
    stack: Dict[str, Optional[str]] = field(default_factory=dict)
    heap: Dict[str, HeapNode] = field(default_factory=dict)
    next_addr: int = 0
    last_modified: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly dictionary."""
        return {
            "stack": dict(self.stack),
            "heap": {addr: node.to_dict() for addr, node in self.heap.items()},
            "next_addr": self.next_addr,
            "last_modified": self.last_modified,
        }

    # ------------- Console rendering ------------- #

    def stack_to_console(self) -> str:
        """Render the stack to console format."""
        lines: List[str] = []
        lines.append("=== Stack ===")
        if not self.stack:
            lines.append("(empty stack)")
            return "\n".join(lines)

        if not render_config.compact_mode:
            header = f"{'Variable':15} {'Address'}"
            lines.append(header)
            lines.append("-" * len(header))

        for name, address in self.stack.items():
            lines.append(f"{name:15} {format_address(address)}")

        return "\n".join(lines)

    def heap_to_console(self) -> str:
        """Render the heap to console format."""
        lines: List[str] = []
        lines.append("=== Heap ===")
        if not self.heap:
            lines.append("(no allocations)")
            return "\n".join(lines)

        if not render_config.compact_mode:
            lines.append(f"Total: {len(self.heap)} node(s)")
            header = f"{'Address':10} {'data':>8}   {'next'}"
            lines.append(header)
            lines.append("-" * len(header))

        for addr, node in self.heap.items():
            marker = f" {render_config.active_marker}" if addr == self.last_modified else ""
            lines.append(f"{addr:10} {node.data:>8}   {format_address(node.next)}{marker}")

        return "\n".join(lines)

    def chain_to_console(self) -> str:
        """Render the linked list starting from the inferred head."""
        lines: List[str] = []
        lines.append("=== Linked List ===")

        head = find_head_address(self)
        chain = build_chain(self.heap, head) if head is not None else []
        if not chain:
            lines.append("(no nodes yet)")
            return "\n".join(lines)

        parts: List[str] = []
        for entry in chain:
            if is_cycle_marker(entry):
                parts.append(f"{render_config.cycle_arrow} {strip_cycle_marker(entry)} (cycle)")
            else:
                parts.append(self._format_node(entry))
        if not is_cycle_marker(chain[-1]):
            parts.append(render_config.null_label)
        lines.append(f" {render_config.pointer_arrow} ".join(parts))

        if render_config.show_orphans:
            on_chain = set(chain)
            orphans = [addr for addr in self.heap if addr not in on_chain]
            if orphans:
                lines.append("Unlinked: " + ", ".join(self._format_node(a) for a in orphans))

        return "\n".join(lines)

    def _format_node(self, address: str) -> str:
        """Format one node card with its aliases."""
        node = self.heap[address]
        text = f"[{address}: {node.data}]"
        if address == self.last_modified:
            text += render_config.active_marker
        names = get_vars_at_address(self.stack, address)
        if names:
            text += f" ({', '.join(names)})"
        return text

    def to_console(self, title: Optional[str] = None) -> str:
        """Render the complete snapshot to console format.

        Args:
            title: Optional heading, e.g. the step description
        """
        sections: List[str] = []
        if title:
            sections.append("=" * 70 + f"\n {title}\n" + "=" * 70)
        sections.append(self.chain_to_console())
        sections.append(self.stack_to_console())
        sections.append(self.heap_to_console())

        separator = "\n" if render_config.compact_mode else "\n\n"
        return separator.join(sections)

    def print(self, title: Optional[str] = None) -> None:
        """Print the snapshot to console."""
        print(self.to_console(title=title))


def initial_state() -> MemorySnapshot:
    """Create the empty snapshot: no variables, no nodes, counter at 0."""
    return MemorySnapshot()


# ============================================================
#  SnapshotBuilder
# ============================================================

class SnapshotBuilder:
    """Builder for creating new memory snapshots from existing ones.

    This builder copies the base snapshot so that the base is never
    modified. It provides a fluent API for memory modifications.

    Example:
        >>> builder, addr = SnapshotBuilder(initial_state()).create_node("a", 5)
        >>> snapshot = builder.assign("b", "a").build()
        >>> snapshot.stack
        {'a': '0x100', 'b': '0x100'}
    """

    def __init__(self, base: MemorySnapshot) -> None:
        """Initialize builder with a base snapshot.

        Args:
            base: The snapshot to build upon (will be copied)
        """
        self._base = base
        self._stack = dict(base.stack)
        self._heap = copy.deepcopy(base.heap)
        self._next_addr = base.next_addr
        self._last_modified: Optional[str] = None

    def create_node(self, var_name: str, value: int) -> Tuple["SnapshotBuilder", str]:
        """Allocate a new node and bind a variable to it.

        Args:
            var_name: Variable receiving the new address
            value: Node data

        Returns:
            Tuple of (self for chaining, minted address)
        """
        address = make_address(self._next_addr)
        self._next_addr += 1
        self._heap[address] = HeapNode(data=value, next=None)
        self._stack[var_name] = address
        self._last_modified = address
        return self, address

    def set_next(self, var_name: str, target_var: str) -> "SnapshotBuilder":
        """Point ``var_name.next`` at the node held by ``target_var``.

        Does nothing if ``var_name`` is not bound to a node. An unbound
        target stores null.
        """
        from_addr = self._stack.get(var_name)
        if from_addr is None or from_addr not in self._heap:
            logger.debug("%s.next = %s ignored: %s is not bound to a node",
                         var_name, target_var, var_name)
            return self
        self._heap[from_addr].next = self._stack.get(target_var)
        self._last_modified = from_addr
        return self

    def set_null(self, var_name: str) -> "SnapshotBuilder":
        """Clear ``var_name.next``. Does nothing if the variable has no node."""
        address = self._stack.get(var_name)
        if address is None or address not in self._heap:
            logger.debug("%s.next = null ignored: %s is not bound to a node",
                         var_name, var_name)
            return self
        self._heap[address].next = None
        self._last_modified = address
        return self

    def assign(self, var_name: str, source_var: str) -> "SnapshotBuilder":
        """Copy the address held by ``source_var`` (or null) into ``var_name``."""
        address = self._stack.get(source_var)
        self._stack[var_name] = address
        self._last_modified = address
        return self

    def build(self) -> MemorySnapshot:
        """Build the final snapshot."""
        return MemorySnapshot(
            stack=self._stack,
            heap=self._heap,
            next_addr=self._next_addr,
            last_modified=self._last_modified,
        )


# ============================================================
#  Replay
# ============================================================

def apply_step(state: MemorySnapshot, step: Step) -> MemorySnapshot:
    """Apply a single step and return a NEW snapshot.

    ``state`` is left untouched. Steps that write through a variable with
    no node behind it are silent no-ops.

    Raises:
        TypeError: If ``step`` is not a Step
    """
    if not isinstance(step, Step):
        raise TypeError(f"Expected Step, got {type(step).__name__}")

    builder = SnapshotBuilder(state)
    if step.kind is StepKind.CREATE_NODE:
        builder.create_node(step.var_name, step.value)
    elif step.kind is StepKind.SET_NEXT:
        builder.set_next(step.var_name, step.target_var)
    elif step.kind is StepKind.SET_NULL:
        builder.set_null(step.var_name)
    elif step.kind is StepKind.ASSIGN_VAR:
        builder.assign(step.var_name, step.source_var)
    return builder.build()


def replay_steps(steps: Sequence[Step], step_index: int) -> MemorySnapshot:
    """Replay ``steps[0..step_index]`` from the empty state.

    Args:
        steps: Parsed steps
        step_index: Last step to apply; negative values give the empty state
            and values past the end are clamped

    Returns:
        The snapshot after the last applied step
    """
    state = initial_state()
    for step in steps[:max(step_index + 1, 0)]:
        state = apply_step(state, step)
    return state


# ============================================================
#  Chain & pointer queries
# ============================================================

def is_cycle_marker(entry: str) -> bool:
    """Return True if a chain entry marks a cycle closure."""
    return entry.startswith(CYCLE_PREFIX)


def strip_cycle_marker(entry: str) -> str:
    """Return the real address of a chain entry."""
    if is_cycle_marker(entry):
        return entry[len(CYCLE_PREFIX):]
    return entry


def build_chain(heap: Dict[str, HeapNode], start_addr: Optional[str]) -> List[str]:
    """Build the ordered chain of addresses starting from ``start_addr``.

    Follows ``next`` pointers until null, an unknown address, or an address
    already visited. In the last case a ``CYCLE:<address>`` entry is
    appended so the loop can be drawn closed.
    """
    visited = set()
    chain: List[str] = []
    current = start_addr
    while current is not None and current in heap and current not in visited:
        visited.add(current)
        chain.append(current)
        current = heap[current].next
    if current is not None and current in visited:
        chain.append(f"{CYCLE_PREFIX}{current}")
    return chain


def find_head_address(state: MemorySnapshot) -> Optional[str]:
    """Infer the head of the list.

    The head is the first stack-referenced address (by variable order) that
    no node's ``next`` points to. If every referenced address is pointed to,
    as in a full cycle, the first referenced address is used. This is a
    heuristic: with several disjoint chains only one of them is picked.

    Returns:
        Head address, or None if no variable references a node
    """
    all_addresses = [addr for addr in state.stack.values() if addr is not None]
    if not all_addresses:
        return None

    next_addresses = {node.next for node in state.heap.values() if node.next is not None}
    for addr in all_addresses:
        if addr not in next_addresses:
            return addr
    return all_addresses[0]


def get_vars_at_address(stack: Dict[str, Optional[str]], address: str) -> List[str]:
    """Get every variable bound to ``address``, in stack order."""
    return [name for name, addr in stack.items() if addr == address]


# ============================================================
#  Utility functions
# ============================================================

def diff_snapshots(old: MemorySnapshot, new: MemorySnapshot) -> str:
    """Create a textual diff between two snapshots.

    Args:
        old: Earlier snapshot
        new: Later snapshot

    Returns:
        A string describing the changes
    """
    arrow = render_config.pointer_arrow
    changes: List[str] = []
    changes.append("=== Changes ===")

    stack_changes = []
    for name, addr in new.stack.items():
        if name not in old.stack:
            stack_changes.append(f"  + Added '{name}' {arrow} {format_address(addr)}")
        elif old.stack[name] != addr:
            stack_changes.append(
                f"  ~ Changed '{name}': {format_address(old.stack[name])} {arrow} {format_address(addr)}"
            )

    if stack_changes:
        changes.append("Stack:")
        changes.extend(stack_changes)

    heap_changes = []
    for addr, node in new.heap.items():
        old_node = old.heap.get(addr)
        if old_node is None:
            heap_changes.append(f"  + Allocated Node({node.data}) at {addr}")
        elif old_node.next != node.next:
            heap_changes.append(
                f"  ~ Changed {addr}.next: {format_address(old_node.next)} {arrow} {format_address(node.next)}"
            )

    if heap_changes:
        changes.append("Heap:")
        changes.extend(heap_changes)

    if len(changes) == 1:
        changes.append("(no changes)")

    return "\n".join(changes)
