"""Assemble storyboard elements and their command trees.

Loop and trigger commands own ordered child commands. The flat command table
only keeps a parent key, so the tree is rebuilt here from the indexer's
parent -> children map. Loops are kept structural: children stay relative
to the loop start and iterations are never expanded.
"""

import logging

from osu_reconstructor.assembly.indexer import Indices
from osu_reconstructor.errors import SkippedCommand
from osu_reconstructor.schemas.graph import (
    CommandContainer,
    CommandLeaf,
    CommandNode,
    ElementNode,
    StoryboardCommand,
    StoryboardGraph,
    StoryboardOwner,
)
from osu_reconstructor.schemas.rows import StoryboardCommandRow, StoryboardElementRow

logger = logging.getLogger(__name__)

CONTAINER_TYPES = frozenset({"loop", "trigger"})
COMMAND_TYPES = frozenset({
    "move", "move_x", "move_y", "fade", "scale", "vector_scale",
    "rotate", "colour", "parameter",
}) | CONTAINER_TYPES


def _to_command(row: StoryboardCommandRow) -> StoryboardCommand:
    return StoryboardCommand(
        id=row.id,
        kind=row.command_type,
        easing=row.easing,
        start_time=row.start_time,
        end_time=None if row.command_type == "loop" else row.end_time,
        start_value=row.start_value,
        end_value=row.end_value,
        loop_count=row.loop_count,
        trigger_name=row.trigger_name,
        group_number=row.group_number,
    )


class _TreeBuilder:
    """Build the command tree of one element from the indexed rows."""

    def __init__(self, element: StoryboardElementRow, indices: Indices, issues: list):
        self.element = element
        self.indices = indices
        self.issues = issues
        self.visited: set[int] = set()

    def skip(self, row: StoryboardCommandRow, reason: str) -> None:
        self.issues.append(SkippedCommand(self.element.id, row.id, reason))

    def build(self, rows: tuple[StoryboardCommandRow, ...]) -> tuple[CommandNode, ...]:
        nodes: list[CommandNode] = []
        for row in rows:
            node = self.node(row)
            if node is not None:
                nodes.append(node)
        return tuple(nodes)

    def node(self, row: StoryboardCommandRow) -> CommandNode | None:
        self.visited.add(row.id)
        if row.command_type not in COMMAND_TYPES:
            self.skip(row, f"unknown command type {row.command_type!r}")
            return None
        if row.command_type not in CONTAINER_TYPES:
            return CommandLeaf(_to_command(row))

        children: list[CommandNode] = []
        for child in self.indices.child_commands.get(row.id, ()):
            # Children filed under another element are reported by that element.
            if child.element_id != row.element_id:
                continue
            node = self.node(child)
            if node is not None:
                children.append(node)
        return CommandContainer(_to_command(row), tuple(children))

    def report_unreachable(self) -> None:
        """Record every command of this element not reached from its top level.

        Each command has a single parent, so anything left over hangs off a
        dropped or non-container parent, another element, or a parent cycle.
        """
        for command_id in sorted(self.indices.element_commands.get(self.element.id, ())):
            if command_id in self.visited:
                continue
            row = self.indices.commands[command_id]
            parent = self.indices.commands.get(row.parent_id)
            if parent is None:
                self.skip(row, "parent command was dropped")
            elif parent.element_id != row.element_id:
                self.skip(row, f"parent {parent.id} belongs to element {parent.element_id}")
            elif parent.command_type not in CONTAINER_TYPES:
                self.skip(row, f"parent {parent.id} is a {parent.command_type!r} command")
            else:
                self.skip(row, "unreachable from element")


def _element_node(element: StoryboardElementRow, commands: tuple[CommandNode, ...]) -> ElementNode:
    return ElementNode(
        id=element.id,
        element_type=element.element_type,
        layer=element.layer,
        origin=element.origin,
        path=element.path,
        x=element.x,
        y=element.y,
        frame_count=element.frame_count,
        frame_delay=element.frame_delay,
        loop_type=element.loop_type,
        time=element.time,
        volume=element.volume,
        commands=commands,
    )


def storyboard_sources(owner: StoryboardOwner, indices: Indices) -> list[str]:
    """Distinct source files of *owner*'s elements, in first-seen order.

    Elements without a source file are grouped under ``""``.
    """
    seen: dict[str, None] = {}
    for element in indices.elements.get(StoryboardOwner(*owner), ()):
        seen.setdefault(element.source_file or "", None)
    return list(seen)


def assemble_storyboard(
    owner: StoryboardOwner,
    indices: Indices,
    default_file_name: str = "",
    source_file: str | None = None,
) -> StoryboardGraph | None:
    """Join element and command rows for *owner* into a storyboard graph.

    With *source_file* set, only elements read from that script are joined
    (``""`` selects elements without one). Returns None when nothing matches.
    """
    owner = StoryboardOwner(*owner)
    elements = indices.elements.get(owner, ())
    if source_file is not None:
        elements = tuple(e for e in elements if (e.source_file or "") == source_file)
    if not elements:
        return None

    source_files = [e.source_file for e in elements if e.source_file]
    graph = StoryboardGraph(
        owner=owner,
        file_name=source_files[0] if source_files else default_file_name,
    )

    for element in elements:
        builder = _TreeBuilder(element, indices, graph.skipped)
        commands = builder.build(indices.top_commands.get(element.id, ()))
        builder.report_unreachable()
        graph.elements.append(_element_node(element, commands))

    if graph.skipped:
        logger.warning(
            "Storyboard %s: skipped %d command(s) across %d elements",
            graph.file_name or owner, len(graph.skipped), len(graph.elements),
        )
    return graph
