"""Encode a StoryboardGraph as osu! storyboard script text (.osb)."""

from osu_reconstructor.encoders.common import fmt_number, join_lines
from osu_reconstructor.schemas.graph import (
    CommandContainer,
    CommandNode,
    ElementNode,
    StoryboardCommand,
    StoryboardGraph,
)

LAYERS = ("Background", "Fail", "Pass", "Foreground", "Overlay")

# Layer numbers used by Sample lines.
_SAMPLE_LAYER_NUMBERS = {"Background": 0, "Fail": 1, "Pass": 2, "Foreground": 3}

_COMMAND_CODES = {
    "move": "M",
    "move_x": "MX",
    "move_y": "MY",
    "fade": "F",
    "scale": "S",
    "vector_scale": "V",
    "rotate": "R",
    "colour": "C",
    "parameter": "P",
}


def _command_line(cmd: StoryboardCommand) -> str:
    if cmd.kind == "loop":
        return f"L,{fmt_number(cmd.start_time)},{cmd.loop_count or 0}"
    if cmd.kind == "trigger":
        line = f"T,{cmd.trigger_name or ''},{fmt_number(cmd.start_time)}"
        # The group number is positional, so it needs an end time before it.
        if cmd.end_time is not None:
            line += f",{fmt_number(cmd.end_time)}"
            if cmd.group_number:
                line += f",{cmd.group_number}"
        return line

    code = _COMMAND_CODES[cmd.kind]
    values = cmd.start_value
    if cmd.end_value and cmd.end_value != cmd.start_value:
        values += f",{cmd.end_value}"
    return f"{code},{cmd.easing},{fmt_number(cmd.start_time)},{fmt_number(cmd.end_time)},{values}"


def _command_lines(nodes: tuple[CommandNode, ...], depth: int = 1) -> list[str]:
    lines: list[str] = []
    indent = " " * depth
    for node in nodes:
        lines.append(indent + _command_line(node.command))
        if isinstance(node, CommandContainer):
            lines.extend(_command_lines(node.children, depth + 1))
    return lines


def _element_line(element: ElementNode) -> str:
    x, y = fmt_number(element.x), fmt_number(element.y)
    if element.element_type == "animation":
        return (
            f'Animation,{element.layer},{element.origin},"{element.path}",{x},{y},'
            f"{element.frame_count or 1},{fmt_number(element.frame_delay or 0)},"
            f"{element.loop_type or 'LoopForever'}"
        )
    return f'Sprite,{element.layer},{element.origin},"{element.path}",{x},{y}'


def _sample_line(element: ElementNode) -> str:
    layer = _SAMPLE_LAYER_NUMBERS.get(element.layer, 0)
    volume = 100 if element.volume is None else element.volume
    return f'Sample,{fmt_number(element.time or 0)},{layer},"{element.path}",{volume}'


def storyboard_event_lines(elements: list[ElementNode]) -> list[str]:
    """Layer and sound-sample lines of an [Events] section, in render order."""
    visuals = [e for e in elements if e.element_type != "sample"]
    samples = [e for e in elements if e.element_type == "sample"]

    lines: list[str] = []
    for number, layer in enumerate(LAYERS):
        lines.append(f"//Storyboard Layer {number} ({layer})")
        for element in visuals:
            if element.layer == layer:
                lines.append(_element_line(element))
                lines.extend(_command_lines(element.commands))

    # Layers osu! does not know about still get written, after the known ones.
    for element in visuals:
        if element.layer not in LAYERS:
            lines.append(_element_line(element))
            lines.extend(_command_lines(element.commands))

    lines.append("//Storyboard Sound Samples")
    lines.extend(_sample_line(e) for e in samples)
    return lines


def encode_storyboard(graph: StoryboardGraph) -> str:
    """Render a standalone storyboard script."""
    lines = ["[Events]", "//Background and Video events"]
    lines.extend(storyboard_event_lines(graph.elements))
    return join_lines(lines)
