"""Encode a BeatmapGraph as an osu! beatmap file (format v14).

The encoder only formats: ordering, joins and timing resolution already
happened in the assembler. Hit samples are written from the object-level
overrides so the output matches what the source file contained.
"""

from osu_reconstructor.encoders.common import fmt_bool, fmt_number, join_lines
from osu_reconstructor.encoders.osb import storyboard_event_lines
from osu_reconstructor.schemas.graph import (
    BeatmapGraph,
    HitObjectNode,
    SampleOverride,
    SampleSet,
    StoryboardGraph,
)

_TYPE_BITS = {"circle": 1, "slider": 2, "spinner": 8, "hold": 128}
_NEW_COMBO = 4

_SAMPLE_SET_NAMES = {
    SampleSet.NORMAL: "Normal",
    SampleSet.SOFT: "Soft",
    SampleSet.DRUM: "Drum",
}


def _general(graph: BeatmapGraph) -> list[str]:
    g = graph.general
    lines = [
        "[General]",
        f"AudioFilename: {g.audio_file}",
        f"AudioLeadIn: {g.audio_lead_in}",
        f"PreviewTime: {g.preview_time}",
        f"Countdown: {g.countdown}",
        f"SampleSet: {_SAMPLE_SET_NAMES.get(g.sample_set, 'Normal')}",
        f"StackLeniency: {fmt_number(g.stack_leniency)}",
        f"Mode: {g.mode}",
        f"LetterboxInBreaks: {fmt_bool(g.letterbox_in_breaks)}",
    ]
    if g.epilepsy_warning:
        lines.append("EpilepsyWarning: 1")
    if g.special_style:
        lines.append("SpecialStyle: 1")
    lines.append(f"WidescreenStoryboard: {fmt_bool(g.widescreen_storyboard)}")
    return lines


def _editor(graph: BeatmapGraph) -> list[str]:
    e = graph.editor
    lines = ["[Editor]"]
    if e.bookmarks:
        lines.append("Bookmarks: " + ",".join(str(b) for b in e.bookmarks))
    lines.extend([
        f"DistanceSpacing: {fmt_number(e.distance_spacing)}",
        f"BeatDivisor: {e.beat_divisor}",
        f"GridSize: {e.grid_size}",
        f"TimelineZoom: {fmt_number(e.timeline_zoom)}",
    ])
    return lines


def _metadata(graph: BeatmapGraph) -> list[str]:
    m = graph.metadata
    return [
        "[Metadata]",
        f"Title:{m.title}",
        f"TitleUnicode:{m.title_unicode}",
        f"Artist:{m.artist}",
        f"ArtistUnicode:{m.artist_unicode}",
        f"Creator:{m.creator}",
        f"Version:{m.version}",
        f"Source:{m.source}",
        f"Tags:{m.tags}",
        f"BeatmapID:{m.beatmap_id}",
        f"BeatmapSetID:{m.beatmap_set_id}",
    ]


def _difficulty(graph: BeatmapGraph) -> list[str]:
    d = graph.difficulty
    return [
        "[Difficulty]",
        f"HPDrainRate:{fmt_number(d.hp_drain_rate)}",
        f"CircleSize:{fmt_number(d.circle_size)}",
        f"OverallDifficulty:{fmt_number(d.overall_difficulty)}",
        f"ApproachRate:{fmt_number(d.approach_rate)}",
        f"SliderMultiplier:{fmt_number(d.slider_multiplier)}",
        f"SliderTickRate:{fmt_number(d.slider_tick_rate)}",
    ]


def _events(graph: BeatmapGraph, storyboard: StoryboardGraph | None) -> list[str]:
    lines = ["[Events]", "//Background and Video events"]
    if graph.background_file:
        lines.append(f'0,0,"{graph.background_file}",0,0')
    lines.append("//Break Periods")
    for br in graph.breaks:
        lines.append(f"2,{fmt_number(br.start_time)},{fmt_number(br.end_time)}")
    lines.extend(storyboard_event_lines(storyboard.elements if storyboard else []))
    return lines


def _timing_points(graph: BeatmapGraph) -> list[str]:
    lines = ["[TimingPoints]"]
    for tp in graph.timing_points:
        lines.append(",".join([
            fmt_number(tp.time),
            fmt_number(tp.beat_length),
            str(tp.meter),
            str(int(tp.sample_set)),
            str(tp.sample_index),
            str(tp.volume),
            fmt_bool(tp.uninherited),
            str(tp.effects),
        ]))
    return lines


def _colours(graph: BeatmapGraph) -> list[str]:
    if not graph.combo_colours and not graph.custom_colours:
        return []
    lines = ["[Colours]"]
    for i, c in enumerate(graph.combo_colours, start=1):
        lines.append(f"Combo{i} : {c.red},{c.green},{c.blue}")
    for c in graph.custom_colours:
        lines.append(f"{c.name} : {c.red},{c.green},{c.blue}")
    return lines


def _hit_sample(s: SampleOverride) -> str:
    return f"{s.normal_set}:{s.addition_set}:{s.index}:{s.volume}:{s.filename}"


def _hit_object_line(ho: HitObjectNode) -> str:
    type_bits = _TYPE_BITS[ho.object_type]
    if ho.new_combo:
        type_bits |= _NEW_COMBO
    type_bits |= (ho.combo_skip & 0b111) << 4

    head = ",".join([
        fmt_number(ho.x), fmt_number(ho.y), fmt_number(ho.time), str(type_bits), str(ho.hit_sound.to_bitmask()),
    ])
    sample = _hit_sample(ho.sample_override)

    if ho.object_type == "slider":
        path = ho.path
        curve = "|".join(
            [path.curve_type]
            + [f"{fmt_number(cp.x)}:{fmt_number(cp.y)}" for cp in path.control_points]
        )
        edge_sounds = "|".join(str(e.hit_sound.to_bitmask()) for e in ho.edges)
        edge_sets = "|".join(f"{e.normal_set}:{e.addition_set}" for e in ho.edges)
        return (
            f"{head},{curve},{ho.repeat_count},{fmt_number(path.expected_length or 0)},"
            f"{edge_sounds},{edge_sets},{sample}"
        )
    end_time = fmt_number(ho.end_time if ho.end_time is not None else ho.time)
    if ho.object_type == "spinner":
        return f"{head},{end_time},{sample}"
    if ho.object_type == "hold":
        return f"{head},{end_time}:{sample}"
    return f"{head},{sample}"


def encode_beatmap(graph: BeatmapGraph, storyboard: StoryboardGraph | None = None) -> str:
    """Render *graph* as .osu text.

    *storyboard* is an optional storyboard embedded in this difficulty's
    [Events] section.
    """
    sections = [
        _general(graph),
        _editor(graph),
        _metadata(graph),
        _difficulty(graph),
        _events(graph, storyboard),
        _timing_points(graph),
        _colours(graph),
        ["[HitObjects]"] + [_hit_object_line(ho) for ho in graph.hit_objects],
    ]
    lines = [f"osu file format v{graph.format_version}", ""]
    for section in sections:
        if section:
            lines.extend(section)
            lines.append("")
    return join_lines(lines[:-1])
