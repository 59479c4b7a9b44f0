"""Assemble one difficulty from timing, hit-object and slider rows.

The output graph is ordered and fully resolved: every hit object carries its
effective sample settings and slider velocity, so encoders need no lookups.
"""

import logging
import re
from bisect import bisect_right

from osu_reconstructor.assembly.indexer import Indices
from osu_reconstructor.assembly.samples import (
    parse_edges,
    parse_sample_set,
    resolve_samples,
    resolve_sample_set,
    sample_override,
)
from osu_reconstructor.errors import ControlPointGap, SkippedObject, UnknownBeatmapError
from osu_reconstructor.schemas.graph import (
    BeatmapGraph,
    BreakPeriod,
    Colour,
    ControlPoint,
    DifficultySettings,
    EditorSettings,
    GeneralSettings,
    HitObjectNode,
    HitSoundFlags,
    MetadataInfo,
    ResolvedTimingPoint,
    SampleSet,
    SliderPath,
)
from osu_reconstructor.schemas.rows import BeatmapRow, HitObjectRow, TimingPointRow

logger = logging.getLogger(__name__)

HIT_OBJECT_TYPES = ("circle", "slider", "spinner", "hold")

# Characters that cannot appear in file names on common filesystems.
_ILLEGAL_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def sanitize_file_name(name: str) -> str:
    return _ILLEGAL_FILENAME_CHARS.sub("", name).strip()


def beatmap_file_name(row: BeatmapRow, extension: str = ".osu") -> str:
    """File name of a difficulty: the stored name, else the osu! convention."""
    if row.osu_file:
        stem = row.osu_file.rsplit(".", 1)[0] if "." in row.osu_file else row.osu_file
    else:
        stem = f"{row.artist} - {row.title} ({row.creator}) [{row.version}]"
    return sanitize_file_name(stem + extension) or f"{row.id}{extension}"


def storyboard_file_name(row: BeatmapRow, extension: str = ".osb") -> str:
    """Conventional folder storyboard name: ``Artist - Title (Creator).osb``."""
    stem = f"{row.artist} - {row.title} ({row.creator})"
    return sanitize_file_name(stem + extension) or f"{row.folder_id}{extension}"


# --- Timing ------------------------------------------------------------------


def _tempo_step(
    base_beat_length: float | None, row: TimingPointRow,
) -> tuple[float | None, ResolvedTimingPoint]:
    """Advance the tempo fold by one timing point.

    Uninherited points replace the base tempo; inherited points keep the base
    of the nearest preceding uninherited point and derive their velocity
    multiplier from their own negative beat length.
    """
    if row.uninherited:
        if row.beat_length > 0:
            base_beat_length = row.beat_length
        slider_velocity = 1.0
    elif row.beat_length < 0:
        slider_velocity = -100.0 / row.beat_length
    else:
        slider_velocity = 1.0

    point = ResolvedTimingPoint(
        time=row.time,
        beat_length=row.beat_length,
        meter=row.meter,
        sample_set=parse_sample_set(row.sample_set),
        sample_index=row.sample_index,
        volume=row.volume,
        uninherited=row.uninherited,
        effects=row.effects,
        base_beat_length=base_beat_length,
        slider_velocity=slider_velocity,
    )
    return base_beat_length, point


def resolve_timing_points(rows: tuple[TimingPointRow, ...] | list[TimingPointRow]) -> list[ResolvedTimingPoint]:
    """Fold time-ordered timing rows into resolved points."""
    resolved: list[ResolvedTimingPoint] = []
    base: float | None = None
    for row in rows:
        base, point = _tempo_step(base, row)
        resolved.append(point)
    return resolved


class _TimingLookup:
    """Find the timing state governing a given time."""

    def __init__(self, rows: tuple[TimingPointRow, ...], resolved: list[ResolvedTimingPoint]):
        self._rows = rows
        self._resolved = resolved
        self._times = [r.time for r in rows]
        uninherited = [r for r in rows if r.uninherited and r.beat_length > 0]
        self._tempo_times = [r.time for r in uninherited]
        self._tempos = [r.beat_length for r in uninherited]

    def point_at(self, time: float) -> int | None:
        """Index of the last point at or before *time*, else the first point."""
        if not self._rows:
            return None
        i = bisect_right(self._times, time) - 1
        return max(i, 0)

    def row_at(self, time: float) -> TimingPointRow | None:
        i = self.point_at(time)
        return None if i is None else self._rows[i]

    def slider_velocity_at(self, time: float) -> float:
        i = self.point_at(time)
        return 1.0 if i is None else self._resolved[i].slider_velocity

    def beat_length_at(self, time: float) -> float | None:
        if not self._tempos:
            return None
        i = bisect_right(self._tempo_times, time) - 1
        return self._tempos[max(i, 0)]


# --- Hit objects -------------------------------------------------------------


def _build_slider(
    row: HitObjectRow, indices: Indices, beatmap_id: int, issues: list,
) -> dict | None:
    slider_data = indices.slider_data.get(row.id)
    if slider_data is None:
        issues.append(SkippedObject(beatmap_id, row.id, "missing slider data"))
        return None

    points = indices.control_points.get(row.id, ())
    if not points:
        issues.append(SkippedObject(beatmap_id, row.id, "slider has no control points"))
        return None

    sequences = tuple(cp.sequence for cp in points)
    if sequences != tuple(range(len(points))):
        issues.append(ControlPointGap(beatmap_id, row.id, sequences))

    repeat_count = max(slider_data.repeat_count, 1)
    try:
        edges = parse_edges(slider_data.edge_sounds, slider_data.edge_sets, repeat_count + 1)
    except ValueError as e:
        issues.append(SkippedObject(beatmap_id, row.id, f"malformed edge samples: {e}"))
        return None
    return {
        "path": SliderPath(
            curve_type=slider_data.curve_type or "B",
            control_points=tuple(ControlPoint(cp.x, cp.y) for cp in points),
            expected_length=slider_data.length,
        ),
        "repeat_count": repeat_count,
        "edges": edges,
    }


def _build_hit_object(
    row: HitObjectRow,
    timing: _TimingLookup,
    indices: Indices,
    beatmap: BeatmapRow,
    default_set: SampleSet,
    issues: list,
) -> HitObjectNode | None:
    if row.object_type not in HIT_OBJECT_TYPES:
        issues.append(SkippedObject(beatmap.id, row.id, f"unknown object type {row.object_type!r}"))
        return None

    slider_velocity = timing.slider_velocity_at(row.time)
    beat_length = timing.beat_length_at(row.time)
    fields = {}

    if row.object_type == "slider":
        fields = _build_slider(row, indices, beatmap.id, issues)
        if fields is None:
            return None
        if beat_length:
            fields["velocity"] = 100.0 * beatmap.slider_multiplier * slider_velocity / beat_length
    elif row.object_type in ("spinner", "hold"):
        fields["end_time"] = row.end_time

    return HitObjectNode(
        id=row.id,
        object_type=row.object_type,
        time=row.time,
        x=row.x,
        y=row.y,
        new_combo=row.new_combo,
        combo_skip=row.combo_skip,
        hit_sound=HitSoundFlags.from_bitmask(row.hit_sound),
        sample_override=sample_override(row),
        samples=resolve_samples(row, timing.row_at(row.time), default_set),
        beat_length=beat_length,
        slider_velocity=slider_velocity,
        **fields,
    )


# --- Public API --------------------------------------------------------------


def _split_bookmarks(text: str) -> list[int]:
    bookmarks = []
    for part in text.split(","):
        part = part.strip()
        if part.lstrip("-").isdigit():
            bookmarks.append(int(part))
    return bookmarks


def assemble_beatmap(beatmap_id: int, indices: Indices, extension: str = ".osu") -> BeatmapGraph:
    """Join one beatmap's rows into an ordered, fully resolved graph.

    Hit objects that cannot be assembled are dropped and listed in
    ``graph.skipped``; the remaining objects still assemble.
    """
    row = indices.beatmaps.get(beatmap_id)
    if row is None:
        raise UnknownBeatmapError(beatmap_id)

    default_set = resolve_sample_set(None, None, row.sample_set)
    graph = BeatmapGraph(
        beatmap_id=row.id,
        folder_id=row.folder_id,
        file_name=beatmap_file_name(row, extension),
        format_version=row.format_version,
        general=GeneralSettings(
            audio_file=row.audio_file,
            audio_lead_in=row.audio_lead_in,
            preview_time=row.preview_time,
            countdown=row.countdown,
            sample_set=default_set,
            stack_leniency=row.stack_leniency,
            mode=row.mode,
            letterbox_in_breaks=row.letterbox_in_breaks,
            widescreen_storyboard=row.widescreen_storyboard,
            epilepsy_warning=row.epilepsy_warning,
            special_style=row.special_style,
        ),
        editor=EditorSettings(
            bookmarks=_split_bookmarks(row.bookmarks),
            distance_spacing=row.distance_spacing,
            beat_divisor=row.beat_divisor,
            grid_size=row.grid_size,
            timeline_zoom=row.timeline_zoom,
        ),
        metadata=MetadataInfo(
            title=row.title,
            title_unicode=row.title_unicode,
            artist=row.artist,
            artist_unicode=row.artist_unicode,
            creator=row.creator,
            version=row.version,
            source=row.source,
            tags=row.tags,
            beatmap_id=row.beatmap_id,
            beatmap_set_id=row.beatmap_set_id,
        ),
        difficulty=DifficultySettings(
            hp_drain_rate=row.hp_drain_rate,
            circle_size=row.circle_size,
            overall_difficulty=row.overall_difficulty,
            approach_rate=row.approach_rate,
            slider_multiplier=row.slider_multiplier,
            slider_tick_rate=row.slider_tick_rate,
        ),
        background_file=row.background_file,
    )

    timing_rows = indices.timing_points.get(beatmap_id, ())
    graph.timing_points = resolve_timing_points(timing_rows)
    lookup = _TimingLookup(timing_rows, graph.timing_points)

    for ho in indices.hit_objects.get(beatmap_id, ()):
        node = _build_hit_object(ho, lookup, indices, row, default_set, graph.skipped)
        if node is not None:
            graph.hit_objects.append(node)

    graph.breaks = [
        BreakPeriod(b.start_time, b.end_time) for b in indices.breaks.get(beatmap_id, ())
    ]
    for c in indices.combo_colours.get(beatmap_id, ()):
        if c.kind == "custom":
            if c.name:
                graph.custom_colours.append(Colour(c.red, c.green, c.blue, c.name))
        else:
            graph.combo_colours.append(Colour(c.red, c.green, c.blue))

    if graph.skipped:
        logger.warning(
            "Beatmap %s: %d issue(s) while assembling %d hit objects",
            beatmap_id, len(graph.skipped), len(graph.hit_objects),
        )
    return graph
