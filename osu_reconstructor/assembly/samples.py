"""Resolve effective hit-sound sample settings.

Sample settings follow a precedence chain: a value written on the hit
object wins, then the governing timing point, then the beatmap default.
"""

from osu_reconstructor.schemas.graph import (
    EdgeSamples,
    HitSoundFlags,
    ResolvedSamples,
    SampleOverride,
    SampleSet,
)
from osu_reconstructor.schemas.rows import HitObjectRow, TimingPointRow

DEFAULT_SAMPLE_SET = SampleSet.NORMAL
DEFAULT_VOLUME = 100

_SAMPLE_SET_NAMES = {
    "normal": SampleSet.NORMAL,
    "soft": SampleSet.SOFT,
    "drum": SampleSet.DRUM,
}


def parse_sample_set(value: str | int | None) -> SampleSet:
    """Convert a stored sample set (name or number) to a SampleSet."""
    if value is None:
        return SampleSet.AUTO
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            value = int(text)
        else:
            return _SAMPLE_SET_NAMES.get(text.lower(), SampleSet.AUTO)
    try:
        return SampleSet(value)
    except ValueError:
        return SampleSet.AUTO


def resolve_sample_set(
    object_set: SampleSet | int | None,
    timing_set: SampleSet | int | None,
    default_set: SampleSet | int | None,
) -> SampleSet:
    """Return the first specified sample set of object, timing point, default.

    Falls back to ``Normal`` when none of the three is specified.
    """
    for candidate in (object_set, timing_set, default_set):
        resolved = parse_sample_set(candidate)
        if resolved is not SampleSet.AUTO:
            return resolved
    return DEFAULT_SAMPLE_SET


def _first_specified(*values: int | None, fallback: int) -> int:
    for value in values:
        if value:
            return value
    return fallback


def resolve_samples(
    row: HitObjectRow,
    timing: TimingPointRow | None,
    default_set: SampleSet,
) -> ResolvedSamples:
    """Resolve every hitSample field of *row* against its timing point."""
    normal = resolve_sample_set(
        row.sample_set, timing.sample_set if timing else None, default_set,
    )
    # Addition set defaults to whatever the normal set resolved to.
    addition = resolve_sample_set(row.addition_set, None, normal)
    index = _first_specified(row.sample_index, timing.sample_index if timing else None, fallback=0)
    volume = _first_specified(
        row.sample_volume, timing.volume if timing else None, fallback=DEFAULT_VOLUME,
    )
    return ResolvedSamples(
        normal_set=normal,
        addition_set=addition,
        index=index,
        volume=volume,
        filename=row.sample_filename or "",
    )


def sample_override(row: HitObjectRow) -> SampleOverride:
    """The hitSample values exactly as stored on the row."""
    return SampleOverride(
        normal_set=row.sample_set or 0,
        addition_set=row.addition_set or 0,
        index=row.sample_index or 0,
        volume=row.sample_volume or 0,
        filename=row.sample_filename or "",
    )


def parse_edges(edge_sounds: str, edge_sets: str, edge_count: int) -> tuple[EdgeSamples, ...]:
    """Decode per-edge slider sounds ("2|0") and sets ("1:0|0:0").

    Missing entries default to no additions and automatic sample sets.
    """
    sounds = [s for s in edge_sounds.split("|") if s.strip()] if edge_sounds else []
    sets = [s for s in edge_sets.split("|") if s.strip()] if edge_sets else []
    count = max(edge_count, len(sounds), len(sets))

    edges: list[EdgeSamples] = []
    for i in range(count):
        mask = int(sounds[i]) if i < len(sounds) else 0
        normal_set, addition_set = 0, 0
        if i < len(sets):
            parts = sets[i].split(":")
            normal_set = int(parts[0]) if parts[0] else 0
            addition_set = int(parts[1]) if len(parts) > 1 and parts[1] else 0
        edges.append(EdgeSamples(
            hit_sound=HitSoundFlags.from_bitmask(mask),
            normal_set=normal_set,
            addition_set=addition_set,
        ))
    return tuple(edges)
