"""Build read-only lookup and ordering structures over a Dataset.

Every multi-map value is pre-sorted with an explicit key and a stable sort,
so rows sharing an ordering key keep their original table order. Rows whose
own foreign key dangles are recorded as orphans and left out.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from osu_reconstructor.errors import OrphanRow
from osu_reconstructor.schemas.graph import StoryboardOwner
from osu_reconstructor.schemas.rows import (
    BeatmapRow,
    BreakRow,
    ComboColourRow,
    Dataset,
    HitObjectRow,
    SliderControlPointRow,
    SliderDataRow,
    StoryboardCommandRow,
    StoryboardElementRow,
    TimingPointRow,
)

logger = logging.getLogger(__name__)

# Render order of storyboard layers; unknown layers sort last.
LAYER_ORDER = {
    "Background": 0,
    "Fail": 1,
    "Pass": 2,
    "Foreground": 3,
    "Overlay": 4,
}


def layer_rank(layer: str) -> int:
    return LAYER_ORDER.get(layer, len(LAYER_ORDER))


@dataclass(frozen=True)
class Indices:
    """Lookup tables over one Dataset. Treat every mapping as read-only."""

    beatmaps: dict[int, BeatmapRow] = field(default_factory=dict)
    folder_beatmaps: dict[str, tuple[int, ...]] = field(default_factory=dict)
    hit_objects: dict[int, tuple[HitObjectRow, ...]] = field(default_factory=dict)
    timing_points: dict[int, tuple[TimingPointRow, ...]] = field(default_factory=dict)
    slider_data: dict[int, SliderDataRow] = field(default_factory=dict)
    control_points: dict[int, tuple[SliderControlPointRow, ...]] = field(default_factory=dict)
    elements: dict[StoryboardOwner, tuple[StoryboardElementRow, ...]] = field(default_factory=dict)
    top_commands: dict[int, tuple[StoryboardCommandRow, ...]] = field(default_factory=dict)
    child_commands: dict[int, tuple[StoryboardCommandRow, ...]] = field(default_factory=dict)
    element_commands: dict[int, frozenset[int]] = field(default_factory=dict)
    commands: dict[int, StoryboardCommandRow] = field(default_factory=dict)
    breaks: dict[int, tuple[BreakRow, ...]] = field(default_factory=dict)
    combo_colours: dict[int, tuple[ComboColourRow, ...]] = field(default_factory=dict)
    orphans: tuple[OrphanRow, ...] = ()

    def folder_ids(self) -> list[str]:
        """All folder ids that own at least one beatmap, sorted."""
        return sorted(self.folder_beatmaps)

    def orphans_for(self, folder_id: str) -> list[OrphanRow]:
        return [o for o in self.orphans if o.folder_id == folder_id]


def _group(rows, key) -> dict:
    grouped = defaultdict(list)
    for row in rows:
        grouped[key(row)].append(row)
    return grouped


def _sorted_groups(grouped: dict, sort_key) -> dict:
    # sorted() is stable: equal keys keep table order
    return {k: tuple(sorted(v, key=sort_key)) for k, v in grouped.items()}


def index_dataset(dataset: Dataset) -> Indices:
    """Index *dataset* by foreign key. Never mutates the input."""
    orphans: list[OrphanRow] = []

    def orphan(table: str, key: str, value: object, folder_id: str) -> None:
        orphans.append(OrphanRow(table=table, key=key, value=value, folder_id=folder_id))

    # --- Beatmaps ---
    beatmaps: dict[int, BeatmapRow] = {}
    folder_beatmaps: dict[str, list[int]] = defaultdict(list)
    for bm in dataset.beatmaps:
        if bm.id in beatmaps:
            orphan("beatmaps", "id", bm.id, bm.folder_id)
            continue
        beatmaps[bm.id] = bm
        folder_beatmaps[bm.folder_id].append(bm.id)

    def owned_by_beatmap(rows, table: str) -> list:
        kept = []
        for row in rows:
            if row.beatmap_id in beatmaps:
                kept.append(row)
            else:
                orphan(table, "beatmap_id", row.beatmap_id, row.folder_id)
        return kept

    # --- Hit objects and timing ---
    hit_object_rows = owned_by_beatmap(dataset.hit_objects, "hit_objects")
    hit_objects = _sorted_groups(
        _group(hit_object_rows, lambda r: r.beatmap_id),
        lambda r: (r.time, r.index),
    )
    known_hit_objects = {ho.id for ho in hit_object_rows}

    timing_points = _sorted_groups(
        _group(owned_by_beatmap(dataset.timing_points, "timing_points"), lambda r: r.beatmap_id),
        lambda r: (r.time, r.index),
    )
    breaks = _sorted_groups(
        _group(owned_by_beatmap(dataset.breaks, "breaks"), lambda r: r.beatmap_id),
        lambda r: r.start_time,
    )
    combo_colours = _sorted_groups(
        _group(owned_by_beatmap(dataset.combo_colours, "combo_colours"), lambda r: r.beatmap_id),
        lambda r: r.index,
    )

    # --- Slider joins ---
    slider_data: dict[int, SliderDataRow] = {}
    for sd in dataset.slider_data:
        if sd.hit_object_id not in known_hit_objects:
            orphan("slider_data", "hit_object_id", sd.hit_object_id, sd.folder_id)
        elif sd.hit_object_id in slider_data:
            orphan("slider_data", "hit_object_id (duplicate)", sd.hit_object_id, sd.folder_id)
        else:
            slider_data[sd.hit_object_id] = sd

    control_point_rows = []
    for cp in dataset.slider_control_points:
        if cp.hit_object_id in known_hit_objects:
            control_point_rows.append(cp)
        else:
            orphan("slider_control_points", "hit_object_id", cp.hit_object_id, cp.folder_id)
    control_points = _sorted_groups(
        _group(control_point_rows, lambda r: r.hit_object_id),
        lambda r: r.sequence,
    )

    # --- Storyboard ---
    element_rows = []
    for el in dataset.storyboard_elements:
        if el.beatmap_id is not None and el.beatmap_id not in beatmaps:
            orphan("storyboard_elements", "beatmap_id", el.beatmap_id, el.folder_id)
        else:
            element_rows.append(el)
    elements = _sorted_groups(
        _group(element_rows, lambda r: StoryboardOwner(r.folder_id, r.beatmap_id)),
        lambda r: (layer_rank(r.layer), r.index),
    )
    known_elements = {el.id for el in element_rows}

    all_commands = {c.id: c for c in dataset.storyboard_commands}
    commands: dict[int, StoryboardCommandRow] = {}
    for cmd in dataset.storyboard_commands:
        if cmd.element_id not in known_elements:
            orphan("storyboard_commands", "element_id", cmd.element_id, cmd.folder_id)
        elif cmd.parent_id is not None and cmd.parent_id not in all_commands:
            orphan("storyboard_commands", "parent_id", cmd.parent_id, cmd.folder_id)
        else:
            commands[cmd.id] = cmd

    def command_order(r: StoryboardCommandRow) -> tuple[float, int]:
        return (r.start_time, r.index)

    top_commands = _sorted_groups(
        _group((c for c in commands.values() if c.parent_id is None), lambda r: r.element_id),
        command_order,
    )
    child_commands = _sorted_groups(
        _group((c for c in commands.values() if c.parent_id is not None), lambda r: r.parent_id),
        command_order,
    )
    element_commands = {
        element_id: frozenset(c.id for c in rows)
        for element_id, rows in _group(commands.values(), lambda r: r.element_id).items()
    }

    if orphans:
        logger.warning("Indexed dataset with %d orphaned rows", len(orphans))
    logger.debug(
        "Indexed %d folders, %d beatmaps, %d hit objects, %d storyboard commands",
        len(folder_beatmaps), len(beatmaps), len(hit_object_rows), len(commands),
    )

    return Indices(
        beatmaps=beatmaps,
        folder_beatmaps={k: tuple(v) for k, v in folder_beatmaps.items()},
        hit_objects=hit_objects,
        timing_points=timing_points,
        slider_data=slider_data,
        control_points=control_points,
        elements=elements,
        top_commands=top_commands,
        child_commands=child_commands,
        element_commands=element_commands,
        commands=commands,
        breaks=breaks,
        combo_colours=combo_colours,
        orphans=tuple(orphans),
    )
