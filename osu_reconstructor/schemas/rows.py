"""Row types for the normalized osu! dataset.

Each dataclass mirrors one Parquet table produced by the dataset builder.
Rows are treated as already validated: the reconstruction engine never
re-parses them, it only joins and orders them.

Every row carries ``folder_id`` so any table can be filtered by folder at
load time and so dangling rows can be attributed to a folder in reports.
"""

from dataclasses import dataclass, field


@dataclass
class BeatmapRow:
    """One difficulty (one ``.osu`` file) inside a beatmap folder."""

    id: int
    folder_id: str
    osu_file: str = ""  # original file name; empty = derive from metadata
    format_version: int = 14
    # [General]
    audio_file: str = ""
    audio_lead_in: int = 0
    preview_time: int = -1
    countdown: int = 1
    sample_set: str = "Normal"  # default sample bank: Normal, Soft, Drum
    stack_leniency: float = 0.7
    mode: int = 0  # 0=osu!, 1=taiko, 2=catch, 3=mania
    letterbox_in_breaks: bool = False
    widescreen_storyboard: bool = False
    epilepsy_warning: bool = False
    special_style: bool = False
    # [Editor]
    bookmarks: str = ""  # comma separated millisecond offsets
    distance_spacing: float = 1.0
    beat_divisor: int = 4
    grid_size: int = 4
    timeline_zoom: float = 1.0
    # [Metadata]
    title: str = ""
    title_unicode: str = ""
    artist: str = ""
    artist_unicode: str = ""
    creator: str = ""
    version: str = ""
    source: str = ""
    tags: str = ""
    beatmap_id: int = 0
    beatmap_set_id: int = -1
    # [Difficulty]
    hp_drain_rate: float = 5.0
    circle_size: float = 5.0
    overall_difficulty: float = 5.0
    approach_rate: float = 5.0
    slider_multiplier: float = 1.4
    slider_tick_rate: float = 1.0
    # [Events]
    background_file: str = ""


@dataclass
class TimingPointRow:
    """A tempo (uninherited) or velocity/sample (inherited) marker."""

    beatmap_id: int
    folder_id: str
    time: float
    beat_length: float  # ms per beat; negative for inherited points
    index: int = 0
    meter: int = 4
    sample_set: int = 0  # 0=beatmap default, 1=Normal, 2=Soft, 3=Drum
    sample_index: int = 0
    volume: int = 100
    uninherited: bool = True
    effects: int = 0  # bit 0 = kiai, bit 3 = omit first barline


@dataclass
class HitObjectRow:
    """A circle, slider, spinner or mania hold note."""

    id: int
    beatmap_id: int
    folder_id: str
    time: float
    object_type: str  # "circle", "slider", "spinner", "hold"
    index: int = 0
    x: int = 256
    y: int = 192
    new_combo: bool = False
    combo_skip: int = 0  # extra combo colours to skip (type bits 4-6)
    hit_sound: int = 0  # 1=normal, 2=whistle, 4=finish, 8=clap
    end_time: float | None = None  # spinners and holds
    # hitSample overrides; 0 / None mean "not specified on the object"
    sample_set: int = 0
    addition_set: int = 0
    sample_index: int = 0
    sample_volume: int = 0
    sample_filename: str = ""


@dataclass
class SliderDataRow:
    """Path metadata for one slider hit object."""

    hit_object_id: int
    folder_id: str
    curve_type: str = "B"  # B=bezier, L=linear, P=perfect circle, C=catmull
    repeat_count: int = 1
    length: float | None = None  # expected pixel length
    edge_sounds: str = ""  # "2|0|0", one hit-sound bitmask per edge
    edge_sets: str = ""  # "0:0|1:2", normalSet:additionSet per edge


@dataclass
class SliderControlPointRow:
    """One anchor of a slider curve, excluding the slider head."""

    hit_object_id: int
    folder_id: str
    sequence: int
    x: float
    y: float


@dataclass
class StoryboardElementRow:
    """A sprite, animation or sound sample placed on a storyboard layer."""

    id: int
    folder_id: str
    element_type: str  # "sprite", "animation", "sample"
    path: str
    beatmap_id: int | None = None  # None = folder-level .osb
    source_file: str = ""
    index: int = 0
    layer: str = "Background"
    origin: str = "Centre"
    x: float = 320.0
    y: float = 240.0
    frame_count: int | None = None
    frame_delay: float | None = None
    loop_type: str | None = None  # "LoopForever", "LoopOnce"
    time: float | None = None  # samples only
    volume: int | None = None  # samples only


@dataclass
class StoryboardCommandRow:
    """One storyboard command; loop/trigger commands parent other commands."""

    id: int
    element_id: int
    folder_id: str
    command_type: str
    start_time: float
    parent_id: int | None = None
    index: int = 0
    easing: int = 0
    end_time: float | None = None  # None = omitted in the source script
    start_value: str = ""
    end_value: str = ""
    loop_count: int | None = None  # loop only
    trigger_name: str | None = None  # trigger only
    group_number: int | None = None  # trigger only


@dataclass
class BreakRow:
    """A break period of one difficulty."""

    beatmap_id: int
    folder_id: str
    start_time: float
    end_time: float


@dataclass
class ComboColourRow:
    """A combo colour or named custom colour of one difficulty."""

    beatmap_id: int
    folder_id: str
    red: int
    green: int
    blue: int
    index: int = 0
    kind: str = "combo"  # "combo" or "custom"
    name: str | None = None  # custom colours, e.g. "SliderTrackOverride"


@dataclass
class Dataset:
    """All dataset tables, fully loaded in memory and treated as read-only."""

    beatmaps: list[BeatmapRow] = field(default_factory=list)
    hit_objects: list[HitObjectRow] = field(default_factory=list)
    timing_points: list[TimingPointRow] = field(default_factory=list)
    storyboard_elements: list[StoryboardElementRow] = field(default_factory=list)
    storyboard_commands: list[StoryboardCommandRow] = field(default_factory=list)
    slider_control_points: list[SliderControlPointRow] = field(default_factory=list)
    slider_data: list[SliderDataRow] = field(default_factory=list)
    breaks: list[BreakRow] = field(default_factory=list)
    combo_colours: list[ComboColourRow] = field(default_factory=list)


# Table name -> row type. Order is the load order used by the reader.
TABLES: dict[str, type] = {
    "beatmaps": BeatmapRow,
    "hit_objects": HitObjectRow,
    "timing_points": TimingPointRow,
    "storyboard_elements": StoryboardElementRow,
    "storyboard_commands": StoryboardCommandRow,
    "slider_control_points": SliderControlPointRow,
    "slider_data": SliderDataRow,
    "breaks": BreakRow,
    "combo_colours": ComboColourRow,
}

OPTIONAL_TABLES: frozenset[str] = frozenset({"breaks", "combo_colours"})
