"""Assembled object graphs handed to the format encoders.

A graph is the ordered, nested, fully resolved form of one difficulty or one
storyboard. Encoders read these and never look anything up in the dataset.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import NamedTuple

from osu_reconstructor.errors import Issue


class SampleSet(IntEnum):
    AUTO = 0  # defer to the next level of the precedence chain
    NORMAL = 1
    SOFT = 2
    DRUM = 3


@dataclass(frozen=True)
class HitSoundFlags:
    """Additive hit sounds decoded from the hit-sound bitmask."""

    normal: bool = False
    whistle: bool = False
    finish: bool = False
    clap: bool = False

    @classmethod
    def from_bitmask(cls, mask: int) -> "HitSoundFlags":
        return cls(
            normal=bool(mask & 1),
            whistle=bool(mask & 2),
            finish=bool(mask & 4),
            clap=bool(mask & 8),
        )

    def to_bitmask(self) -> int:
        return (
            (1 if self.normal else 0)
            | (2 if self.whistle else 0)
            | (4 if self.finish else 0)
            | (8 if self.clap else 0)
        )


@dataclass(frozen=True)
class SampleOverride:
    """The hitSample values as written on the object itself (0/"" = unset)."""

    normal_set: int = 0
    addition_set: int = 0
    index: int = 0
    volume: int = 0
    filename: str = ""


@dataclass(frozen=True)
class ResolvedSamples:
    """Effective sample settings after object > timing point > default."""

    normal_set: SampleSet
    addition_set: SampleSet
    index: int
    volume: int
    filename: str = ""


# --- Beatmap graph -----------------------------------------------------------


@dataclass
class GeneralSettings:
    audio_file: str = ""
    audio_lead_in: int = 0
    preview_time: int = -1
    countdown: int = 1
    sample_set: SampleSet = SampleSet.NORMAL
    stack_leniency: float = 0.7
    mode: int = 0
    letterbox_in_breaks: bool = False
    widescreen_storyboard: bool = False
    epilepsy_warning: bool = False
    special_style: bool = False


@dataclass
class EditorSettings:
    bookmarks: list[int] = field(default_factory=list)
    distance_spacing: float = 1.0
    beat_divisor: int = 4
    grid_size: int = 4
    timeline_zoom: float = 1.0


@dataclass
class MetadataInfo:
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


@dataclass
class DifficultySettings:
    hp_drain_rate: float = 5.0
    circle_size: float = 5.0
    overall_difficulty: float = 5.0
    approach_rate: float = 5.0
    slider_multiplier: float = 1.4
    slider_tick_rate: float = 1.0


@dataclass(frozen=True)
class ResolvedTimingPoint:
    """A timing point with its governing tempo carried forward."""

    time: float
    beat_length: float  # raw value as stored
    meter: int
    sample_set: SampleSet
    sample_index: int
    volume: int
    uninherited: bool
    effects: int
    base_beat_length: float | None  # tempo of the nearest preceding uninherited point
    slider_velocity: float  # 1.0 for uninherited points

    @property
    def bpm(self) -> float | None:
        if self.base_beat_length is None or self.base_beat_length <= 0:
            return None
        return 60000.0 / self.base_beat_length

    @property
    def kiai(self) -> bool:
        return bool(self.effects & 1)

    @property
    def omit_first_barline(self) -> bool:
        return bool(self.effects & 8)


@dataclass(frozen=True)
class ControlPoint:
    x: float
    y: float


@dataclass(frozen=True)
class SliderPath:
    curve_type: str
    control_points: tuple[ControlPoint, ...]
    expected_length: float | None


@dataclass(frozen=True)
class EdgeSamples:
    """Hit sounds and sample sets of one slider edge (head, repeats, tail)."""

    hit_sound: HitSoundFlags
    normal_set: int = 0
    addition_set: int = 0


@dataclass(frozen=True)
class HitObjectNode:
    """One hit object with every sample and velocity value resolved."""

    id: int
    object_type: str
    time: float
    x: int
    y: int
    new_combo: bool
    combo_skip: int
    hit_sound: HitSoundFlags
    sample_override: SampleOverride
    samples: ResolvedSamples
    beat_length: float | None  # governing uninherited beat length
    slider_velocity: float
    end_time: float | None = None  # spinners and holds
    path: SliderPath | None = None  # sliders only
    repeat_count: int = 1
    velocity: float | None = None  # sliders: osu! pixels per millisecond
    edges: tuple[EdgeSamples, ...] = ()  # sliders: head, each repeat, tail


@dataclass(frozen=True)
class BreakPeriod:
    start_time: float
    end_time: float


@dataclass(frozen=True)
class Colour:
    red: int
    green: int
    blue: int
    name: str | None = None  # None for combo colours


@dataclass
class BeatmapGraph:
    """One fully assembled difficulty."""

    beatmap_id: int
    folder_id: str
    file_name: str
    format_version: int
    general: GeneralSettings
    editor: EditorSettings
    metadata: MetadataInfo
    difficulty: DifficultySettings
    background_file: str = ""
    timing_points: list[ResolvedTimingPoint] = field(default_factory=list)  # sorted by time
    hit_objects: list[HitObjectNode] = field(default_factory=list)  # sorted by time
    breaks: list[BreakPeriod] = field(default_factory=list)
    combo_colours: list[Colour] = field(default_factory=list)
    custom_colours: list[Colour] = field(default_factory=list)
    skipped: list[Issue] = field(default_factory=list)


# --- Storyboard graph --------------------------------------------------------


class StoryboardOwner(NamedTuple):
    """Storyboard owner: a folder (.osb) or one difficulty (embedded)."""

    folder_id: str
    beatmap_id: int | None = None


@dataclass(frozen=True)
class StoryboardCommand:
    """A single command as it appears in the script.

    Times of commands nested under a loop or trigger are relative to the
    container's start and are never expanded.
    """

    id: int
    kind: str
    easing: int
    start_time: float
    end_time: float | None
    start_value: str = ""
    end_value: str = ""
    loop_count: int | None = None
    trigger_name: str | None = None
    group_number: int | None = None


@dataclass(frozen=True)
class CommandLeaf:
    command: StoryboardCommand


@dataclass(frozen=True)
class CommandContainer:
    """A loop or trigger with its ordered child commands."""

    command: StoryboardCommand
    children: tuple["CommandNode", ...] = ()


CommandNode = CommandLeaf | CommandContainer


@dataclass(frozen=True)
class ElementNode:
    id: int
    element_type: str
    layer: str
    origin: str
    path: str
    x: float
    y: float
    frame_count: int | None = None
    frame_delay: float | None = None
    loop_type: str | None = None
    time: float | None = None
    volume: int | None = None
    commands: tuple[CommandNode, ...] = ()


@dataclass
class StoryboardGraph:
    owner: StoryboardOwner
    file_name: str
    elements: list[ElementNode] = field(default_factory=list)  # render order
    skipped: list[Issue] = field(default_factory=list)
