"""Tests for storyboard assembly and command tree reconstruction."""

from osu_reconstructor.assembly.indexer import index_dataset
from osu_reconstructor.assembly.storyboard import assemble_storyboard, storyboard_sources
from osu_reconstructor.errors import SkippedCommand
from osu_reconstructor.schemas.graph import CommandContainer, CommandLeaf, StoryboardOwner
from osu_reconstructor.schemas.rows import (
    BeatmapRow,
    Dataset,
    StoryboardCommandRow,
    StoryboardElementRow,
)


def _element(id, **kw) -> StoryboardElementRow:
    kw.setdefault("element_type", "sprite")
    kw.setdefault("path", f"sb/{id}.png")
    return StoryboardElementRow(id=id, folder_id="f", **kw)


def _cmd(id, element_id, command_type, start_time, **kw) -> StoryboardCommandRow:
    return StoryboardCommandRow(
        id=id, element_id=element_id, folder_id="f",
        command_type=command_type, start_time=start_time, **kw,
    )


def _make_dataset(elements, commands=()) -> Dataset:
    return Dataset(
        beatmaps=[BeatmapRow(id=1, folder_id="f")],
        storyboard_elements=list(elements),
        storyboard_commands=list(commands),
    )


def _assemble(ds: Dataset, owner=StoryboardOwner("f"), **kw):
    return assemble_storyboard(owner, index_dataset(ds), **kw)


class TestCommandTree:
    def test_loop_with_two_children(self):
        ds = _make_dataset(
            [_element(1)],
            [
                _cmd(10, 1, "loop", 1000, loop_count=4, end_time=9999),
                _cmd(12, 1, "move", 500, parent_id=10, end_time=1000,
                     start_value="320,240", end_value="0,0"),
                _cmd(11, 1, "move", 0, parent_id=10, end_time=500,
                     start_value="0,0", end_value="320,240"),
            ],
        )
        graph = _assemble(ds)
        (loop,) = graph.elements[0].commands
        assert isinstance(loop, CommandContainer)
        assert loop.command.kind == "loop"
        assert loop.command.end_time is None
        assert loop.command.loop_count == 4
        assert [c.command.id for c in loop.children] == [11, 12]
        assert all(isinstance(c, CommandLeaf) for c in loop.children)
        assert graph.skipped == []

    def test_top_level_commands_ordered_by_start_time_then_index(self):
        ds = _make_dataset(
            [_element(1)],
            [
                _cmd(1, 1, "fade", 500, end_time=600, start_value="1"),
                _cmd(2, 1, "fade", 0, end_time=100, index=1, start_value="0"),
                _cmd(3, 1, "scale", 0, end_time=100, index=0, start_value="1"),
            ],
        )
        commands = _assemble(ds).elements[0].commands
        assert [c.command.id for c in commands] == [3, 2, 1]

    def test_trigger_children(self):
        ds = _make_dataset(
            [_element(1)],
            [
                _cmd(1, 1, "trigger", 0, end_time=5000, trigger_name="HitSoundClap", group_number=2),
                _cmd(2, 1, "fade", 0, parent_id=1, end_time=100, start_value="1", end_value="0"),
            ],
        )
        (trigger,) = _assemble(ds).elements[0].commands
        assert trigger.command.trigger_name == "HitSoundClap"
        assert trigger.command.end_time == 5000
        assert len(trigger.children) == 1

    def test_unknown_command_type_is_skipped(self):
        ds = _make_dataset(
            [_element(1)],
            [_cmd(1, 1, "wobble", 0), _cmd(2, 1, "fade", 0, start_value="1")],
        )
        graph = _assemble(ds)
        assert [c.command.id for c in graph.elements[0].commands] == [2]
        assert graph.skipped == [SkippedCommand(1, 1, "unknown command type 'wobble'")]

    def test_children_of_skipped_container_are_reported(self):
        ds = _make_dataset(
            [_element(1)],
            [_cmd(1, 1, "wobble", 0), _cmd(2, 1, "fade", 0, parent_id=1)],
        )
        graph = _assemble(ds)
        assert graph.elements[0].commands == ()
        assert SkippedCommand(1, 2, "parent 1 is a 'wobble' command") in graph.skipped

    def test_child_of_leaf_command_is_reported(self):
        ds = _make_dataset(
            [_element(1)],
            [_cmd(1, 1, "fade", 0), _cmd(2, 1, "move", 0, parent_id=1)],
        )
        graph = _assemble(ds)
        assert graph.skipped == [SkippedCommand(1, 2, "parent 1 is a 'fade' command")]

    def test_parent_on_other_element_is_reported(self):
        ds = _make_dataset(
            [_element(1, index=0), _element(2, index=1)],
            [_cmd(1, 1, "loop", 0, loop_count=1), _cmd(2, 2, "fade", 0, parent_id=1)],
        )
        graph = _assemble(ds)
        assert graph.elements[0].commands[0].children == ()
        assert graph.skipped == [SkippedCommand(2, 2, "parent 1 belongs to element 1")]


class TestAssembleStoryboard:
    def test_no_elements_returns_none(self):
        assert _assemble(_make_dataset([])) is None

    def test_owner_separation(self):
        ds = _make_dataset([_element(1), _element(2, beatmap_id=1)])
        folder = _assemble(ds)
        embedded = _assemble(ds, StoryboardOwner("f", 1))
        assert [e.id for e in folder.elements] == [1]
        assert [e.id for e in embedded.elements] == [2]

    def test_file_name_from_source_file(self):
        ds = _make_dataset([_element(1, source_file="Song.osb")])
        assert _assemble(ds, default_file_name="Other.osb").file_name == "Song.osb"

    def test_default_file_name(self):
        ds = _make_dataset([_element(1)])
        assert _assemble(ds, default_file_name="Other.osb").file_name == "Other.osb"

    def test_split_by_source_file(self):
        ds = _make_dataset([
            _element(1, source_file="b.osb"),
            _element(2, source_file="a.osb"),
            _element(3),
        ])
        indices = index_dataset(ds)
        assert storyboard_sources(StoryboardOwner("f"), indices) == ["b.osb", "a.osb", ""]
        only_a = assemble_storyboard(StoryboardOwner("f"), indices, "d.osb", source_file="a.osb")
        assert (only_a.file_name, [e.id for e in only_a.elements]) == ("a.osb", [2])
        unnamed = assemble_storyboard(StoryboardOwner("f"), indices, "d.osb", source_file="")
        assert (unnamed.file_name, [e.id for e in unnamed.elements]) == ("d.osb", [3])
        assert assemble_storyboard(StoryboardOwner("f"), indices, source_file="c.osb") is None

    def test_elements_in_layer_order(self):
        ds = _make_dataset([
            _element(1, layer="Overlay"),
            _element(2, layer="Foreground"),
            _element(3, layer="Background", index=5),
            _element(4, layer="Background", index=2),
        ])
        assert [e.id for e in _assemble(ds).elements] == [4, 3, 2, 1]

    def test_sample_element(self):
        ds = _make_dataset([
            _element(1, element_type="sample", path="clap.wav", time=1500, volume=60),
        ])
        element = _assemble(ds).elements[0]
        assert element.element_type == "sample"
        assert element.time == 1500
        assert element.volume == 60
