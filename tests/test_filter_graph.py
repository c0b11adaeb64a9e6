"""Tests for slideshow and merge filter graphs."""

import pytest

from reelcast.utils.config import MergeLayout, OverlayAnchor, VideoConfig
from reelcast.utils.errors import GraphBuildError
from reelcast.video_assembly.filter_graph import FilterGraphBuilder, overlay_position
from reelcast.video_assembly.video_models import (
    Filter, FilterChain, FrameSize, GraphDescription, GraphStyle, MediaInput, MergeStyle
)

LANDSCAPE = FrameSize(width=1920, height=1080)
PORTRAIT = FrameSize(width=720, height=1280)


def images(count):
    return [f"/tmp/run/img{i}.jpg" for i in range(count)]


def test_enhanced_graph_cycles_pan_directions() -> None:
    graph = FilterGraphBuilder().build_graph(
        images(5), [2.0] * 5, GraphStyle.ENHANCED, LANDSCAPE
    )

    assert [int(d) for d in graph.pan_directions] == [0, 1, 2, 3, 0]

    centre = ("iw/2-(iw/zoom/2)", "ih/2-(ih/zoom/2)")
    expected = [
        centre,
        ("0", "0"),
        ("iw-iw/zoom", "0"),
        ("iw/2-(iw/zoom/2)", "ih-ih/zoom"),
        centre,
    ]
    segments = graph.chains[:5]
    for index, (segment, (x, y)) in enumerate(zip(segments, expected)):
        assert segment.outputs == [f"seg{index}"]
        rendered = segment.render()
        assert f":x={x}:y={y}:" in rendered


def test_enhanced_graph_labels_each_segment_and_concats_once() -> None:
    graph = FilterGraphBuilder().build_graph(
        images(3), [2.0, 3.0, 1.5], GraphStyle.ENHANCED, LANDSCAPE, audio="/tmp/run/voice.mp3"
    )
    rendered = graph.render()

    assert graph.produced_labels() == ["seg0", "seg1", "seg2", "outv"]
    assert rendered.count("concat=") == 1
    assert rendered.endswith("[seg0][seg1][seg2]concat=n=3:v=1:a=0[outv]")
    assert graph.maps == ["[outv]", "3:a"]
    assert "-shortest" in graph.output_options


def test_enhanced_segment_filter_chain() -> None:
    graph = FilterGraphBuilder().build_graph(
        images(1), [2.0], GraphStyle.ENHANCED, LANDSCAPE
    )

    assert graph.chains[0].render() == (
        "[0:v]scale=1920:1080:force_original_aspect_ratio=decrease,"
        "pad=1920:1080:(ow-iw)/2:(oh-ih)/2,setsar=1,"
        "zoompan=z='min(1+0.0015*on,1.5)':x=iw/2-(iw/zoom/2):y=ih/2-(ih/zoom/2)"
        ":d=1:s=1920x1080:fps=30,"
        "trim=duration=2,setpts=PTS-STARTPTS,"
        "fade=t=in:st=0:d=0.5,fade=t=out:st=1.5:d=0.5[seg0]"
    )


def test_short_segment_shrinks_fades() -> None:
    graph = FilterGraphBuilder().build_graph(
        images(1), [0.6], GraphStyle.ENHANCED, LANDSCAPE
    )
    rendered = graph.render()

    assert "fade=t=in:st=0:d=0.3" in rendered
    assert "fade=t=out:st=0.3:d=0.3" in rendered


def test_enhanced_without_ken_burns_has_no_zoompan() -> None:
    builder = FilterGraphBuilder(VideoConfig(ken_burns_effect=False))
    graph = builder.build_graph(images(2), [1.0, 1.0], GraphStyle.ENHANCED, PORTRAIT)

    assert "zoompan" not in graph.render()
    assert graph.pan_directions == []


def test_enhanced_args_loop_each_image() -> None:
    graph = FilterGraphBuilder().build_graph(
        images(2), [2.0, 1.25], GraphStyle.ENHANCED, PORTRAIT, audio="/tmp/run/voice.mp3"
    )

    args = graph.to_args("/tmp/run/out.mp4")

    assert args[0] == "-y"
    assert args[1:9] == ["-loop", "1", "-framerate", "30", "-t", "2", "-i", "/tmp/run/img0.jpg"]
    assert args[13:17] == ["-t", "1.25", "-i", "/tmp/run/img1.jpg"]
    assert "-filter_complex" in args
    assert args[-1] == "/tmp/run/out.mp4"
    assert args[args.index("-preset") + 1] == "medium"


def test_basic_graph_concat_list_repeats_last_image() -> None:
    graph = FilterGraphBuilder().build_graph(
        images(2), [1.5, 2.0], GraphStyle.BASIC, PORTRAIT, audio="/tmp/run/voice.mp3"
    )

    assert graph.concat_list.splitlines() == [
        "file '/tmp/run/img0.jpg'",
        "duration 1.5",
        "file '/tmp/run/img1.jpg'",
        "duration 2",
        "file '/tmp/run/img1.jpg'",
        "duration 0.1",
    ]
    assert graph.inputs[0].format == "concat"
    assert graph.maps == ["[outv]", "1:a"]
    assert graph.render() == (
        "[0:v]scale=720:1280:force_original_aspect_ratio=decrease,"
        "pad=720:1280:(ow-iw)/2:(oh-ih)/2,setsar=1,fps=30[outv]"
    )


def test_basic_graph_needs_list_path_for_args() -> None:
    graph = FilterGraphBuilder().build_graph(images(1), [1.0], GraphStyle.BASIC, PORTRAIT)

    with pytest.raises(GraphBuildError):
        graph.to_args("/tmp/run/out.mp4")

    args = graph.to_args("/tmp/run/out.mp4", concat_list_path="/tmp/run/list.txt")
    assert args[1:7] == ["-f", "concat", "-safe", "0", "-i", "/tmp/run/list.txt"]


def test_concat_list_escapes_quotes() -> None:
    graph = FilterGraphBuilder().build_graph(
        ["/tmp/run/it's.jpg"], [1.0], GraphStyle.BASIC, PORTRAIT
    )
    assert graph.concat_list.splitlines()[0] == "file '/tmp/run/it'\\''s.jpg'"


@pytest.mark.parametrize("style", [GraphStyle.ENHANCED, GraphStyle.BASIC])
def test_invalid_inputs_raise(style) -> None:
    builder = FilterGraphBuilder()
    with pytest.raises(GraphBuildError):
        builder.build_graph([], [], style, PORTRAIT)
    with pytest.raises(GraphBuildError):
        builder.build_graph(images(2), [1.0], style, PORTRAIT)
    with pytest.raises(GraphBuildError):
        builder.build_graph(images(1), [-1.0], style, PORTRAIT)


def test_split_merge_portrait_stacks_vertically() -> None:
    graph = FilterGraphBuilder().build_merge_graph(
        "/tmp/run/slides.mp4", "/tmp/run/head.mp4", MergeStyle.PRIMARY, PORTRAIT
    )

    assert graph.render() == (
        "[0:v]scale=720:640:force_original_aspect_ratio=decrease,"
        "pad=720:640:(ow-iw)/2:(oh-ih)/2,setsar=1[top];"
        "[1:v]scale=720:640:force_original_aspect_ratio=decrease,"
        "pad=720:640:(ow-iw)/2:(oh-ih)/2,setsar=1[bottom];"
        "[top][bottom]vstack=inputs=2[v]"
    )
    assert graph.maps == ["[v]", "0:a"]
    assert graph.output_options[graph.output_options.index("-preset") + 1] == "fast"


def test_split_merge_landscape_stacks_horizontally() -> None:
    graph = FilterGraphBuilder().build_merge_graph(
        "/tmp/run/slides.mp4", "/tmp/run/head.mp4", MergeStyle.PRIMARY, LANDSCAPE
    )
    rendered = graph.render()

    assert "scale=960:1080" in rendered
    assert rendered.endswith("[left][right]hstack=inputs=2[v]")


def test_last_resort_merge_stacks_raw_streams() -> None:
    builder = FilterGraphBuilder()
    portrait = builder.build_merge_graph("s.mp4", "h.mp4", MergeStyle.LAST_RESORT, PORTRAIT)
    landscape = builder.build_merge_graph("s.mp4", "h.mp4", MergeStyle.LAST_RESORT, LANDSCAPE)

    assert portrait.render() == "[0:v][1:v]vstack=inputs=2[v]"
    assert landscape.render() == "[0:v][1:v]hstack=inputs=2[v]"
    assert portrait.output_options[portrait.output_options.index("-preset") + 1] == "ultrafast"


def test_pip_merge_places_overlay_at_anchor() -> None:
    builder = FilterGraphBuilder(VideoConfig(merge_layout=MergeLayout.PIP))
    graph = builder.build_merge_graph(
        "s.mp4", "h.mp4", MergeStyle.PRIMARY, PORTRAIT, overlay_source=PORTRAIT
    )
    rendered = graph.render()

    assert "[1:v]scale=288:512" in rendered
    assert rendered.endswith("[base][pip]overlay=422:758[v]")


@pytest.mark.parametrize("anchor, expected", [
    (OverlayAnchor.TOP_LEFT, (10, 10)),
    (OverlayAnchor.TOP_RIGHT, (1510, 10)),
    (OverlayAnchor.BOTTOM_LEFT, (10, 770)),
    (OverlayAnchor.BOTTOM_RIGHT, (1510, 770)),
    (OverlayAnchor.BOTTOM_CENTER, (760, 770)),
])
def test_overlay_position(anchor, expected) -> None:
    assert overlay_position(anchor, 1920, 1080, 400, 300) == expected


def test_overlay_larger_than_frame_clamps_to_origin() -> None:
    assert overlay_position(OverlayAnchor.BOTTOM_RIGHT, 100, 100, 200, 200) == (0, 0)


def test_graph_rejects_unknown_labels() -> None:
    inputs = [MediaInput(path="a.mp4")]
    null = [Filter(name="null")]

    missing_map = GraphDescription(
        inputs=inputs, chains=[FilterChain(inputs=["0:v"], filters=null, outputs=["v"])],
        maps=["[missing]"],
    )
    unknown_input = GraphDescription(
        inputs=inputs, chains=[FilterChain(inputs=["nope"], filters=null, outputs=["v"])],
        maps=["[v]"],
    )
    out_of_range = GraphDescription(
        inputs=inputs, chains=[FilterChain(inputs=["3:v"], filters=null, outputs=["v"])],
        maps=["[v]"],
    )
    duplicate = GraphDescription(
        inputs=inputs,
        chains=[
            FilterChain(inputs=["0:v"], filters=null, outputs=["v"]),
            FilterChain(inputs=["v"], filters=null, outputs=["v"]),
        ],
        maps=["[v]"],
    )

    for graph in (missing_map, unknown_input, out_of_range, duplicate):
        with pytest.raises(GraphBuildError):
            graph.to_args("out.mp4")
