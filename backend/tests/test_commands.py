"""Tests for FFmpeg argument builders."""

from clipmill.execution.commands import (
    PORTRAIT,
    build_merge_command,
    build_resize_command,
    build_stitch_command,
    canvas_size,
    default_b_position,
)
from clipmill.jobs.models import Position


def _value_after(args, flag):
    return args[args.index(flag) + 1]


def _values_after(args, flag):
    return [args[i + 1] for i, arg in enumerate(args) if arg == flag]


class TestStitchCommand:

    def test_inputs_and_output(self):
        args = build_stitch_command("/in/a.mp4", "/in/b.mp4", "/tmp/out.mp4")
        assert args[0] == "-y"
        assert _values_after(args, "-i") == ["/in/a.mp4", "/in/b.mp4"]
        assert args[-1] == "/tmp/out.mp4"

    def test_landscape_canvas_and_concat(self):
        graph = _value_after(build_stitch_command("a", "b", "o"), "-filter_complex")
        assert "scale=1920:1080" in graph
        assert "concat=n=2:v=1:a=1[final_v][final_a]" in graph

    def test_portrait_canvas(self):
        graph = _value_after(build_stitch_command("a", "b", "o", orientation="portrait"), "-filter_complex")
        assert "scale=1080:1920" in graph

    def test_quality_presets(self):
        high = build_stitch_command("a", "b", "o", quality="high")
        assert _value_after(high, "-crf") == "18"
        assert _value_after(high, "-preset") == "slow"
        assert _value_after(high, "-b:a") == "192k"

        unknown = build_stitch_command("a", "b", "o", quality="ultra")
        assert _value_after(unknown, "-crf") == "23"


class TestMergeCommand:

    def test_b_only_maps_b_segment_directly(self):
        args = build_merge_command("/in/b.mp4", "/tmp/out.mp4")
        assert _values_after(args, "-i") == ["/in/b.mp4"]
        assert _values_after(args, "-map") == ["[v_b]", "[a1]"]
        assert "concat" not in _value_after(args, "-filter_complex")

    def test_all_inputs_concat_in_order(self):
        args = build_merge_command(
            "/in/b.mp4",
            "/tmp/out.mp4",
            a_path="/in/a.mp4",
            bg_image="/in/bg.jpg",
            cover_image="/in/cover.jpg",
        )
        assert _values_after(args, "-i") == ["/in/a.mp4", "/in/b.mp4", "/in/bg.jpg", "/in/cover.jpg"]
        graph = _value_after(args, "-filter_complex")
        assert "[cover_v][cover_a][v_a][a0][v_b][a1]concat=n=3" in graph
        assert "[2:v]loop=-1" in graph
        assert _values_after(args, "-map") == ["[final_v]", "[final_a]"]

    def test_cover_duration_in_frames(self):
        graph = _value_after(
            build_merge_command("b", "o", cover_image="c.jpg", cover_duration=2.0),
            "-filter_complex",
        )
        assert "loop=60:size=1" in graph
        assert "atrim=0:2.0" in graph

    def test_explicit_b_position(self):
        graph = _value_after(
            build_merge_command("b", "o", b_position=Position(x=10.4, y=20, width=640.6, height=360)),
            "-filter_complex",
        )
        assert "scale=641:360" in graph
        assert "overlay=10:20" in graph

    def test_default_b_position(self):
        landscape = default_b_position("horizontal")
        assert (landscape.width, landscape.height) == (1080 * 9 / 16, 1080)
        assert landscape.x == (1920 - 1080 * 9 / 16) / 2

        portrait = default_b_position("vertical")
        assert portrait.width == 1080
        assert canvas_size("vertical") == PORTRAIT


class TestResizeCommand:

    def test_blurred_background(self):
        args = build_resize_command("/in/v.mp4", "/tmp/v_1920x1080.mp4", 1920, 1080, blur_amount=15)
        graph = _value_after(args, "-filter_complex")
        assert "boxblur=15:15" in graph
        assert "force_original_aspect_ratio=increase" in graph
        assert "force_original_aspect_ratio=decrease" in graph
        assert "overlay=(W-w)/2:(H-h)/2" in graph
        assert _value_after(args, "-c:a") == "copy"

    def test_no_blur(self):
        graph = _value_after(build_resize_command("v", "o", 1080, 1920, blur_amount=0), "-filter_complex")
        assert "boxblur" not in graph

    def test_optional_audio_mapping(self):
        assert "0:a?" in _values_after(build_resize_command("v", "o", 1080, 1920), "-map")
