"""Tests for output file naming."""

from clipmill.execution.naming import (
    MAX_FILENAME_BYTES,
    byte_length,
    display_name,
    generate_combined_file_name,
    generate_file_name,
    generate_unique_filename,
    sanitize_filename,
    truncate_by_bytes,
    truncate_filename,
)


class TestSanitizeFilename:

    def test_illegal_characters_replaced(self):
        assert sanitize_filename('a:b*c?.mp4') == "a_b_c.mp4"

    def test_angle_brackets_become_parentheses(self):
        assert sanitize_filename("<clip>.mp4") == "(clip).mp4"

    def test_runs_of_replacement_collapse(self):
        assert sanitize_filename("a//\\b", preserve_extension=False) == "a_b"

    def test_empty_becomes_unnamed(self):
        assert sanitize_filename("") == "unnamed"
        assert sanitize_filename(None) == "unnamed"
        assert sanitize_filename("???", preserve_extension=False) == "unnamed"

    def test_windows_reserved_names(self):
        assert sanitize_filename("CON.mp4") == "file_CON.mp4"
        assert sanitize_filename("lpt1", preserve_extension=False) == "file_lpt1"

    def test_unicode_kept(self):
        assert sanitize_filename("片头_01.mp4") == "片头_01.mp4"


class TestTruncation:

    def test_truncate_by_bytes_keeps_whole_characters(self):
        text = "视频" * 10
        result = truncate_by_bytes(text, 10)
        assert byte_length(result) <= 10
        assert result == "视频视"

    def test_short_names_untouched(self):
        assert truncate_filename("short.mp4") == "short.mp4"

    def test_long_names_fit_and_keep_extension(self):
        name = "x" * 300 + ".mp4"
        result = truncate_filename(name)
        assert byte_length(result) <= MAX_FILENAME_BYTES
        assert result.endswith(".mp4")
        assert "..." in result

    def test_long_multibyte_names_fit(self):
        name = "镜头" * 100 + "_end.mp4"
        result = truncate_filename(name, max_bytes=100)
        assert byte_length(result) <= 100
        assert result.endswith("_end.mp4")


class TestUniqueNames:

    def test_free_name_returned_as_is(self, tmp_path):
        assert generate_unique_filename(str(tmp_path), "a.mp4") == "a.mp4"

    def test_counter_appended_on_collision(self, tmp_path):
        (tmp_path / "a.mp4").write_bytes(b"")
        (tmp_path / "a_1.mp4").write_bytes(b"")
        assert generate_unique_filename(str(tmp_path), "a.mp4") == "a_2.mp4"

    def test_generate_file_name(self, tmp_path):
        (tmp_path / "clip_1920x1080.mp4").write_bytes(b"")
        name = generate_file_name(str(tmp_path), "clip", suffix="_1920x1080")
        assert name == "clip_1920x1080_1.mp4"

    def test_generate_file_name_sanitises(self, tmp_path):
        assert generate_file_name(str(tmp_path), "a|b") == "a_b.mp4"

    def test_display_name(self):
        assert display_name("/media/intro clip.mov") == "intro clip"


class TestCombinedNames:

    def test_separator_survives_sanitising(self, tmp_path):
        assert generate_combined_file_name(str(tmp_path), "intro", "main") == "intro__main.mp4"

    def test_halves_sanitised_separately(self, tmp_path):
        name = generate_combined_file_name(str(tmp_path), "in:tro_", "_ma*in", suffix="_vertical")
        assert name == "in_tro__ma_in_vertical.mp4"

    def test_long_halves_truncated_separately(self, tmp_path):
        name = generate_combined_file_name(str(tmp_path), "x" * 300, "y" * 300)
        assert byte_length(name) <= MAX_FILENAME_BYTES
        assert "...__y" in name
        assert name.endswith("....mp4")

    def test_counter_on_collision(self, tmp_path):
        (tmp_path / "a__b.mp4").write_bytes(b"")
        assert generate_combined_file_name(str(tmp_path), "a", "b") == "a__b_1.mp4"
