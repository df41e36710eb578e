"""
FFmpeg argument builders, one per task kind.

Every builder returns the argument vector WITHOUT the ffmpeg binary,
starting with "-y" so the engine can inject -nostdin.

All outputs are normalised to H.264/AAC at a constant 30 fps and
48 kHz stereo so segments from different sources concatenate cleanly.
"""

from typing import Dict, List, Optional

from ..jobs.models import Position

TARGET_FPS = 30
AUDIO_SAMPLE_RATE = 48000
DEFAULT_CRF = 23

LANDSCAPE = (1920, 1080)
PORTRAIT = (1080, 1920)

# crf / x264 preset / audio bitrate per quality level
QUALITY_PRESETS: Dict[str, Dict[str, object]] = {
    "low": {"crf": 28, "preset": "ultrafast", "audio_bitrate": "64k"},
    "medium": {"crf": 23, "preset": "superfast", "audio_bitrate": "128k"},
    "high": {"crf": 18, "preset": "slow", "audio_bitrate": "192k"},
}

_AUDIO_FORMAT = (
    f"aresample={AUDIO_SAMPLE_RATE},"
    f"aformat=sample_fmts=fltp:sample_rates={AUDIO_SAMPLE_RATE}:channel_layouts=stereo,"
    "asetpts=PTS-STARTPTS"
)


def canvas_size(orientation: str) -> tuple:
    """(width, height) of the output canvas for an orientation name."""
    if orientation in ("portrait", "vertical"):
        return PORTRAIT
    return LANDSCAPE


def _quality(quality: str) -> Dict[str, object]:
    return QUALITY_PRESETS.get(quality, QUALITY_PRESETS["medium"])


def _fit_filter(width: int, height: int) -> str:
    # Letterbox into width x height, then normalise sar/fps/timestamps
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1:1,"
        f"fps={TARGET_FPS},settb=1/{TARGET_FPS},setpts=N/{TARGET_FPS}/TB"
    )


def build_stitch_command(
    a_path: str,
    b_path: str,
    out_path: str,
    orientation: str = "landscape",
    quality: str = "medium",
) -> List[str]:
    """A then B, both letterboxed to the orientation's canvas."""
    width, height = canvas_size(orientation)
    q = _quality(quality)

    filters = [
        f"[0:v]{_fit_filter(width, height)}[v0]",
        f"[1:v]{_fit_filter(width, height)}[v1]",
        f"[0:a]{_AUDIO_FORMAT}[a0]",
        f"[1:a]{_AUDIO_FORMAT}[a1]",
        "[v0][a0][v1][a1]concat=n=2:v=1:a=1[final_v][final_a]",
    ]

    return [
        "-y",
        "-i", a_path,
        "-i", b_path,
        "-filter_complex", ";".join(filters),
        "-map", "[final_v]",
        "-map", "[final_a]",
        "-c:v", "libx264",
        "-preset", str(q["preset"]),
        "-crf", str(q["crf"]),
        "-r", str(TARGET_FPS),
        "-vsync", "cfr",
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-b:a", str(q["audio_bitrate"]),
        "-shortest",
        out_path,
    ]


def _rect(pos: Position) -> Dict[str, int]:
    return {
        "x": round(pos.x),
        "y": round(pos.y),
        "w": round(pos.width),
        "h": round(pos.height),
    }


def default_b_position(orientation: str) -> Position:
    """
    Default B placement: a 9:16 column centred on a landscape canvas, or a
    16:9 band centred on a portrait canvas.
    """
    width, height = canvas_size(orientation)
    if (width, height) == LANDSCAPE:
        column = height * 9 / 16
        return Position(x=(width - column) / 2, y=0, width=column, height=height)
    band = width * 16 / 9
    return Position(x=0, y=(height - band) / 2, width=width, height=band)


def build_merge_command(
    b_path: str,
    out_path: str,
    *,
    a_path: Optional[str] = None,
    bg_image: Optional[str] = None,
    cover_image: Optional[str] = None,
    orientation: str = "horizontal",
    quality: str = "medium",
    a_position: Optional[Position] = None,
    b_position: Optional[Position] = None,
    bg_position: Optional[Position] = None,
    cover_position: Optional[Position] = None,
    cover_duration: float = 1.0,
) -> List[str]:
    """
    Composite merge onto a canvas.

    Segments are concatenated in order: cover still (silent), A intro, B.
    B (and A) are laid over the background image, or black when absent.
    """
    width, height = canvas_size(orientation)
    q = _quality(quality)
    full = Position(x=0, y=0, width=width, height=height)

    a_pos = _rect(a_position or full)
    b_pos = _rect(b_position or default_b_position(orientation))
    bg_pos = _rect(bg_position or full)
    cv_pos = _rect(cover_position or full)

    inputs: List[str] = []
    next_index = 0

    a_index = -1
    if a_path:
        a_index = next_index
        next_index += 1
        inputs += ["-i", a_path]

    b_index = next_index
    next_index += 1
    inputs += ["-i", b_path]

    bg_index = -1
    if bg_image:
        bg_index = next_index
        next_index += 1
        inputs += ["-i", bg_image]

    cover_index = -1
    if cover_image:
        cover_index = next_index
        next_index += 1
        inputs += ["-i", cover_image]

    canvas = f"color=black:s={width}x{height}:r={TARGET_FPS},format=yuv420p"
    video_norm = f"setsar=1:1,fps={TARGET_FPS},format=yuv420p"
    retime = f"settb=1/{TARGET_FPS},setpts=N/{TARGET_FPS}/TB"

    filters: List[str] = []

    if a_index >= 0:
        filters.append(f"[{a_index}:a]{_AUDIO_FORMAT}[a0]")
    filters.append(f"[{b_index}:a]{_AUDIO_FORMAT}[a1]")

    if bg_index >= 0:
        w, h = bg_pos["w"], bg_pos["h"]
        filters.append(
            f"[{bg_index}:v]loop=-1:size=1:start=0,"
            f"scale={w}:{h}:force_original_aspect_ratio=increase,"
            f"crop={w}:{h}:(iw-{w})/2:(ih-{h})/2,{video_norm}[bg_processed]"
        )
        filters.append(f"{canvas}[canvas_bg]")
        filters.append(f"[canvas_bg][bg_processed]overlay={bg_pos['x']}:{bg_pos['y']}[canvas_with_bg]")
    else:
        filters.append(f"{canvas}[canvas_with_bg]")

    if a_index >= 0:
        filters.append("[canvas_with_bg]split=2[bg_for_a][bg_for_b]")
        filters.append(f"[{a_index}:v]scale={a_pos['w']}:{a_pos['h']}:flags=bicubic,{video_norm}[a_scaled]")
        filters.append(f"[bg_for_a][a_scaled]overlay={a_pos['x']}:{a_pos['y']}:shortest=1,{retime}[v_a]")
    else:
        filters.append("[canvas_with_bg]null[bg_for_b]")

    filters.append(f"[{b_index}:v]scale={b_pos['w']}:{b_pos['h']}:flags=bicubic,{video_norm}[b_scaled]")
    filters.append(f"[bg_for_b][b_scaled]overlay={b_pos['x']}:{b_pos['y']}:shortest=1,{retime}[v_b]")

    segments: List[str] = []
    if cover_index >= 0:
        w, h = cv_pos["w"], cv_pos["h"]
        cover_frames = max(1, round(cover_duration * TARGET_FPS))
        filters.append(
            f"[{cover_index}:v]scale={w}:{h}:force_original_aspect_ratio=increase,"
            f"crop={w}:{h}:(iw-{w})/2:(ih-{h})/2,{video_norm}[cv_scaled]"
        )
        filters.append(f"{canvas}[cv_bg]")
        filters.append(
            f"[cv_bg][cv_scaled]overlay={cv_pos['x']}:{cv_pos['y']}:shortest=1,{retime},"
            f"loop={cover_frames}:size=1:start=0[cover_v]"
        )
        filters.append(
            f"anullsrc=r={AUDIO_SAMPLE_RATE}:cl=stereo,"
            f"aformat=sample_fmts=fltp:sample_rates={AUDIO_SAMPLE_RATE}:channel_layouts=stereo,"
            f"atrim=0:{cover_duration},asetpts=PTS-STARTPTS[cover_a]"
        )
        segments.append("[cover_v][cover_a]")
    if a_index >= 0:
        segments.append("[v_a][a0]")
    segments.append("[v_b][a1]")

    use_concat = len(segments) > 1
    if use_concat:
        filters.append(f"{''.join(segments)}concat=n={len(segments)}:v=1:a=1[final_v][final_a]")

    return [
        "-y",
        *inputs,
        "-filter_complex", ";".join(filters),
        "-map", "[final_v]" if use_concat else "[v_b]",
        "-map", "[final_a]" if use_concat else "[a1]",
        "-r", str(TARGET_FPS),
        "-vsync", "cfr",
        "-c:v", "libx264",
        "-preset", str(q["preset"]),
        "-crf", str(q["crf"]),
        "-c:a", "aac",
        "-b:a", str(q["audio_bitrate"]),
        "-pix_fmt", "yuv420p",
        out_path,
    ]


def build_resize_command(
    input_path: str,
    out_path: str,
    width: int,
    height: int,
    blur_amount: int = 20,
    threads: Optional[int] = None,
) -> List[str]:
    """
    Resize to width x height: the source, letterboxed, over a blurred
    cover-cropped copy of itself.
    """
    background = (
        f"[bg_src]scale={width}:{height}:force_original_aspect_ratio=increase,"
        f"crop={width}:{height}:(iw-{width})/2:(ih-{height})/2"
    )
    if blur_amount > 0:
        background += f",boxblur={blur_amount}:{blur_amount}"

    filters = (
        "[0:v]split=2[bg_src][fg_src];"
        f"{background}[bg];"
        f"[fg_src]scale={width}:{height}:force_original_aspect_ratio=decrease[fg];"
        "[bg][fg]overlay=(W-w)/2:(H-h)/2[out]"
    )

    return [
        "-y",
        "-i", input_path,
        "-filter_complex", filters,
        "-map", "[out]",
        "-map", "0:a?",
        "-c:v", "libx264",
        "-preset", "ultrafast",
        "-tune", "fastdecode",
        "-crf", str(DEFAULT_CRF),
        "-threads", str(threads) if threads else "auto",
        "-c:a", "copy",
        out_path,
    ]
