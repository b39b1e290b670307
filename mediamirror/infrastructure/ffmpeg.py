import logging
import math
import re
import subprocess
from fractions import Fraction
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from mediamirror.domain.errors import TaskError
from mediamirror.domain.models import StreamInfo, StreamSelection

# VP9 settings follow https://developers.google.com/media/vp9/settings/vod
# Constrained quality when the frame size is a standard one, constant quality otherwise.

DEFAULT_CRF = 30

VP9_DEFAULT_ARGS = [
    # Video args come from build_video_args().
    "-c:a", "libvorbis", "-minrate", "128k",
    "-g", "240",  # Keyframe spacing
    "-cpu-used", "1",
    "-deadline", "good",
    "-tile-columns", "6", "-frame-parallel", "1",
    "-auto-alt-ref", "1", "-lag-in-frames", "25",
    "-max_muxing_queue_size", "9999",
]

SUBTITLE_CODEC = "webvtt"

# Suffix of in-progress outputs; HousekeepingService removes stale ones.
TMP_SUFFIX = ".encoding.tmp"

# {resolution: (normal frame rate kbps, high frame rate kbps)}
TARGET_BITRATE: Dict[str, Tuple[int, int]] = {
    "640x360": (276, 750),
    "1280x720": (1024, 1800),
    "1920x1080": (1800, 3000),
    "2560x1440": (6000, 9000),
    "3840x2160": (12000, 18000),
}

MIN_BITRATE_RATIO = 0.50
MAX_BITRATE_RATIO = 1.45
HIGH_FRAME_RATE = 40

_FRAME_RATE_RE = re.compile(r"^(\d+)/(\d+)$")


def parse_frame_rate(text: str) -> Fraction:
    """Parses ffprobe's 'num/den' frame rate, e.g. '30000/1001'.

    Only the integer/integer grammar is accepted; anything else raises ValueError.
    """
    match = _FRAME_RATE_RE.match(text.strip())
    if not match:
        raise ValueError(f"Invalid frame rate: {text!r}")
    num, den = (int(g) for g in match.groups())
    if den == 0:
        raise ValueError(f"Invalid frame rate (zero denominator): {text!r}")
    return Fraction(num, den)


def build_video_args(stream_info: Optional[StreamInfo], crf: int = DEFAULT_CRF) -> List[str]:
    """Chooses VP9 rate control from the (single) video stream's frame size and rate."""
    logger = logging.getLogger(__name__)
    args = ["-c:v", "libvpx-vp9"]
    fallback = args + ["-crf", str(crf), "-b:v", "0"]

    if stream_info is None or len(stream_info.video) != 1:
        logger.info("No single video stream, falling back to constant quality.")
        return fallback

    stream = stream_info.video[0]
    if "width" not in stream or "height" not in stream:
        logger.info("Could not discover video resolution, falling back to constant quality.")
        return fallback

    resolution = f"{stream['width']}x{stream['height']}"
    if resolution not in TARGET_BITRATE:
        logger.info(f"Non-standard resolution ({resolution}), falling back to constant quality.")
        return fallback

    high_frame_rate = False
    if "avg_frame_rate" in stream:
        try:
            # Whole frames per second; 40.5 fps still counts as normal
            high_frame_rate = int(parse_frame_rate(stream["avg_frame_rate"])) > HIGH_FRAME_RATE
        except ValueError as e:
            logger.warning(f"{e}; assuming normal frame rate")

    target = TARGET_BITRATE[resolution][1 if high_frame_rate else 0]
    min_rate = math.ceil(target * MIN_BITRATE_RATIO)
    max_rate = math.ceil(target * MAX_BITRATE_RATIO)

    args += ["-b:v", f"{target}k", "-minrate", f"{min_rate}k", "-maxrate", f"{max_rate}k"]
    args += ["-crf", str(crf)]
    return args


def build_map_args(selection: StreamSelection) -> List[str]:
    args = ["-map", f"0:{selection.video}"]
    for index in selection.audio:
        args += ["-map", f"0:{index}"]
    for index in selection.subtitle:
        args += ["-map", f"0:{index}", "-c:s", SUBTITLE_CODEC]
    return args


class FFmpegAdapter:
    """Wrapper around ffmpeg for VP9/WebM transcodes and WebVTT subtitles.

    Every command writes to '<output>.encoding.tmp' with an explicit muxer and renames
    on success, so an interrupted run never leaves a half-written destination
    that would be skipped as complete on the next run.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", crf: int = DEFAULT_CRF, debug: bool = False):
        self.ffmpeg_path = ffmpeg_path
        self.crf = crf
        self.debug = debug
        self.logger = logging.getLogger(__name__)

    def _build_command(self, input_path: Path, output_path: Path, args: List[str], muxer: str) -> List[str]:
        """Constructs the ffmpeg command line arguments."""
        cmd = [
            self.ffmpeg_path,
            "-i", str(input_path),
            "-y",  # Overwrite the temp file
            "-nostats",
            "-loglevel", "warning",
        ]
        cmd.extend(args)
        cmd.extend(["-f", muxer, str(self._tmp_path(output_path))])
        return cmd

    @staticmethod
    def _tmp_path(output_path: Path) -> Path:
        return output_path.with_name(output_path.name + TMP_SUFFIX)

    def run(self, input_path: Path, output_path: Path, args: List[str], muxer: str) -> Path:
        """Runs one ffmpeg command; raises TaskError on failure."""
        cmd = self._build_command(input_path, output_path, args, muxer)
        tmp_path = self._tmp_path(output_path)

        if self.debug:
            self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except OSError as e:
            raise TaskError(f"Failed to run ffmpeg for {input_path}: {e}") from e

        if result.returncode != 0:
            if tmp_path.exists():
                tmp_path.unlink()
            raise TaskError(
                f"ffmpeg exited with code {result.returncode} for {input_path}"
                f"\n--- Stderr ---\n{result.stderr}"
            )

        tmp_path.replace(output_path)
        return output_path

    def transcode(self, input_path: Path, output_path: Path, selection: StreamSelection,
                  stream_info: Optional[StreamInfo] = None) -> Path:
        """Re-encodes the selected streams into a WebM container."""
        args = build_video_args(stream_info, self.crf) + VP9_DEFAULT_ARGS + build_map_args(selection)
        return self.run(input_path, output_path, args, "webm")

    def transcode_subtitle(self, input_path: Path, output_path: Path) -> Path:
        """Converts a standalone subtitle file to WebVTT."""
        return self.run(input_path, output_path, ["-c:s", SUBTITLE_CODEC], "webvtt")

    def extract_subtitle_track(self, input_path: Path, output_path: Path, stream_index: int,
                               codec: str = SUBTITLE_CODEC) -> Path:
        """Pulls one subtitle stream out of a container into its own file."""
        args = ["-map", f"0:{stream_index}", "-c:s", codec]
        return self.run(input_path, output_path, args, codec)
