"""Stream probing and encodability checks for the videos of a run.

Every candidate is probed before anything is written. Violations are
collected per reason across the whole batch and raised together, so one run
reports every file that needs attention.
"""

import logging
from pathlib import Path
from typing import Dict, List, Sequence
from mediamirror.config.models import StreamPolicyConfig
from mediamirror.domain.errors import ProbeError, StreamValidationError, UnknownCodec
from mediamirror.domain.models import FileEntry, StreamSelection, stream_index
from mediamirror.infrastructure.ffprobe import FFprobeAdapter

NO_VIDEO = "no video streams"
NO_AUDIO = "no audio streams"
MULTIPLE_VIDEO = "multiple video streams"
MULTIPLE_AUDIO = "multiple audio streams"
UNKNOWN_SUBTITLE = "unknown subtitle codec"
PROBE_FAILED = "probe failed"


class StreamInspector:
    def __init__(self, ffprobe_adapter: FFprobeAdapter, policy: StreamPolicyConfig):
        self.ffprobe_adapter = ffprobe_adapter
        self.policy = policy
        self.logger = logging.getLogger(__name__)

    def inspect(self, files: Sequence[FileEntry]) -> None:
        """Attaches stream_info to every file; raises StreamValidationError on any violation."""
        violations: Dict[str, List[Path]] = {}

        def record(reason: str, entry: FileEntry) -> None:
            paths = violations.setdefault(reason, [])
            if entry.absolute_path not in paths:
                paths.append(entry.absolute_path)

        for entry in files:
            try:
                entry.stream_info = self.ffprobe_adapter.get_stream_info(entry.absolute_path)
            except ProbeError as e:
                self.logger.error(f"Probe failed for {entry.absolute_path}: {e}")
                record(PROBE_FAILED, entry)
                continue

            for reason in self.check(entry):
                record(reason, entry)

        if violations:
            for reason, paths in violations.items():
                self.logger.error(f"Validation: {reason}: {len(paths)} file(s)")
            raise StreamValidationError(violations)

        self.logger.info(f"Stream validation passed for {len(files)} video file(s)")

    def check(self, entry: FileEntry) -> List[str]:
        """Returns the policy violations of one already-probed file."""
        info = entry.stream_info
        reasons = []
        if info is None:
            return [PROBE_FAILED]

        if not info.video:
            reasons.append(NO_VIDEO)
        if not info.audio:
            reasons.append(NO_AUDIO)
        if len(info.video) > 1:
            reasons.append(MULTIPLE_VIDEO)
        if len(info.audio) > 1 and not self.policy.allow_multiple_audio:
            reasons.append(MULTIPLE_AUDIO)

        known = self.policy.known_subtitle_codecs
        if any(stream.get("codec_name") not in known for stream in info.subtitle):
            reasons.append(UNKNOWN_SUBTITLE)
        return reasons


def select_streams(entry: FileEntry, policy: StreamPolicyConfig) -> StreamSelection:
    """Picks the stream indices to keep for an inspected, valid file.

    Bitmap subtitle streams are dropped; text ones are kept for conversion.
    """
    info = entry.stream_info
    if info is None or not info.video or not info.audio:
        raise ValueError(f"{entry.absolute_path} has not been inspected")

    subtitles = []
    for stream in info.subtitle:
        codec = stream.get("codec_name", "")
        if codec in policy.unconvertible_subtitle_codecs:
            continue
        if codec in policy.convertible_subtitle_codecs:
            subtitles.append(stream_index(stream))
        else:
            raise UnknownCodec(codec, entry.absolute_path)

    audio = [stream_index(s) for s in info.audio]
    if not policy.allow_multiple_audio:
        audio = audio[:1]

    return StreamSelection(video=stream_index(info.video[0]), audio=audio, subtitle=subtitles)
