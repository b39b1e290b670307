import os
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

DEFAULT_VIDEO_EXTENSIONS = [
    "3g2", "3gp",
    "amv", "asf", "avi",
    "drc",
    "f4a", "f4b", "f4p", "f4v", "flv",
    "gif", "gifv",
    "m2v", "m4p", "m4v", "mkv", "mng", "mov", "mp2", "mp4", "mpe", "mpeg", "mpg", "mpv", "mxf",
    "nsv",
    "ogg", "ogm", "ogv",  # .ogm is also an audio format, but it is mostly misused for ogv
    "qt",
    "rm", "rmvb", "roq",
    "svi",
    "ts",
    "vob",
    "webm", "wmv",
    "yuv",
]

DEFAULT_SUBTITLE_EXTENSIONS = ["aqt", "ass", "jss", "pjs", "rt", "sbv", "smi", "srt", "ssa", "stl", "sub", "vtt"]

# Subtitle codecs that ffmpeg can turn into webvtt.
CONVERTIBLE_SUBTITLE_CODECS = ["ass", "mov_text", "srt", "ssa", "subrip"]

# Bitmap subtitles: known, but dropped instead of converted.
UNCONVERTIBLE_SUBTITLE_CODECS = ["dvd_subtitle", "hdmv_pgs_subtitle"]


def default_threads() -> int:
    """All processors but a small reserve, never below one."""
    return max(1, (os.cpu_count() or 1) - 2)


def _normalize_extension(ext: str) -> str:
    return ext.strip().lstrip(".").lower()


class GeneralConfig(BaseModel):
    threads: int = Field(default_factory=default_threads, gt=0)
    verbose: bool = True
    strict: bool = False  # Exit non-zero when any task fails
    log_path: Optional[str] = None
    debug: bool = False


class EncodeConfig(BaseModel):
    video_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_VIDEO_EXTENSIONS))
    subtitle_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_SUBTITLE_EXTENSIONS))
    video_target_extension: str = "webm"
    subtitle_target_extension: str = "vtt"
    crf: int = Field(default=30, ge=0, le=63)

    @field_validator("video_extensions", "subtitle_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [_normalize_extension(ext) for ext in v]

    @field_validator("video_target_extension", "subtitle_target_extension")
    @classmethod
    def normalize_target(cls, v: str) -> str:
        ext = _normalize_extension(v)
        if not ext:
            raise ValueError("Target extension must not be empty")
        return ext


class StreamPolicyConfig(BaseModel):
    """Which stream layouts are considered encodable."""
    allow_multiple_audio: bool = False
    convertible_subtitle_codecs: List[str] = Field(default_factory=lambda: list(CONVERTIBLE_SUBTITLE_CODECS))
    unconvertible_subtitle_codecs: List[str] = Field(default_factory=lambda: list(UNCONVERTIBLE_SUBTITLE_CODECS))

    @property
    def known_subtitle_codecs(self) -> List[str]:
        return self.convertible_subtitle_codecs + self.unconvertible_subtitle_codecs


class ToolsConfig(BaseModel):
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    encode: EncodeConfig = Field(default_factory=EncodeConfig)
    policy: StreamPolicyConfig = Field(default_factory=StreamPolicyConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
