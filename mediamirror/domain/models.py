from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

# Still images sometimes show up as video streams (cover art and the like).
IMAGE_STREAM_CODECS = {"mjpeg", "pgm", "png", "ppm", "tiff"}


class StreamKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    ATTACHMENT = "attachment"
    UNKNOWN = "unknown"

    @classmethod
    def from_codec_type(cls, codec_type: Optional[str]) -> "StreamKind":
        """Maps an ffprobe codec_type onto the closed set of stream kinds."""
        if not codec_type:
            return cls.UNKNOWN
        mapping = {
            "video": cls.VIDEO,
            "audio": cls.AUDIO,
            "subtitle": cls.SUBTITLE,
            "attachment": cls.ATTACHMENT,
        }
        return mapping.get(codec_type.strip().lower(), cls.UNKNOWN)


def is_image_stream(descriptor: Dict[str, str]) -> bool:
    codec_name = descriptor.get("codec_name", "").lower()
    mimetype = descriptor.get("mimetype", "").lower()
    return codec_name in IMAGE_STREAM_CODECS or mimetype.startswith("image")


def stream_index(descriptor: Dict[str, str]) -> int:
    return int(descriptor["index"])


class StreamInfo(BaseModel):
    """Classified stream descriptors of one container file."""
    video: List[Dict[str, str]] = Field(default_factory=list)
    audio: List[Dict[str, str]] = Field(default_factory=list)
    subtitle: List[Dict[str, str]] = Field(default_factory=list)
    other: List[Dict[str, str]] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)

    def add_stream(self, descriptor: Dict[str, str]) -> StreamKind:
        """Routes a finished stream record into its bucket and returns its kind."""
        kind = StreamKind.from_codec_type(descriptor.get("codec_type"))
        if kind is StreamKind.VIDEO:
            if is_image_stream(descriptor):
                self.other.append(descriptor)
            else:
                self.video.append(descriptor)
        elif kind is StreamKind.AUDIO:
            self.audio.append(descriptor)
        elif kind is StreamKind.SUBTITLE:
            if "language" in descriptor and "lang" not in descriptor:
                descriptor["lang"] = descriptor["language"]
            self.subtitle.append(descriptor)
        elif kind is StreamKind.ATTACHMENT:
            self.other.append(descriptor)
        elif kind is StreamKind.UNKNOWN:
            self.other.append(descriptor)
        return kind

    @property
    def stream_count(self) -> int:
        return len(self.video) + len(self.audio) + len(self.subtitle) + len(self.other)


class FileEntry(BaseModel):
    kind: Literal["file"] = "file"
    name: str
    absolute_path: Path
    relative_path: str
    extension: str = ""
    stream_info: Optional[StreamInfo] = None


class DirectoryEntry(BaseModel):
    kind: Literal["dir"] = "dir"
    name: str
    absolute_path: Path
    relative_path: str
    children: List[Union["DirectoryEntry", FileEntry]] = Field(default_factory=list)

    def iter_files(self):
        """Yields every file leaf below this directory, depth-first."""
        for child in self.children:
            if isinstance(child, DirectoryEntry):
                yield from child.iter_files()
            else:
                yield child


DirEntry = Union[DirectoryEntry, FileEntry]


class WorkPlan(BaseModel):
    directories_to_create: List[str] = Field(default_factory=list)
    files_to_copy: List[FileEntry] = Field(default_factory=list)
    subtitles_to_convert: List[FileEntry] = Field(default_factory=list)
    videos_to_encode: List[FileEntry] = Field(default_factory=list)

    def merge(self, other: "WorkPlan") -> None:
        self.directories_to_create.extend(other.directories_to_create)
        self.files_to_copy.extend(other.files_to_copy)
        self.subtitles_to_convert.extend(other.subtitles_to_convert)
        self.videos_to_encode.extend(other.videos_to_encode)

    @property
    def file_count(self) -> int:
        return len(self.files_to_copy) + len(self.subtitles_to_convert) + len(self.videos_to_encode)


class StreamSelection(BaseModel):
    """Stream indices to keep when transcoding one file."""
    video: int
    audio: List[int] = Field(default_factory=list)
    subtitle: List[int] = Field(default_factory=list)


class Task(BaseModel):
    """One labeled unit of work for the task runner."""
    label: str
    action: Callable[[], None]


class RunReport(BaseModel):
    dry_run: bool = False
    directories: int = 0
    copied: int = 0
    videos_encoded: int = 0
    subtitles_converted: int = 0
    skipped: int = 0
    failures: Dict[str, Exception] = Field(default_factory=dict)

    model_config = {"arbitrary_types_allowed": True}

    @property
    def failed(self) -> bool:
        return bool(self.failures)
