import threading
import pytest
from pathlib import Path
from typing import Dict, List, Optional
from mediamirror.config.models import AppConfig
from mediamirror.infrastructure.event_bus import EventBus
from mediamirror.infrastructure.ffmpeg import FFmpegAdapter
from mediamirror.infrastructure.ffprobe import FFprobeAdapter

# ============================================================================
# ffprobe report helpers
# ============================================================================

def build_probe_report(streams: List[Dict[str, str]], format_info: Optional[Dict[str, str]] = None) -> str:
    """Renders stream dicts in ffprobe's default '[STREAM]' / '[FORMAT]' layout."""
    lines = []
    for index, stream in enumerate(streams):
        lines.append("[STREAM]")
        fields = {"index": str(index), **stream}
        for key, value in fields.items():
            lines.append(f"{key}={value}")
        lines.append("[/STREAM]")
    lines.append("[FORMAT]")
    for key, value in (format_info or {"format_name": "matroska,webm", "duration": "10.000000"}).items():
        lines.append(f"{key}={value}")
    lines.append("[/FORMAT]")
    return "\n".join(lines) + "\n"


VIDEO_STREAM = {"codec_type": "video", "codec_name": "h264", "width": "1920", "height": "1080", "avg_frame_rate": "24000/1001"}
AUDIO_STREAM = {"codec_type": "audio", "codec_name": "aac", "TAG:language": "eng"}


class FakeFFprobe(FFprobeAdapter):
    """Serves canned probe reports keyed by file name."""

    def __init__(self, reports: Optional[Dict[str, str]] = None, default: Optional[str] = None):
        super().__init__("ffprobe")
        self.reports = reports or {}
        self.default = default if default is not None else build_probe_report([VIDEO_STREAM, AUDIO_STREAM])
        self.probed: List[Path] = []

    def probe(self, file_path: Path) -> str:
        self.probed.append(Path(file_path))
        return self.reports.get(Path(file_path).name, self.default)


class FakeFFmpeg(FFmpegAdapter):
    """Writes placeholder outputs instead of running ffmpeg."""

    def __init__(self, fail_on: Optional[List[str]] = None):
        super().__init__("ffmpeg")
        self.fail_on = set(fail_on or [])
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def run(self, input_path: Path, output_path: Path, args: List[str], muxer: str) -> Path:
        with self._lock:
            self.calls.append((Path(input_path), Path(output_path), list(args), muxer))
        if Path(input_path).name in self.fail_on:
            raise RuntimeError(f"simulated failure for {Path(input_path).name}")
        Path(output_path).write_text(f"{muxer}:{Path(input_path).name}")
        return Path(output_path)

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a sample AppConfig object for testing."""
    return AppConfig(
        general={
            "threads": 4,
            "verbose": True,
            "strict": False,
            "debug": False,
        },
        policy={
            "allow_multiple_audio": False,
        },
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "mediamirror.yaml"
    conf_file.write_text(
        "general:\n"
        "  threads: 2\n"
        "  strict: true\n"
        "encode:\n"
        "  crf: 33\n"
        "  video_extensions: [MP4, .mkv]\n"
        "policy:\n"
        "  allow_multiple_audio: true\n"
        "tools:\n"
        "  ffmpeg: /opt/ffmpeg/bin/ffmpeg\n"
    )
    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# Adapter Fixtures
# ============================================================================

@pytest.fixture
def probe_report():
    return build_probe_report

@pytest.fixture
def fake_ffprobe():
    return FakeFFprobe()

@pytest.fixture
def fake_ffmpeg():
    return FakeFFmpeg()

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def media_tree(tmp_path):
    """Creates root/{a.mp4, notes.txt, sub/b.srt} under tmp_path/src."""
    root = tmp_path / "src" / "root"
    (root / "sub").mkdir(parents=True)
    (root / "a.mp4").write_bytes(b"fake video")
    (root / "notes.txt").write_text("notes")
    (root / "sub" / "b.srt").write_text("1\n00:00:01,000 --> 00:00:02,000\nHello\n")
    return root


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
