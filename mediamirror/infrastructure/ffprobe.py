import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Set, Tuple
from mediamirror.domain.errors import ProbeError
from mediamirror.domain.models import StreamInfo, StreamKind

logger = logging.getLogger(__name__)


class ParserState(Enum):
    IDLE = "idle"
    IN_FORMAT = "in_format"
    IN_STREAM = "in_stream"


# (state, marker line) -> next state. Any other line keeps the state.
TRANSITIONS: Dict[Tuple[ParserState, str], ParserState] = {
    (ParserState.IDLE, "[FORMAT]"): ParserState.IN_FORMAT,
    (ParserState.IDLE, "[STREAM]"): ParserState.IN_STREAM,
    (ParserState.IN_FORMAT, "[/FORMAT]"): ParserState.IDLE,
    (ParserState.IN_STREAM, "[/STREAM]"): ParserState.IDLE,
}


def split_key_value(line: str) -> Optional[Tuple[str, str]]:
    """Splits 'key=value' on the first '='. Keys are lowercased, 'tag:' is dropped."""
    if "=" not in line:
        return None
    key, value = line.split("=", 1)
    key = key.strip().lower()
    if key.startswith("tag:"):
        key = key[len("tag:"):]
    if not key:
        return None
    return key, value.strip()


class ProbeOutputParser:
    """Finite-state parser for ffprobe's default '[STREAM]'/'[FORMAT]' sections.

    Malformed lines are skipped. End of input is the only terminal state; a
    stream section that never closes is dropped. Records without an integer
    index, or repeating an index already seen, are dropped as well so the
    resulting StreamInfo has unique stream indices.
    """

    def __init__(self):
        self.state = ParserState.IDLE
        self.info = StreamInfo()
        self._record: Dict[str, str] = {}
        self._seen_indices: Set[int] = set()

    def feed(self, line: str) -> None:
        line = line.strip()
        next_state = TRANSITIONS.get((self.state, line))

        if next_state is not None:
            if self.state is ParserState.IN_STREAM:
                self._close_stream()
            elif next_state is ParserState.IN_STREAM:
                self._record = {}
            self.state = next_state
            return

        if self.state is ParserState.IDLE:
            return

        pair = split_key_value(line)
        if pair is None:
            if line:
                logger.debug(f"Skipping malformed probe line: {line!r}")
            return

        key, value = pair
        if self.state is ParserState.IN_FORMAT:
            self.info.metadata[key] = value
        else:
            self._record[key] = value

    def _close_stream(self) -> None:
        record, self._record = self._record, {}
        try:
            index = int(record.get("index", ""))
        except ValueError:
            logger.debug(f"Dropping stream record without a valid index: {record}")
            return
        if index in self._seen_indices:
            logger.debug(f"Dropping stream record with duplicate index {index}")
            return
        self._seen_indices.add(index)
        record["index"] = str(index)
        for key in ("codec_type", "codec_name"):
            if key in record:
                record[key] = record[key].lower()
        kind = self.info.add_stream(record)
        if kind is StreamKind.UNKNOWN:
            logger.warning(f"Unknown codec_type: {record.get('codec_type')}")

    def finish(self) -> StreamInfo:
        if self.state is ParserState.IN_STREAM:
            logger.debug("Probe output ended inside a stream section; dropping it")
        self.state = ParserState.IDLE
        self._record = {}
        return self.info


def parse_probe_output(text: str) -> StreamInfo:
    parser = ProbeOutputParser()
    for line in text.splitlines():
        parser.feed(line)
    return parser.finish()


class FFprobeAdapter:
    """Wrapper around ffprobe to extract stream information."""

    def __init__(self, ffprobe_path: str = "ffprobe"):
        self.ffprobe_path = ffprobe_path

    def probe(self, file_path: Path) -> str:
        """Runs ffprobe and returns its raw section report."""
        cmd = [
            self.ffprobe_path,
            "-hide_banner",
            "-show_streams",
            "-show_format",
            str(file_path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except OSError as e:
            raise ProbeError(f"Could not run ffprobe for {file_path}: {e}") from e
        if result.returncode != 0:
            raise ProbeError(f"ffprobe failed for {file_path}: {result.stderr}")
        return result.stdout

    def get_stream_info(self, file_path: Path) -> StreamInfo:
        return parse_probe_output(self.probe(file_path))
