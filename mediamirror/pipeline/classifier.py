from typing import Iterable
from mediamirror.domain.models import DirectoryEntry, FileEntry, WorkPlan


class WorkClassifier:
    """Partitions an inventory tree into the work a run has to do.

    Pure function of the tree: no filesystem access. Every file lands in
    exactly one of files_to_copy, subtitles_to_convert, videos_to_encode.
    """

    def __init__(
        self,
        video_extensions: Iterable[str],
        subtitle_extensions: Iterable[str],
        video_target_extension: str = "webm",
        subtitle_target_extension: str = "vtt",
    ):
        self.video_extensions = frozenset(video_extensions)
        self.subtitle_extensions = frozenset(subtitle_extensions)
        self.video_target_extension = video_target_extension
        self.subtitle_target_extension = subtitle_target_extension

    def classify(self, tree: DirectoryEntry) -> WorkPlan:
        plan = WorkPlan(directories_to_create=[tree.relative_path])
        for child in tree.children:
            if isinstance(child, DirectoryEntry):
                plan.merge(self.classify(child))
            else:
                self._place_file(plan, child)
        return plan

    def _place_file(self, plan: WorkPlan, entry: FileEntry) -> None:
        ext = entry.extension
        # Video is checked first; the two extension sets are disjoint in practice.
        if ext != self.video_target_extension and ext in self.video_extensions:
            plan.videos_to_encode.append(entry)
        elif ext != self.subtitle_target_extension and ext in self.subtitle_extensions:
            plan.subtitles_to_convert.append(entry)
        else:
            plan.files_to_copy.append(entry)
