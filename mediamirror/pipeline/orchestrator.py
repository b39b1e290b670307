"""Pipeline orchestrator for one mirroring run.

Sequences the stages of a run over a snapshot of the source tree:
inventory → classify → probe/validate → (dry-run stop) → create directories
→ copy → encode videos → convert subtitle files.

Everything that can be checked without touching the output tree (bad root,
unencodable videos) fails the run before the first write. Once writing has
started, each copy/encode is an isolated task: failures are collected into
the RunReport and the rest of the batch carries on. Existing destinations are
skipped, so re-running over a partial output tree only does the missing work.
"""

import logging
import shutil
from pathlib import Path
from typing import Callable, List, Optional
from mediamirror.config.models import AppConfig
from mediamirror.domain.errors import StreamValidationError
from mediamirror.domain.events import RunFinished, StageStarted, ValidationFailed
from mediamirror.domain.models import FileEntry, RunReport, Task, WorkPlan
from mediamirror.infrastructure.event_bus import EventBus
from mediamirror.infrastructure.ffmpeg import FFmpegAdapter
from mediamirror.infrastructure.ffprobe import FFprobeAdapter
from mediamirror.infrastructure.file_scanner import DirectoryInventory
from mediamirror.infrastructure.housekeeping import HousekeepingService
from mediamirror.pipeline.classifier import WorkClassifier
from mediamirror.pipeline.context import RunContext
from mediamirror.pipeline.stream_inspector import StreamInspector, select_streams


class Orchestrator:
    """Runs the mirroring pipeline for one source directory.

    Args:
        config: AppConfig with general, encode, policy and tools settings.
        event_bus: EventBus for stage, skip and task notices.
        inventory: DirectoryInventory used to snapshot the source tree.
        ffprobe_adapter: FFprobeAdapter for stream probing.
        ffmpeg_adapter: FFmpegAdapter that performs the transcodes.
        housekeeping: Optional HousekeepingService for stale temp files.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        inventory: DirectoryInventory,
        ffprobe_adapter: FFprobeAdapter,
        ffmpeg_adapter: FFmpegAdapter,
        housekeeping: Optional[HousekeepingService] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.inventory = inventory
        self.ffprobe_adapter = ffprobe_adapter
        self.ffmpeg_adapter = ffmpeg_adapter
        self.housekeeping = housekeeping
        self.logger = logging.getLogger(__name__)

        encode = config.encode
        self.classifier = WorkClassifier(
            video_extensions=encode.video_extensions,
            subtitle_extensions=encode.subtitle_extensions,
            video_target_extension=encode.video_target_extension,
            subtitle_target_extension=encode.subtitle_target_extension,
        )
        self.inspector = StreamInspector(ffprobe_adapter, config.policy)

    def plan(self, target_dir: Path) -> WorkPlan:
        """Inventories, classifies and validates; performs no writes."""
        tree = self.inventory.inventory(Path(target_dir))
        plan = self.classifier.classify(tree)
        self.logger.info(
            f"Plan: dirs={len(plan.directories_to_create)}, copy={len(plan.files_to_copy)}, "
            f"subtitles={len(plan.subtitles_to_convert)}, videos={len(plan.videos_to_encode)}"
        )

        self.event_bus.publish(StageStarted(stage="inspect", count=len(plan.videos_to_encode)))
        try:
            self.inspector.inspect(plan.videos_to_encode)
        except StreamValidationError as e:
            self.event_bus.publish(ValidationFailed(violations=e.violations))
            raise
        return plan

    def run(self, target_dir: Path, output_dir: Optional[Path] = None) -> RunReport:
        self.logger.info(f"Run started: target={target_dir}, output={output_dir or '(dry run)'}")
        return self.execute(self.plan(target_dir), output_dir)

    def execute(self, plan: WorkPlan, output_dir: Optional[Path] = None) -> RunReport:
        """Carries out a validated plan; a None output_dir only reports it."""
        if output_dir is None:
            self.logger.info("Dry run: no files will be written")
            report = RunReport(dry_run=True, directories=len(plan.directories_to_create))
            self._finish(report)
            return report

        ctx = RunContext.create(
            Path(output_dir),
            concurrency=self.config.general.threads,
            event_bus=self.event_bus,
            verbose=self.config.general.verbose,
        )
        report = RunReport()

        if self.housekeeping and ctx.output_dir.exists():
            self.housekeeping.cleanup_temp_files(ctx.output_dir)

        self._create_directories(ctx, plan.directories_to_create, report)
        report.copied = self._run_stage(ctx, "copy", self._plan_copies(ctx, plan.files_to_copy, report), report)
        report.videos_encoded = self._run_stage(ctx, "encode", self._plan_videos(ctx, plan.videos_to_encode, report), report)
        report.subtitles_converted = self._run_stage(
            ctx, "subtitles", self._plan_subtitles(ctx, plan.subtitles_to_convert, report), report
        )

        self._finish(report)
        return report

    def _finish(self, report: RunReport) -> None:
        self.logger.info(
            f"Run finished: copied={report.copied}, encoded={report.videos_encoded}, "
            f"subtitles={report.subtitles_converted}, skipped={report.skipped}, failed={len(report.failures)}"
        )
        self.event_bus.publish(RunFinished(
            dry_run=report.dry_run,
            directories=report.directories,
            copied=report.copied,
            videos_encoded=report.videos_encoded,
            subtitles_converted=report.subtitles_converted,
            skipped=report.skipped,
            failed=len(report.failures),
        ))

    def _create_directories(self, ctx: RunContext, directories: List[str], report: RunReport) -> None:
        self.event_bus.publish(StageStarted(stage="directories", count=len(directories)))
        for directory in directories:
            ctx.resolver.resolve(directory).mkdir(parents=True, exist_ok=True)
        report.directories = len(directories)

    def _run_stage(self, ctx: RunContext, stage: str, tasks: List[Task], report: RunReport) -> int:
        """Runs one stage's tasks; returns how many succeeded."""
        self.event_bus.publish(StageStarted(stage=stage, count=len(tasks)))
        errors = ctx.runner.run(tasks, verbose=ctx.verbose)
        report.failures.update(errors)
        return len(tasks) - len(errors)

    def _plan_copies(self, ctx: RunContext, files: List[FileEntry], report: RunReport) -> List[Task]:
        tasks = []
        for entry in files:
            # Claimed first so converted outputs never land on a copied name.
            destination = ctx.resolver.claim(entry.relative_path)
            if ctx.resolver.should_skip(destination, "Copy target already exists"):
                report.skipped += 1
                continue
            tasks.append(Task(label=str(entry.absolute_path), action=self._bind(shutil.copy2, entry.absolute_path, destination)))
        return tasks

    def _plan_videos(self, ctx: RunContext, files: List[FileEntry], report: RunReport) -> List[Task]:
        video_ext = self.config.encode.video_target_extension
        subtitle_ext = self.config.encode.subtitle_target_extension
        tasks = []
        for entry in files:
            destination = ctx.resolver.claim(entry.relative_path, video_ext)
            selection = select_streams(entry, self.config.policy)
            # Claimed even when skipped so names stay stable across re-runs.
            subtitle_outputs = [
                (index, ctx.resolver.claim(entry.relative_path, subtitle_ext))
                for index in selection.subtitle
            ]
            if ctx.resolver.should_skip(destination, "Video encode target already exists"):
                report.skipped += 1
                continue

            def action(entry=entry, destination=destination, selection=selection, subtitle_outputs=subtitle_outputs):
                self.ffmpeg_adapter.transcode(entry.absolute_path, destination, selection, entry.stream_info)
                for index, subtitle_path in subtitle_outputs:
                    if subtitle_path.exists():
                        self.logger.info(f"SKIPPING: Subtitle track target already exists: {subtitle_path}")
                        continue
                    self.ffmpeg_adapter.extract_subtitle_track(entry.absolute_path, subtitle_path, index)

            tasks.append(Task(label=str(entry.absolute_path), action=action))
        return tasks

    def _plan_subtitles(self, ctx: RunContext, files: List[FileEntry], report: RunReport) -> List[Task]:
        subtitle_ext = self.config.encode.subtitle_target_extension
        tasks = []
        for entry in files:
            destination = ctx.resolver.claim(entry.relative_path, subtitle_ext)
            if ctx.resolver.should_skip(destination, "Sub encode target already exists"):
                report.skipped += 1
                continue
            tasks.append(Task(
                label=str(entry.absolute_path),
                action=self._bind(self.ffmpeg_adapter.transcode_subtitle, entry.absolute_path, destination),
            ))
        return tasks

    @staticmethod
    def _bind(func: Callable[[Path, Path], Path], source: Path, destination: Path) -> Callable[[], None]:
        def action() -> None:
            func(source, destination)
        return action
