"""
Atlas pipeline coordinator.
Runs the generate and delete cycles and exposes the build and play-mode hooks.
"""

import time
import logging
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .config import PipelineConfig, ErrorConfig
from .export import build_export_config
from .filtering import EligibilityFilter
from .grouping import group_resources
from .index import AssetIndex, FileSystemAssetIndex, ImageResource, IndexWriteError, AssetRef
from .optimizer import AtlasResult, PackingFailedError, SizeSearchOptimizer
from .packer import BinaryTreePacker, Packer
from .profile import Profile, ProfileStore
from .report import DiagnosticKind, RunReport
from .resolver import collect_dependents, collect_roots, resolve


class PipelineStep(Enum):
    """Enumeration of pipeline steps."""
    DELETE = "delete"
    RESOLVE = "resolve"
    FILTER = "filter"
    GROUP = "group"
    OPTIMIZE = "optimize"
    EMIT = "emit"


class PlayModeState(Enum):
    """Editor play-mode transitions."""
    EXITING_EDIT_MODE = "exiting_edit_mode"
    ENTERED_PLAY_MODE = "entered_play_mode"
    EXITING_PLAY_MODE = "exiting_play_mode"
    ENTERED_EDIT_MODE = "entered_edit_mode"


class PipelineError(Exception):
    """Base exception for pipeline errors."""
    def __init__(self, message: str, step: Optional[PipelineStep] = None):
        super().__init__(message)
        self.step = step


class AtlasPipeline:
    """
    Coordinates atlas generation for a project.

    A generation run deletes previous output, resolves the reachable assets,
    filters and groups the images, searches the best size for every group and
    only then writes the atlases. A group that fails is reported and skipped;
    the other groups are still emitted.
    """

    def __init__(self, config: PipelineConfig,
                 index: Optional[AssetIndex] = None,
                 packer: Optional[Packer] = None,
                 profile: Optional[Profile] = None,
                 error_config: Optional[ErrorConfig] = None):
        """
        Initialize the atlas pipeline.

        Args:
            config: Pipeline configuration
            index: Asset index, defaults to a filesystem index over the project
            packer: Sprite packer, defaults to the binary tree packer
            profile: Settings profile, defaults to the stored profile
            error_config: Retry policy for packer calls
        """
        self.config = config
        self.error_config = error_config or ErrorConfig()
        self.logger = self._setup_logging()

        self.index = index or FileSystemAssetIndex(config.project_dir)
        self.packer = packer or BinaryTreePacker(padding=config.padding)
        self.profile = profile or ProfileStore(Path(config.project_dir) / config.profile_path).load()

        self.eligibility = EligibilityFilter(config.runtime_bundle_folder)
        self.optimizer = SizeSearchOptimizer(
            self.packer,
            max_size=min(config.max_size, self.profile.max_size),
            max_retries=self.error_config.max_retries,
            retry_delay=self.error_config.retry_delay,
        )

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the pipeline."""
        logger = logging.getLogger("auto_atlas")
        logger.setLevel(logging.INFO)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    @contextmanager
    def _timed(self, step: PipelineStep, report: RunReport):
        start_time = time.time()
        try:
            yield
        finally:
            report.step_durations[step.value] = time.time() - start_time

    def generate(self) -> RunReport:
        """
        Run a full generation cycle.

        Returns:
            RunReport with emitted atlases, diagnostics and failed groups

        Raises:
            PipelineError: If the configuration is invalid or previous output
                cannot be removed
        """
        errors = self.config.validate()
        if errors:
            raise PipelineError(f"Invalid configuration: {'; '.join(errors)}")

        self.logger.info("Starting atlas generation")
        report = RunReport()

        with self._timed(PipelineStep.DELETE, report):
            self.delete()

        with self._timed(PipelineStep.RESOLVE, report):
            roots = collect_roots(self.index, self.config, report)
            reachable = resolve(self.index, roots, report)
        self.logger.info(f"Resolved {len(reachable)} reachable assets from {len(roots)} roots")

        with self._timed(PipelineStep.FILTER, report):
            filtered = self.eligibility.apply(self.index, reachable)
            report.extend(filtered.diagnostics)
        self.logger.info(f"{len(filtered.eligible)} images eligible for atlasing")

        with self._timed(PipelineStep.GROUP, report):
            groups = group_resources(filtered.eligible)

        computed: List[AtlasResult] = []
        with self._timed(PipelineStep.OPTIMIZE, report):
            for key, members in groups.items():
                if not members:
                    continue

                atlas_path = key.output_path(self.config.output_dir)
                try:
                    result = self.optimizer.optimize(members, key)
                except PackingFailedError as e:
                    self._record_trial_failures(report, atlas_path, e.trials)
                    report.fail_group(atlas_path, str(e))
                    self.logger.error(f"Packing failed for {atlas_path}: {e}")
                    continue

                self._record_trial_failures(report, atlas_path, result.trials)
                result.export = build_export_config(
                    key.fingerprint, result.size,
                    platforms=self.config.platforms,
                    profile=self.profile,
                    padding=self.config.padding,
                )
                computed.append(result)
                self.logger.info(
                    f"Packed {key.atlas_name} ({len(members)} sprites) at size {result.size}: "
                    f"{result.texture_count} textures, {result.cost} pixels"
                )

        with self._timed(PipelineStep.EMIT, report):
            for result in computed:
                atlas_path = result.key.output_path(self.config.output_dir)
                try:
                    self.index.create(result.to_dict(), atlas_path)
                except IndexWriteError as e:
                    report.add(DiagnosticKind.INDEX_WRITE_FAILURE, atlas_path, str(e))
                    report.fail_group(atlas_path, str(e))
                    self.logger.error(f"Failed to write atlas {atlas_path}: {e}")
                    continue
                report.atlases.append(atlas_path)
                report.results.append(result)

            self.index.refresh()

        self._log_summary(report)
        return report

    def delete(self) -> List[str]:
        """
        Remove every atlas under the managed output directory, then the directory.

        Returns:
            Paths of the deleted atlases

        Raises:
            PipelineError: If the index cannot delete an atlas
        """
        output_dir = self.config.output_dir.strip("/")
        if not self.index.exists(output_dir):
            return []

        deleted = []
        try:
            for ref in self.index.find_by_type("spriteatlas", scope=output_dir):
                if self.index.delete(ref.path):
                    deleted.append(ref.path)
            self.index.delete(output_dir)
        except IndexWriteError as e:
            raise PipelineError(f"Failed to delete previous atlases: {e}", PipelineStep.DELETE)
        finally:
            self.index.refresh()

        if deleted:
            self.logger.info(f"Deleted {len(deleted)} atlases from {output_dir}")
        return deleted

    def referenced_images(self) -> List[ImageResource]:
        """Return every reachable image, sorted by path."""
        reachable = resolve(self.index, collect_roots(self.index, self.config))
        images = [self.index.load_image(ref) for ref in reachable]
        return sorted((image for image in images if image is not None), key=lambda image: image.path)

    def dependents(self, target_path: str) -> List[AssetRef]:
        """Return the build roots that reference an asset."""
        return collect_dependents(self.index, collect_roots(self.index, self.config), target_path)

    def on_pre_build(self) -> RunReport:
        """Generate atlases before a build."""
        if not self.profile.enabled:
            self.logger.info("Atlas generation disabled in profile, skipping")
            return RunReport(skipped=True)
        return self.generate()

    def on_post_build(self) -> List[str]:
        """Delete generated atlases after a build."""
        if not self.profile.enabled:
            return []
        return self.delete()

    def on_play_mode_changed(self, state: PlayModeState) -> Optional[RunReport]:
        """Generate when leaving edit mode and clean up when returning to it."""
        if not (self.profile.enabled and self.profile.play_mode_enabled):
            return None

        if state == PlayModeState.EXITING_EDIT_MODE:
            return self.generate()
        if state == PlayModeState.ENTERED_EDIT_MODE:
            self.delete()
        return None

    def _record_trial_failures(self, report: RunReport, atlas_path: str, trials) -> None:
        for trial in trials:
            if trial.failed:
                report.add(DiagnosticKind.PACKER_FAILURE, atlas_path, f"Size {trial.size}: {trial.error}")

    def _log_summary(self, report: RunReport) -> None:
        """Log execution summary."""
        self.logger.info("=" * 60)
        self.logger.info("ATLAS GENERATION SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Atlases emitted: {len(report.atlases)}")
        self.logger.info(f"Groups failed: {len(report.failed_groups)}")
        for kind, count in sorted(report.summary().items()):
            self.logger.info(f"  {kind}: {count}")

        for atlas_path, reason in report.failed_groups.items():
            self.logger.info(f"  ✗ {atlas_path}: {reason}")

        for step, duration in report.step_durations.items():
            self.logger.info(f"  {step}: {duration:.2f}s")
        self.logger.info("=" * 60)
