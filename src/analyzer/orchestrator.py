"""Project-wide analysis: register scripts, process scenes, report unused scripts.

Two phases separated by a hard barrier:
1. Every script is registered from its sidecar (thread pool).
2. Every scene is parsed, its components resolved against the registry and
   its hierarchy dumped (thread pool; components of one scene fan out to a
   second pool so scene workers never wait on their own pool).
"""
import csv
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from .hierarchy import HierarchyBuilder
from .registry import ScriptRegistry, UsedScripts
from .scene_parser import ComponentRef, SceneDocumentParser
from .usage_resolver import DEFAULT_BASE_TYPES, DEFAULT_POLICY, UsagePolicy, UsageResolver
from ..utils.logger import get_logger

logger = get_logger("analyzer.orchestrator")

REPORT_FILE_NAME = "UnusedScripts.csv"
REPORT_HEADER = ("Relative Path", "GUID")
DUMP_SUFFIX = ".dump"

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class SceneResult:
    """Outcome of processing one scene."""
    scene_path: Path
    dump_path: Optional[Path]
    node_count: int = 0
    component_count: int = 0
    used_identifiers: List[str] = field(default_factory=list)
    dangling_owners: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)


@dataclass
class UnusedScript:
    relative_path: str
    identifier: str


@dataclass
class AnalysisReport:
    """Aggregate result of one run."""
    project_root: Path
    script_count: int = 0
    registered_count: int = 0
    scenes: List[SceneResult] = field(default_factory=list)
    failed_scenes: List[Path] = field(default_factory=list)
    unused: List[UnusedScript] = field(default_factory=list)
    report_path: Optional[Path] = None


def relative_report_path(project_root: Path, path: Path) -> str:
    """Path relative to the project root with forward slashes."""
    return os.path.relpath(path, project_root).replace('\\', '/')


def write_unused_report(output_dir: Path, unused: Iterable[UnusedScript]) -> Path:
    """Write UnusedScripts.csv and return its path."""
    report_path = Path(output_dir) / REPORT_FILE_NAME
    with open(report_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f, lineterminator='\n')
        writer.writerow(REPORT_HEADER)
        for row in unused:
            writer.writerow((row.relative_path, row.identifier))
    return report_path


class ProjectAnalyzer:
    """Run the full unused-script analysis over one Unity project."""

    def __init__(self, project_root: str | Path, output_dir: str | Path,
                 scene_dir: str = "Assets",
                 scene_extension: str = ".unity",
                 script_extension: str = ".cs",
                 sidecar_suffix: str = ".meta",
                 base_types: Iterable[str] = DEFAULT_BASE_TYPES,
                 policy: UsagePolicy | str = DEFAULT_POLICY,
                 max_workers: Optional[int] = None,
                 exclude_dirs: Optional[Set[str]] = None):
        """Initialize analyzer.

        Args:
            project_root: Root directory of the Unity project
            output_dir: Directory receiving dumps and the CSV report
            scene_dir: Subdirectory searched for scenes
            scene_extension: Scene file extension
            script_extension: Script file extension (searched project-wide)
            sidecar_suffix: Suffix of the metadata file next to each script
            base_types: Recognized behaviour base classes
            policy: Usage comparison policy
            max_workers: Thread pool size (default: min(cpu_count, 8))
            exclude_dirs: Directory names skipped during discovery
        """
        self.project_root = Path(project_root).resolve()
        self.output_dir = Path(output_dir)
        self.scene_dir = scene_dir
        self.scene_extension = scene_extension
        self.script_extension = script_extension
        self.max_workers = max_workers or min(os.cpu_count() or 4, 8)
        self.exclude_dirs = exclude_dirs or set()

        self.registry = ScriptRegistry(sidecar_suffix=sidecar_suffix)
        self.used = UsedScripts()
        self.resolver = UsageResolver(base_types=base_types, policy=policy)

    @classmethod
    def from_config(cls, project_root: str | Path, output_dir: str | Path, config, **overrides) -> 'ProjectAnalyzer':
        """Build an analyzer from a Config, letting non-None overrides win."""
        settings = dict(
            scene_dir=config.scene_dir,
            scene_extension=config.scene_extension,
            script_extension=config.script_extension,
            sidecar_suffix=config.sidecar_suffix,
            base_types=config.base_types,
            policy=config.usage_policy,
            max_workers=config.max_workers,
            exclude_dirs=config.exclude_dirs,
        )
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return cls(project_root, output_dir, **settings)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _discover(self, root: Path, extension: str) -> List[Path]:
        if not root.is_dir():
            return []
        files = []
        for file_path in root.rglob(f"*{extension}"):
            if not file_path.is_file():
                continue
            relative_parts = file_path.relative_to(self.project_root).parts
            if any(part in self.exclude_dirs for part in relative_parts):
                continue
            files.append(file_path)
        return sorted(files)

    def discover_scenes(self) -> List[Path]:
        return self._discover(self.project_root / self.scene_dir, self.scene_extension)

    def discover_scripts(self) -> List[Path]:
        return self._discover(self.project_root, self.script_extension)

    # ------------------------------------------------------------------
    # Phase 1: registry
    # ------------------------------------------------------------------

    def register_scripts(self, scripts: List[Path]):
        """Register every script; returns once all registrations are done."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.registry.register, script): script
                for script in scripts
            }
            for future in as_completed(futures):
                script = futures[future]
                try:
                    future.result()
                except Exception as e:
                    logger.error("Failed to register %s: %s", script, e)

    # ------------------------------------------------------------------
    # Phase 2: scenes
    # ------------------------------------------------------------------

    def _resolve_component(self, component: ComponentRef) -> Optional[str]:
        """Mark the component's script used if it qualifies; returns its identifier."""
        record = self.registry.lookup(component.artifact_identifier)
        if record is None:
            return None
        if not self.resolver.is_used(record.location, component):
            return None
        self.used.mark(record.identifier)
        return record.identifier

    def dump_path_for(self, scene_path: Path) -> Path:
        return self.output_dir / f"{scene_path.stem}{self.scene_extension}{DUMP_SUFFIX}"

    def process_scene(self, scene_path: Path, usage_executor: ThreadPoolExecutor) -> SceneResult:
        """Parse one scene, resolve its components and write its hierarchy dump.

        Raises:
            SceneParseError: If the scene is not a valid YAML stream
            OSError: If the scene cannot be read or the dump cannot be written
        """
        logger.info("Processing scene: %s", scene_path)
        text = scene_path.read_text(encoding='utf-8', errors='ignore')
        scene = SceneDocumentParser(str(scene_path)).parse(text)

        futures = {
            usage_executor.submit(self._resolve_component, component): component
            for component in scene.components
            if component.artifact_identifier
        }
        used = set()
        for future in as_completed(futures):
            try:
                identifier = future.result()
            except Exception as e:
                logger.error("%s: failed to resolve component %s: %s",
                             scene_path.name, futures[future].anchor, e)
                continue
            if identifier is not None:
                used.add(identifier)

        builder = HierarchyBuilder(scene.nodes, scene.transforms)
        dump = builder.build()
        for anchor in dump.dangling_owners:
            logger.debug("%s: transform %s has no GameObject", scene_path.name, anchor)

        dump_path = self.dump_path_for(scene_path)
        dump_path.write_text(dump.text, encoding='utf-8')

        return SceneResult(
            scene_path=scene_path,
            dump_path=dump_path,
            node_count=len(dump.lines),
            component_count=len(scene.components),
            used_identifiers=sorted(used),
            dangling_owners=dump.dangling_owners,
            cycles=dump.cycles,
        )

    def process_scenes(self, scenes: List[Path], report: AnalysisReport,
                       progress_callback: Optional[ProgressCallback] = None):
        """Process every scene; a failing scene is logged and skipped."""
        total = len(scenes)
        with ThreadPoolExecutor(max_workers=self.max_workers) as usage_executor, \
                ThreadPoolExecutor(max_workers=self.max_workers) as scene_executor:
            futures = {
                scene_executor.submit(self.process_scene, scene, usage_executor): scene
                for scene in scenes
            }
            for i, future in enumerate(as_completed(futures), 1):
                scene = futures[future]
                try:
                    report.scenes.append(future.result())
                except Exception as e:
                    logger.error("Skipping scene %s: %s", scene, e)
                    report.failed_scenes.append(scene)

                if progress_callback:
                    progress_callback(i, total, scene.name)

        report.scenes.sort(key=lambda r: str(r.scene_path))
        report.failed_scenes.sort()

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def collect_unused(self) -> List[UnusedScript]:
        """Registered identifiers never marked used, sorted by path then identifier."""
        used = self.used.snapshot()
        unused = [
            UnusedScript(
                relative_path=relative_report_path(self.project_root, record.location),
                identifier=record.identifier,
            )
            for record in self.registry
            if record.identifier not in used
        ]
        return sorted(unused, key=lambda u: (u.relative_path, u.identifier))

    def run(self, progress_callback: Optional[ProgressCallback] = None) -> AnalysisReport:
        """Analyze the project and write every output file.

        Args:
            progress_callback: Called as (done, total, scene name) after each scene

        Returns:
            AnalysisReport
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        report = AnalysisReport(project_root=self.project_root)

        scripts = self.discover_scripts()
        scenes = self.discover_scenes()
        report.script_count = len(scripts)
        logger.info("Found %d scripts and %d scenes", len(scripts), len(scenes))

        self.register_scripts(scripts)
        report.registered_count = len(self.registry)

        self.process_scenes(scenes, report, progress_callback)

        report.unused = self.collect_unused()
        report.report_path = write_unused_report(self.output_dir, report.unused)
        logger.info("Analysis complete: %d unused of %d registered scripts",
                    len(report.unused), report.registered_count)
        return report
