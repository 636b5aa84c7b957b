"""
Reachable-asset resolution over the asset index dependency graph.
"""

from collections import deque
from typing import Iterable, List, Optional, Set

from .config import PipelineConfig
from .index import AssetIndex, AssetNotFoundError, AssetRef
from .report import DiagnosticKind, RunReport


def find_always_included_folders(index: AssetIndex, folder_name: str, assets_dir: str) -> List[AssetRef]:
    """Find folders named ``folder_name`` anywhere under the assets directory."""
    return [
        folder for folder in index.find_by_type("folder", scope=assets_dir)
        if folder.name == folder_name
    ]


def collect_roots(index: AssetIndex, config: PipelineConfig,
                  report: Optional[RunReport] = None) -> List[AssetRef]:
    """
    Collect the root assets that ship with a build.

    Roots are the scenes enabled in the build list plus every asset inside an
    always-included folder. Scenes that do not resolve are skipped and
    recorded as MISSING_ROOT.

    Args:
        index: Asset index to query
        config: Pipeline configuration
        report: Report receiving diagnostics

    Returns:
        De-duplicated roots in first-seen order
    """
    roots: List[AssetRef] = []
    seen: Set[AssetRef] = set()

    def add(ref: AssetRef) -> None:
        if ref not in seen:
            seen.add(ref)
            roots.append(ref)

    for scene_path in config.enabled_scenes:
        ref = index.resolve(scene_path)
        if ref is None:
            if report is not None:
                report.add(DiagnosticKind.MISSING_ROOT, scene_path, "Build scene not found in asset index")
            continue
        add(ref)

    for folder in find_always_included_folders(index, config.always_included_folder, config.assets_dir):
        for ref in index.find_by_type("", scope=folder.path):
            add(ref)

    return roots


def resolve(index: AssetIndex, roots: Iterable[AssetRef],
            report: Optional[RunReport] = None) -> Set[AssetRef]:
    """
    Compute the transitive closure of assets referenced by the roots.

    The index only answers direct dependencies, so the graph is walked
    breadth-first with a visited set; cycles terminate. A root the index does
    not know is left out and recorded as MISSING_ROOT.

    Args:
        index: Asset index to query
        roots: Root assets
        report: Report receiving diagnostics

    Returns:
        Set containing every reachable root and dependency exactly once
    """
    reachable: Set[AssetRef] = set()
    queue = deque()

    for root in roots:
        if root in reachable:
            continue
        try:
            dependencies = index.get_direct_dependencies(root)
        except AssetNotFoundError as e:
            if report is not None:
                report.add(DiagnosticKind.MISSING_ROOT, root.path, str(e))
            continue
        reachable.add(root)
        queue.extend(dependencies)

    while queue:
        ref = queue.popleft()
        if ref in reachable:
            continue
        reachable.add(ref)
        try:
            queue.extend(index.get_direct_dependencies(ref))
        except AssetNotFoundError:
            # Still reachable, just a leaf the index cannot expand
            continue

    return reachable


def collect_dependents(index: AssetIndex, roots: Iterable[AssetRef], target_path: str) -> List[AssetRef]:
    """
    List the roots whose dependency closure contains the target asset.

    Args:
        index: Asset index to query
        roots: Candidate roots
        target_path: Project-relative path of the asset to look up

    Returns:
        Roots referencing the target, excluding the target itself
    """
    target = index.resolve(target_path)
    if target is None:
        raise AssetNotFoundError(f"Asset not found in index: {target_path}", target_path)

    dependents = []
    for root in roots:
        if root == target:
            continue
        if target in resolve(index, [root]):
            dependents.append(root)

    return dependents
