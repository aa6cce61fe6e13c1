"""Choose where the collated report goes.

Tasks usually publish into per-sample subdirectories of one results folder.
Writing the collated report into every one of them would duplicate it, so the
publish directories are reduced to their deepest common ancestor per storage
root (local filesystem, or one bucket/container per object store). When the
only shared ancestor is the root itself the reduction is meaningless and each
directory keeps its own copy.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

from file_report.paths import classify, scheme_prefix

logger = logging.getLogger(__name__)


def split_location(location: str) -> tuple[str, list[str]]:
    """Split a normalized location into ``(root, segments)``.

    The root of a local path is ``/``; the root of a URI is its scheme prefix
    plus the bucket or container.
    """
    prefix = scheme_prefix(location)
    if prefix is None:
        return os.sep, [part for part in location.split(os.sep) if part]
    body = location[len(prefix):]
    parts = [part for part in body.split("/") if part]
    if not parts:
        return prefix, []
    return f"{prefix}{parts[0]}", parts[1:]


def join_segments(root: str, segments: list[str]) -> str:
    if scheme_prefix(root) is not None:
        return "/".join([root, *segments]) if segments else root
    return os.sep + os.sep.join(segments)


def common_prefix(segment_lists: list[list[str]]) -> list[str]:
    """Longest run of whole leading segments shared by every list."""
    if not segment_lists:
        return []
    shortest = min(segment_lists, key=len)
    shared: list[str] = []
    for position, segment in enumerate(shortest):
        if any(segments[position] != segment for segments in segment_lists):
            break
        shared.append(segment)
    return shared


def collation_targets(publish_dirs: Iterable[str]) -> list[str]:
    """Reduce publish directories to the smallest set of base locations.

    ``/out/run/sampleA`` and ``/out/run/sampleB`` reduce to ``/out/run``.
    Disjoint local trees such as ``/a/x`` and ``/b/y`` share only ``/`` and
    keep one target each. Object-store directories in one bucket reduce to
    their common key prefix, or the bucket itself.
    """
    distinct = list(dict.fromkeys(classify(path).normalized for path in publish_dirs))
    by_root: dict[str, list[list[str]]] = {}
    originals: dict[str, list[str]] = {}
    for location in distinct:
        root, segments = split_location(location)
        by_root.setdefault(root, []).append(segments)
        originals.setdefault(root, []).append(location)

    targets: list[str] = []
    for root, segment_lists in by_root.items():
        if len(segment_lists) == 1:
            targets.append(originals[root][0])
            continue
        shared = common_prefix(segment_lists)
        if not shared and scheme_prefix(root) is None:
            logger.debug(
                "file_report event=no_common_root root=%s directories=%s",
                root,
                len(segment_lists),
            )
            targets.extend(originals[root])
            continue
        targets.append(join_segments(root, shared))

    return list(dict.fromkeys(targets))
