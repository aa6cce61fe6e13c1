"""Partition a task's produced files into named output groups.

Names come from the declaration contract: an explicit emit name is used
verbatim, otherwise ``output_<index>`` where ``index`` is the declaration's
position in the process signature. Produced parameters are re-correlated to
their declaration either through ``declaration_index`` or through the
``<declIndex:subIndex>`` marker a host embeds when it flattens tuple outputs.
Parameters that cannot be re-correlated fall back to their own position.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from os import PathLike
from typing import Any

from file_report.paths import scheme_prefix
from file_report.reporting.models import OutputDeclaration, ProducedOutput

logger = logging.getLogger(__name__)

INDEX_MARKER_PATTERN = re.compile(r"<(\d+):(\d+)>")
_NUMERIC_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def synthesized_name(index: int) -> str:
    return f"output_{index}"


def declared_names(declarations: Sequence[OutputDeclaration] | None) -> dict[int, str]:
    """Map declaration index to its output name, in declaration order."""
    names: dict[int, str] = {}
    for declaration in sorted(declarations or (), key=lambda item: item.index):
        name = (declaration.name or "").strip()
        names[declaration.index] = name or synthesized_name(declaration.index)
    return names


def marker_index(description: str) -> int | None:
    match = INDEX_MARKER_PATTERN.search(description or "")
    if match is None:
        return None
    return int(match.group(1))


def is_path_like(value: Any) -> bool:
    """Only path-shaped values count as output files.

    Tuple outputs mix labels and numbers with files. Strings qualify when they
    carry a separator or an extension and are not plain numbers.
    """
    if isinstance(value, PathLike):
        return True
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if not candidate or _NUMERIC_PATTERN.match(candidate):
        return False
    if scheme_prefix(candidate) is not None:
        return True
    return "/" in candidate or "." in candidate


def path_values(values: Iterable[Any]) -> list[str]:
    """Flatten nested values and keep path-shaped ones as strings."""
    collected: list[str] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            collected.extend(path_values(value))
        elif is_path_like(value):
            collected.append(str(value).strip())
        else:
            logger.debug("file_report event=skip_non_path value=%r", value)
    return collected


def group_outputs(
    declarations: Sequence[OutputDeclaration] | None,
    produced: Sequence[ProducedOutput],
) -> dict[str, list[str]]:
    """Group produced files by logical output name.

    Groups are ordered by declaration index; parameters that could not be
    re-correlated follow in the order they were produced. File order inside a
    group is production order with exact duplicates dropped. Groups without
    any file are omitted. Only parameters of a declared ``val``, ``env`` or
    ``stdout`` output are skipped; an index no declaration covers keeps its
    files under a synthesized name.
    """
    names = declared_names(declarations)
    value_only = {
        declaration.index for declaration in declarations or () if not declaration.carries_files
    }

    by_index: dict[int, list[str]] = {}
    unresolved: list[tuple[int, list[str]]] = []
    for position, output in enumerate(produced):
        files = path_values(output.values)
        index = _resolve_index(output, names)
        if index is None:
            unresolved.append((position, files))
            continue
        if index in value_only:
            logger.debug(
                "file_report event=skip_non_file_output index=%s description=%s",
                index,
                output.description,
            )
            continue
        by_index.setdefault(index, []).extend(files)

    grouped: dict[str, list[str]] = {}
    for index in sorted(by_index):
        name = names.get(index) or synthesized_name(index)
        _add_group(grouped, _free_name(grouped, name, index), by_index[index])

    for position, files in unresolved:
        # A declared name is borrowed only while nothing was re-correlated
        # and the declaration at this position carries files.
        borrow = not by_index and position in names and position not in value_only
        name = names[position] if borrow else synthesized_name(position)
        _add_group(grouped, _free_name(grouped, name, position), files)

    return grouped


def _free_name(grouped: dict[str, list[str]], name: str, position: int) -> str:
    if name not in grouped:
        return name
    logger.debug("file_report event=output_name_collision name=%s position=%s", name, position)
    candidate = f"{name}_{position}"
    attempt = 1
    while candidate in grouped:
        candidate = f"{name}_{position}_{attempt}"
        attempt += 1
    return candidate


def _resolve_index(output: ProducedOutput, names: dict[int, str]) -> int | None:
    if output.declaration_index is not None:
        return output.declaration_index
    index = marker_index(output.description)
    if index is None:
        return None
    if names and index not in names:
        logger.debug(
            "file_report event=unknown_declaration_index index=%s description=%s",
            index,
            output.description,
        )
    return index


def _add_group(grouped: dict[str, list[str]], name: str, files: list[str]) -> None:
    unique = list(dict.fromkeys(files))
    if not unique:
        return
    existing = grouped.get(name)
    if existing is None:
        grouped[name] = unique
        return
    existing.extend(path for path in unique if path not in existing)
