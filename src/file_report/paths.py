"""Storage-scheme classification and string transforms for paths and URIs.

Beginner terms used in this file:
- Scheme: the storage backend a location lives on (local disk, S3, GCS, ...).
- Stripped URI: a cloud URI whose ``scheme://`` prefix was removed by upstream
  path normalization, for example ``38627.account/results`` instead of
  ``latch://38627.account/results``.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum


class Scheme(str, Enum):
    LOCAL = "local"
    S3 = "s3"
    GCS = "gcs"
    AZURE = "azure"
    PLATFORM = "platform"


PLATFORM_PREFIX = "latch://"

# Longest prefixes first so that ``azure://`` is never shadowed.
SCHEME_PREFIXES: tuple[tuple[str, Scheme], ...] = (
    ("s3://", Scheme.S3),
    ("gs://", Scheme.GCS),
    ("abfs://", Scheme.AZURE),
    ("azure://", Scheme.AZURE),
    ("az://", Scheme.AZURE),
    (PLATFORM_PREFIX, Scheme.PLATFORM),
)

# <tenant-id>.<account-name>/<rest>
STRIPPED_PLATFORM_PATTERN = re.compile(r"^\d+\.[A-Za-z_][A-Za-z0-9_]*/")


@dataclass(frozen=True)
class ClassifiedPath:
    scheme: Scheme
    normalized: str

    @property
    def is_remote(self) -> bool:
        return self.scheme is not Scheme.LOCAL


def scheme_prefix(value: str) -> str | None:
    """Return the literal ``scheme://`` prefix of ``value`` when it has a known one."""
    for prefix, _scheme in SCHEME_PREFIXES:
        if value.startswith(prefix):
            return prefix
    return None


def is_stripped_platform_path(value: str) -> bool:
    """True when ``value`` looks like a platform URI that lost its scheme.

    A local relative directory literally named like ``123.acct/...`` matches as
    well and is misclassified; callers accept that ambiguity.
    """
    if value.startswith("/"):
        return False
    return STRIPPED_PLATFORM_PATTERN.match(value) is not None


def reconstruct_platform_uri(value: str) -> str:
    if is_stripped_platform_path(value):
        return PLATFORM_PREFIX + value
    return value


def classify(path_or_uri: object) -> ClassifiedPath:
    """Tag a path or URI with its storage scheme and a canonical string form.

    Remote URIs keep their scheme and lose any trailing slash. Stripped
    platform URIs get their prefix back. Everything else is a local path
    normalized to an absolute, collapsed string.
    """
    raw = str(path_or_uri).strip()
    for prefix, scheme in SCHEME_PREFIXES:
        if raw.startswith(prefix):
            return ClassifiedPath(scheme=scheme, normalized=_normalize_uri(prefix, raw))

    if is_stripped_platform_path(raw):
        restored = reconstruct_platform_uri(raw)
        return ClassifiedPath(
            scheme=Scheme.PLATFORM,
            normalized=_normalize_uri(PLATFORM_PREFIX, restored),
        )

    return ClassifiedPath(scheme=Scheme.LOCAL, normalized=normalize_local_path(raw))


def normalize_local_path(value: str) -> str:
    if not value:
        raise ValueError("Path must not be empty")
    return os.path.normpath(os.path.abspath(os.path.expanduser(value)))


def normalize_location(path_or_uri: object) -> str:
    return classify(path_or_uri).normalized


def split_bucket_key(uri: str) -> tuple[str, str]:
    """Split an object-store URI into ``(bucket, key)``.

    ``s3://bucket`` yields an empty key. For ``abfs://container@account/...``
    the bucket is the container name.
    """
    prefix = scheme_prefix(uri)
    if prefix is None:
        raise ValueError(f"Not an object storage URI: {uri}")
    remainder = uri[len(prefix):]
    bucket, _sep, key = remainder.partition("/")
    if not bucket:
        raise ValueError(f"Missing bucket in URI: {uri}")
    if prefix == "abfs://":
        bucket = bucket.split("@", 1)[0]
    return bucket, key


def join_location(base: str, name: str) -> str:
    """Join a directory location and a file name with exactly one separator."""
    if scheme_prefix(base) is not None:
        return f"{base.rstrip('/')}/{name.lstrip('/')}"
    return os.path.join(base, name.lstrip("/"))


def _normalize_uri(prefix: str, uri: str) -> str:
    body = uri[len(prefix):]
    # Collapse duplicate separators inside the key, keep the authority intact.
    parts = [part for part in body.split("/") if part]
    return prefix + "/".join(parts)
