# src/taiga_cli/storage/codec.py

"""
Serialization of cached records.

Every record is a compact UTF-8 JSON envelope:

    {"v": FORMAT_VERSION, "kind": "<kind>", "data": {...}}

Bump FORMAT_VERSION whenever a record's shape changes: files written by an
older version then fail to decode and surface as CacheCorruption, which
tells the user to log in again instead of trusting half-understood state.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

from ..core.models import Project, Session, TaskListSnapshot
from ..errors import CacheCorruption

FORMAT_VERSION = 1

KIND_SESSION = "session"
KIND_PROJECT = "project"
KIND_SNAPSHOT = "tasks"

T = TypeVar("T")


def _pack(kind: str, data: dict[str, Any]) -> bytes:
    envelope = {"v": FORMAT_VERSION, "kind": kind, "data": data}
    return json.dumps(envelope, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _unpack(raw: bytes, kind: str, build: Callable[[dict[str, Any]], T]) -> T:
    try:
        envelope = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CacheCorruption(f"could not decode {kind} record") from e

    if not isinstance(envelope, dict):
        raise CacheCorruption(f"{kind} record is not an object")
    if envelope.get("v") != FORMAT_VERSION:
        raise CacheCorruption(
            f"{kind} record has format version {envelope.get('v')!r}, expected {FORMAT_VERSION}"
        )
    if envelope.get("kind") != kind:
        raise CacheCorruption(f"expected a {kind} record, found {envelope.get('kind')!r}")

    data = envelope.get("data")
    if not isinstance(data, dict):
        raise CacheCorruption(f"{kind} record has no data")
    try:
        return build(data)
    except (KeyError, TypeError, ValueError) as e:
        raise CacheCorruption(f"{kind} record is missing or has invalid fields: {e}") from e


def dump_session(session: Session) -> bytes:
    return _pack(KIND_SESSION, session.to_dict())


def load_session(raw: bytes) -> Session:
    return _unpack(raw, KIND_SESSION, Session.from_dict)


def dump_project(project: Project) -> bytes:
    return _pack(KIND_PROJECT, project.to_dict())


def load_project(raw: bytes) -> Project:
    return _unpack(raw, KIND_PROJECT, Project.from_dict)


def dump_snapshot(snapshot: TaskListSnapshot) -> bytes:
    return _pack(KIND_SNAPSHOT, snapshot.to_dict())


def load_snapshot(raw: bytes) -> TaskListSnapshot:
    return _unpack(raw, KIND_SNAPSHOT, TaskListSnapshot.from_dict)
