"""Snapshot persistence for resumable feature evaluations.

A snapshot file is a joblib-serialized dict package:

{
  "__feature_eval_snapshot__": true,
  "schema_version": "1",
  "trainer": <trainer state of the unit in progress, or None>,
  "evaluation": <bytes written by the evaluation callbacks>,
}

The evaluation part is itself a joblib package holding the summary so far,
the position of the unit in progress and the feature evaluation options.
Files are replaced atomically so an interrupted write never leaves a torn
snapshot behind.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from io import BytesIO
from typing import Any, BinaryIO, Dict, Optional, Tuple

import joblib

from feature_eval.errors import SnapshotMismatchError

SCHEMA_VERSION = "1"
MAGIC_KEY = "__feature_eval_snapshot__"
EVALUATION_MAGIC_KEY = "__feature_eval_state__"


@dataclass
class SnapshotPackage:
    trainer: Optional[Any]
    evaluation: bytes


def _check_package(package: Any, magic: str, what: str) -> Dict[str, Any]:
    if not isinstance(package, dict) or not package.get(magic):
        raise SnapshotMismatchError(f"Not a valid {what}")
    if str(package.get("schema_version")) != SCHEMA_VERSION:
        raise SnapshotMismatchError(
            f"Incompatible schema_version: {package.get('schema_version')}, expected {SCHEMA_VERSION}"
        )
    return package


def write_snapshot(path: str, *, trainer: Optional[Any], evaluation: bytes) -> None:
    """Atomically (re)write the snapshot file at ``path``."""
    package = {
        MAGIC_KEY: True,
        "schema_version": SCHEMA_VERSION,
        "trainer": trainer,
        "evaluation": bytes(evaluation),
    }
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".snapshot-", dir=directory)
    try:
        with os.fdopen(fd, "wb") as fh:
            joblib.dump(package, fh, compress=3)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def read_snapshot(path: str) -> SnapshotPackage:
    with open(path, "rb") as fh:
        package = _check_package(joblib.load(fh), MAGIC_KEY, "feature evaluation snapshot")
    evaluation = package.get("evaluation")
    if not isinstance(evaluation, (bytes, bytearray)):
        raise SnapshotMismatchError("Corrupt snapshot: missing 'evaluation'")
    return SnapshotPackage(trainer=package.get("trainer"), evaluation=bytes(evaluation))


def dump_evaluation_state(stream: BinaryIO, *, summary: Any, progress: Any, options: Dict[str, Any]) -> None:
    package = {
        EVALUATION_MAGIC_KEY: True,
        "schema_version": SCHEMA_VERSION,
        "summary": summary,
        "progress": progress,
        "options": options,
    }
    joblib.dump(package, stream)


def load_evaluation_state(stream: BinaryIO) -> Tuple[Any, Any, Dict[str, Any]]:
    package = _check_package(joblib.load(stream), EVALUATION_MAGIC_KEY, "feature evaluation state")
    return package.get("summary"), package.get("progress"), package.get("options") or {}


def evaluation_stream(package: SnapshotPackage) -> BytesIO:
    return BytesIO(package.evaluation)
