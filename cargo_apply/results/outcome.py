# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Outcome taxonomy.

Every attempted package ends in exactly one of six outcomes:

  success          built (and tested / benchmarked when asked)
  not_found        no version in the index matches the request
  download_failed  a version was picked but fetching or unpacking it failed
  build_failed     `cargo build --lib` did not succeed
  test_failed      `cargo test` did not succeed
  crashed          the attempt itself died: an exception escaped, the child
                   process was killed by a signal, or it timed out

Outcomes are plain frozen dataclasses. `outcome_to_record` / `outcome_from_record`
convert them to and from the small mapping stored in results.txt.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Mapping, Optional, Union

RECORD_KIND_KEY = "outcome"


@dataclass(frozen=True)
class Success:
    """All requested stages passed. Times are seconds."""

    kind: ClassVar[str] = "success"

    build_time: float
    test_time: Optional[float] = None
    bench_time: Optional[float] = None
    # Benchmarks are telemetry: a failing `cargo bench` is noted here and
    # nowhere else.
    bench_failed: bool = False


@dataclass(frozen=True)
class NotFound:
    kind: ClassVar[str] = "not_found"


@dataclass(frozen=True)
class DownloadFailed:
    kind: ClassVar[str] = "download_failed"

    cause: str


@dataclass(frozen=True)
class BuildFailed:
    kind: ClassVar[str] = "build_failed"

    message: str


@dataclass(frozen=True)
class TestFailed:
    kind: ClassVar[str] = "test_failed"
    __test__: ClassVar[bool] = False  # not a pytest test class

    message: str


@dataclass(frozen=True)
class Crashed:
    kind: ClassVar[str] = "crashed"

    message: str


Outcome = Union[Success, NotFound, DownloadFailed, BuildFailed, TestFailed, Crashed]

OUTCOME_TYPES: tuple[type, ...] = (
    Success,
    NotFound,
    DownloadFailed,
    BuildFailed,
    TestFailed,
    Crashed,
)

OUTCOME_KINDS: tuple[str, ...] = tuple(cls.kind for cls in OUTCOME_TYPES)

_TYPES_BY_KIND: dict[str, type] = {cls.kind: cls for cls in OUTCOME_TYPES}


class RecordFormatError(ValueError):
    """A results.txt mapping does not describe a known outcome."""


def outcome_to_record(outcome: Outcome) -> dict[str, Any]:
    """Flatten an outcome into `{"outcome": kind, **fields}`."""
    return {RECORD_KIND_KEY: outcome.kind, **asdict(outcome)}


def outcome_from_record(record: Mapping[str, Any]) -> Outcome:
    """
    Rebuild an outcome from a stored mapping.

    Raises:
        RecordFormatError: Unknown kind, or fields that do not fit it.
    """
    kind = record.get(RECORD_KIND_KEY)
    cls = _TYPES_BY_KIND.get(str(kind))
    if cls is None:
        raise RecordFormatError(f"Unknown outcome kind: {kind!r}")

    allowed = {f.name for f in fields(cls)}
    values = {key: value for key, value in record.items() if key != RECORD_KIND_KEY}
    unknown = set(values) - allowed
    if unknown:
        raise RecordFormatError(
            f"Unexpected fields for outcome {kind!r}: {', '.join(sorted(unknown))}"
        )

    try:
        return cls(**values)
    except TypeError as err:
        raise RecordFormatError(f"Malformed {kind!r} record: {err}") from err


def describe_outcome(outcome: Outcome) -> str:
    """One-line human summary used in console progress messages."""
    if isinstance(outcome, Success):
        parts = [f"built in {outcome.build_time:.3f}s"]
        if outcome.test_time is not None:
            parts.append(f"tested in {outcome.test_time:.3f}s")
        if outcome.bench_time is not None:
            parts.append(f"benchmarked in {outcome.bench_time:.3f}s")
        if outcome.bench_failed:
            parts.append("benchmarks failed")
        return ", ".join(parts)
    if isinstance(outcome, NotFound):
        return "not in registry"
    if isinstance(outcome, DownloadFailed):
        return f"failed to download: {outcome.cause}"
    if isinstance(outcome, (BuildFailed, TestFailed, Crashed)):
        return outcome.message
    raise TypeError(f"Not an outcome: {outcome!r}")
