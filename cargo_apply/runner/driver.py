# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Run driver: the strictly sequential loop over a package set.

For each identifier, in order:

  record present, no --force  -> skip ("using cached result")
  otherwise                   -> clear old record, attempt inside the
                                 isolation boundary, record the outcome

The record check is the whole resumability story. A run that is killed is
restarted with the same arguments and picks up where it stopped, because
every finished attempt left a record and the interrupted one did not.
"""

from dataclasses import dataclass, field

from cargo_apply.config.schema import RunConfig
from cargo_apply.isolation.boundary import IsolationBoundary
from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.assembler import PackageSet
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.results.outcome import OUTCOME_KINDS, Outcome, describe_outcome
from cargo_apply.results.store import ResultStore

logger = get_logger(__name__)


@dataclass
class RunSummary:
    """Tally of one driver run. Cached packages are counted separately."""

    outcomes: dict[str, int] = field(default_factory=lambda: {k: 0 for k in OUTCOME_KINDS})
    cached: int = 0

    @property
    def attempted(self) -> int:
        return sum(self.outcomes.values())

    @property
    def total(self) -> int:
        return self.attempted + self.cached

    def record(self, outcome: Outcome) -> None:
        self.outcomes[outcome.kind] += 1


@dataclass(frozen=True)
class PlannedPackage:
    """One line of a dry-run plan."""

    package: PackageIdentifier
    cached: bool


class Driver:
    """Drives every package of a set through the isolation boundary."""

    def __init__(
        self,
        config: RunConfig,
        store: ResultStore,
        boundary: IsolationBoundary,
    ) -> None:
        self._config = config
        self._store = store
        self._boundary = boundary

    def run(self, package_set: PackageSet) -> RunSummary:
        summary = RunSummary()
        total = len(package_set)

        for index, pkg in enumerate(package_set, start=1):
            if self._store.has_result(pkg) and not self._config.force:
                logger.info(
                    "using cached result",
                    extra={"package": str(pkg), "position": index, "total": total},
                )
                summary.cached += 1
                continue

            outcome = self._process(pkg, index, total)
            summary.record(outcome)

        logger.info(
            "Run finished",
            extra={
                "attempted": summary.attempted,
                "cached": summary.cached,
                "outcomes": summary.outcomes,
            },
        )
        return summary

    def plan(self, package_set: PackageSet) -> list[PlannedPackage]:
        """What `run` would do, without attempting or clearing anything."""
        planned: list[PlannedPackage] = []
        for pkg in package_set:
            cached = self._store.has_result(pkg) and not self._config.force
            planned.append(PlannedPackage(package=pkg, cached=cached))
            logger.info(
                "would use cached result" if cached else "would process",
                extra={"package": str(pkg)},
            )
        return planned

    def _process(self, pkg: PackageIdentifier, index: int, total: int) -> Outcome:
        if self._store.clear(pkg):
            logger.debug("Discarded previous result", extra={"package": str(pkg)})

        logger.info(
            "processing",
            extra={"package": str(pkg), "position": index, "total": total},
        )
        outcome = self._boundary.attempt(pkg)

        # A re-invoked child writes its own record; everything else is ours.
        if not self._store.has_result(pkg):
            self._store.write(pkg, outcome)

        log = logger.info if outcome.kind == "success" else logger.warning
        log(
            describe_outcome(outcome),
            extra={"package": str(pkg), "outcome": outcome.kind},
        )
        return outcome
