"""Conformance cases and the outcome policy.

A case is a predicate over a BeadsOps implementation. ID cases also get the
ID of a bead created either in the invoking rig (same-rig) or in another rig
(cross-rig). Each run produces a CaseOutcome that says whether the result
counts as a failure under the outcome policy:

- the fake and RealBeadsGateway must always pass
- RawBeadsGateway must pass operations that bd routes correctly
- RawBeadsGateway may fail a broken operation, but only cross-rig

A RawBeadsGateway pass on a broken operation cross-rig means bd may have
been fixed; the harness logs an advisory in that case.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from beadsroute.conformance.env import AI_PLATFORM_PREFIX
from beadsroute.conformance.targets import ImplementationKind, Target
from beadsroute.errors import BeadsError
from beadsroute.gateway.beads.abc import BeadsDoubleControls, BeadsOps
from beadsroute.gateway.beads.real import RealBeadsGateway
from beadsroute.gateway.beads.types import CreateOptions
from beadsroute.routing_bugs import BD_ROUTING_BUGS, RoutingBugRegistry

logger = logging.getLogger(__name__)


class RigContext(Enum):
    SAME_RIG = "same-rig"
    CROSS_RIG = "cross-rig"


class Expectation(Enum):
    MUST_PASS = "must-pass"
    MAY_FAIL = "may-fail"


def expected_outcome(
    kind: ImplementationKind,
    context: RigContext | None,
    operation: str,
    registry: RoutingBugRegistry = BD_ROUTING_BUGS,
) -> Expectation:
    """Apply the outcome policy to one (implementation, context, operation) cell.

    context is None for cases that take no bead ID.
    """
    if kind is not ImplementationKind.RAW_WRAPPER:
        return Expectation.MUST_PASS
    if registry.is_fixed(operation):
        return Expectation.MUST_PASS
    # Routing bugs only manifest when the bead lives in another rig
    if context is RigContext.SAME_RIG:
        return Expectation.MUST_PASS
    return Expectation.MAY_FAIL


def fixed_upstream_advisory(operation: str) -> str:
    return (
        f"bd may have fixed {operation} routing! If confirmed, mark '{operation}' fixed "
        f"in BD_ROUTING_BUGS and remove the workaround from RealBeadsGateway."
    )


@dataclass(frozen=True)
class ConformanceCase:
    """Case for an operation that takes a bead ID.

    check receives the implementation and the target bead's ID and raises
    AssertionError or a BeadsError on failure.
    """

    name: str
    operation: str
    check: Callable[[BeadsOps, str], None]


@dataclass(frozen=True)
class PairConformanceCase:
    """Case for an operation that relates two beads, such as a dependency.

    check receives the implementation and two bead IDs that live in the same
    rig, chosen by the context.
    """

    name: str
    operation: str
    check: Callable[[BeadsOps, str, str], None]


@dataclass(frozen=True)
class SimpleConformanceCase:
    """Case for an operation that takes no bead ID.

    check receives the implementation and, for the fake, its controls.
    double_only cases are skipped on the bd-backed implementations.
    """

    name: str
    operation: str
    check: Callable[[BeadsOps, BeadsDoubleControls | None], None]
    double_only: bool = False


@dataclass(frozen=True)
class CaseOutcome:
    """Result of running one case against one target."""

    case_name: str
    kind: ImplementationKind
    context: RigContext | None
    operation: str
    expectation: Expectation
    error: AssertionError | BeadsError | None = None
    skipped: bool = False
    advisory: str | None = None

    @property
    def passed(self) -> bool:
        return not self.skipped and self.error is None

    @property
    def failed(self) -> bool:
        """Whether the outcome violates the policy (a permitted failure is not one)."""
        return self.error is not None and self.expectation is Expectation.MUST_PASS

    def describe(self) -> str:
        context = self.context.value if self.context is not None else "no-bead"
        header = f"{self.kind.value} {self.operation} [{context}] {self.case_name}"
        if self.skipped:
            return f"{header}: skipped"
        if self.error is None:
            return f"{header}: passed"
        return f"{header}: {type(self.error).__name__}: {self.error}"


def create_target_bead(target: Target, context: RigContext, *, title: str = "") -> str:
    """Create the bead an ID case operates on and return its ID.

    Same-rig beads are created from the target itself. Cross-rig beads are
    created in the ap rig: the fake switches its current prefix for the
    create, the bd-backed targets use a second gateway on the ap directory.
    """
    if context is RigContext.SAME_RIG:
        options = CreateOptions(title=title or "Same-rig target", issue_type="task")
        return target.ops.create(options).id

    options = CreateOptions(title=title or "Cross-rig target", issue_type="task")
    if target.controls is not None:
        previous = target.controls.current_prefix
        target.controls.set_current_prefix(AI_PLATFORM_PREFIX)
        try:
            return target.ops.create(options).id
        finally:
            target.controls.set_current_prefix(previous)

    ap_ops = RealBeadsGateway(work_dir=target.env.ai_platform_dir, home=target.env.home)
    return ap_ops.create(options).id


def _record(
    case_name: str,
    target: Target,
    context: RigContext | None,
    operation: str,
    error: AssertionError | BeadsError | None,
    registry: RoutingBugRegistry,
) -> CaseOutcome:
    expectation = expected_outcome(target.kind, context, operation, registry)
    advisory = None
    if (
        error is None
        and target.kind is ImplementationKind.RAW_WRAPPER
        and context is RigContext.CROSS_RIG
        and not registry.is_fixed(operation)
    ):
        advisory = fixed_upstream_advisory(operation)
        logger.warning("%s", advisory)
    elif error is not None and expectation is Expectation.MAY_FAIL:
        logger.info("Verified: bd routing bug for %s still exists (%s)", operation, error)

    return CaseOutcome(
        case_name=case_name,
        kind=target.kind,
        context=context,
        operation=operation,
        expectation=expectation,
        error=error,
        advisory=advisory,
    )


def run_id_case(
    case: ConformanceCase,
    target: Target,
    context: RigContext,
    *,
    registry: RoutingBugRegistry = BD_ROUTING_BUGS,
) -> CaseOutcome:
    """Create the context's target bead, run the case, and classify the result.

    Failures while creating the target bead propagate; they are not outcomes.
    """
    bead_id = create_target_bead(target, context)
    error: AssertionError | BeadsError | None = None
    try:
        case.check(target.ops, bead_id)
    except (AssertionError, BeadsError) as e:
        error = e
    return _record(case.name, target, context, case.operation, error, registry)


def run_pair_case(
    case: PairConformanceCase,
    target: Target,
    context: RigContext,
    *,
    registry: RoutingBugRegistry = BD_ROUTING_BUGS,
) -> CaseOutcome:
    """Like run_id_case, with two beads created in the context's rig."""
    first_id = create_target_bead(target, context, title="First target")
    second_id = create_target_bead(target, context, title="Second target")
    error: AssertionError | BeadsError | None = None
    try:
        case.check(target.ops, first_id, second_id)
    except (AssertionError, BeadsError) as e:
        error = e
    return _record(case.name, target, context, case.operation, error, registry)


def run_simple_case(
    case: SimpleConformanceCase,
    target: Target,
    *,
    registry: RoutingBugRegistry = BD_ROUTING_BUGS,
) -> CaseOutcome:
    if case.double_only and target.controls is None:
        return CaseOutcome(
            case_name=case.name,
            kind=target.kind,
            context=None,
            operation=case.operation,
            expectation=Expectation.MUST_PASS,
            skipped=True,
        )

    error: AssertionError | BeadsError | None = None
    try:
        case.check(target.ops, target.controls)
    except (AssertionError, BeadsError) as e:
        error = e
    return _record(case.name, target, None, case.operation, error, registry)
