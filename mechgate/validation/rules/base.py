"""Abstract InvariantCheck interface."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from mechgate.validation.verdict import Verdict, failed

if TYPE_CHECKING:
    from mechgate.validation.context import ValidationContext


class InvariantCheck(abc.ABC):
    """Base class for all invariant checks.

    A check evaluates one family of invariants over a prepared
    :class:`ValidationContext` and returns one verdict per subject, passing or
    failing.  Checks never mutate the context.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Check identifier, e.g. ``part.volume``."""

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """Human-readable description."""

    @abc.abstractmethod
    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        """Run this check against the context.

        Returns one verdict per subject (empty only if there is nothing to check).
        """

    def geometry_unavailable(self, ctx: ValidationContext, part: str, subject: str) -> Verdict:
        """Failing verdict for a subject whose part could not be realized."""
        return failed(
            self.name,
            subject,
            f"geometry unavailable for {part}: {ctx.geometry_errors[part]}",
            failure="GeometryError",
        )
