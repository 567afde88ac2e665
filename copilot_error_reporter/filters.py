# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Per call-site suppression rules and pluggable report filters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from fnmatch import fnmatch
from typing import Any

from .models import StackFrame
from .severity import Severity


@dataclass(frozen=True)
class SuppressionRule:
    """Signature of faults withheld from reporting.

    Attributes:
        errno: Severity mask the fault must intersect
        errstr: Literal text the message must contain
        errfile: Glob the source file must match
        errline: Line the fault must occur on
    """

    errno: int = Severity.ALL
    errstr: str | None = None
    errfile: str | None = None
    errline: int | None = None

    def matches(self, errno: int, errstr: str, errfile: str | None, errline: int | None) -> bool:
        """Return True if every predicate present on this rule matches."""
        if not self.errno & errno:
            return False
        if self.errstr and self.errstr not in errstr:
            return False
        if self.errfile and not fnmatch(errfile or "", self.errfile):
            return False
        if self.errline and errline != self.errline:
            return False
        return True


class SuppressionChain:
    """Registry of suppression rules keyed by call-site."""

    def __init__(self):
        self._rules: dict[str, list[SuppressionRule]] = {}

    def register(
        self,
        call_site: str,
        errno: int = Severity.ALL,
        errstr: str | None = None,
        errfile: str | None = None,
        errline: int | None = None,
    ) -> SuppressionRule:
        """Withhold a fault signature raised from ``call_site``.

        Args:
            call_site: Attribution the rule applies to, e.g. ``Storage::fetch``
            errno: Severity mask to suppress
            errstr: Text that must appear in the message
            errfile: Glob matched against the source file
            errline: Line of occurrence

        Returns:
            The registered rule
        """
        rule = SuppressionRule(errno=errno, errstr=errstr, errfile=errfile, errline=errline)
        self._rules.setdefault(call_site, []).append(rule)
        return rule

    def rules_for(self, call_site: str) -> list[SuppressionRule]:
        return list(self._rules.get(call_site, ()))

    def should_report(
        self,
        call_site: str,
        errno: int,
        errstr: str,
        errfile: str | None = None,
        errline: int | None = None,
    ) -> bool:
        """Check whether a fault raised from ``call_site`` may be reported.

        Returns:
            False as soon as one rule matches, True otherwise
        """
        for rule in self._rules.get(call_site, ()):
            if rule.matches(errno, errstr, errfile, errline):
                return False
        return True

    def clear(self) -> None:
        self._rules.clear()


class ReportFilter(ABC):
    """Veto consulted after the suppression rules."""

    @abstractmethod
    def filter(
        self,
        errno: int,
        errstr: str,
        errfile: str | None,
        errline: int | None,
        errcontext: Any = None,
    ) -> bool:
        """Return True to drop the fault without reporting it."""
        pass


class BacktraceFilter(ABC):
    """Frame filter applied while resolving the caller of a fault."""

    @abstractmethod
    def filter(self, frame: StackFrame) -> bool:
        """Return True to skip ``frame`` during caller resolution."""
        pass
