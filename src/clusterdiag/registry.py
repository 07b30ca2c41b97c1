"""
Diagnostic Registry & Runner

Diagnostics are grouped by area ("client", "systemd", ...) and addressed
as "area.name". The registry is filled once at startup; run_all() then
executes each diagnostic at most once, in area-then-name order, so
output is reproducible.

Each diagnostic is isolated: a skip condition suppresses it, and any
exception it raises is turned into an ERROR message before the runner
moves on to the next one.

Usage:
    registry = default_registry()
    registry.run_all(env, reporter)
    reporter.summary()
"""

import logging
import traceback
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Environment
from .reporter import Reporter

logger = logging.getLogger(__name__)


class Diagnostic:
    """
    One named, independently skippable health check.

    Subclasses set `name` and `description` and implement run().
    Override condition() to skip the check when it cannot be evaluated
    on this host (missing binary, no systemd, no client config...).
    """

    name: str = ""
    description: str = ""

    def condition(self, env: Environment) -> Tuple[bool, str]:
        """
        Decide whether to skip this diagnostic.

        Returns:
            (skip, reason) - reason may be empty
        """
        return False, ""

    def run(self, env: Environment, reporter: Reporter) -> None:
        raise NotImplementedError


class DiagnosticRegistry:
    """Area -> name -> Diagnostic table with a fault-isolating runner."""

    def __init__(self):
        self._areas: Dict[str, Dict[str, Diagnostic]] = {}
        self._running = False

    def register(self, area: str, diagnostic: Diagnostic) -> None:
        """
        Add a diagnostic under an area.

        Raises:
            RuntimeError: if a run is in progress
            ValueError: if the area already has a diagnostic with that name
        """
        if self._running:
            raise RuntimeError("Diagnostics cannot be registered during a run")
        if not diagnostic.name:
            raise ValueError(f"Diagnostic {diagnostic!r} has no name")
        names = self._areas.setdefault(area, {})
        if diagnostic.name in names:
            raise ValueError(f"Duplicate diagnostic {area}.{diagnostic.name}")
        names[diagnostic.name] = diagnostic

    def register_all(self, area: str, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.register(area, diagnostic)

    def lookup(self, token: str) -> Optional[Tuple[str, Diagnostic]]:
        """Resolve an "area.name" token, or None if there is no such diagnostic."""
        area, sep, name = token.partition(".")
        if not sep or not name:
            return None
        diagnostic = self._areas.get(area, {}).get(name)
        if diagnostic is None:
            return None
        return area, diagnostic

    def items(self) -> List[Tuple[str, Diagnostic]]:
        """All (area, diagnostic) pairs, sorted by area then name."""
        return [
            (area, self._areas[area][name])
            for area in sorted(self._areas)
            for name in sorted(self._areas[area])
        ]

    def identifiers(self) -> List[str]:
        return [f"{area}.{diag.name}" for area, diag in self.items()]

    def __len__(self) -> int:
        return sum(len(names) for names in self._areas.values())

    # === Running ===

    def run_all(self, env: Environment, reporter: Reporter,
                selected: Optional[Iterable[str]] = None) -> None:
        """
        Run every diagnostic, or only the "area.name" tokens in `selected`.

        Unknown tokens are reported at NOTICE and skipped. Selected
        diagnostics run in the order given; a token repeated in the list
        runs only once.
        """
        if selected:
            plan = []
            seen = set()
            for token in selected:
                token = token.strip()
                found = self.lookup(token)
                if found is None:
                    reporter.notice(f'There is no such diagnostic "{token}"')
                    continue
                key = (found[0], found[1].name)
                if key not in seen:
                    seen.add(key)
                    plan.append(found)
        else:
            plan = self.items()

        self._running = True
        try:
            for area, diagnostic in plan:
                self.run_diagnostic(area, diagnostic, env, reporter)
        finally:
            self._running = False

    def run_diagnostic(self, area: str, diagnostic: Diagnostic,
                       env: Environment, reporter: Reporter) -> bool:
        """
        Evaluate the condition and run one diagnostic, trapping any fault.

        Returns:
            False if the condition skipped it, True otherwise
        """
        ident = f"{area}.{diagnostic.name}"
        try:
            skip, reason = diagnostic.condition(env)
            if skip:
                message = f"Skipping diagnostic: {ident}\nDescription: {diagnostic.description}"
                if reason:
                    message += f"\nBecause: {reason}"
                reporter.notice(message)
                return False

            reporter.notice(f"Running diagnostic: {ident}\nDescription: {diagnostic.description}")
            diagnostic.run(env, reporter)
        except Exception as e:
            logger.debug(f"Diagnostic {ident} raised", exc_info=True)
            reporter.error(
                f"Diagnostic '{ident}' crashed; this is usually a bug in either "
                f"diagnostics or the cluster software.\n"
                f"({type(e).__name__}) {e}\n{traceback.format_exc().rstrip()}"
            )
        return True


def default_registry() -> DiagnosticRegistry:
    """Registry holding every built-in diagnostic."""
    from .checks import ALL_DIAGNOSTICS

    registry = DiagnosticRegistry()
    for area, diagnostics in ALL_DIAGNOSTICS.items():
        registry.register_all(area, diagnostics)
    return registry
