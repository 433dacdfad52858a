"""Dependency readiness flags tracked by name."""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class DependencyHealthRegistry:
    """Named boolean readiness flags, one per declared dependency.

    Flags start as False and are flipped to True together by the
    controller once initialization succeeds. They are never toggled
    individually.
    """

    def __init__(self):
        self._flags: Dict[str, bool] = {}

    def declare(self, names: Iterable[str]) -> None:
        """Add one not-ready entry per name.

        Raises ConfigurationError if a name repeats within ``names`` or
        is already declared. Nothing is added when validation fails.
        """
        names = list(names)
        seen = set(self._flags)
        for name in names:
            if name in seen:
                raise ConfigurationError(
                    f"Duplicate dependency name '{name}'",
                    {"field": "dependencies", "name": name},
                )
            seen.add(name)

        for name in names:
            self._flags[name] = False
        if names:
            logger.debug("Declared dependencies: %s", names)

    def mark_all_ready(self) -> None:
        """Set every dependency flag to True."""
        for name in self._flags:
            self._flags[name] = True

    def mark_all_not_ready(self) -> None:
        """Set every dependency flag back to False."""
        for name in self._flags:
            self._flags[name] = False

    def snapshot(self) -> Optional[Mapping[str, bool]]:
        """Return a read-only copy of the flags, or None if nothing was declared."""
        if not self._flags:
            return None
        return MappingProxyType(dict(self._flags))

    def all_ready(self) -> bool:
        """True iff every declared dependency is ready (vacuously True when empty)."""
        return all(self._flags.values())

    @property
    def names(self) -> List[str]:
        """Declared dependency names in declaration order."""
        return list(self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def __contains__(self, name: object) -> bool:
        return name in self._flags
