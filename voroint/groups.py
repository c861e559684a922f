"""Group boundaries

Description:
    Atoms are partitioned into contiguous groups by listing the upper atom id
    of each group in increasing order. Atom ids are 1-indexed, as in .gro
    files. For example, with group1 = atoms 1-100, group2 = 101-123 and
    group3 = 124 to the end, the boundary string is "100 123".

Usage Example:
    >>> from voroint.groups import GroupBoundaries
    >>> groups = GroupBoundaries.parse("100 123", n_atoms=300)
    >>> groups.ranges(300)
    [(1, 100), (101, 123), (124, 300)]
"""

import logging
from bisect import bisect_left
from numbers import Integral

from voroint.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class GroupBoundaries:
    """Strictly increasing, positive upper atom ids delimiting contiguous groups."""

    def __init__(self, bounds):
        bounds = tuple(bounds)
        if not bounds:
            raise ConfigurationError("At least one group boundary is required")
        for bound in bounds:
            if isinstance(bound, bool) or not isinstance(bound, Integral):
                raise ConfigurationError(f"Group boundary {bound!r} is not an integer atom id")
        bounds = tuple(int(bound) for bound in bounds)
        for bound in bounds:
            if bound < 1:
                raise ConfigurationError(
                    f"Group boundary {bound} is not a valid atom id (atom ids start at 1)")
        for prev, curr in zip(bounds, bounds[1:]):
            if curr <= prev:
                raise ConfigurationError(
                    f"Group boundaries must be strictly increasing, got {prev} followed by {curr}")
        self.bounds = bounds

    @classmethod
    def parse(cls, text, n_atoms=None):
        """Parse a space-separated boundary string such as ``"100 123 250"``.

        Parameters
        ----------
        text : str
            Upper atom ids, optionally wrapped in quotation marks.
        n_atoms : int, optional
            If given, the boundaries are also checked against the atom count.

        Returns
        -------
        GroupBoundaries

        Raises
        ------
        ConfigurationError
            If the string is empty, has non-integer tokens, or the ids are not
            strictly increasing or exceed ``n_atoms``.
        """
        if text is None:
            raise ConfigurationError("A group boundary string is required")
        cleaned = str(text).strip().strip("\"'").strip()
        if not cleaned:
            raise ConfigurationError("Group boundary string is empty")
        bounds = []
        for token in cleaned.split():
            try:
                bounds.append(int(token))
            except ValueError:
                raise ConfigurationError(
                    f"Cannot parse group boundary {token!r} in {text!r}") from None
        groups = cls(bounds)
        if n_atoms is not None:
            groups.validate(n_atoms)
        logger.debug("Parsed group boundaries %s", groups.bounds)
        return groups

    def validate(self, n_atoms):
        """Check that the last boundary does not exceed the number of atoms."""
        if self.bounds[-1] > n_atoms:
            raise ConfigurationError(
                f"Last group boundary {self.bounds[-1]} exceeds the number of atoms ({n_atoms})")
        return self

    def ranges(self, n_atoms=None):
        """Inclusive 1-indexed (first, last) atom ids of each group.

        With ``n_atoms`` larger than the last boundary, the atoms after it
        are returned as a trailing group.
        """
        ranges = []
        first = 1
        for bound in self.bounds:
            ranges.append((first, bound))
            first = bound + 1
        if n_atoms is not None:
            self.validate(n_atoms)
            if n_atoms >= first:
                ranges.append((first, n_atoms))
        return ranges

    def group_of(self, atom_id):
        """0-based index of the group holding the 1-indexed ``atom_id``."""
        if atom_id < 1:
            raise ValueError(f"Atom ids start at 1, got {atom_id}")
        return bisect_left(self.bounds, atom_id)

    def to_arg(self):
        """The boundary string handed to the tool's -gp option."""
        return " ".join(str(bound) for bound in self.bounds)

    def __str__(self):
        return self.to_arg()

    def __repr__(self):
        return f"GroupBoundaries({list(self.bounds)!r})"

    def __eq__(self, other):
        if not isinstance(other, GroupBoundaries):
            return NotImplemented
        return self.bounds == other.bounds

    def __hash__(self):
        return hash(self.bounds)

    def __len__(self):
        return len(self.bounds)

    def __iter__(self):
        return iter(self.bounds)
