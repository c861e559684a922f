"""Frame encoder

Description:
    Converts one trajectory frame into the plain-text input read by the
    Voronoi tessellation tool: one ``"<atom_id> <x> <y> <z>"`` line per atom,
    with 1-indexed atom ids (the same convention as .gro files, from which
    group boundaries are picked) and coordinates scaled from nm to the
    tool's length unit. It also builds the tool's argument vector, which
    carries the scaled box bounds.

    Only cubic boxes are supported; anything else is rejected when the
    encoder is constructed.

Usage Example:
    >>> import numpy as np
    >>> from voroint.encoder import FrameEncoder
    >>> encoder = FrameEncoder(np.eye(3) * 1.0)
    >>> list(encoder.lines([[0.0, 0.0, 0.0], [0.1, 0.2, 0.3]]))
    ['1 0 0 0', '2 1 2 3']
    >>> encoder.box_length
    10.0

Requirements:
    - NumPy
"""

import logging

import numpy as np

from voroint import config
from voroint.exceptions import ConfigurationError, GeometryError

logger = logging.getLogger(__name__)


def format_number(value, decimals=config.COORD_DECIMALS):
    """Fixed-point text with trailing zeros dropped: 3.0 -> '3', 1.25 -> '1.25'."""
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


class FrameEncoder:
    """Encode positions of one frame for the tessellation tool.

    Parameters
    ----------
    box : array_like
        3x3 box matrix in nm (rows are box vectors), or the three edge
        lengths. Must describe a cubic box.
    scale : float, optional
        Factor applied to every length (default: config.DIMENSION_SCALING,
        i.e. nm to Angstrom).
    decimals : int, optional
        Decimal places kept when formatting numbers.
    atol : float, optional
        Absolute tolerance (nm) used when checking that the box is cubic.
    """

    def __init__(self, box, scale=config.DIMENSION_SCALING,
                 decimals=config.COORD_DECIMALS, atol=config.BOX_ATOL):
        if not np.isfinite(scale) or scale <= 0:
            raise ConfigurationError(f"Unit scale factor must be a positive number, got {scale}")
        self.scale = float(scale)
        self.decimals = int(decimals)
        self.box = self._check_box(box, atol)

    @staticmethod
    def _check_box(box, atol):
        if box is None:
            raise GeometryError("Frame has no box; the tool needs periodic box bounds")
        box = np.asarray(box, dtype=np.float64)
        if box.shape == (3,):
            box = np.diag(box)
        if box.shape != (3, 3):
            raise GeometryError(f"Box must be a 3x3 matrix or 3 edge lengths, got shape {box.shape}")
        if not np.all(np.isfinite(box)):
            raise GeometryError("Box contains non-finite values")
        diag = np.diag(box)
        if np.any(diag <= 0):
            raise GeometryError(f"Box edges must be positive, got {diag}")
        off_diag = box - np.diag(diag)
        if not np.allclose(off_diag, 0.0, rtol=0.0, atol=atol):
            raise GeometryError("Triclinic boxes are not supported, only cubic boxes are")
        if not np.allclose(diag, diag[0], rtol=0.0, atol=atol):
            raise GeometryError(
                f"Non-cubic box with edges {diag[0]:g} x {diag[1]:g} x {diag[2]:g} nm is not supported")
        return box

    @property
    def box_length(self):
        """Scaled edge length of the cubic box."""
        return float(self.box[0, 0] * self.scale)

    def scaled_positions(self, positions):
        """Positions as a float64 (N, 3) array multiplied by the scale factor."""
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise GeometryError(f"Positions must have shape (N, 3), got {positions.shape}")
        if not np.all(np.isfinite(positions)):
            bad = np.flatnonzero(~np.all(np.isfinite(positions), axis=1)) + 1
            raise GeometryError(f"Non-finite coordinates for atom ids {bad[:10].tolist()}")
        return positions * self.scale

    def lines(self, positions):
        """Yield one ``"<atom_id> <x> <y> <z>"`` line per atom, atom ids from 1."""
        for atom_id, xyz in enumerate(self.scaled_positions(positions), start=1):
            coords = " ".join(format_number(value, self.decimals) for value in xyz)
            yield f"{atom_id} {coords}"

    def encode(self, positions):
        """The whole coordinate block, every line newline terminated."""
        return "".join(line + "\n" for line in self.lines(positions))

    def argv(self, groups, tool=config.TOOL, placeholder=config.OUTPUT_PLACEHOLDER):
        """Argument vector for one tool invocation.

        Parameters
        ----------
        groups : GroupBoundaries or str
            Group boundaries, passed to ``-gp`` as a single argument.
        tool : str or sequence of str, optional
            Executable, or an executable followed by its own leading arguments.
        placeholder : str, optional
            File name argument the tool requires even when reading stdin.

        Returns
        -------
        list of str
        """
        length = format_number(self.box_length, self.decimals)
        prefix = [tool] if isinstance(tool, str) else list(tool)
        argv = prefix + list(config.TOOL_FLAGS)
        argv += ["-gp", str(groups)]
        argv += ["-p", "0", length, "0", length, "0", length]
        argv.append(placeholder)
        return [str(arg) for arg in argv]
