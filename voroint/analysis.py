"""File: analysis.py

Description:
    Frame-by-frame Voronoi interface analysis. For every trajectory frame the
    atom coordinates are encoded for voro_interfaces++, the tool is run once
    with the frame's box bounds and the group boundaries, and its output is
    kept verbatim on a per-frame record. The records are collected in
    ``results`` and can be written to a plain-text report.

    Frames are handled sequentially in trajectory order, one tool process at
    a time. A failed tool run is logged with its frame index and recorded;
    the pass goes on unless ``strict`` is set. Invalid group boundaries and
    non-cubic boxes are rejected when the analysis is constructed.

Usage Example:
    >>> import MDAnalysis as mda
    >>> from voroint.analysis import VoronoiInterfaces
    >>> u = mda.Universe("conf.gro", "traj.xtc")
    >>> vi = VoronoiInterfaces(u, "100 123").run(step=10)
    >>> vi.results.status[:3]
    ['success', 'success', 'success']
    >>> vi.write_output("interfaces.txt")

Requirements:
    - Python 3.x
    - MDAnalysis
    - NumPy
"""

import logging
from pathlib import Path

import numpy as np
from MDAnalysis import units
from MDAnalysis.analysis.base import AnalysisBase
from MDAnalysis.lib.mdamath import triclinic_vectors

from voroint import cli, config
from voroint.encoder import FrameEncoder, format_number
from voroint.exceptions import VoroIntError
from voroint.groups import GroupBoundaries

logger = logging.getLogger(__name__)


class FrameRecord:
    """Tool run of one frame: frame index, time, process result and raw output lines."""

    def __init__(self, frame, time, result, output):
        self.frame = frame
        self.time = time
        self.result = result
        self.output = output

    @property
    def status(self):
        return self.result.status

    @property
    def returncode(self):
        return self.result.returncode

    @property
    def failed(self):
        return self.result.status not in (cli.SUCCESS, cli.SKIPPED)

    def __repr__(self):
        return f"FrameRecord(frame={self.frame}, status={self.status!r}, lines={len(self.output)})"


def box_in_nm(dimensions):
    """3x3 box matrix in nm from MDAnalysis unit-cell dimensions (Angstrom, degrees)."""
    if dimensions is None:
        return None
    return units.convert(triclinic_vectors(dimensions).astype(np.float64), "A", "nm")


class VoronoiInterfaces(AnalysisBase):
    """Run voro_interfaces++ on every frame of a trajectory.

    Parameters
    ----------
    atomgroup : AtomGroup or Universe
        Atoms handed to the tool; atom ids are their 1-based position in
        this group.
    groups : GroupBoundaries or str
        Upper atom ids of the contiguous groups, e.g. ``"100 123"``.
    tool : str or sequence of str, optional
        Tool executable (default: config.TOOL).
    scale : float, optional
        Length factor from nm to tool units (default: 10).
    timeout : float, optional
        Seconds allowed per tool run; None or 0 for no limit.
    placeholder : str, optional
        File name argument passed after the box bounds.
    dry_run : bool, optional
        Only log each frame's command line; records get status 'skipped'.
    strict : bool, optional
        Raise on the first failed tool run instead of recording it.
    verbose : bool, optional
        Show a progress bar.

    Raises
    ------
    ConfigurationError
        Malformed group boundaries, or boundaries beyond the atom count.
    GeometryError
        The current frame has no box or a non-cubic box.
    """

    def __init__(self, atomgroup, groups, tool=config.TOOL, scale=config.DIMENSION_SCALING,
                 timeout=config.TIMEOUT, placeholder=config.OUTPUT_PLACEHOLDER,
                 dry_run=False, strict=False, verbose=False, **kwargs):
        self._ag = getattr(atomgroup, "atoms", atomgroup)
        super().__init__(self._ag.universe.trajectory, verbose=verbose, **kwargs)
        if not isinstance(groups, GroupBoundaries):
            groups = GroupBoundaries.parse(groups)
        self.groups = groups.validate(self._ag.n_atoms)
        self.tool = tool
        self.scale = scale
        self.timeout = timeout or None
        self.placeholder = placeholder
        self.dry_run = dry_run
        self.strict = strict
        # Fail before any frame is processed if the starting box is unusable
        FrameEncoder(box_in_nm(self._trajectory.ts.dimensions), scale=self.scale)
        ranges = self.groups.ranges(self._ag.n_atoms)
        logger.info("Voronoi interfaces for %d atoms in %d groups: %s", self._ag.n_atoms,
                    len(ranges), ", ".join(f"{first}-{last}" for first, last in ranges))

    def _prepare(self):
        self._records = []

    def _single_frame(self):
        ts = self._ts
        encoder = FrameEncoder(box_in_nm(ts.dimensions), scale=self.scale)
        argv = encoder.argv(self.groups, tool=self.tool, placeholder=self.placeholder)
        if self.dry_run:
            logger.info("Frame %d: %s", ts.frame, cli.describe_command(argv))
            result = cli.ProcessResult(argv, cli.SKIPPED)
            self._records.append(FrameRecord(ts.frame, ts.time, result, []))
            return
        coords = encoder.encode(units.convert(self._ag.positions, "A", "nm"))
        output = []
        result = cli.execute(argv, sink=output, clinput=coords, timeout=self.timeout)
        if not result.ok:
            logger.error("Frame %d: %s", ts.frame, result.error)
            if self.strict:
                result.check()
        self._records.append(FrameRecord(ts.frame, ts.time, result, output))

    def _conclude(self):
        records = self._records
        self.results.records = records
        self.results.frames = np.array([r.frame for r in records], dtype=int)
        self.results.times = np.array([r.time for r in records], dtype=float)
        self.results.status = [r.status for r in records]
        self.results.returncodes = [r.returncode for r in records]
        self.results.output = [r.output for r in records]
        self.results.n_failed = sum(1 for r in records if r.failed)
        logger.info("Processed %d frames, %d failed", len(records), self.results.n_failed)

    def _finished_records(self):
        if "records" not in self.results:
            raise VoroIntError("No frame results yet; call run() first")
        return self.results.records

    def failed_frames(self):
        """Records of frames whose tool run did not succeed."""
        return [r for r in self._finished_records() if r.failed]

    def write_output(self, path):
        """Write every frame's raw tool output under a per-frame header.

        Parameters
        ----------
        path : str or Path
            Report file; parent directories are created.

        Returns
        -------
        Path
        """
        records = self._finished_records()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tool = self.tool if isinstance(self.tool, str) else cli.describe_command(self.tool)
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"# tool: {tool}\n")
            f.write(f"# groups: {self.groups}\n")
            f.write(f"# scale: {format_number(self.scale)}\n")
            for record in records:
                rc = "-" if record.returncode is None else record.returncode
                f.write(f"# frame {record.frame} time {format_number(record.time, 3)} "
                        f"status {record.status} returncode {rc}\n")
                for line in record.output:
                    f.write(line if line.endswith("\n") else line + "\n")
        logger.info("Written tool output of %d frames to %s", len(records), path)
        return path
