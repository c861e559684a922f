"""File: cli.py

Description:
    Command-line utilities for voroint. The core is ``execute``, which runs an
    external program from an argument vector (no shell), feeds it text on
    standard input, streams its standard output line by line into a sink and
    reports how the process ended. ``main`` is the command-line driver that
    runs the Voronoi interface analysis over a trajectory.

Usage Example:
    >>> from voroint.cli import execute
    >>> lines = []
    >>> result = execute(['sort'], sink=lines, clinput='b\\na\\n')
    >>> result.status, lines
    ('success', ['a\\n', 'b\\n'])

    $ voroint -s conf.gro -f traj.xtc -g "100 123" -o interfaces.txt

Requirements:
    - Python 3.x
    - MDAnalysis (for the command-line driver)
    - voro_interfaces++ on PATH (or --tool)
"""

import argparse
import logging
import shlex
import subprocess as sp
import sys
import threading

from voroint import config
from voroint.exceptions import SpawnError, ToolRuntimeError, ToolTimeoutError, VoroIntError
from voroint.utils import debug_mode, timeit

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILED = "failed"
SPAWN_ERROR = "spawn_error"
TIMEOUT = "timeout"
SKIPPED = "skipped"


##############################################################
# Process bridge
##############################################################


class ProcessResult:
    """Outcome of one ``execute`` call.

    Attributes
    ----------
    argv : list of str
    status : str
        One of SUCCESS, FAILED (non-zero exit), SPAWN_ERROR, TIMEOUT or
        SKIPPED (not run).
    returncode : int or None
        Exit code of the child, None if it never started.
    stderr : str
        Everything the child wrote to standard error.
    error : str
        Human readable description of a failure, empty on success.
    n_lines : int
        Number of stdout chunks forwarded to the sink (lines, unless a line
        was longer than the read chunk size).
    """

    def __init__(self, argv, status, returncode=None, stderr="", error="", n_lines=0):
        self.argv = argv
        self.status = status
        self.returncode = returncode
        self.stderr = stderr
        self.error = error
        self.n_lines = n_lines

    @property
    def ok(self):
        return self.status == SUCCESS

    def check(self):
        """Raise the exception matching a failed status, return self otherwise."""
        if self.status == SPAWN_ERROR:
            raise SpawnError(self.error)
        if self.status == TIMEOUT:
            raise ToolTimeoutError(self.error, returncode=self.returncode, stderr=self.stderr)
        if self.status == FAILED:
            raise ToolRuntimeError(self.error, returncode=self.returncode, stderr=self.stderr)
        return self

    def __repr__(self):
        return (f"ProcessResult(status={self.status!r}, returncode={self.returncode!r}, "
                f"n_lines={self.n_lines})")


def describe_command(argv):
    """Render an argument vector as a shell-quoted string for logs."""
    return shlex.join(str(arg) for arg in argv)


def execute(argv, sink=None, clinput=None, timeout=None, chunk_size=config.READ_CHUNK):
    """Run an external program and stream its standard output into a sink.

    Parameters
    ----------
    argv : sequence of str
        Program and arguments. No shell is involved, so arguments are never
        re-split or interpreted.
    sink : text stream, list or callable, optional
        Receives stdout verbatim, in order, one line (newline included) per
        call. A line longer than ``chunk_size`` characters arrives in pieces.
        Streams are written to, lists appended to, callables called.
        Defaults to sys.stdout.
    clinput : str, optional
        Text written to the program's standard input, which is then closed.
        Without it the program's stdin is /dev/null.
    timeout : float, optional
        Seconds to wait before the program is killed. None waits forever.
    chunk_size : int, optional
        Most characters read from stdout at once (default: config.READ_CHUNK).

    Returns
    -------
    ProcessResult
        Status SUCCESS, FAILED, SPAWN_ERROR or TIMEOUT. Output forwarded
        before a failure stays in the sink.
    """
    argv = [str(arg) for arg in argv]
    write = _sink_writer(sys.stdout if sink is None else sink)
    logger.debug("Executing: %s", describe_command(argv))
    try:
        proc = sp.Popen(
            argv,
            stdin=sp.PIPE if clinput is not None else sp.DEVNULL,
            stdout=sp.PIPE,
            stderr=sp.PIPE,
            text=True,
        )
    except OSError as e:
        error = f"Could not launch {argv[0]!r}: {e.strerror or e}"
        logger.error(error)
        return ProcessResult(argv, SPAWN_ERROR, error=error)

    stderr_chunks = []
    helpers = [threading.Thread(target=_drain, args=(proc.stderr, stderr_chunks), daemon=True)]
    if clinput is not None:
        helpers.append(threading.Thread(target=_feed, args=(proc.stdin, clinput), daemon=True))
    timed_out = threading.Event()
    timer = None
    if timeout is not None:
        timer = threading.Timer(timeout, _kill, args=(proc, timed_out))
        timer.daemon = True
        timer.start()
    for helper in helpers:
        helper.start()

    n_lines = 0
    try:
        for chunk in iter(lambda: proc.stdout.readline(chunk_size), ""):
            write(chunk)
            n_lines += 1
    finally:
        proc.stdout.close()
        returncode = proc.wait()
        if timer is not None:
            timer.cancel()
        for helper in helpers:
            helper.join()

    stderr = "".join(stderr_chunks)
    if timed_out.is_set():
        error = f"{argv[0]} did not finish within {timeout} s and was killed"
        logger.error(error)
        return ProcessResult(argv, TIMEOUT, returncode, stderr, error, n_lines)
    if returncode != 0:
        error = f"{argv[0]} exited with status {returncode}"
        if stderr.strip():
            error += f": {stderr.strip().splitlines()[-1]}"
        logger.warning(error)
        return ProcessResult(argv, FAILED, returncode, stderr, error, n_lines)
    logger.debug("%s finished, %d lines of output", argv[0], n_lines)
    return ProcessResult(argv, SUCCESS, returncode, stderr, "", n_lines)


def _sink_writer(sink):
    if hasattr(sink, "write"):
        return sink.write
    if hasattr(sink, "append"):
        return sink.append
    if callable(sink):
        return sink
    raise TypeError(f"Output sink must be a stream, a list or a callable, got {type(sink).__name__}")


def _feed(stream, text):
    try:
        stream.write(text)
    except BrokenPipeError:
        # The child exited without reading all of its input; its exit status tells why
        logger.debug("Child closed stdin before all input was written")
    finally:
        try:
            stream.close()
        except BrokenPipeError:
            pass


def _drain(stream, chunks):
    for line in stream:
        chunks.append(line)
    stream.close()


def _kill(proc, timed_out):
    if proc.poll() is None:
        timed_out.set()
        proc.kill()


##############################################################
# Command-line driver
##############################################################


def build_parser():
    """Argument parser of the ``voroint`` command."""
    parser = argparse.ArgumentParser(
        prog="voroint",
        description="Voronoi interface areas between contiguous atom groups, frame by frame, "
                    "computed by an external voro_interfaces++ run per trajectory frame.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
GROUPS:
    Groups are given as upper atom ids in increasing order, so groups must be
    contiguous in id. With group1 = atoms 1-100, group2 = 101-123 and
    group3 = 124 to the end, pass -g "100 123". Atom ids are 1-indexed, as in
    .gro files.

USAGE EXAMPLES:
    voroint -s conf.gro -f traj.xtc -g "100 123" -o interfaces.txt
    voroint -s conf.gro -f traj.xtc -g "100 123" --dry-run --stop 1
        """
    )
    parser.add_argument('-s', '--topology', required=True,
                        help='Structure/topology file (.gro, .pdb, .tpr, ...)')
    parser.add_argument('-f', '--trajectory', nargs='*', default=[],
                        help='Trajectory file(s); defaults to the coordinates in the topology')
    parser.add_argument('-g', '--groups', required=True,
                        help='Upper atom ids of contiguous groups, e.g. "100 123"')
    parser.add_argument('-o', '--output', default='voroint.txt',
                        help='Report with the tool output of every frame (default: voroint.txt)')
    parser.add_argument('--tool', default=config.TOOL,
                        help=f'Voronoi interface executable (default: {config.TOOL})')
    parser.add_argument('--scale', type=float, default=config.DIMENSION_SCALING,
                        help=f'Length scale from nm to tool units (default: {config.DIMENSION_SCALING:g})')
    parser.add_argument('--timeout', type=float, default=config.TIMEOUT,
                        help=f'Seconds allowed per tool run, 0 for no limit (default: {config.TIMEOUT:g})')
    parser.add_argument('--start', type=int, default=None, help='First frame to analyse')
    parser.add_argument('--stop', type=int, default=None, help='Frame to stop before')
    parser.add_argument('--step', type=int, default=None, help='Analyse every n-th frame')
    parser.add_argument('--dry-run', action='store_true',
                        help='Log the command for each frame without running the tool')
    parser.add_argument('--strict', action='store_true',
                        help='Abort on the first frame whose tool run fails')
    parser.add_argument('--debug', action='store_true',
                        help='Verbose logging and full tracebacks (same as DEBUG=1)')
    return parser


@timeit(level=logging.INFO, unit='auto')
def analyse(args):
    """Run the analysis described by parsed command-line arguments."""
    import MDAnalysis as mda
    from voroint.analysis import VoronoiInterfaces

    universe = mda.Universe(args.topology, *args.trajectory)
    analysis = VoronoiInterfaces(
        universe,
        args.groups,
        tool=args.tool,
        scale=args.scale,
        timeout=args.timeout or None,
        dry_run=args.dry_run,
        strict=args.strict,
    )
    analysis.run(start=args.start, stop=args.stop, step=args.step)
    if not args.dry_run:
        analysis.write_output(args.output)
    return analysis


def main(argv=None):
    """Entry point of the ``voroint`` command.

    Exit status is 0 when every frame succeeded, 1 on a configuration,
    geometry or (with --strict) tool error, and 2 when the pass completed
    but some frames failed.
    """
    args = build_parser().parse_args(argv)
    debug = args.debug or debug_mode()
    if debug:
        logging.getLogger("voroint").setLevel(logging.DEBUG)
    try:
        analysis = analyse(args)
    except VoroIntError as e:
        if debug:
            raise
        logger.error("%s", e)
        logger.info("Set DEBUG=1 environment variable to see full traceback.")
        sys.exit(1)
    n_failed = analysis.results.n_failed
    if n_failed:
        logger.error("%d of %d frames failed", n_failed, len(analysis.results.records))
        sys.exit(2)
    return 0


if __name__ == "__main__":
    main()
