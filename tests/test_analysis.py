"""
Test Suite for voroint.analysis and the voroint command
=====================================

Runs VoronoiInterfaces over small in-memory trajectories. The Voronoi tool
is replaced by a Python script that reports its arguments and the
coordinate lines it received on standard input.

Usage:
    pytest -v tests/test_analysis.py
"""

import logging
import stat
import sys

import MDAnalysis as mda
import numpy as np
import pytest
from MDAnalysis.coordinates.memory import MemoryReader

from voroint import cli
from voroint.analysis import VoronoiInterfaces, box_in_nm
from voroint.exceptions import ConfigurationError, GeometryError, ToolRuntimeError, VoroIntError

FAKE_TOOL = '''
import sys
lines = sys.stdin.read().splitlines()
print("args " + " ".join(sys.argv[1:]))
print("atoms %d" % len(lines))
for line in lines:
    print("coord " + line)
'''

FAILING_TOOL = '''
import sys
sys.stdin.read()
print("partial")
sys.stderr.write("voronoi cell computation failed\\n")
sys.exit(4)
'''


def make_universe(n_frames=3, dims=(10.0, 10.0, 10.0, 90.0, 90.0, 90.0)):
    """Three atoms; atom 2 sits at (1, 2, 3) A, atom 3 moves 1 A along x per frame."""
    u = mda.Universe.empty(3, trajectory=True)
    coords = np.zeros((n_frames, 3, 3), dtype=np.float32)
    coords[:, 1] = [1.0, 2.0, 3.0]
    coords[:, 2, 0] = np.arange(n_frames)
    u.load_new(coords, format=MemoryReader, order="fac",
               dimensions=np.array(dims, dtype=np.float32))
    return u


def write_script(tmp_path, name, source):
    path = tmp_path / name
    path.write_text(f"#!{sys.executable}\n{source}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.fixture
def fake_tool(tmp_path):
    return [sys.executable, str(write_script(tmp_path, "fake_voro.py", FAKE_TOOL))]


@pytest.fixture
def failing_tool(tmp_path):
    return [sys.executable, str(write_script(tmp_path, "failing_voro.py", FAILING_TOOL))]


def test_box_in_nm():
    box = box_in_nm(np.array([10.0, 10.0, 10.0, 90.0, 90.0, 90.0]))
    np.testing.assert_allclose(box, np.eye(3), atol=1e-12)
    assert box_in_nm(None) is None


def test_every_frame_runs_the_tool(fake_tool):
    u = make_universe()
    vi = VoronoiInterfaces(u, "2", tool=fake_tool).run()
    assert vi.results.status == [cli.SUCCESS] * 3
    np.testing.assert_array_equal(vi.results.frames, [0, 1, 2])
    assert vi.results.returncodes == [0, 0, 0]
    assert vi.results.n_failed == 0
    assert vi.failed_frames() == []
    first = vi.results.output[0]
    assert first[0] == "args -stdin -stdout -sum -gp 2 -p 0 10 0 10 0 10 file_name_placeholder\n"
    assert first[1] == "atoms 3\n"
    assert first[2:] == ["coord 1 0 0 0\n", "coord 2 1 2 3\n", "coord 3 0 0 0\n"]
    assert vi.results.output[2][-1] == "coord 3 2 0 0\n"


def test_frame_selection(fake_tool):
    vi = VoronoiInterfaces(make_universe(n_frames=5), "1 2", tool=fake_tool).run(start=1, step=2)
    np.testing.assert_array_equal(vi.results.frames, [1, 3])
    assert "-gp 1 2 -p" in vi.results.output[0][0]


def test_atomgroup_subset_is_renumbered(fake_tool):
    u = make_universe(n_frames=1)
    vi = VoronoiInterfaces(u.atoms[1:], "1", tool=fake_tool).run()
    assert vi.results.output[0][1:] == ["atoms 2\n", "coord 1 1 2 3\n", "coord 2 0 0 0\n"]


def test_failed_frames_are_recorded_and_the_pass_continues(failing_tool):
    vi = VoronoiInterfaces(make_universe(), "2", tool=failing_tool).run()
    assert vi.results.status == [cli.FAILED] * 3
    assert vi.results.returncodes == [4, 4, 4]
    assert vi.results.n_failed == 3
    assert [r.frame for r in vi.failed_frames()] == [0, 1, 2]
    assert vi.results.output[1] == ["partial\n"]
    assert "voronoi cell computation failed" in vi.results.records[0].result.error


def test_strict_mode_raises(failing_tool):
    vi = VoronoiInterfaces(make_universe(), "2", tool=failing_tool, strict=True)
    with pytest.raises(ToolRuntimeError) as excinfo:
        vi.run()
    assert excinfo.value.returncode == 4


def test_missing_tool_is_recorded_per_frame():
    vi = VoronoiInterfaces(make_universe(n_frames=2), "2", tool="voroint-no-such-binary-6a1f").run()
    assert vi.results.status == [cli.SPAWN_ERROR] * 2
    assert vi.results.output == [[], []]
    assert vi.results.n_failed == 2


def test_dry_run_does_not_execute():
    vi = VoronoiInterfaces(make_universe(), "2", tool="voroint-no-such-binary-6a1f",
                           dry_run=True).run()
    assert vi.results.status == [cli.SKIPPED] * 3
    assert vi.results.n_failed == 0


def test_non_cubic_box_fails_at_construction(fake_tool):
    u = make_universe(dims=(10.0, 12.0, 10.0, 90.0, 90.0, 90.0))
    with pytest.raises(GeometryError):
        VoronoiInterfaces(u, "2", tool=fake_tool)


def test_missing_box_fails_at_construction(fake_tool):
    u = mda.Universe.empty(3, trajectory=True)
    with pytest.raises(GeometryError):
        VoronoiInterfaces(u, "2", tool=fake_tool)


@pytest.mark.parametrize("groups", ["2 1", "4", "", "x"])
def test_bad_groups_fail_at_construction(groups, fake_tool):
    with pytest.raises(ConfigurationError):
        VoronoiInterfaces(make_universe(), groups, tool=fake_tool)


def test_non_cubic_box_later_in_the_pass_aborts(fake_tool):
    u = mda.Universe.empty(3, trajectory=True)
    coords = np.zeros((3, 3, 3), dtype=np.float32)
    dims = np.array([[10.0, 10.0, 10.0, 90.0, 90.0, 90.0],
                     [10.0, 10.0, 10.0, 90.0, 90.0, 90.0],
                     [10.0, 12.0, 10.0, 90.0, 90.0, 90.0]], dtype=np.float32)
    u.load_new(coords, format=MemoryReader, order="fac", dimensions=dims)
    vi = VoronoiInterfaces(u, "2", tool=fake_tool)
    with pytest.raises(GeometryError):
        vi.run()


def test_zero_timeout_means_no_limit(fake_tool):
    vi = VoronoiInterfaces(make_universe(n_frames=1), "2", tool=fake_tool, timeout=0)
    assert vi.timeout is None
    vi.run()
    assert vi.results.status == [cli.SUCCESS]


def test_results_require_a_run(tmp_path, fake_tool):
    vi = VoronoiInterfaces(make_universe(), "2", tool=fake_tool)
    with pytest.raises(VoroIntError, match=r"run\(\)"):
        vi.failed_frames()
    with pytest.raises(VoroIntError, match=r"run\(\)"):
        vi.write_output(tmp_path / "report.txt")
    assert not (tmp_path / "report.txt").exists()


def test_write_output(tmp_path, fake_tool):
    vi = VoronoiInterfaces(make_universe(n_frames=2), "2", tool=fake_tool).run()
    path = vi.write_output(tmp_path / "out" / "report.txt")
    text = path.read_text().splitlines()
    assert text[1] == "# groups: 2"
    assert text[2] == "# scale: 10"
    assert "# frame 0 time 0 status success returncode 0" in text
    assert "# frame 1 time 1 status success returncode 0" in text
    assert text.count("atoms 3") == 2


##############################################################
# Command line
##############################################################


def write_gro(path, box_nm=1.0):
    atoms = [(0.0, 0.0, 0.0), (0.1, 0.2, 0.3), (0.5, 0.5, 0.5)]
    lines = ["three waters", f"{len(atoms):5d}"]
    for i, (x, y, z) in enumerate(atoms, start=1):
        lines.append(f"{1:>5d}{'SOL':<5s}{'OW':>5s}{i:>5d}{x:8.3f}{y:8.3f}{z:8.3f}")
    lines.append(f"{box_nm:10.5f}{box_nm:10.5f}{box_nm:10.5f}")
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def no_debug(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)


def test_main_writes_report(tmp_path, no_debug):
    gro = write_gro(tmp_path / "conf.gro")
    tool = write_script(tmp_path, "fake_voro.py", FAKE_TOOL)
    out = tmp_path / "report.txt"
    assert cli.main(["-s", str(gro), "-g", "1 2", "--tool", str(tool), "-o", str(out)]) == 0
    text = out.read_text()
    assert "coord 2 1 2 3" in text
    assert "-gp 1 2 -p 0 10 0 10 0 10" in text


def test_main_exit_status_on_bad_groups(tmp_path, no_debug):
    gro = write_gro(tmp_path / "conf.gro")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-s", str(gro), "-g", "2 1", "--dry-run"])
    assert excinfo.value.code == 1


def test_main_exit_status_on_failed_frames(tmp_path, no_debug):
    gro = write_gro(tmp_path / "conf.gro")
    tool = write_script(tmp_path, "failing_voro.py", FAILING_TOOL)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-s", str(gro), "-g", "2", "--tool", str(tool), "-o", str(tmp_path / "r.txt")])
    assert excinfo.value.code == 2


def test_main_debug_mode_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("DEBUG", "1")
    gro = write_gro(tmp_path / "conf.gro", box_nm=1.0)
    with pytest.raises(ConfigurationError):
        cli.main(["-s", str(gro), "-g", "5", "--dry-run"])


def test_analyse_logs_its_run_time(tmp_path, caplog, no_debug):
    gro = write_gro(tmp_path / "conf.gro")
    args = cli.build_parser().parse_args(["-s", str(gro), "-g", "2", "--dry-run"])
    with caplog.at_level(logging.INFO, logger="voroint"):
        analysis = cli.analyse(args)
    assert analysis.results.status == [cli.SKIPPED]
    assert "Function 'voroint.cli.analyse' executed in" in caplog.text
