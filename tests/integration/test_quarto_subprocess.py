"""
Integration tests: full runs through QuartoEngine's real subprocess path,
using a small shell script in place of the quarto executable.
"""

import os
import stat
import sys
import time

import pytest

from batchrender.bindings import enumerate_bindings
from batchrender.coordinator import RunCoordinator
from batchrender.engines.quarto import QuartoEngine
from batchrender.errors import RenderTimeoutError
from batchrender.summary import RunStatus


pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")


FAKE_QUARTO = """\
#!/bin/sh
out=""
while [ $# -gt 0 ]; do
  case "$1" in
    --output) out="$2"; shift 2 ;;
    -P)
      case "$2" in
        unit:B) echo "ERROR: unit B has no data" >&2; exit 1 ;;
      esac
      shift 2 ;;
    *) shift ;;
  esac
done
printf 'rendered %s\\n' "$out" > "$out"
"""

HANGING_QUARTO = """\
#!/bin/sh
exec sleep 30
"""


def _script(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


@pytest.fixture
def template(tmp_path):
    path = tmp_path / "templates" / "report.qmd"
    path.parent.mkdir()
    path.write_text("---\nparams:\n  unit: X\n  period: \"2023\"\n---\n", encoding="utf-8")
    return str(path)


class TestQuartoRuns:
    def test_partial_success(self, tmp_path, template, unit_period_bindings):
        engine = QuartoEngine(quarto_path=_script(tmp_path, "quarto", FAKE_QUARTO))
        coordinator = RunCoordinator(engine, tmp_path / "out", concurrency=2, observers=[])

        summary = coordinator.run(template, unit_period_bindings, ["pdf"])

        assert summary.overall == RunStatus.PARTIAL_SUCCESS
        assert [o.succeeded for o in summary.outcomes] == [True, True, False, False]
        assert (tmp_path / "out" / "a" / "2023" / "a_2023.pdf").read_text() == "rendered a_2023.pdf\n"
        failure = summary.failures[0].error
        assert failure.exit_code == 1
        assert "unit B has no data" in failure.details
        assert not (tmp_path / "out" / "b" / "2023" / "b_2023.pdf").exists()

    def test_template_is_not_modified(self, tmp_path, template):
        engine = QuartoEngine(quarto_path=_script(tmp_path, "quarto", FAKE_QUARTO))
        before = os.listdir(os.path.dirname(template))

        RunCoordinator(engine, tmp_path / "out", observers=[]).run(
            template, enumerate_bindings({"unit": ["A"]}), ["html"]
        )

        assert os.listdir(os.path.dirname(template)) == before

    def test_timeout_terminates_process(self, tmp_path, template):
        engine = QuartoEngine(quarto_path=_script(tmp_path, "quarto", HANGING_QUARTO), kill_grace=2)
        coordinator = RunCoordinator(engine, tmp_path / "out", timeout=0.5, observers=[])

        summary = coordinator.run(template, enumerate_bindings({"unit": ["A"]}), ["pdf"])

        outcome = summary.outcomes[0]
        assert summary.overall == RunStatus.FAILED
        assert isinstance(outcome.error, RenderTimeoutError)
        assert outcome.elapsed < 10
        assert not (tmp_path / "out" / "a" / "a.pdf").exists()

    def test_timeout_stops_processes_spawned_by_quarto(self, tmp_path, template):
        pid_file = tmp_path / "child.pid"
        wrapper = f"#!/bin/sh\nsleep 30 &\necho $! > {pid_file}\nwait\n"
        engine = QuartoEngine(quarto_path=_script(tmp_path, "quarto", wrapper), kill_grace=1)
        coordinator = RunCoordinator(engine, tmp_path / "out", timeout=0.5, observers=[])

        start = time.monotonic()
        summary = coordinator.run(template, enumerate_bindings({"unit": ["A"]}), ["pdf"])
        elapsed = time.monotonic() - start

        assert isinstance(summary.outcomes[0].error, RenderTimeoutError)
        assert elapsed < 10
        child = int(pid_file.read_text().strip())
        assert _eventually_gone(child)


def _is_running(pid):
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    stat_file = f"/proc/{pid}/stat"
    if os.path.exists(stat_file):
        with open(stat_file, encoding="utf-8") as f:
            # Zombies waiting to be reaped by init no longer run
            return f.read().rsplit(")", 1)[1].split()[0] != "Z"
    return True


def _eventually_gone(pid, within=3.0):
    deadline = time.monotonic() + within
    while time.monotonic() < deadline:
        if not _is_running(pid):
            return True
        time.sleep(0.05)
    return not _is_running(pid)
