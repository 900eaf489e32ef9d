"""
Quarto rendering engine.

Renders a parameterized Quarto document by invoking the ``quarto`` CLI:

    quarto render <template> --to <format> -P key:value ... --output <file>

Each job renders a private copy of the template inside a temporary
directory so concurrent jobs never share intermediate files; the
template's own directory is used as the execution directory so relative
data paths keep working. The finished artifact is moved to the job's
destination only after the process exits successfully, so a killed or
failed render never leaves a partial file at the destination.
"""

import logging
import os
import shutil
import signal
import subprocess
import tempfile
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from batchrender.config.environment import EnvironmentVariables
from batchrender.engines.base import CancellationToken, RenderResult
from batchrender.errors import RenderError


logger = logging.getLogger(__name__)

# Seconds between process polls while watching the cancellation token
POLL_INTERVAL = 0.2
# Tail of engine output kept in error messages
MAX_LOG_CHARS = 4000
# Formats whose supporting files (CSS, JS, figures) must be inlined so the
# job still delivers a single artifact
SELF_CONTAINED_FORMATS = ("html", "revealjs")

POSIX = os.name == "posix"
KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)


def _stop_process_group(process: subprocess.Popen, force: bool = False) -> None:
    """Signal quarto and every helper it spawned (deno, pandoc, kernels).

    On POSIX the process leads its own session, so its pid is also the
    process group id. Elsewhere only the direct child can be signalled.
    """
    try:
        if POSIX:
            os.killpg(process.pid, KILL_SIGNAL if force else signal.SIGTERM)
        elif force:
            process.kill()
        else:
            process.terminate()
    except (ProcessLookupError, PermissionError):
        pass


class QuartoEngine:
    """Production rendering engine backed by the Quarto CLI.

    Example:
        >>> engine = QuartoEngine()
        >>> engine.validate_requirements()
        []
    """

    def __init__(
        self,
        quarto_path: Optional[str] = None,
        extra_args: Optional[Sequence[str]] = None,
        kill_grace: float = 5.0,
    ):
        """Initialize the Quarto engine.

        Args:
            quarto_path: Path to the quarto executable (default: $QUARTO_PATH
                or ``quarto`` on PATH)
            extra_args: Additional arguments appended to every render call
            kill_grace: Seconds to wait after SIGTERM before SIGKILL
        """
        self.quarto_path = quarto_path or os.environ.get(EnvironmentVariables.QUARTO_PATH) or "quarto"
        self.extra_args = list(extra_args or [])
        self.kill_grace = kill_grace

    def build_command(
        self,
        template_name: str,
        parameters: Mapping[str, Any],
        output_format: str,
        output_name: str,
        execute_dir: Path,
    ) -> List[str]:
        command = [
            self.quarto_path,
            "render",
            template_name,
            "--to",
            output_format,
            "--output",
            output_name,
            "--execute-dir",
            str(execute_dir),
        ]
        if output_format in SELF_CONTAINED_FORMATS:
            command.extend(["-M", "embed-resources:true"])
        for key, value in parameters.items():
            command.extend(["-P", f"{key}:{value}"])
        command.extend(self.extra_args)
        return command

    def render(
        self,
        template_ref: str,
        parameters: Mapping[str, Any],
        output_format: str,
        destination: Path,
        cancel_token: CancellationToken,
    ) -> RenderResult:
        template = Path(template_ref).resolve()
        if not template.is_file():
            raise RenderError(f"Template not found: {template_ref}")

        with tempfile.TemporaryDirectory(prefix="batch-render-") as work_dir:
            work = Path(work_dir)
            shutil.copy2(template, work / template.name)
            command = self.build_command(
                template.name, parameters, output_format, destination.name, template.parent
            )
            logger.debug(f"Running: {' '.join(command)}")

            exit_code, log = self._run(command, work, cancel_token)
            if exit_code is None:
                return RenderResult(
                    artifact_path=None,
                    success=False,
                    error="quarto process terminated after cancellation",
                    log=log,
                )
            if exit_code != 0:
                return RenderResult(
                    artifact_path=None,
                    success=False,
                    error=f"quarto exited with status {exit_code}",
                    exit_code=exit_code,
                    log=log[-MAX_LOG_CHARS:],
                )

            produced = work / destination.name
            if not produced.exists():
                return RenderResult(
                    artifact_path=None,
                    success=False,
                    error=f"quarto reported success but produced no {destination.name}",
                    exit_code=exit_code,
                    log=log[-MAX_LOG_CHARS:],
                )
            shutil.move(str(produced), str(destination))

        return RenderResult(artifact_path=destination, success=True, exit_code=0, log=log)

    def _run(
        self,
        command: List[str],
        cwd: Path,
        cancel_token: CancellationToken,
    ) -> Tuple[Optional[int], str]:
        """Run quarto, terminating it if the token is cancelled.

        Returns:
            (exit_code, combined output); exit_code is None when the
            process was terminated because of cancellation
        """
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=POSIX,
            )
        except OSError as e:
            raise RenderError(f"Failed to invoke quarto: {e}", original_error=e) from e

        while True:
            try:
                stdout, _ = process.communicate(timeout=POLL_INTERVAL)
                return process.returncode, stdout.decode("utf-8", errors="ignore")
            except subprocess.TimeoutExpired:
                if cancel_token.is_cancelled():
                    break

        logger.warning(f"Terminating quarto (pid {process.pid}) after cancellation")
        _stop_process_group(process)
        try:
            stdout, _ = process.communicate(timeout=self.kill_grace)
        except subprocess.TimeoutExpired:
            logger.warning(f"quarto (pid {process.pid}) ignored SIGTERM for {self.kill_grace}s; killing")
            _stop_process_group(process, force=True)
            stdout, _ = process.communicate()
        # Helpers that outlived the launcher but closed the pipe
        _stop_process_group(process, force=True)
        return None, stdout.decode("utf-8", errors="ignore")

    def get_engine_info(self) -> Tuple[str, str]:
        try:
            result = subprocess.run(
                [self.quarto_path, "--version"],
                capture_output=True,
                text=True,
                timeout=30,
                check=False,
            )
            version = result.stdout.strip() or "unknown"
        except (OSError, subprocess.TimeoutExpired):
            version = "unavailable"
        return ("quarto", version)

    def validate_requirements(self) -> List[str]:
        errors = []
        if shutil.which(self.quarto_path) is None:
            errors.append(
                f"quarto executable not found: {self.quarto_path}. "
                f"Install Quarto or set {EnvironmentVariables.QUARTO_PATH}."
            )
        return errors
