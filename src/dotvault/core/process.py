"""External process execution for dotvault.

Every external program (git, gpg, tar) is started through this module. Single
commands go through :func:`run_command`; streamed compositions such as
``tar | gpg`` are modelled as a :class:`Pipeline` of stages whose individual
exit statuses are all reported, so that an early failure is never hidden by a
later stage that happily processed an empty stream.

Example:
    ```python
    from dotvault.core.process import Pipeline, Stage

    pipeline = Pipeline([
        Stage("decrypt", ["gpg", "-d", "files.gpg"]),
        Stage("list", ["tar", "-t", "-f", "-"]),
    ])
    result = pipeline.run(capture_output=True)
    if not result.ok:
        print(f"{result.failed_stage.name} failed")
    ```
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .errors import ExternalToolFailure, PrerequisiteMissing

logger = logging.getLogger(__name__)


def program_available(program: str) -> bool:
    """Check whether a program can be found on PATH (or is an executable path)."""
    return shutil.which(program) is not None


def require_program(program: str) -> None:
    """Raise PrerequisiteMissing if ``program`` cannot be executed."""
    if not program_available(program):
        raise PrerequisiteMissing(f"{program} does not appear to be installed")


def build_env(extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return a copy of the current environment updated with ``extra``."""
    env = dict(os.environ)
    if extra:
        env.update(extra)
    return env


def run_command(
    args: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    capture: bool = True,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a single external command and wait for it to finish.

    Args:
        args: Program and arguments.
        cwd: Directory to run in, defaults to the current directory.
        env: Extra environment variables layered over ``os.environ``.
        capture: Capture stdout/stderr as text instead of inheriting them.
        check: Raise ExternalToolFailure on a non-zero exit status.

    Returns:
        The completed process.

    Raises:
        PrerequisiteMissing: If the program does not exist.
        ExternalToolFailure: If ``check`` is set and the command fails.
    """
    logger.debug("Running: %s", shlex.join(args))
    try:
        result = subprocess.run(
            list(args),
            cwd=cwd,
            env=build_env(env),
            capture_output=capture,
            text=True,
        )
    except FileNotFoundError as e:
        raise PrerequisiteMissing(f"{args[0]} does not appear to be installed") from e

    if check and result.returncode != 0:
        detail = ""
        if capture:
            detail = (result.stderr or result.stdout or "").strip()
        message = f"{shlex.join(args)} failed with status {result.returncode}"
        if detail:
            message = f"{message}: {detail}"
        raise ExternalToolFailure(message, command=args, returncode=result.returncode)
    return result


@dataclass
class Stage:
    """One command in a pipeline."""

    name: str
    args: List[str]
    cwd: Optional[Path] = None


@dataclass
class StageStatus:
    """Exit status of a pipeline stage."""

    stage: Stage
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class PipelineResult:
    """Outcome of a pipeline run: one status per stage plus captured output."""

    statuses: List[StageStatus] = field(default_factory=list)
    stdout: str = ""

    @property
    def ok(self) -> bool:
        """True only if every stage exited with status zero."""
        return bool(self.statuses) and all(status.ok for status in self.statuses)

    @property
    def failed_stage(self) -> Optional[StageStatus]:
        """The first stage that exited non-zero, if any."""
        for status in self.statuses:
            if not status.ok:
                return status
        return None


class Pipeline:
    """A sequence of commands connected stdout-to-stdin.

    Standard error of every stage is inherited so that tool diagnostics reach
    the user. Only the final stage's stdout can be captured.
    """

    def __init__(self, stages: Sequence[Stage], env: Optional[Mapping[str, str]] = None):
        if not stages:
            raise ValueError("A pipeline needs at least one stage")
        self.stages = list(stages)
        self.env = build_env(env)

    def __repr__(self) -> str:
        return " | ".join(shlex.join(stage.args) for stage in self.stages)

    def run(self, capture_output: bool = False) -> PipelineResult:
        """Start all stages, wait for them, and report each exit status."""
        logger.debug("Running pipeline: %r", self)
        processes: List[subprocess.Popen] = []
        previous_stdout = None
        try:
            for index, stage in enumerate(self.stages):
                last = index == len(self.stages) - 1
                stdout = subprocess.PIPE if (not last or capture_output) else None
                try:
                    process = subprocess.Popen(
                        stage.args,
                        cwd=stage.cwd,
                        env=self.env,
                        stdin=previous_stdout,
                        stdout=stdout,
                    )
                except FileNotFoundError as e:
                    raise PrerequisiteMissing(
                        f"{stage.args[0]} does not appear to be installed"
                    ) from e
                # The parent must not hold the read end open, otherwise the
                # upstream stage never sees SIGPIPE.
                if previous_stdout is not None:
                    previous_stdout.close()
                previous_stdout = process.stdout if not last else None
                processes.append(process)

            output = b""
            final = processes[-1]
            if capture_output and final.stdout is not None:
                output = final.stdout.read()
                final.stdout.close()
            statuses = [
                StageStatus(stage, process.wait())
                for stage, process in zip(self.stages, processes)
            ]
        except BaseException:
            for process in processes:
                if process.stdout is not None:
                    process.stdout.close()
                if process.poll() is None:
                    process.kill()
                    process.wait()
            raise

        for status in statuses:
            logger.debug("Stage %s exited with %d", status.stage.name, status.returncode)
        return PipelineResult(statuses, output.decode(errors="replace"))
