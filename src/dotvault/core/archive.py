"""Encrypted archive of sensitive files.

``encrypt`` archives every file matched by the pattern file and encrypts the
stream into a single archive; ``decrypt`` reverses the process, either listing
the archive or extracting it into the work directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .config import SECTION, ConfigStore
from .errors import ExternalToolFailure, PreconditionViolation, PrerequisiteMissing
from .globs import collect
from .layout import Layout
from .process import Pipeline, PipelineResult, Stage, program_available
from .repository import DotfilesRepository

logger = logging.getLogger(__name__)

DEFAULT_GPG = "gpg"
TAR = "tar"

Confirm = Callable[[str], bool]


@dataclass
class DecryptResult:
    """Outcome of a decrypt: archive members listed or extracted."""

    members: List[str] = field(default_factory=list)
    extracted: bool = False


@dataclass
class EncryptResult:
    """Outcome of an encrypt."""

    files: List[str] = field(default_factory=list)
    archive: Optional[Path] = None
    added: bool = False


def _stage_error(action: str, result: PipelineResult) -> ExternalToolFailure:
    failed = result.failed_stage or result.statuses[-1]
    return ExternalToolFailure(
        f"{action} ({failed.stage.name} exited with status {failed.returncode})",
        command=failed.stage.args,
        returncode=failed.returncode,
    )


class ArchivePipeline:
    """Builds and runs the tar/gpg pipelines for encrypt and decrypt.

    Attributes:
        layout (Layout): Locations of the pattern file and archive.
        repo (DotfilesRepository): Repository the archive may be added to.
        config (ConfigStore): Source of gpg program and recipient settings.
        confirm (Confirm): Asks the user a yes/no question.
    """

    def __init__(
        self,
        layout: Layout,
        repo: DotfilesRepository,
        config: ConfigStore,
        confirm: Confirm,
    ) -> None:
        self.layout = layout
        self.repo = repo
        self.config = config
        self.confirm = confirm

    @property
    def gpg_program(self) -> str:
        return self.config.get(f"{SECTION}.gpg-program") or DEFAULT_GPG

    def gpg_options(self) -> List[str]:
        """Options selecting public-key or passphrase encryption."""
        recipient = self.config.get(f"{SECTION}.gpg-recipient")
        if recipient:
            return ["-e", "-r", recipient]
        return ["-c"]

    def _require_tools(self) -> None:
        for program in (self.gpg_program, TAR):
            if not program_available(program):
                raise PrerequisiteMissing(f"{program} does not appear to be installed")

    def encrypt(self, work_dir: Path) -> EncryptResult:
        """Archive and encrypt every file matched by the pattern file.

        The encrypted stream is written beside the archive and renamed over
        it only when both tar and gpg succeed.

        Args:
            work_dir: Directory the patterns are expanded in.

        Raises:
            PrerequisiteMissing: If gpg, tar or the pattern file is missing.
            ExternalToolFailure: If any stage of the pipeline fails.
        """
        self._require_tools()
        if not self.layout.encrypt.is_file():
            raise PrerequisiteMissing(f"{self.layout.encrypt} does not exist")

        files = collect(self.layout.encrypt, root=work_dir)
        if not files:
            raise PreconditionViolation(f"No files matched the patterns in {self.layout.encrypt}")
        logger.debug("Encrypting %d files", len(files))
        archive = self.layout.archive
        partial = archive.with_name(f".{archive.name}.partial")

        pipeline = Pipeline(
            [
                Stage("archive", [TAR, "-f", "-", "-c", "--", *files], cwd=work_dir),
                Stage(
                    "encrypt",
                    [self.gpg_program, "--yes", *self.gpg_options(), "--output", str(partial)],
                ),
            ]
        )
        result = pipeline.run()
        if not result.ok:
            if partial.exists():
                partial.unlink()
            raise _stage_error("Unable to write " + str(archive), result)
        os.replace(partial, archive)
        logger.info("Wrote %s", archive)

        added = False
        if self.repo.exists() and not self.repo.is_tracked(archive):
            question = (
                f"It appears that {archive} is not tracked by dotvault's repository.\n"
                "Would you like to add it now? (y/n)"
            )
            if self.confirm(question):
                self.repo.add(archive)
                added = True
        return EncryptResult(files=files, archive=archive, added=added)

    def decrypt(self, work_dir: Path, list_only: bool = False) -> DecryptResult:
        """Decrypt the archive and list or extract its contents.

        Args:
            work_dir: Directory files are extracted into.
            list_only: Only list the archive's members, touching nothing.

        Raises:
            PrerequisiteMissing: If gpg, tar or the archive is missing.
            ExternalToolFailure: If decryption or extraction fails.
        """
        self._require_tools()
        archive = self.layout.archive
        if not archive.is_file():
            raise PrerequisiteMissing(f"{archive} does not exist")

        tar_args = [TAR, "-t", "-f", "-"] if list_only else [TAR, "-x", "-v", "-f", "-"]
        pipeline = Pipeline(
            [
                Stage("decrypt", [self.gpg_program, "-d", str(archive)]),
                Stage("extract", tar_args, cwd=work_dir),
            ]
        )
        result = pipeline.run(capture_output=True)
        if not result.ok:
            raise _stage_error("Unable to extract encrypted files", result)
        members = [line for line in result.stdout.splitlines() if line]
        return DecryptResult(members=members, extracted=not list_only)
