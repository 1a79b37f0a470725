"""Command line interface for dotvault.

Internal commands are click commands on the :func:`cli` group. Any other
command name is handed to git unchanged, running against dotvault's
repository. Each command returns a :class:`CommandResult`; the group's result
callback uses it to decide whether alternates are relinked and permissions
hardened before exiting.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.archive import ArchivePipeline
from .core.commands import (
    GIT_CONFIG_ALIAS,
    Command,
    CommandResult,
    Options,
    clean_disabled_message,
    run_alt,
    run_perms,
    run_post_actions,
)
from .core.config import SECTION, SUPPORTED_KEYS, ConfigStore
from .core.errors import (
    CommandDisabled,
    DotvaultError,
    InvalidArgument,
    PreconditionViolation,
)
from .core.layout import Layout
from .core.logging import setup_logging
from .core.repository import DotfilesRepository

console = Console()

USAGE = """Usage: dotvault <command> [options...]

Manage dotfiles maintained in a git repository. Commands not listed
below are passed directly to git.

Git alternatives:
  gitconfig      Pass options to the git config command

Commands:
  dotvault init [-f]             - Initialize an empty repository
  dotvault clone <url> [-f]      - Clone an existing repository
  dotvault config <name> <value> - Configure a setting
  dotvault list [-a]             - List tracked files
  dotvault alt                   - Create links for alternates
  dotvault encrypt               - Encrypt files
  dotvault decrypt [-l]          - Decrypt files
  dotvault perms                 - Fix perms for private files

Options:
  -Y <dir>   Override the dotvault directory
  -w <dir>   Override the work tree used by init and clone
  -d         Print diagnostic output

Files:
  $HOME/.config/dotvault/config    - dotvault's configuration file
  $HOME/.config/dotvault/repo.git  - git repository
  $HOME/.config/dotvault/encrypt   - list of globs to encrypt
  $HOME/.config/dotvault/files.gpg - encrypted data stored here
"""


@dataclass
class Session:
    """State shared by every command of one invocation."""

    layout: Layout
    config: ConfigStore
    repo: DotfilesRepository

    def work_tree(self, options: Options) -> Path:
        """The repository's recorded work tree, or the ``-w``/home default."""
        return self.repo.work_tree() or options.resolved_work_dir()

    def require_repo(self) -> None:
        if not self.repo.exists():
            raise PreconditionViolation(
                f"Git repo does not exist: {self.layout.repo}\n"
                "Run 'dotvault init' or 'dotvault clone' first."
            )


def fail(error: DotvaultError) -> NoReturn:
    """Report ``error`` and exit with status 1."""
    console.print(f"[red]ERROR:[/red] {escape(str(error))}", soft_wrap=True)
    click.get_current_context().exit(1)


def confirm(question: str) -> bool:
    """Ask a yes/no question, accepting only a single 'y' or 'Y'."""
    console.print(escape(question), soft_wrap=True)
    try:
        answer = console.input()
    except EOFError:
        return False
    return answer.strip() in ("y", "Y")


class DotvaultGroup(click.Group):
    """Group that forwards unknown command names to git."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        # Only -Y and -d belong to dotvault; any other leading option starts a
        # git command line, so end option parsing in front of it.
        args = list(args)
        index = 0
        while index < len(args) and args[index] in ("-Y", "-d"):
            index += 2 if args[index] == "-Y" else 1
        if index < len(args) and args[index].startswith("-") and args[index] != "--":
            args.insert(index, "--")
        return super().parse_args(ctx, args)

    def resolve_command(self, ctx: click.Context, args: List[str]) -> Any:
        name = args[0] if args else None
        if name == GIT_CONFIG_ALIAS:
            return name, passthrough, ["config", *args[1:]]
        if name is not None and name not in self.commands:
            return name, passthrough, list(args)
        return super().resolve_command(ctx, args)


class PassthroughCommand(click.Command):
    """Command that hands its arguments over verbatim, without option parsing."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        ctx.params["git_args"] = tuple(args)
        ctx.args = []
        return []


@click.command(name="git", cls=PassthroughCommand, add_help_option=False)
@click.pass_obj
def passthrough(session: Session, git_args: tuple) -> CommandResult:
    """Run a git command against dotvault's repository."""
    code = session.repo.passthrough(list(git_args))
    return CommandResult(exit_code=code, changes_possible=True)


@click.group(cls=DotvaultGroup, invoke_without_command=True, add_help_option=False)
@click.option(
    "-Y",
    "dotvault_dir",
    type=click.Path(path_type=Path),
    help="Use this dotvault directory instead of ~/.config/dotvault",
)
@click.option("-d", "debug", is_flag=True, help="Print diagnostic output")
@click.pass_context
def cli(ctx: click.Context, dotvault_dir: Optional[Path], debug: bool) -> None:
    """Dotfile management on top of git."""
    setup_logging(debug=debug)
    if ctx.invoked_subcommand is None:
        console.print(USAGE, highlight=False, markup=False)
        ctx.exit(1)

    try:
        layout = Layout.from_dir(dotvault_dir)
        store = ConfigStore(layout.config)
        # Reading must not create the store before a command has validated its flags
        git_program = None
        if store.path.exists():
            git_program = store.get(f"{SECTION}.git-program")
        git_program = git_program or "git"
        store.git_program = git_program
    except DotvaultError as e:
        fail(e)

    # Pass-through commands find the repository through the environment
    os.environ["GIT_DIR"] = str(layout.repo)
    ctx.obj = Session(layout, store, DotfilesRepository(layout, git_program))


@cli.result_callback()
@click.pass_context
def finish(ctx: click.Context, result: CommandResult, **_: Any) -> None:
    """Run automatic post-actions and exit with the command's status."""
    session: Session = ctx.obj
    try:
        run_post_actions(result, session.layout, session.config, session.repo, console)
    except DotvaultError as e:
        fail(e)
    ctx.exit(result.exit_code)


def internal_command(command: Command) -> Callable:
    """Register a dotvault command accepting the shared set of flags.

    The decorated function receives the session and a populated
    :class:`Options`. The work tree is validated before it runs and any
    :class:`DotvaultError` it raises ends the invocation with status 1.
    """

    def decorator(f: Callable[[Session, Options], CommandResult]) -> click.Command:
        @cli.command(command.value)
        @click.option("-a", "all_files", is_flag=True, help="List all tracked files")
        @click.option("-d", "debug", is_flag=True, help="Print diagnostic output")
        @click.option("-f", "force", is_flag=True, help="Overwrite an existing repository")
        @click.option("-l", "list_only", is_flag=True, help="List archive contents only")
        @click.option(
            "-w", "work_dir", type=click.Path(path_type=Path), help="Work tree (absolute path)"
        )
        @click.argument("args", nargs=-1)
        @click.pass_obj
        @functools.wraps(f)
        def wrapper(
            session: Session,
            all_files: bool,
            debug: bool,
            force: bool,
            list_only: bool,
            work_dir: Optional[Path],
            args: tuple,
        ) -> CommandResult:
            options = Options(
                all_files=all_files,
                debug=debug,
                force=force,
                list_only=list_only,
                work_dir=work_dir,
                args=list(args),
            )
            if debug:
                setup_logging(debug=True)
            try:
                options.resolved_work_dir()
                return f(session, options)
            except DotvaultError as e:
                fail(e)

        return wrapper

    return decorator


@internal_command(Command.INIT)
def init(session: Session, options: Options) -> CommandResult:
    """Initialize an empty repository tracking the work tree."""
    work_dir = options.resolved_work_dir()
    session.repo.init(work_dir, force=options.force)
    console.print(
        f"Initialized empty dotvault repository in {escape(str(session.repo.path))}",
        soft_wrap=True,
    )
    return CommandResult()


@internal_command(Command.CLONE)
def clone(session: Session, options: Options) -> CommandResult:
    """Clone an existing repository into the work tree."""
    if not options.args:
        raise InvalidArgument("No repository provided")
    work_dir = options.resolved_work_dir()
    modified = session.repo.clone(options.args[0], work_dir, force=options.force)
    if modified:
        console.print(
            "[yellow]**NOTE**[/yellow]\n"
            f"  Local files in {escape(str(work_dir))} differ from the ones just cloned\n"
            "  and have been left unmodified:",
            soft_wrap=True,
        )
        for name in modified:
            console.print(f"    {escape(name)}", soft_wrap=True)
        console.print(
            "  Review the differences with 'dotvault diff'. To overwrite the local\n"
            "  files, use 'dotvault checkout -- <file>'.",
            soft_wrap=True,
        )
    return CommandResult(changes_possible=True)


@internal_command(Command.CONFIG)
def config(session: Session, options: Options) -> CommandResult:
    """Show or change a dotvault setting."""
    store = session.config
    if not options.args:
        table = Table(title="Supported Configuration")
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")
        table.add_column("Description", style="magenta")
        for key, value in store.items():
            table.add_row(key, value if value is not None else "", SUPPORTED_KEYS[key])
        console.print(table)
        return CommandResult()
    if len(options.args) == 1:
        value = store.get(options.args[0])
        if value is None:
            return CommandResult(exit_code=1)
        console.print(escape(value), soft_wrap=True, highlight=False)
        return CommandResult()
    if len(options.args) == 2:
        store.set(options.args[0], options.args[1])
        return CommandResult()
    raise InvalidArgument("Usage: dotvault config <name> [<value>]")


@internal_command(Command.LIST)
def list_command(session: Session, options: Options) -> CommandResult:
    """List tracked files."""
    session.require_repo()
    cwd = session.work_tree(options) if options.all_files else Path.cwd()
    for name in session.repo.list_files(all_files=options.all_files, cwd=cwd):
        console.print(escape(name), soft_wrap=True, highlight=False)
    return CommandResult()


@internal_command(Command.ALT)
def alt(session: Session, options: Options) -> CommandResult:
    """Create links for alternate files."""
    session.require_repo()
    run_alt(session.repo, loud=True, console=console)
    return CommandResult()


@internal_command(Command.ENCRYPT)
def encrypt(session: Session, options: Options) -> CommandResult:
    """Encrypt the files matched by the encrypt pattern file."""
    pipeline = ArchivePipeline(session.layout, session.repo, session.config, confirm)
    result = pipeline.encrypt(session.work_tree(options))
    for name in result.files:
        console.print(escape(name), soft_wrap=True, highlight=False)
    console.print(f"Wrote new file: {escape(str(result.archive))}", soft_wrap=True)
    return CommandResult(changes_possible=True)


@internal_command(Command.DECRYPT)
def decrypt(session: Session, options: Options) -> CommandResult:
    """Decrypt the archive into the work tree, or list it with -l."""
    pipeline = ArchivePipeline(session.layout, session.repo, session.config, confirm)
    result = pipeline.decrypt(session.work_tree(options), list_only=options.list_only)
    for name in result.members:
        console.print(escape(name), soft_wrap=True, highlight=False)
    if result.extracted:
        console.print("All files decrypted.")
    return CommandResult(changes_possible=not options.list_only)


@internal_command(Command.PERMS)
def perms(session: Session, options: Options) -> CommandResult:
    """Remove group and other permissions from private files."""
    run_perms(session.layout, session.config, session.repo)
    return CommandResult()


@internal_command(Command.CLEAN)
def clean(session: Session, options: Options) -> CommandResult:
    """Disabled; git's clean would delete every untracked file in the work tree."""
    raise CommandDisabled(clean_disabled_message(session.repo))


@internal_command(Command.HELP)
def help_command(session: Session, options: Options) -> CommandResult:
    """Show usage."""
    console.print(USAGE, highlight=False, markup=False)
    click.get_current_context().exit(1)


@internal_command(Command.VERSION)
def version(session: Session, options: Options) -> CommandResult:
    """Show the dotvault version."""
    console.print(f"dotvault {__version__}", highlight=False)
    click.get_current_context().exit(1)


def main() -> None:
    """Entry point for the dotvault CLI."""
    cli(prog_name="dotvault")


if __name__ == "__main__":
    main()
