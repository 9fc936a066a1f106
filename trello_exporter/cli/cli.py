import logging
import time
from typing import Tuple

import click
from rich import print as rich_print, box
from rich.table import Table

from trello_exporter.cli.common import CliCommon, get_handler_and_setup_ctx
from trello_exporter.cli.context import ClickContextWrapper, TrelloGroup, TrelloCommand
from trello_exporter.constants import DEFAULT_MAX_WORKERS, VERSION, PROJECT_NAME, FilePath
from trello_exporter.display.console import CliLogger
from trello_exporter.exception import TrelloException
from trello_exporter.utils import LoggingUtils

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)

EXIT_CODE_EXCEPTION = 1
EXIT_CODE_RUN_HAD_ERRORS = 2


@click.group(cls=TrelloGroup)
@click.option('--debug/--no-debug', '--loud', default=False, help='Turns on debug logging.')
@click.option('--qq', 'quiet', is_flag=True, default=False,
              help='Silences console output. Logging to a file still happens.')
@click.option('--logs', 'log_file', type=click.Path(dir_okay=False), default=None,
              help='Writes logs to this file, rotated daily.')
@click.version_option(VERSION, prog_name=PROJECT_NAME)
@click.pass_context
def cli(ctx: ClickContextWrapper, debug: bool, quiet: bool, log_file: str):
    ctx.ensure_object(dict)
    if ctx.invoked_subcommand == "usage":
        return

    level = logging.DEBUG if debug else logging.INFO
    ctx.log_level = level
    ctx.log_file = log_file
    ctx.quiet = quiet
    ctx.working_dir = FilePath.get_working_dir()

    CliLogger.set_quiet(quiet)
    LoggingUtils.configure_logging(level, log_file=log_file, quiet=quiet)
    LOG.info("Invoked command %s", ctx.invoked_subcommand)


@cli.command(cls=TrelloCommand)
@click.option('-b', '--board', 'board_ids', multiple=True,
              help='Trello board ID, can be repeated. Read from stdin when omitted.')
@click.option('-s', '--storage', 'storage_path', required=True, type=click.Path(file_okay=False),
              help='Root directory of the export.')
@click.option('-a', '--archived', 'include_archived', is_flag=True, default=False,
              help='Include archived cards.')
@click.option('--split', 'split_archived', is_flag=True, default=False,
              help='Store archived cards in a separate ARCHIVED directory tree.')
@click.option('-l', '--label', 'label_name', default=None,
              help='Only export open cards having a label with this name.')
@click.option('-w', '--workers', 'max_workers', type=int, default=DEFAULT_MAX_WORKERS, show_default=True,
              help='Number of cards processed concurrently.')
@click.pass_context
def export(ctx: ClickContextWrapper, board_ids: Tuple[str, ...], storage_path: str, include_archived: bool,
           split_archived: bool, label_name: str, max_workers: int):
    """
    Exports boards to a Markdown directory tree
    """
    ids = CliCommon.collect_board_ids(board_ids)
    handler = get_handler_and_setup_ctx(ctx,
                                        storage_path=storage_path,
                                        include_archived=include_archived,
                                        split_archived=split_archived,
                                        label_name=label_name,
                                        max_workers=max_workers)
    run_status = handler.run(ids, show_progress=not ctx.quiet)
    handler.print_summary(run_status)
    if run_status.had_errors:
        ctx.exit(EXIT_CODE_RUN_HAD_ERRORS)
    return run_status


@cli.command(cls=TrelloCommand)
@click.option('-b', '--board', 'board_id', required=True, help='Trello board ID.')
@click.pass_context
def labels(ctx: ClickContextWrapper, board_id: str):
    """
    Prints the labels of a board
    """
    handler = get_handler_and_setup_ctx(ctx, storage_required=False)
    return handler.print_labels(board_id)


@cli.command(cls=TrelloCommand)
@click.option('-b', '--board', 'board_id', required=True, help='Trello board ID.')
@click.pass_context
def count(ctx: ClickContextWrapper, board_id: str):
    """
    Prints the number of open and archived cards of a board
    """
    handler = get_handler_and_setup_ctx(ctx, storage_required=False)
    return handler.count_cards(board_id)


@cli.command()
@click.option('-n', '--no-wrap', is_flag=True, help='Turns off the wrapping')
def usage(no_wrap: bool = False):
    """
    Prints the aggregated usage of cli
    """
    table = Table(title="Trello exporter CLI", show_lines=True, box=box.SQUARE)
    table.add_column("Command", no_wrap=no_wrap)
    table.add_column("Description", no_wrap=no_wrap)
    table.add_column("Options", no_wrap=no_wrap)

    def recursive_help(cmd, parent=None, is_root: bool = False):
        ctx = click.core.Context(cmd, info_name=cmd.name, parent=parent)
        commands = getattr(cmd, 'commands', {})
        help = list(filter(bool, cmd.get_help(ctx).split("\n")))
        if not is_root:
            command = help[0]
            desc = help[1]
            options = "\n".join(help[3:])
            table.add_row(command, desc, options)

        for sub in commands.values():
            recursive_help(sub, ctx)

    recursive_help(cli, is_root=True)
    rich_print(table)


def main():
    LOG.info("Started Trello exporter CLI")
    start_time = time.time()
    try:
        cli()
    except TrelloException as e:
        LOG.exception(e)
        CLI_LOG.print_exception(show_locals=False)
        LOG.info("Error during execution after %d seconds", int(time.time() - start_time))
        raise SystemExit(EXIT_CODE_EXCEPTION)


if __name__ == "__main__":
    main()
