import logging
from typing import List, Tuple

import click

from trello_exporter.config_parser.config import ConfigLoader, ExportConfig
from trello_exporter.config_parser.config_validation import ConfigValidator
from trello_exporter.constants import DEFAULT_MAX_WORKERS
from trello_exporter.trello.api import TrelloApi

LOG = logging.getLogger(__name__)


def get_handler_and_setup_ctx(ctx, **config_kwargs):
    handler = CliCommon.init_main_cmd_handler(**config_kwargs)
    ctx.handler = handler
    return handler


class CliCommon:
    @staticmethod
    def init_main_cmd_handler(storage_path: str = None,
                              include_archived: bool = False,
                              split_archived: bool = False,
                              label_name: str = None,
                              max_workers: int = DEFAULT_MAX_WORKERS,
                              storage_required: bool = True):
        from trello_exporter.cmd_handler import MainCommandHandler

        validator = ConfigValidator()
        conf: ExportConfig = ConfigLoader(validator).load(storage_path=storage_path,
                                                          include_archived=include_archived,
                                                          split_archived=split_archived,
                                                          label_name=label_name,
                                                          max_workers=max_workers,
                                                          storage_required=storage_required)
        TrelloApi.init(conf.api_key, conf.token, api_root=conf.api_url)
        return MainCommandHandler(conf, TrelloApi())

    @staticmethod
    def collect_board_ids(board_ids: Tuple[str, ...]) -> List[str]:
        """
        Board IDs given with -b take precedence, otherwise they are read from stdin, one per line.
        """
        if board_ids:
            return list(board_ids)

        stdin = click.get_text_stream("stdin")
        if stdin.isatty():
            raise click.UsageError("No board ID given. Use -b/--board or pipe board IDs to stdin.")
        ids = [line.strip() for line in stdin if line.strip()]
        if not ids:
            raise click.UsageError("No board ID found on stdin.")
        LOG.info("Read %d board IDs from stdin", len(ids))
        return ids
