from typing import Iterator

import pytest
from _pytest.capture import CaptureFixture
from click.testing import CliRunner, Result

from trello_exporter.display.console import CliLogger


class PyTestCliRunner(CliRunner):
    """Override CliRunner to disable capsys
    Please refer to: https://github.com/pallets/click/issues/824#issuecomment-1855594390
    """

    def __init__(self, capsys):
        super().__init__()
        self.capsys = capsys

    def invoke(self, *args, **kwargs) -> Result:
        with self.capsys.disabled():
            result = super().invoke(*args, **kwargs)
        return result


@pytest.fixture
def click_runner(capsys: CaptureFixture[str]) -> Iterator[CliRunner]:
    """
    Convenience fixture to return a click.CliRunner for cli testing
    """
    runner = PyTestCliRunner(capsys)
    yield runner


@pytest.fixture(autouse=True)
def reset_quiet_console():
    # --qq switches the console off process wide
    yield
    CliLogger.set_quiet(False)
