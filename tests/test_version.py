import allure
from click.testing import CliRunner

from cw import __version__
from cw.main import cw

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Session Commands"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cw, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_commands():
    result = CliRunner().invoke(cw, ["--help"])
    assert result.exit_code == 0
    for command in ("start", "new", "list", "attach", "kill", "cleanup", "dash", "pr", "wait"):
        assert command in result.output
