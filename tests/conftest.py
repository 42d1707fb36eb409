import pytest
from click.testing import CliRunner


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a Click runner for invoking the typmark command."""
    return CliRunner()
