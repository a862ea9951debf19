"""Allow ``python -m taskly``."""

from taskly.cli.main import cli

cli(obj={})
