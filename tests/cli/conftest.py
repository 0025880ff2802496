import functools
import logging

import click.testing
import pytest

from certsub.cli import main

CONFIG = """
subscriptions:
  example:
    certificate_authority: lets-encrypt
    domains: [example.com, www.example.com]
"""


@pytest.fixture(autouse=True)
def srcdir(tmp_path, monkeypatch):
    tmp_path.joinpath('certsub.yaml').write_text(CONFIG)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def restore_logging():
    # Every command configures the logging; undo it after each test.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main, env={'FASTLY_API_KEY': 'fake-key'})
