"""Unit tests configuration file."""

import os

import pytest

from repgen.generator import load
from repgen.generator.python import render
from repgen.generator.types import Mode

FIXTURES_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "fixtures")


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


def read_fixture(name):
    with open(os.path.join(FIXTURES_DIR, name), encoding="utf-8") as f:
        return f.read()


@pytest.fixture
def fixture_text():
    return read_fixture


@pytest.fixture
def gen_code():
    """Render an interface fixture to Python and execute it, returning its globals."""

    def generate(name, mode="merged"):
        gbl = globals().copy()
        generated_code = render(load(read_fixture(name)), mode=Mode(mode), runtime_import="repgen.proto")
        exec(generated_code, gbl)
        return gbl

    return generate
