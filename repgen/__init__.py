"""repgen - Remote object interface compiler."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("repgen")
except PackageNotFoundError:
    __version__ = "(local)"
