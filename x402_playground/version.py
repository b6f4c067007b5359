"""
Version information for the x402 playground.
"""
import importlib.metadata
import pathlib

import tomli

try:
    __version__ = importlib.metadata.version("x402-playground")
except importlib.metadata.PackageNotFoundError:
    # Source checkout: read pyproject.toml
    try:
        path = pathlib.Path(__file__).parent.parent / "pyproject.toml"
        with open(path, "rb") as f:
            data = tomli.load(f)
        __version__ = data["project"]["version"]
    except (FileNotFoundError, KeyError):
        __version__ = "0.1.0"
