# qcomposer/cli.py
from qcomposer.__main__ import app as _typer_app
from qcomposer.logging_config import setup_logging


def main():
    """Console script entrypoint for the qcomposer CLI."""
    setup_logging()
    _typer_app()
