"""Run the operator with ``python -m companion_operator``."""

from .main import run

run()
