"""Nox configuration for Shardstore."""

from __future__ import annotations

import nox


PYTHON_VERSIONS = ["3.9", "3.10", "3.11", "3.12", "3.13"]


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """run the main test suite"""

    session.env["PYTHONNOUSERSITE"] = "1"
    session.install("-e", ".[test]")

    cmd = ["python", "-m", "pytest"]
    session.run(*cmd, *session.posargs)


@nox.session(name="pep8")
def test_pep8(session: nox.Session) -> None:
    """Run linting checks."""

    session.install("-e", ".[lint]")

    for cmd in [
        "flake8 ./lib/ ./test/ noxfile.py setup.py",
    ]:

        session.run(*cmd.split())
