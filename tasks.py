# type: ignore
import os

from invoke import task


@task
def venv(ctx):
    """Initialize development environment."""
    print("Installing tasmobridge in editable mode...")

    ctx.run("pip install -e '.[test,dev]'")

    print("Development environment initialization complete!")


@task
def lint(ctx):
    """
    Perform static analysis on the source code to check for syntax errors and enforce style consistency.
    """
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx):
    """
    Run tests with coverage information.
    """
    ctx.run("pytest --cov=src --cov-report=term-missing", pty=True)


@task
def build_package(ctx):
    """
    Build sdist and wheel.
    """

    ctx.run("rm -rf dist")
    ctx.run("python -m build")


@task
def run(ctx, loglevel="INFO"):
    """Start the bridge with the configured broker."""
    env = {"LOGLEVEL": loglevel}
    if os.getenv("TASMOBRIDGE_CONFIG"):
        env["TASMOBRIDGE_CONFIG"] = os.environ["TASMOBRIDGE_CONFIG"]
    ctx.run("tasmobridge run", env=env, pty=True)
