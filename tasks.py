"""
Developer task runner using Invoke.
Run `inv --list` to see tasks.

Key tasks:
  inv process                 (uses config.toml paths)
  inv process --paths "alipay-record wechatpay-record" --force
  inv test
  inv clean
"""

from invoke import task
from pathlib import Path
import shutil
import sys


REPO = Path(__file__).parent
DATADIR = REPO / "data"


def _python():
    """Return the python executable inside the current venv."""
    return sys.executable or "python"


@task(
    help={
        "paths": "Export files/folders, space-separated (default: config.toml paths)",
        "force": "Re-process even if inputs are unchanged",
        "verbose": "Debug logging",
    }
)
def process(c, paths="", force=False, verbose=False):
    """Process payment exports into data/coffee-data.json and the cache."""
    args = ["coffeeproc.py"]
    if verbose:
        args.append("--verbose")
    args.append("process")
    args += [f'"{p}"' for p in paths.split()]
    if force:
        args.append("--force")
    c.run(f'"{_python()}" ' + " ".join(args), pty=False)


@task
def test(c):
    """Run unit tests with pytest."""
    c.run(f'"{_python()}" -m pytest -q', pty=False)


@task
def clean(c):
    """Delete generated data (JSON document and cache)."""
    if DATADIR.exists():
        shutil.rmtree(DATADIR)
        print(f"Removed {DATADIR}")
    DATADIR.mkdir(parents=True, exist_ok=True)
