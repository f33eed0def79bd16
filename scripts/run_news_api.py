#!/usr/bin/env python3
"""Run the news API from a source checkout without installing the package."""

import sys
from pathlib import Path


def main() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    sys.path.insert(0, str(repo_root / "src"))

    from news_api.main import main as run_api

    run_api()


if __name__ == "__main__":
    main()
