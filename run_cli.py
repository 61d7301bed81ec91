"""
Run the recipe RAG CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    serve      Start the HTTP API
    index      Index the corpus once (no-op when the dataset tag is present)
    resume     Embed the rows missing after an interrupted index run
    purge      Delete every document carrying the dataset tag
    status     Show how many documents carry the dataset tag
    ask        One-shot structured recipe query
    chat       Interactive free-text chat over the corpus

Examples:
    python run_cli.py index
    python run_cli.py ask "high protein dinner" --calories 500 --diet keto
    python run_cli.py chat

Environment variables: see run_api.py.
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()
