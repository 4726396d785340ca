"""
Top-level entry point: python -m vhost_sync <command>

Run 'python -m vhost_sync --help' for the list of commands.
"""

from .cli import main

if __name__ == "__main__":
    main()
