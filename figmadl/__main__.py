"""Main entry point when executing figmadl as a package.

This allows running the package using python -m figmadl.
"""

from figmadl.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
