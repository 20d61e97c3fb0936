"""
Entry point for python -m vcfconvert.

This allows the package to be executed as a module:
    python -m vcfconvert --help
"""

from .cli import app

if __name__ == "__main__":
    app()
