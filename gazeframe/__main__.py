"""Allow ``python -m gazeframe``."""

from .cli import cli

if __name__ == "__main__":
    cli()
