"""Allow running the CLI via ``python -m nosbot``."""

from nosbot.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
