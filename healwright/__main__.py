"""Allow ``python -m healwright``."""

from healwright.cli.main import main

if __name__ == "__main__":
    main()
