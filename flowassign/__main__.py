"""Allow ``python -m flowassign``."""

from flowassign.cli import main

if __name__ == "__main__":
    main()
