"""Allow ``python -m nodessh``."""

from nodessh.cli import main

if __name__ == "__main__":
    main()
