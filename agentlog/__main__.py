"""Allow ``python -m agentlog``."""

from agentlog.cli import main

if __name__ == "__main__":
    main()
