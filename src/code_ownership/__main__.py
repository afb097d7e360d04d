"""Allow ``python -m code_ownership``."""

from code_ownership.cli import main

if __name__ == "__main__":
    main()
