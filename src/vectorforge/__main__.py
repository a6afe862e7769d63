"""Allow ``python -m vectorforge``."""

from vectorforge.cli import main

if __name__ == "__main__":
    main()
