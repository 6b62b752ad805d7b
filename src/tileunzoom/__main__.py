"""Entry point for tileunzoom."""

from tileunzoom.reduce.__main__ import main

if __name__ == "__main__":
    main()
