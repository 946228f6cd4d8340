"""Allow running PageSift as ``python -m pagesift``."""

from pagesift.cli import main

if __name__ == "__main__":
    main()
