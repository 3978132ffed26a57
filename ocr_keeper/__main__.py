"""Entry point for ``python -m ocr_keeper``."""

from ocr_keeper.cli import main

if __name__ == "__main__":
    main()
