"""Run the smoker CLI with ``python -m smoker``."""

from smoker.cli.main import main

if __name__ == "__main__":
    main()
