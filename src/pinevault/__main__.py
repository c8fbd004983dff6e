"""Allow ``python -m pinevault`` to run the CLI."""

from pinevault.cli import main

if __name__ == "__main__":
    main()
