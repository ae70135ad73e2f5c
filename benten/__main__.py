"""Entry point for `python -m benten`."""

from .cli import main

if __name__ == '__main__':
    main()
