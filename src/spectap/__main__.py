"""Allow ``python -m spectap``."""

from .cli import main

if __name__ == '__main__':
    main()
