"""Run with: python -m chiralnat"""

from .cli import main

if __name__ == "__main__":
    main()
