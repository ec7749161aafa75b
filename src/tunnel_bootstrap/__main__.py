"""Allow running as python -m tunnel_bootstrap."""

from .bootstrap import run

if __name__ == "__main__":
    run()
